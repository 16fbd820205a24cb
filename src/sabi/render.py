from __future__ import annotations

import zlib
from dataclasses import dataclass, field

import pygame

from . import constants as c
from .model import (
    BackgroundChanged,
    CharacterHidden,
    CharacterMoved,
    CharacterShown,
    DialogueShown,
    DirectionChanged,
    EmotionChanged,
    Event,
    GuiChanged,
    NarrationShown,
    OutfitChanged,
    PlayerNamed,
    SceneEntered,
    ScriptFailed,
    ScriptFinished,
)

POSITION_X: dict[str, float] = {
    "farleft": 0.1,
    "left": 0.25,
    "center": 0.5,
    "right": 0.75,
    "farright": 0.9,
    "invisibleleft": -0.2,
    "invisibleright": 1.2,
}


def colour_for(name: str, bright: bool = False) -> tuple[int, int, int]:
    """Stable stand-in colour for an asset id."""
    idx = zlib.crc32(name.encode("utf-8")) % 7 + 1
    return c.EGA16[idx + 8 if bright else idx]


def blend(start: tuple[int, int, int], end: tuple[int, int, int], t: float) -> tuple[int, int, int]:
    r, g, b = (round(a + (z - a) * t) for a, z in zip(start, end))
    return (r, g, b)


@dataclass(slots=True)
class ActorView:
    emotion: str = c.DEFAULT_EMOTION
    outfit: str = c.DEFAULT_OUTFIT
    position: str = c.DEFAULT_POSITION
    direction: str = c.DEFAULT_DIRECTION
    visible: bool = False


@dataclass(slots=True)
class Stage:
    """What the player currently sees, rebuilt from engine events."""

    scene: str = ""
    background: str | None = None
    speaker: str | None = None
    text: str = ""
    player_name: str = c.DEFAULT_PLAYER_NAME
    actors: dict[str, ActorView] = field(default_factory=dict)
    gui: dict[str, tuple[str, str]] = field(default_factory=dict)
    banner: str = ""
    done: bool = False
    # Background transition in progress; 1.0 means settled.
    previous_background: str | None = None
    bg_transition: str = c.BG_CHANGE
    bg_direction: str | None = None
    bg_progress: float = 1.0

    _APPLY = {
        SceneEntered: "_on_scene",
        DialogueShown: "_on_dialogue",
        NarrationShown: "_on_narration",
        EmotionChanged: "_on_emotion",
        OutfitChanged: "_on_outfit",
        BackgroundChanged: "_on_background",
        GuiChanged: "_on_gui",
        CharacterShown: "_on_shown",
        CharacterHidden: "_on_hidden",
        CharacterMoved: "_on_moved",
        DirectionChanged: "_on_direction",
        PlayerNamed: "_on_player_named",
        ScriptFinished: "_on_finished",
        ScriptFailed: "_on_failed",
    }

    def apply(self, events: list[Event]) -> None:
        for event in events:
            name = self._APPLY.get(type(event))
            if name is not None:
                getattr(self, name)(event)

    def actor(self, name: str) -> ActorView:
        view = self.actors.get(name)
        if view is None:
            view = ActorView()
            self.actors[name] = view
        return view

    def _on_scene(self, event: SceneEntered) -> None:
        self.scene = event.scene

    def _on_dialogue(self, event: DialogueShown) -> None:
        self.speaker = event.speaker
        self.text = event.text

    def _on_narration(self, event: NarrationShown) -> None:
        self.speaker = None
        self.text = event.text

    def _on_emotion(self, event: EmotionChanged) -> None:
        self.actor(event.character).emotion = event.emotion

    def _on_outfit(self, event: OutfitChanged) -> None:
        self.actor(event.character).outfit = event.outfit

    def _on_background(self, event: BackgroundChanged) -> None:
        self.previous_background = self.background
        self.background = event.background
        self.bg_transition = event.transition
        self.bg_direction = event.direction
        animated = event.transition != c.BG_CHANGE and self.previous_background is not None
        self.bg_progress = 0.0 if animated else 1.0

    def tick(self, seconds: float) -> None:
        if self.bg_progress < 1.0:
            self.bg_progress = min(1.0, self.bg_progress + seconds / c.BG_TRANSITION_SECONDS)

    def _on_gui(self, event: GuiChanged) -> None:
        self.gui[event.element] = (event.sprite, event.mode)

    def _on_shown(self, event: CharacterShown) -> None:
        view = self.actor(event.character)
        view.emotion = event.emotion
        view.position = event.position
        view.direction = event.direction
        view.visible = True

    def _on_hidden(self, event: CharacterHidden) -> None:
        self.actor(event.character).visible = False

    def _on_moved(self, event: CharacterMoved) -> None:
        self.actor(event.character).position = event.position

    def _on_direction(self, event: DirectionChanged) -> None:
        self.actor(event.character).direction = event.direction

    def _on_player_named(self, event: PlayerNamed) -> None:
        self.player_name = event.name

    def _on_finished(self, event: ScriptFinished) -> None:
        self.done = True
        self.banner = "The End"

    def _on_failed(self, event: ScriptFailed) -> None:
        self.done = True
        self.banner = f"Script error: {event.error}"


@dataclass
class Renderer:
    screen: pygame.Surface
    font: pygame.font.Font = field(init=False)
    name_font: pygame.font.Font = field(init=False)
    text_cache: dict[tuple[str, bool, tuple[int, int, int]], pygame.Surface] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not pygame.font.get_init():
            pygame.font.init()
        self.font = pygame.font.Font(None, c.FONT_SIZE)
        self.name_font = pygame.font.Font(None, c.NAME_FONT_SIZE)

    def render_text(self, text: str, colour: tuple[int, int, int], bold: bool = False) -> pygame.Surface:
        key = (text, bold, colour)
        surf = self.text_cache.pop(key, None)
        if surf is None:
            font = self.name_font if bold else self.font
            surf = font.render(text, True, colour)
            while len(self.text_cache) >= c.TEXT_CACHE_SIZE:
                # Oldest use first.
                del self.text_cache[next(iter(self.text_cache))]
        self.text_cache[key] = surf
        return surf

    def wrap(self, text: str, width: int) -> list[str]:
        lines: list[str] = []
        for para in text.split("\n"):
            current = ""
            for word in para.split():
                trial = f"{current} {word}" if current else word
                if current and self.font.size(trial)[0] > width:
                    lines.append(current)
                    current = word
                else:
                    current = trial
            lines.append(current)
        return lines

    def clear(self) -> None:
        self.screen.fill((0, 0, 0))

    def draw(self, stage: Stage) -> None:
        self.clear()
        self.draw_background(stage)
        self.draw_actors(stage)
        self.draw_textbox(stage)
        if stage.banner:
            self.draw_banner(stage.banner)

    def draw_background(self, stage: Stage) -> None:
        if stage.background is None:
            return
        target = colour_for(stage.background)
        if stage.bg_progress >= 1.0 or stage.previous_background is None:
            self.screen.fill(target)
        elif stage.bg_transition == c.BG_DISSOLVE:
            self.screen.fill(blend(colour_for(stage.previous_background), target, stage.bg_progress))
        else:
            self.screen.fill(colour_for(stage.previous_background))
            self.screen.fill(target, self.slide_rect(stage.bg_direction, stage.bg_progress))
        label = self.render_text(stage.background, c.EGA16[7])
        self.screen.blit(label, (c.TEXT_PADDING, c.TEXT_PADDING))

    def draw_actors(self, stage: Stage) -> None:
        w, h = self.screen.get_size()
        floor = h - c.TEXTBOX_H - c.TEXTBOX_MARGIN
        for name, view in stage.actors.items():
            if not view.visible:
                continue
            cx = int(POSITION_X.get(view.position, 0.5) * w)
            rect = pygame.Rect(0, 0, c.ACTOR_W, c.ACTOR_H)
            rect.midbottom = (cx, floor)
            pygame.draw.rect(self.screen, colour_for(f"{name}/{view.outfit}", bright=True), rect)
            pygame.draw.rect(self.screen, c.EGA16[0], rect, 2)
            self._draw_facing(rect, view.direction)
            label = self.render_text(f"{name} ({view.emotion})", c.EGA16[0])
            self.screen.blit(label, label.get_rect(midtop=(rect.centerx, rect.top + 8)))

    def slide_rect(self, direction: str | None, progress: float) -> pygame.Rect:
        """Area already covered by the incoming background.

        The old background moves toward ``direction``, so the new one enters
        from the opposite edge.
        """
        w, h = self.screen.get_size()
        dw, dh = int(w * progress), int(h * progress)
        if direction == "south":
            return pygame.Rect(0, 0, w, dh)
        if direction == "east":
            return pygame.Rect(0, 0, dw, h)
        if direction == "west":
            return pygame.Rect(w - dw, 0, dw, h)
        return pygame.Rect(0, h - dh, w, dh)

    def _draw_facing(self, rect: pygame.Rect, direction: str) -> None:
        edge, tip = (rect.right, rect.right + 14) if direction == "right" else (rect.left, rect.left - 14)
        y = rect.centery
        pygame.draw.polygon(self.screen, c.EGA16[15], [(edge, y - 12), (tip, y), (edge, y + 12)])

    def draw_textbox(self, stage: Stage) -> None:
        if not stage.text and stage.speaker is None:
            return
        w, h = self.screen.get_size()
        box = pygame.Rect(c.TEXTBOX_MARGIN, h - c.TEXTBOX_H - c.TEXTBOX_MARGIN // 2, w - 2 * c.TEXTBOX_MARGIN, c.TEXTBOX_H)
        self._draw_skinned(box, stage.gui.get(c.GUI_TEXTBOX), c.EGA16[1])

        if stage.speaker is not None:
            name_box = pygame.Rect(box.left + c.TEXT_PADDING, box.top - c.NAMEBOX_H, c.NAMEBOX_W, c.NAMEBOX_H)
            self._draw_skinned(name_box, stage.gui.get(c.GUI_NAMEBOX), c.EGA16[9])
            label = self.render_text(stage.speaker, c.EGA16[15], bold=True)
            self.screen.blit(label, label.get_rect(midleft=(name_box.left + c.TEXT_PADDING, name_box.centery)))

        y = box.top + c.TEXT_PADDING
        colour = c.EGA16[15] if stage.speaker is not None else c.EGA16[14]
        for line in self.wrap(stage.text, box.width - 2 * c.TEXT_PADDING):
            surf = self.render_text(line, colour)
            self.screen.blit(surf, (box.left + c.TEXT_PADDING, y))
            y += self.font.get_linesize()
            if y > box.bottom - c.TEXT_PADDING:
                break

    def _draw_skinned(self, rect: pygame.Rect, skin: tuple[str, str] | None, default: tuple[int, int, int]) -> None:
        if skin is None:
            pygame.draw.rect(self.screen, default, rect)
            return
        sprite, mode = skin
        pygame.draw.rect(self.screen, colour_for(sprite), rect)
        if mode == "sliced":
            pygame.draw.rect(self.screen, colour_for(sprite, bright=True), rect, 4)

    def draw_banner(self, text: str) -> None:
        w, _ = self.screen.get_size()
        surf = self.render_text(text, c.EGA16[14], bold=True)
        bar = pygame.Rect(0, 0, w, surf.get_height() + 2 * c.TEXT_PADDING)
        pygame.draw.rect(self.screen, c.EGA16[4], bar)
        self.screen.blit(surf, surf.get_rect(center=bar.center))
