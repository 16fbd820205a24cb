from __future__ import annotations

import os
from pathlib import Path

import pygame
import pytest

from sabi import constants as c
from sabi.engine import ScriptEngine
from sabi.errors import ScriptRuntimeError
from sabi.model import (
    BackgroundChanged,
    CharacterMoved,
    CharacterShown,
    DirectionChanged,
    GameState,
    ScriptFailed,
)
from sabi.player import ScriptPlayer
from sabi.render import Renderer, Stage, blend, colour_for
from sabi.script import load


os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

SCRIPT = """\
scene id=a
set type=background background=park
set type=GUI id=namebox sprite=wood mode=sliced
show character=Nayu emotion=smile position=right
say character=Nayu msg=`A fairly long line of dialogue that needs to wrap across the text box at least once or twice.`
hide character=Nayu
info msg=`Later.`
end
"""


def _stage_after_start() -> tuple[ScriptEngine, Stage]:
    engine = ScriptEngine()
    stage = Stage()
    stage.apply(engine.start(load(SCRIPT)))
    return engine, stage


def test_stage_follows_engine_events() -> None:
    engine, stage = _stage_after_start()

    assert stage.scene == "a"
    assert stage.background == "park"
    assert stage.gui["namebox"] == ("wood", "sliced")
    assert stage.actors["Nayu"].visible is True
    assert stage.actors["Nayu"].position == "right"
    assert stage.speaker == "Nayu"

    stage.apply(engine.advance())

    assert stage.actors["Nayu"].visible is False
    assert stage.speaker is None
    assert stage.text == "Later."

    stage.apply(engine.advance())
    assert stage.done is True
    assert stage.banner == "The End"


def test_stage_shows_failure_banner() -> None:
    stage = Stage()
    stage.apply([ScriptFailed(ScriptRuntimeError("boom", 3, "x.sabi"))])

    assert stage.done is True
    assert stage.banner == "Script error: x.sabi:3: boom"


def test_colour_for_is_stable_palette_entry() -> None:
    assert colour_for("park") == colour_for("park")
    assert colour_for("park") in c.EGA16[1:8]
    assert colour_for("park", bright=True) in c.EGA16[9:16]


def test_renderer_draws_headless() -> None:
    pygame.font.init()
    screen = pygame.Surface((c.SCREEN_W, c.SCREEN_H))
    renderer = Renderer(screen)
    _, stage = _stage_after_start()

    renderer.draw(stage)

    assert screen.get_at((5, 5))[:3] == colour_for("park")
    lines = renderer.wrap(stage.text, 300)
    assert len(lines) > 1
    assert " ".join(lines) == stage.text


def test_player_advance_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "story.sabi"
    path.write_text("scene id=a\ninfo msg=one\ninfo msg=two\nend\n", encoding="utf-8")
    engine = ScriptEngine(state=GameState(player_name="Ren"))
    player = ScriptPlayer(engine, load(path.read_text(encoding="utf-8"), str(path)), path)

    player.begin()
    assert player.stage.text == "one"

    path.write_text("scene id=a\ninfo msg=one\ninfo msg=TWO\nend\n", encoding="utf-8")
    assert player.reload() is True
    player.advance()

    assert player.stage.text == "TWO"


def test_player_reload_keeps_running_on_bad_script(tmp_path: Path) -> None:
    path = tmp_path / "story.sabi"
    path.write_text("info msg=one\nend\n", encoding="utf-8")
    engine = ScriptEngine()
    program = load(path.read_text(encoding="utf-8"), str(path))
    player = ScriptPlayer(engine, program, path)
    player.begin()

    path.write_text("info msg=`oops\nend\n", encoding="utf-8")

    assert player.reload() is False
    assert player.program is program
    assert engine.program is program
    assert player.stage.banner.startswith("Reload failed")


def test_stage_tracks_direction_move_and_background_transition() -> None:
    stage = Stage()
    stage.apply(
        [
            BackgroundChanged("park"),
            CharacterShown("A", "neutral", "left"),
            DirectionChanged("A", "left"),
            CharacterMoved("A", "farright"),
            BackgroundChanged("beach", c.BG_DISSOLVE),
        ]
    )

    assert stage.actors["A"].direction == "left"
    assert stage.actors["A"].position == "farright"
    assert stage.previous_background == "park"
    assert stage.bg_progress == 0.0

    stage.tick(c.BG_TRANSITION_SECONDS / 2)
    assert stage.bg_progress == pytest.approx(0.5)
    stage.tick(c.BG_TRANSITION_SECONDS)
    assert stage.bg_progress == 1.0


def test_first_background_does_not_animate() -> None:
    stage = Stage()
    stage.apply([BackgroundChanged("park", c.BG_SLIDE, "east")])

    assert stage.bg_progress == 1.0


def _renderer() -> tuple[pygame.Surface, Renderer]:
    pygame.font.init()
    screen = pygame.Surface((c.SCREEN_W, c.SCREEN_H))
    return screen, Renderer(screen)


def test_renderer_blends_dissolving_background() -> None:
    screen, renderer = _renderer()
    stage = Stage()
    stage.apply([BackgroundChanged("park"), BackgroundChanged("beach", c.BG_DISSOLVE)])
    stage.tick(c.BG_TRANSITION_SECONDS / 2)

    renderer.draw(stage)

    assert screen.get_at((5, c.SCREEN_H // 2))[:3] == blend(colour_for("park"), colour_for("beach"), 0.5)


def test_renderer_slides_background_in_from_opposite_edge() -> None:
    screen, renderer = _renderer()
    stage = Stage()
    stage.apply([BackgroundChanged("park"), BackgroundChanged("beach", c.BG_SLIDE, "west")])
    stage.tick(c.BG_TRANSITION_SECONDS / 2)

    renderer.draw(stage)

    assert screen.get_at((5, c.SCREEN_H // 2))[:3] == colour_for("park")
    assert screen.get_at((c.SCREEN_W - 5, c.SCREEN_H // 2))[:3] == colour_for("beach")
    assert renderer.slide_rect("north", 0.25) == pygame.Rect(0, c.SCREEN_H - 200, c.SCREEN_W, 200)


def test_text_cache_is_bounded() -> None:
    _, renderer = _renderer()
    white = c.EGA16[15]
    first = renderer.render_text("line 0", white)

    for i in range(1, c.TEXT_CACHE_SIZE + 50):
        renderer.render_text(f"line {i}", white)
        if i % 100 == 0:
            renderer.render_text("line 0", white)

    assert len(renderer.text_cache) == c.TEXT_CACHE_SIZE
    assert ("line 1", False, white) not in renderer.text_cache
    assert renderer.render_text("line 0", white) is first
