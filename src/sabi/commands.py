"""Command dispatch table.

Each script command maps to a ``CommandSpec``: the attributes it needs and a
handler that mutates ``GameState``, emits presentation events and returns a
``DispatchResult`` telling the engine whether to keep going, wait for input,
jump to another scene or stop. New commands are added with ``register`` and
need no change to the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from . import constants as c
from .model import (
    AWAIT_INPUT,
    CONTINUE,
    HALT,
    BackgroundChanged,
    CharacterHidden,
    CharacterMoved,
    CharacterShown,
    DialogueShown,
    DirectionChanged,
    DispatchResult,
    EmotionChanged,
    Event,
    GameState,
    GuiChanged,
    GuiSkin,
    Instruction,
    NarrationShown,
    OutfitChanged,
    PlayerNamed,
    transition,
)

script_logger = logging.getLogger("sabi.script")


@dataclass(slots=True)
class CommandContext:
    instruction: Instruction
    state: GameState
    events: list[Event] = field(default_factory=list)

    def attr(self, key: str) -> str:
        return self.instruction.attributes[key]

    def opt(self, key: str, default: str | None = None) -> str | None:
        return self.instruction.attributes.get(key, default)

    def flag(self, key: str) -> bool:
        return (self.opt(key) or "").lower() in c.TRUE_WORDS

    def emit(self, event: Event) -> None:
        self.events.append(event)


Handler = Callable[[CommandContext], DispatchResult]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    name: str
    handler: Handler | None = None
    required: frozenset[str] = frozenset()
    choices: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    # Attribute that names a scene to transition to; checked at assembly.
    target: str | None = None
    selector: str | None = None
    variants: Mapping[str, "CommandSpec"] = field(default_factory=dict)

    def resolve(self, attributes: Mapping[str, str]) -> "CommandSpec | None":
        """Return the command entry that actually handles ``attributes``.

        Commands with a selector (``set type=...``) delegate to the variant
        named by the selector value; ``None`` means no such variant.
        """
        if self.selector is None:
            return self
        return self.variants.get(attributes.get(self.selector, ""))

    def missing(self, attributes: Mapping[str, str]) -> list[str]:
        required = set(self.required)
        if self.selector is not None:
            required.add(self.selector)
        return sorted(key for key in required if key not in attributes)


class DispatchTable:
    def __init__(self, specs: Iterable[CommandSpec] = ()) -> None:
        self._specs: dict[str, CommandSpec] = {}
        for spec in specs:
            self._specs[spec.name] = spec

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def get(self, name: str) -> CommandSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return sorted(self._specs)

    def copy(self) -> "DispatchTable":
        return DispatchTable(self._specs.values())

    def register(
        self,
        name: str,
        handler: Handler,
        required: Iterable[str] = (),
        *,
        choices: Mapping[str, tuple[str, ...]] | None = None,
        target: str | None = None,
    ) -> CommandSpec:
        spec = CommandSpec(
            name=name,
            handler=handler,
            required=frozenset(required),
            choices=dict(choices or {}),
            target=target,
        )
        self._specs[name] = spec
        return spec

    def register_variant(
        self,
        name: str,
        selector: str,
        value: str,
        handler: Handler,
        required: Iterable[str] = (),
        *,
        choices: Mapping[str, tuple[str, ...]] | None = None,
    ) -> CommandSpec:
        parent = self._specs.get(name)
        if parent is None:
            parent = CommandSpec(name=name, selector=selector)
        elif parent.selector != selector:
            raise ValueError(f"command {name!r} is not selected by {selector!r}")

        variant = CommandSpec(
            name=f"{name} {selector}={value}",
            handler=handler,
            required=frozenset(required),
            choices=dict(choices or {}),
        )
        variants = dict(parent.variants)
        variants[value] = variant
        self._specs[name] = CommandSpec(name=name, selector=selector, variants=variants)
        return variant


# Dialogue


def _say(ctx: CommandContext) -> DispatchResult:
    character = ctx.attr("character")
    emotion = ctx.opt("emotion")
    if emotion:
        ctx.state.character(character).emotion = emotion
        ctx.emit(EmotionChanged(character, emotion))
    ctx.state.speaker = character
    ctx.state.text = ctx.attr("msg")
    ctx.emit(DialogueShown(character, ctx.state.text))
    return AWAIT_INPUT


def _psay(ctx: CommandContext) -> DispatchResult:
    ctx.state.speaker = ctx.state.player_name
    ctx.state.text = ctx.attr("msg")
    ctx.emit(DialogueShown(ctx.state.player_name, ctx.state.text))
    return AWAIT_INPUT


def _info(ctx: CommandContext) -> DispatchResult:
    ctx.state.speaker = None
    ctx.state.text = ctx.attr("msg")
    ctx.emit(NarrationShown(ctx.state.text))
    return AWAIT_INPUT


# Stage changes


def _set_emotion(ctx: CommandContext) -> DispatchResult:
    character, emotion = ctx.attr("character"), ctx.attr("emotion")
    ctx.state.character(character).emotion = emotion
    ctx.emit(EmotionChanged(character, emotion))
    return CONTINUE


def _set_outfit(ctx: CommandContext) -> DispatchResult:
    character, outfit = ctx.attr("character"), ctx.attr("outfit")
    ctx.state.character(character).outfit = outfit
    ctx.emit(OutfitChanged(character, outfit))
    return CONTINUE


def _set_background(ctx: CommandContext) -> DispatchResult:
    ctx.state.background = ctx.attr("background")
    how = ctx.opt("transition") or c.BG_CHANGE
    direction = None
    if how == c.BG_SLIDE:
        direction = ctx.opt("direction") or c.DEFAULT_SLIDE_DIRECTION
    ctx.emit(BackgroundChanged(ctx.state.background, how, direction))
    return CONTINUE


def _set_direction(ctx: CommandContext) -> DispatchResult:
    character, direction = ctx.attr("character"), ctx.attr("direction")
    ctx.state.character(character).direction = direction
    ctx.emit(DirectionChanged(character, direction))
    return CONTINUE


def _set_gui(ctx: CommandContext) -> DispatchResult:
    element, sprite = ctx.attr("id"), ctx.attr("sprite")
    mode = ctx.opt("mode", "auto") or "auto"
    ctx.state.gui[element] = GuiSkin(sprite, mode)
    ctx.emit(GuiChanged(element, sprite, mode))
    return CONTINUE


def _set_player_name(ctx: CommandContext) -> DispatchResult:
    ctx.state.player_name = ctx.attr("name")
    ctx.emit(PlayerNamed(ctx.state.player_name))
    return CONTINUE


def _show(ctx: CommandContext) -> DispatchResult:
    name = ctx.attr("character")
    actor = ctx.state.character(name)
    actor.emotion = ctx.opt("emotion") or actor.emotion
    actor.position = ctx.opt("position") or actor.position
    actor.direction = ctx.opt("direction") or actor.direction
    actor.visible = True
    ctx.emit(CharacterShown(name, actor.emotion, actor.position, ctx.flag("fade"), actor.direction))
    return CONTINUE


def _hide(ctx: CommandContext) -> DispatchResult:
    name = ctx.attr("character")
    ctx.state.character(name).visible = False
    ctx.emit(CharacterHidden(name, ctx.flag("fade")))
    return CONTINUE


def _move(ctx: CommandContext) -> DispatchResult:
    name, position = ctx.attr("character"), ctx.attr("position")
    ctx.state.character(name).position = position
    ctx.emit(CharacterMoved(name, position))
    return CONTINUE


# Flow


def _jump(ctx: CommandContext) -> DispatchResult:
    return transition(ctx.attr(c.SCENE_ID_ATTR))


def _halt(ctx: CommandContext) -> DispatchResult:
    return HALT


def _log(ctx: CommandContext) -> DispatchResult:
    script_logger.info("%s", ctx.attr("msg"))
    return CONTINUE


def default_table() -> DispatchTable:
    table = DispatchTable()

    def reg(name: str, handler: Handler, *required: str, **kwargs: object) -> None:
        table.register(name, handler, required, **kwargs)  # type: ignore[arg-type]

    def setv(value: str, handler: Handler, *required: str, **kwargs: object) -> None:
        table.register_variant(c.CMD_SET, "type", value, handler, required, **kwargs)  # type: ignore[arg-type]

    reg(c.CMD_SAY, _say, "character", "msg")
    reg(c.CMD_PSAY, _psay, "msg")
    reg(c.CMD_INFO, _info, "msg")
    reg(c.CMD_SHOW, _show, "character", choices={"position": c.POSITIONS, "direction": c.DIRECTIONS})
    reg(c.CMD_HIDE, _hide, "character")
    reg(c.CMD_MOVE, _move, "character", "position", choices={"position": c.POSITIONS})
    reg(c.CMD_SCENE, _jump, c.SCENE_ID_ATTR, target=c.SCENE_ID_ATTR)
    reg(c.CMD_JUMP, _jump, c.SCENE_ID_ATTR, target=c.SCENE_ID_ATTR)
    reg(c.CMD_HALT, _halt)
    reg(c.CMD_LOG, _log, "msg")

    setv(c.SET_EMOTION, _set_emotion, "character", "emotion")
    setv(c.SET_OUTFIT, _set_outfit, "character", "outfit")
    setv(
        c.SET_BACKGROUND,
        _set_background,
        "background",
        choices={"transition": c.BG_TRANSITIONS, "direction": c.SLIDE_DIRECTIONS},
    )
    setv(c.SET_DIRECTION, _set_direction, "character", "direction", choices={"direction": c.DIRECTIONS})
    setv(c.SET_GUI, _set_gui, "id", "sprite", choices={"id": c.GUI_IDS, "mode": c.GUI_MODES})
    setv(c.SET_PLAYER_NAME, _set_player_name, "name")
    return table
