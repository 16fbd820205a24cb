from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from . import constants as c
from .errors import ScriptError


@dataclass(frozen=True, slots=True)
class Token:
    text: str
    literal: bool = False


@dataclass(frozen=True, slots=True)
class Instruction:
    command: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    source_line: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.attributes.get(key, default)


@dataclass(frozen=True, slots=True)
class Program:
    scenes: Mapping[str, tuple[Instruction, ...]]
    entry: str
    source: str = "<script>"
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        scenes = {scene_id: tuple(body) for scene_id, body in self.scenes.items()}
        object.__setattr__(self, "scenes", MappingProxyType(scenes))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def scene(self, scene_id: str) -> tuple[Instruction, ...]:
        return self.scenes[scene_id]

    @property
    def instruction_count(self) -> int:
        return sum(len(body) for body in self.scenes.values())


@dataclass(slots=True)
class ExecutionCursor:
    scene: str
    index: int = 0

    def as_dict(self) -> dict[str, object]:
        return {"scene": self.scene, "index": self.index}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ExecutionCursor":
        return cls(scene=str(data["scene"]), index=int(data.get("index", 0)))  # type: ignore[arg-type]


@dataclass(slots=True)
class CharacterState:
    emotion: str = c.DEFAULT_EMOTION
    outfit: str = c.DEFAULT_OUTFIT
    position: str = c.DEFAULT_POSITION
    direction: str = c.DEFAULT_DIRECTION
    visible: bool = False


@dataclass(slots=True)
class GuiSkin:
    sprite: str
    mode: str = "auto"


@dataclass(slots=True)
class GameState:
    speaker: str | None = None
    text: str = ""
    background: str | None = None
    player_name: str = c.DEFAULT_PLAYER_NAME
    characters: dict[str, CharacterState] = field(default_factory=dict)
    gui: dict[str, GuiSkin] = field(default_factory=dict)

    def character(self, name: str) -> CharacterState:
        state = self.characters.get(name)
        if state is None:
            state = CharacterState()
            self.characters[name] = state
        return state


class Outcome(Enum):
    CONTINUE = "continue"
    AWAIT_INPUT = "await_input"
    TRANSITION = "transition"
    HALT = "halt"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    outcome: Outcome
    target: str | None = None


CONTINUE = DispatchResult(Outcome.CONTINUE)
AWAIT_INPUT = DispatchResult(Outcome.AWAIT_INPUT)
HALT = DispatchResult(Outcome.HALT)


def transition(target: str) -> DispatchResult:
    return DispatchResult(Outcome.TRANSITION, target)


class EngineStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    TRANSITIONING = "transitioning"
    FINISHED = "finished"


@dataclass(slots=True)
class EngineConfig:
    fall_through: str = c.FALL_THROUGH_FINISH
    max_steps_per_advance: int = c.MAX_STEPS_PER_ADVANCE


# Events handed to the presentation layer, in the order they happened.


class Event:
    __slots__ = ()


@dataclass(frozen=True, slots=True)
class DialogueShown(Event):
    speaker: str
    text: str


@dataclass(frozen=True, slots=True)
class NarrationShown(Event):
    text: str


@dataclass(frozen=True, slots=True)
class EmotionChanged(Event):
    character: str
    emotion: str


@dataclass(frozen=True, slots=True)
class OutfitChanged(Event):
    character: str
    outfit: str


@dataclass(frozen=True, slots=True)
class BackgroundChanged(Event):
    background: str
    transition: str = c.BG_CHANGE
    # Only set for slides.
    direction: str | None = None


@dataclass(frozen=True, slots=True)
class GuiChanged(Event):
    element: str
    sprite: str
    mode: str = "auto"


@dataclass(frozen=True, slots=True)
class CharacterShown(Event):
    character: str
    emotion: str
    position: str
    fade: bool = False
    direction: str = c.DEFAULT_DIRECTION


@dataclass(frozen=True, slots=True)
class CharacterHidden(Event):
    character: str
    fade: bool = False


@dataclass(frozen=True, slots=True)
class CharacterMoved(Event):
    character: str
    position: str


@dataclass(frozen=True, slots=True)
class DirectionChanged(Event):
    character: str
    direction: str


@dataclass(frozen=True, slots=True)
class PlayerNamed(Event):
    name: str


@dataclass(frozen=True, slots=True)
class SceneEntered(Event):
    scene: str


@dataclass(frozen=True, slots=True)
class ScriptFinished(Event):
    pass


@dataclass(frozen=True, slots=True)
class ScriptFailed(Event):
    error: ScriptError


TextEvent = DialogueShown | NarrationShown


@dataclass(frozen=True, slots=True)
class EngineSnapshot:
    status: EngineStatus
    cursor: ExecutionCursor | None
    state: GameState
    last_text: TextEvent | None = None
    error: ScriptError | None = None
