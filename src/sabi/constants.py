"""Constants shared by the script loader, engine and pygame host."""

from __future__ import annotations

from typing import Final

GAME_TITLE: Final[str] = "Sabi"
SCRIPT_EXT: Final[str] = ".sabi"

# Lexical
LITERAL_QUOTE: Final[str] = "`"
COMMENT_PREFIX: Final[str] = "#"

# Commands
CMD_SCENE: Final[str] = "scene"
CMD_END: Final[str] = "end"
CMD_JUMP: Final[str] = "jump"
CMD_HALT: Final[str] = "halt"
CMD_SAY: Final[str] = "say"
CMD_PSAY: Final[str] = "psay"
CMD_INFO: Final[str] = "info"
CMD_SET: Final[str] = "set"
CMD_SHOW: Final[str] = "show"
CMD_HIDE: Final[str] = "hide"
CMD_MOVE: Final[str] = "move"
CMD_LOG: Final[str] = "log"

MAIN_SCENE: Final[str] = "main"
SCENE_ID_ATTR: Final[str] = "id"

# `set type=...` variants
SET_EMOTION: Final[str] = "emotion"
SET_OUTFIT: Final[str] = "outfit"
SET_BACKGROUND: Final[str] = "background"
SET_GUI: Final[str] = "GUI"
SET_PLAYER_NAME: Final[str] = "playername"
SET_DIRECTION: Final[str] = "direction"

GUI_TEXTBOX: Final[str] = "textbox"
GUI_NAMEBOX: Final[str] = "namebox"
GUI_IDS: Final[tuple[str, ...]] = (GUI_TEXTBOX, GUI_NAMEBOX)
GUI_MODES: Final[tuple[str, ...]] = ("auto", "sliced")

POSITIONS: Final[tuple[str, ...]] = (
    "farleft",
    "left",
    "center",
    "right",
    "farright",
    "invisibleleft",
    "invisibleright",
)
DEFAULT_POSITION: Final[str] = "center"
DEFAULT_EMOTION: Final[str] = "neutral"
DEFAULT_OUTFIT: Final[str] = "default"
DEFAULT_PLAYER_NAME: Final[str] = "Player"

DIRECTIONS: Final[tuple[str, ...]] = ("left", "right")
DEFAULT_DIRECTION: Final[str] = "right"

BG_CHANGE: Final[str] = "change"
BG_DISSOLVE: Final[str] = "dissolve"
BG_SLIDE: Final[str] = "slide"
BG_TRANSITIONS: Final[tuple[str, ...]] = (BG_CHANGE, BG_DISSOLVE, BG_SLIDE)
SLIDE_DIRECTIONS: Final[tuple[str, ...]] = ("north", "south", "east", "west")
DEFAULT_SLIDE_DIRECTION: Final[str] = "north"

TRUE_WORDS: Final[frozenset[str]] = frozenset({"true", "yes", "on", "1"})

# Engine policy
FALL_THROUGH_FINISH: Final[str] = "finish"
FALL_THROUGH_ERROR: Final[str] = "error"
MAX_STEPS_PER_ADVANCE: Final[int] = 10_000

# VGA palette index -> RGB
EGA16: Final[tuple[tuple[int, int, int], ...]] = (
    (0x00, 0x00, 0x00),
    (0x00, 0x00, 0xAA),
    (0x00, 0xAA, 0x00),
    (0x00, 0xAA, 0xAA),
    (0xAA, 0x00, 0x00),
    (0xAA, 0x00, 0xAA),
    (0xAA, 0x55, 0x00),
    (0xAA, 0xAA, 0xAA),
    (0x55, 0x55, 0x55),
    (0x55, 0x55, 0xFF),
    (0x55, 0xFF, 0x55),
    (0x55, 0xFF, 0xFF),
    (0xFF, 0x55, 0x55),
    (0xFF, 0x55, 0xFF),
    (0xFF, 0xFF, 0x55),
    (0xFF, 0xFF, 0xFF),
)

SCREEN_W: Final[int] = 1280
SCREEN_H: Final[int] = 800
FONT_SIZE: Final[int] = 28
NAME_FONT_SIZE: Final[int] = 30
TEXT_CACHE_SIZE: Final[int] = 512

TEXTBOX_MARGIN: Final[int] = 40
TEXTBOX_H: Final[int] = 200
NAMEBOX_W: Final[int] = 260
NAMEBOX_H: Final[int] = 48
TEXT_PADDING: Final[int] = 18

# Seconds a dissolve or slide takes on screen
BG_TRANSITION_SECONDS: Final[float] = 0.6

ACTOR_W: Final[int] = 220
ACTOR_H: Final[int] = 460
