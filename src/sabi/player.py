from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pygame

from . import constants as c
from .engine import ScriptEngine
from .errors import LoadError
from .model import (
    DialogueShown,
    Event,
    NarrationShown,
    Program,
    SceneEntered,
    ScriptFailed,
    ScriptFinished,
)
from .render import Renderer, Stage
from .script import load_file

logger = logging.getLogger(__name__)


class ScriptPlayer:
    """pygame host: draws the stage and turns key presses into ``advance``."""

    TARGET_RENDER_FPS = 60
    ADVANCE_KEYS = (pygame.K_RETURN, pygame.K_SPACE, pygame.K_KP_ENTER)

    def __init__(self, engine: ScriptEngine, program: Program, path: Path | None = None) -> None:
        self.engine = engine
        self.program = program
        self.path = path
        self.stage = Stage(player_name=engine.state.player_name)
        self.exit_program = False
        self._screen: pygame.Surface | None = None
        self._renderer: Renderer | None = None
        self._clock: pygame.time.Clock | None = None

    def begin(self) -> None:
        self.stage.apply(self.engine.start(self.program))

    def advance(self) -> None:
        if not self.engine.awaiting_input:
            return
        self.stage.apply(self.engine.advance())

    def reload(self) -> bool:
        """Re-read the script from disk, keeping the cursor when it still fits."""
        if self.path is None:
            return False
        try:
            program = load_file(self.path, self.engine.table)
        except LoadError as err:
            logger.error("reload failed:\n%s", err)
            self.stage.banner = f"Reload failed: {len(err.errors)} error(s), see log"
            return False

        cursor = self.engine.cursor
        if self.engine.awaiting_input and self.engine.cursor_fits(program, cursor):
            self.engine.reload(program, cursor)
        else:
            self.stage = Stage(player_name=self.engine.state.player_name)
            self.stage.apply(self.engine.reload(program))
        self.program = program
        self.stage.banner = ""
        logger.info("reloaded %s", self.path)
        return True

    def _pump_events(self) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.exit_program = True
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.exit_program = True
                elif event.key == pygame.K_F5:
                    self.reload()
                elif event.key in self.ADVANCE_KEYS:
                    self.advance()
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.advance()

    def run(self) -> None:
        pygame.init()
        pygame.display.set_caption(c.GAME_TITLE)
        self._screen = pygame.display.set_mode((c.SCREEN_W, c.SCREEN_H))
        self._renderer = Renderer(self._screen)
        self._clock = pygame.time.Clock()

        self.begin()
        while not self.exit_program:
            self._pump_events()
            self._renderer.draw(self.stage)
            pygame.display.flip()
            elapsed_ms = self._clock.tick(self.TARGET_RENDER_FPS)
            self.stage.tick(elapsed_ms / 1000.0)

        pygame.quit()
        self._screen = None
        self._renderer = None
        self._clock = None


def describe(event: Event) -> str | None:
    if isinstance(event, DialogueShown):
        return f"{event.speaker}: {event.text}"
    if isinstance(event, NarrationShown):
        return event.text
    if isinstance(event, SceneEntered):
        return f"-- {event.scene} --"
    if isinstance(event, ScriptFinished):
        return "-- the end --"
    if isinstance(event, ScriptFailed):
        return f"!! {event.error}"
    return None


def play_text(
    engine: ScriptEngine,
    program: Program,
    read: Callable[[str], str] | None = None,
    write: Callable[[str], None] | None = None,
) -> bool:
    """Play a program in a terminal. Returns False if the script failed."""
    read = read or input
    write = write or print
    events = engine.start(program)
    while True:
        for event in events:
            line = describe(event)
            if line is not None:
                write(line)
        if not engine.awaiting_input:
            break
        try:
            read("")
        except EOFError:
            break
        events = engine.advance()
    return engine.error is None
