"""Steppable interpreter for assembled programs.

The engine is an explicit state machine over a serialisable cursor (scene id
plus instruction index). ``start`` and ``advance`` run instructions until one
needs player input or the script ends, and return the events produced on the
way for the presentation layer to apply.
"""

from __future__ import annotations

import copy
import logging

from . import constants as c
from .commands import CommandContext, DispatchTable, default_table
from .errors import (
    EngineStateError,
    FellOffScene,
    HandlerFailed,
    RunawayScript,
    RuntimeMissingAttribute,
    RuntimeUnknownCommand,
    ScriptRuntimeError,
)
from .model import (
    DialogueShown,
    DispatchResult,
    EngineConfig,
    EngineSnapshot,
    EngineStatus,
    Event,
    ExecutionCursor,
    GameState,
    Instruction,
    NarrationShown,
    Outcome,
    Program,
    SceneEntered,
    ScriptFailed,
    ScriptFinished,
    TextEvent,
)

logger = logging.getLogger(__name__)


class ScriptEngine:
    def __init__(
        self,
        table: DispatchTable | None = None,
        state: GameState | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.table = table if table is not None else default_table()
        self.state = state if state is not None else GameState()
        self.config = config if config is not None else EngineConfig()

        self.program: Program | None = None
        self.cursor: ExecutionCursor | None = None
        self.status = EngineStatus.IDLE
        self.error: ScriptRuntimeError | None = None
        self.last_text: TextEvent | None = None
        self.executed = 0
        self._history: list[TextEvent] = []
        self._stepping = False

    @property
    def history(self) -> tuple[TextEvent, ...]:
        return tuple(self._history)

    @property
    def awaiting_input(self) -> bool:
        return self.status is EngineStatus.AWAITING_INPUT

    @property
    def finished(self) -> bool:
        return self.status is EngineStatus.FINISHED

    def start(self, program: Program, state: GameState | None = None) -> list[Event]:
        if self._stepping:
            raise EngineStateError("cannot start while a step is running")
        if state is not None:
            self.state = state
        self.program = program
        self.cursor = ExecutionCursor(program.entry, 0)
        self.status = EngineStatus.RUNNING
        self.error = None
        self.last_text = None
        self.executed = 0
        self._history.clear()
        logger.debug("starting %s at scene %r", program.source, program.entry)
        return [SceneEntered(program.entry), *self.step()]

    def advance(self) -> list[Event]:
        if self.status is not EngineStatus.AWAITING_INPUT:
            raise EngineStateError(f"advance() needs {EngineStatus.AWAITING_INPUT.value}, engine is {self.status.value}")
        self.status = EngineStatus.RUNNING
        return self.step()

    def step(self) -> list[Event]:
        if self.status is not EngineStatus.RUNNING:
            raise EngineStateError(f"step() needs {EngineStatus.RUNNING.value}, engine is {self.status.value}")
        if self._stepping:
            raise EngineStateError("step() is not reentrant")

        events: list[Event] = []
        self._stepping = True
        try:
            self._run(events)
        except ScriptRuntimeError as err:
            self._fail(err, events)
        finally:
            self._stepping = False
        return events

    def _run(self, events: list[Event]) -> None:
        assert self.program is not None and self.cursor is not None
        steps = 0
        while self.status is EngineStatus.RUNNING:
            body = self.program.scenes[self.cursor.scene]
            if self.cursor.index >= len(body):
                self._fall_off(events)
                return

            instr = body[self.cursor.index]
            steps += 1
            if steps > self.config.max_steps_per_advance:
                raise RunawayScript(steps - 1, instr.source_line, self.program.source)

            mark = len(events)
            result = self._dispatch(instr, events)
            self.executed += 1

            if result.outcome is Outcome.CONTINUE:
                self.cursor.index += 1
            elif result.outcome is Outcome.AWAIT_INPUT:
                self.cursor.index += 1
                self._note_text(events[mark:])
                self.status = EngineStatus.AWAITING_INPUT
            elif result.outcome is Outcome.TRANSITION:
                self._enter(result, instr, events)
            else:
                self._finish(events)

    def _dispatch(self, instr: Instruction, events: list[Event]) -> DispatchResult:
        assert self.program is not None
        source = self.program.source
        spec = self.table.get(instr.command)
        if spec is None:
            raise RuntimeUnknownCommand(instr.command, instr.source_line, source)

        missing = spec.missing(instr.attributes)
        if missing:
            raise RuntimeMissingAttribute(instr.command, missing[0], instr.source_line, source)

        handler_spec = spec.resolve(instr.attributes)
        if handler_spec is None or handler_spec.handler is None:
            name = instr.command
            if spec.selector is not None:
                name = f"{instr.command} {spec.selector}={instr.attributes[spec.selector]}"
            raise RuntimeUnknownCommand(name, instr.source_line, source)

        missing = handler_spec.missing(instr.attributes)
        if missing:
            raise RuntimeMissingAttribute(instr.command, missing[0], instr.source_line, source)

        ctx = CommandContext(instr, self.state, events)
        try:
            result = handler_spec.handler(ctx)
        except ScriptRuntimeError:
            raise
        except Exception as err:
            raise HandlerFailed(instr.command, err, instr.source_line, source) from err
        if not isinstance(result, DispatchResult):
            reason = TypeError(f"handler returned {result!r}, not a DispatchResult")
            raise HandlerFailed(instr.command, reason, instr.source_line, source)
        return result

    def _note_text(self, produced: list[Event]) -> None:
        for event in produced:
            if isinstance(event, (DialogueShown, NarrationShown)):
                self.last_text = event
                self._history.append(event)

    def _enter(self, result: DispatchResult, instr: Instruction, events: list[Event]) -> None:
        assert self.program is not None and self.cursor is not None
        target = result.target or ""
        if target not in self.program.scenes:
            raise ScriptRuntimeError(f"jump to unknown scene {target!r}", instr.source_line, self.program.source)

        self.status = EngineStatus.TRANSITIONING
        logger.debug("scene %r -> %r", self.cursor.scene, target)
        self.cursor = ExecutionCursor(target, 0)
        events.append(SceneEntered(target))
        self.status = EngineStatus.RUNNING

    def _fall_off(self, events: list[Event]) -> None:
        assert self.program is not None and self.cursor is not None
        if self.config.fall_through == c.FALL_THROUGH_ERROR and self.cursor.scene == self.program.entry:
            raise FellOffScene(self.cursor.scene, self.program.source)
        self._finish(events)

    def _finish(self, events: list[Event]) -> None:
        self.status = EngineStatus.FINISHED
        events.append(ScriptFinished())

    def _fail(self, err: ScriptRuntimeError, events: list[Event]) -> None:
        logger.error("script halted: %s", err)
        self.error = err
        self.status = EngineStatus.FINISHED
        events.append(ScriptFailed(err))

    def current_state(self) -> EngineSnapshot:
        cursor = None if self.cursor is None else ExecutionCursor(self.cursor.scene, self.cursor.index)
        return EngineSnapshot(
            status=self.status,
            cursor=cursor,
            state=copy.deepcopy(self.state),
            last_text=self.last_text,
            error=self.error,
        )

    @staticmethod
    def cursor_fits(program: Program, cursor: ExecutionCursor | None) -> bool:
        if cursor is None or cursor.scene not in program.scenes:
            return False
        return 0 <= cursor.index <= len(program.scenes[cursor.scene])

    def reload(self, program: Program, cursor: ExecutionCursor | None = None) -> list[Event]:
        """Swap in a new program and cursor together.

        Without a cursor the new program starts from its entry scene. With
        one, the engine waits for the next ``advance`` and resumes there.
        """
        if self._stepping:
            raise EngineStateError("cannot reload while a step is running")
        if cursor is None:
            return self.start(program)
        if not self.cursor_fits(program, cursor):
            raise EngineStateError(f"cursor {cursor.scene}:{cursor.index} does not fit {program.source}")

        self.program, self.cursor = program, ExecutionCursor(cursor.scene, cursor.index)
        self.status = EngineStatus.AWAITING_INPUT
        self.error = None
        logger.debug("reloaded %s at %s:%d", program.source, cursor.scene, cursor.index)
        return []
