from __future__ import annotations

import logging
from collections.abc import Iterable

from . import constants as c
from .commands import CommandSpec, DispatchTable, default_table
from .errors import (
    AssemblyError,
    DanglingEnd,
    DuplicateScene,
    InvalidAttributeValue,
    LoadError,
    MissingAttribute,
    NestedScene,
    ScriptError,
    UnknownCommand,
    UnknownVariant,
    UnresolvedScene,
)
from .model import Instruction, Program

logger = logging.getLogger(__name__)


def check_instruction(instr: Instruction, table: DispatchTable, source: str = "<script>") -> list[ScriptError]:
    """Validate one instruction's shape against the dispatch table."""
    spec = table.get(instr.command)
    if spec is None:
        return [UnknownCommand(instr.command, instr.source_line, source)]

    errors: list[ScriptError] = [
        MissingAttribute(instr.command, key, instr.source_line, source) for key in spec.missing(instr.attributes)
    ]
    if errors:
        return errors

    handler_spec = spec.resolve(instr.attributes)
    if handler_spec is None:
        assert spec.selector is not None
        value = instr.attributes[spec.selector]
        return [UnknownVariant(instr.command, spec.selector, value, instr.source_line, source)]

    if handler_spec is not spec:
        errors.extend(
            MissingAttribute(instr.command, key, instr.source_line, source)
            for key in handler_spec.missing(instr.attributes)
        )
    errors.extend(_check_choices(instr, spec, source))
    if handler_spec is not spec:
        errors.extend(_check_choices(instr, handler_spec, source))
    return errors


def _check_choices(instr: Instruction, spec: CommandSpec, source: str) -> list[ScriptError]:
    errors: list[ScriptError] = []
    for key, allowed in spec.choices.items():
        value = instr.attributes.get(key)
        if value is not None and value not in allowed:
            errors.append(InvalidAttributeValue(instr.command, key, value, allowed, instr.source_line, source))
    return errors


def transition_target(instr: Instruction, table: DispatchTable) -> str | None:
    spec = table.get(instr.command)
    if spec is None or spec.target is None:
        return None
    return instr.attributes.get(spec.target)


def assemble(
    instructions: Iterable[Instruction],
    table: DispatchTable | None = None,
    source: str = "<script>",
    entry: str | None = None,
) -> Program:
    """Partition parsed instructions into scenes and validate the result.

    ``scene id=X`` opens a scene and ``end`` closes it. Instructions found
    while no scene is open go to the implicit ``main`` scene. A scene still
    open at end of file is closed with a warning. Every problem found is
    reported together in one ``LoadError``.
    """
    if table is None:
        table = default_table()

    scenes: dict[str, tuple[Instruction, ...]] = {}
    order: list[str] = []
    errors: list[ScriptError] = []
    warnings: list[str] = []
    jumps: list[tuple[str, int]] = []

    open_scene: str | None = None
    open_line = 0
    body: list[Instruction] = []

    def close() -> None:
        nonlocal open_scene, body
        if open_scene is not None and open_scene not in scenes:
            scenes[open_scene] = tuple(body)
        open_scene = None
        body = []

    def open_(scene_id: str, line: int) -> None:
        nonlocal open_scene, open_line
        if scene_id in order:
            errors.append(DuplicateScene(scene_id, line, source))
        else:
            order.append(scene_id)
        open_scene = scene_id
        open_line = line

    for instr in instructions:
        line = instr.source_line

        if instr.command == c.CMD_SCENE:
            scene_id = instr.attributes.get(c.SCENE_ID_ATTR)
            if scene_id is None:
                errors.append(MissingAttribute(c.CMD_SCENE, c.SCENE_ID_ATTR, line, source))
                continue
            if open_scene is not None:
                errors.append(NestedScene(scene_id, open_scene, line, source))
                close()
            open_(scene_id, line)
            continue

        if instr.command == c.CMD_END:
            if open_scene is None:
                errors.append(DanglingEnd(line, source))
            else:
                close()
            continue

        if open_scene is None:
            open_(c.MAIN_SCENE, line)

        errors.extend(check_instruction(instr, table, source))
        target = transition_target(instr, table)
        if target is not None:
            jumps.append((target, line))
        body.append(instr)

    if open_scene is not None:
        msg = f"{source}:{open_line}: scene {open_scene!r} is not closed before end of file"
        warnings.append(msg)
        logger.warning(msg)
        close()

    for target, line in jumps:
        if target not in scenes:
            errors.append(UnresolvedScene(target, line, source))

    if entry is None:
        entry = order[0] if order else None
        if entry is None and not errors:
            errors.append(AssemblyError("script defines no scenes", None, source))
    elif entry not in scenes:
        errors.append(UnresolvedScene(entry, None, source))

    if errors:
        raise LoadError(errors, source)

    assert entry is not None
    return Program(scenes=scenes, entry=entry, source=source, warnings=tuple(warnings))
