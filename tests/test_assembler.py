from __future__ import annotations

import logging

import pytest

from sabi.errors import (
    AssemblyError,
    DanglingEnd,
    DuplicateScene,
    InvalidAttributeValue,
    LoadError,
    MissingAttribute,
    NestedScene,
    UnknownCommand,
    UnknownVariant,
    UnresolvedScene,
    UnterminatedLiteral,
)
from sabi.model import Instruction, Program
from sabi.script import load


def _errors(text: str) -> list[Exception]:
    with pytest.raises(LoadError) as exc:
        load(text)
    return exc.value.errors


def test_single_say_then_end_is_one_main_scene() -> None:
    program = load("say character=`Nayu` msg=`Hi`\nend\n")

    assert list(program.scenes) == ["main"]
    assert program.entry == "main"
    body = program.scenes["main"]
    assert len(body) == 1
    assert body[0].command == "say"
    assert program.warnings == ()


def test_scene_markers_are_not_part_of_bodies() -> None:
    program = load(
        "scene id=a\n"
        "say character=A msg=one\n"
        "jump id=b\n"
        "end\n"
        "scene id=b\n"
        "info msg=two\n"
        "end\n"
    )

    assert program.entry == "a"
    assert [i.command for i in program.scenes["a"]] == ["say", "jump"]
    assert [i.command for i in program.scenes["b"]] == ["info"]
    assert program.instruction_count == 3


def test_entry_override() -> None:
    program = load("scene id=a\ninfo msg=x\nend\nscene id=b\ninfo msg=y\nend\n", entry="b")

    assert program.entry == "b"


def test_unknown_entry_override_is_unresolved() -> None:
    with pytest.raises(LoadError) as exc:
        load("scene id=a\ninfo msg=x\nend\n", entry="zzz")

    assert isinstance(exc.value.errors[0], UnresolvedScene)
    assert exc.value.errors[0].scene == "zzz"


def test_duplicate_scene() -> None:
    errors = _errors("scene id=`a`\ninfo msg=x\nend\nscene id=`a`\ninfo msg=y\nend\n")

    assert len(errors) == 1
    assert isinstance(errors[0], DuplicateScene)
    assert errors[0].scene == "a"
    assert errors[0].line == 4


def test_nested_scene() -> None:
    errors = _errors("scene id=a\ninfo msg=x\nscene id=b\ninfo msg=y\nend\n")

    assert [type(e) for e in errors] == [NestedScene]
    assert errors[0].scene == "b"
    assert errors[0].open_scene == "a"


def test_dangling_end() -> None:
    errors = _errors("scene id=a\ninfo msg=x\nend\nend\n")

    assert [type(e) for e in errors] == [DanglingEnd]
    assert errors[0].line == 4


def test_eof_closes_open_scene_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="sabi.assembler"):
        program = load("scene id=a\ninfo msg=x\n", source="open.sabi")

    assert [i.command for i in program.scenes["a"]] == ["info"]
    assert len(program.warnings) == 1
    assert "open.sabi:1" in program.warnings[0]
    assert "not closed" in caplog.text


def test_second_implicit_main_is_duplicate() -> None:
    errors = _errors("info msg=x\nend\ninfo msg=y\nend\n")

    assert [type(e) for e in errors] == [DuplicateScene]
    assert errors[0].scene == "main"


def test_missing_set_attribute_fails_at_load() -> None:
    errors = _errors("set type=`emotion` character=`Nayu`\nend\n")

    assert len(errors) == 1
    assert isinstance(errors[0], MissingAttribute)
    assert errors[0].key == "emotion"
    assert errors[0].line == 1


def test_missing_set_type() -> None:
    errors = _errors("set background=park\nend\n")

    assert isinstance(errors[0], MissingAttribute)
    assert errors[0].key == "type"


def test_unknown_set_variant() -> None:
    errors = _errors("set type=sound file=x\nend\n")

    assert isinstance(errors[0], UnknownVariant)
    assert errors[0].value == "sound"


def test_unknown_command() -> None:
    errors = _errors("dance character=A\nend\n")

    assert isinstance(errors[0], UnknownCommand)
    assert errors[0].command == "dance"


def test_invalid_choice_value() -> None:
    errors = _errors("set type=GUI id=sidebar sprite=x\nshow character=A position=upstairs\nend\n")

    assert [type(e) for e in errors] == [InvalidAttributeValue, InvalidAttributeValue]
    assert [e.key for e in errors] == ["id", "position"]


def test_unresolved_jump_target() -> None:
    errors = _errors("scene id=a\njump id=nowhere\nend\n")

    assert isinstance(errors[0], UnresolvedScene)
    assert errors[0].scene == "nowhere"
    assert errors[0].line == 2


def test_all_assembly_errors_reported_together() -> None:
    text = (
        "end\n"
        "scene id=a\n"
        "dance\n"
        "say character=A\n"
        "jump id=ghost\n"
        "end\n"
    )

    errors = _errors(text)

    assert {type(e) for e in errors} == {DanglingEnd, UnknownCommand, MissingAttribute, UnresolvedScene}


def test_syntax_errors_abort_before_assembly() -> None:
    errors = _errors("say msg=`hello\nend\nend\n")

    assert [type(e) for e in errors] == [UnterminatedLiteral]
    assert errors[0].line == 1


def test_empty_script_has_no_scenes() -> None:
    errors = _errors("# nothing here\n")

    assert type(errors[0]) is AssemblyError


def test_every_reachable_jump_resolves() -> None:
    program = load(
        "scene id=a\njump id=b\nend\n"
        "scene id=b\njump id=c\nend\n"
        "scene id=c\njump id=a\nend\n"
    )

    for body in program.scenes.values():
        for instr in body:
            if instr.command == "jump":
                assert instr.attributes["id"] in program.scenes


def test_loaded_program_cannot_be_edited() -> None:
    program = load("scene id=a\nsay character=A msg=hi\nend\n")
    instr = program.scenes["a"][0]

    with pytest.raises(TypeError):
        program.scenes["b"] = ()  # type: ignore[index]
    with pytest.raises(TypeError):
        instr.attributes["msg"] = "changed"  # type: ignore[index]

    assert list(program.scenes) == ["a"]
    assert instr.attributes == {"character": "A", "msg": "hi"}


def test_program_copies_caller_mappings() -> None:
    attributes = {"msg": "hi"}
    scenes = {"a": [Instruction("info", attributes, 1)]}
    program = Program(scenes=scenes, entry="a")  # type: ignore[arg-type]

    attributes["msg"] = "changed"
    scenes["b"] = []

    assert list(program.scenes) == ["a"]
    assert program.scenes["a"][0].attributes["msg"] == "hi"
    assert isinstance(program.scenes["a"], tuple)


@pytest.mark.parametrize(
    ("line", "key"),
    [
        ("move character=A position=upstairs", "position"),
        ("set type=direction character=A direction=up", "direction"),
        ("set type=background background=x transition=wipe", "transition"),
        ("set type=background background=x transition=slide direction=up", "direction"),
        ("show character=A direction=behind", "direction"),
    ],
)
def test_stage_directions_check_their_values(line: str, key: str) -> None:
    errors = _errors(f"{line}\nend\n")

    assert len(errors) == 1
    assert isinstance(errors[0], InvalidAttributeValue)
    assert errors[0].key == key


def test_move_needs_a_position() -> None:
    errors = _errors("move character=A\nend\n")

    assert isinstance(errors[0], MissingAttribute)
    assert errors[0].key == "position"
