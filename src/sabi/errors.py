from __future__ import annotations


class ScriptError(Exception):
    """Base for every error the script pipeline reports."""

    def __init__(self, message: str, line: int | None = None, source: str = "<script>") -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.source = source

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.source}: {self.message}"
        return f"{self.source}:{self.line}: {self.message}"


# Syntax errors: one line could not be tokenized or parsed.


class ScriptSyntaxError(ScriptError):
    pass


class UnterminatedLiteral(ScriptSyntaxError):
    def __init__(self, line: int, source: str = "<script>") -> None:
        super().__init__("unterminated backtick literal", line, source)


class MalformedAttribute(ScriptSyntaxError):
    def __init__(self, line: int, token: str, source: str = "<script>") -> None:
        super().__init__(f"malformed attribute {token!r}, expected key=value", line, source)
        self.token = token


class DuplicateAttribute(ScriptSyntaxError):
    def __init__(self, line: int, key: str, source: str = "<script>") -> None:
        super().__init__(f"duplicate attribute {key!r}", line, source)
        self.key = key


# Assembly errors: the lines parse but do not form a valid program.


class AssemblyError(ScriptError):
    pass


class NestedScene(AssemblyError):
    def __init__(self, scene: str, open_scene: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"scene {scene!r} opened while scene {open_scene!r} is still open", line, source)
        self.scene = scene
        self.open_scene = open_scene


class DanglingEnd(AssemblyError):
    def __init__(self, line: int, source: str = "<script>") -> None:
        super().__init__("'end' without an open scene", line, source)


class DuplicateScene(AssemblyError):
    def __init__(self, scene: str, line: int | None = None, source: str = "<script>") -> None:
        super().__init__(f"duplicate scene {scene!r}", line, source)
        self.scene = scene


class UnresolvedScene(AssemblyError):
    def __init__(self, scene: str, line: int | None = None, source: str = "<script>") -> None:
        super().__init__(f"reference to unknown scene {scene!r}", line, source)
        self.scene = scene


class UnknownCommand(AssemblyError):
    def __init__(self, command: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"unknown command {command!r}", line, source)
        self.command = command


class MissingAttribute(AssemblyError):
    def __init__(self, command: str, key: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"{command!r} requires attribute {key!r}", line, source)
        self.command = command
        self.key = key


class UnknownVariant(AssemblyError):
    def __init__(self, command: str, key: str, value: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"{command!r} has no {key}={value!r} form", line, source)
        self.command = command
        self.key = key
        self.value = value


class InvalidAttributeValue(AssemblyError):
    def __init__(self, command: str, key: str, value: str, choices: tuple[str, ...], line: int, source: str = "<script>") -> None:
        super().__init__(f"{command!r} {key}={value!r} is not one of {', '.join(choices)}", line, source)
        self.command = command
        self.key = key
        self.value = value


class LoadError(ScriptError):
    """Every syntax or assembly error found while loading one script."""

    def __init__(self, errors: list[ScriptError], source: str = "<script>") -> None:
        count = len(errors)
        super().__init__(f"{count} error{'s' if count != 1 else ''} while loading", None, source)
        self.errors = errors

    def __str__(self) -> str:
        lines = [super().__str__()]
        lines.extend(f"  {err}" for err in self.errors)
        return "\n".join(lines)


# Runtime errors: raised while the engine steps through a loaded program.


class ScriptRuntimeError(ScriptError):
    pass


class RuntimeMissingAttribute(ScriptRuntimeError):
    def __init__(self, command: str, key: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"{command!r} requires attribute {key!r}", line, source)
        self.command = command
        self.key = key


class RuntimeUnknownCommand(ScriptRuntimeError):
    def __init__(self, command: str, line: int, source: str = "<script>") -> None:
        super().__init__(f"no handler registered for {command!r}", line, source)
        self.command = command


class FellOffScene(ScriptRuntimeError):
    def __init__(self, scene: str, source: str = "<script>") -> None:
        super().__init__(f"scene {scene!r} ended without halt", None, source)
        self.scene = scene


class RunawayScript(ScriptRuntimeError):
    def __init__(self, steps: int, line: int | None = None, source: str = "<script>") -> None:
        super().__init__(f"no await point reached after {steps} instructions", line, source)
        self.steps = steps


class HandlerFailed(ScriptRuntimeError):
    def __init__(self, command: str, reason: Exception, line: int, source: str = "<script>") -> None:
        super().__init__(f"{command!r} failed: {reason!r}", line, source)
        self.command = command
        self.reason = reason


class EngineStateError(ScriptRuntimeError):
    pass
