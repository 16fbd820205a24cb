"""Tokenizer and line parser for the script dialect.

One instruction per line::

    say character=`Nayu` msg=`Hello there` emotion=happy

A backtick starts a literal that runs to the next backtick on the same line,
so literal values may hold spaces. Blank lines and lines starting with ``#``
are ignored.
"""

from __future__ import annotations

import re

from . import constants as c
from .errors import (
    DuplicateAttribute,
    LoadError,
    MalformedAttribute,
    ScriptError,
    ScriptSyntaxError,
    UnterminatedLiteral,
)
from .model import Instruction, Token

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*\Z")


def tokenize_line(text: str, line: int = 1, source: str = "<script>") -> list[Token]:
    stripped = text.strip()
    if not stripped or stripped.startswith(c.COMMENT_PREFIX):
        return []

    tokens: list[Token] = []
    buf: list[str] = []
    literal = False
    in_literal = False

    for ch in stripped:
        if ch == c.LITERAL_QUOTE:
            in_literal = not in_literal
            literal = True
            buf.append(ch)
        elif ch.isspace() and not in_literal:
            if buf:
                tokens.append(Token("".join(buf), literal))
                buf = []
                literal = False
        else:
            buf.append(ch)

    if in_literal:
        raise UnterminatedLiteral(line, source)
    if buf:
        tokens.append(Token("".join(buf), literal))
    return tokens


def _unquote(value: str) -> str | None:
    q = c.LITERAL_QUOTE
    if q not in value:
        return value
    if len(value) >= 2 and value[0] == q and value[-1] == q and q not in value[1:-1]:
        return value[1:-1]
    return None


def parse_tokens(tokens: list[Token], line: int = 1, source: str = "<script>") -> Instruction | None:
    if not tokens:
        return None

    head = tokens[0]
    if head.literal or "=" in head.text:
        raise ScriptSyntaxError(f"expected a command name, found {head.text!r}", line, source)

    attributes: dict[str, str] = {}
    for tok in tokens[1:]:
        key, sep, raw_value = tok.text.partition("=")
        if not sep or not _IDENT.match(key):
            raise MalformedAttribute(line, tok.text, source)
        value = _unquote(raw_value)
        if value is None:
            raise MalformedAttribute(line, tok.text, source)
        if key in attributes:
            raise DuplicateAttribute(line, key, source)
        attributes[key] = value

    return Instruction(head.text, attributes, line)


def parse_line(text: str, line: int = 1, source: str = "<script>") -> Instruction | None:
    return parse_tokens(tokenize_line(text, line, source), line, source)


def parse_source(text: str, source: str = "<script>") -> list[Instruction]:
    """Parse every line, collecting all syntax errors before giving up."""
    instructions: list[Instruction] = []
    errors: list[ScriptError] = []

    # Only \n ends a line; other Unicode line breaks can sit inside a literal.
    for number, raw in enumerate(text.split("\n"), start=1):
        try:
            instr = parse_line(raw.removesuffix("\r"), number, source)
        except ScriptSyntaxError as err:
            errors.append(err)
            continue
        if instr is not None:
            instructions.append(instr)

    if errors:
        raise LoadError(errors, source)
    return instructions


def _format_value(value: str) -> str:
    if c.LITERAL_QUOTE in value:
        raise ValueError(f"value {value!r} cannot be written: it contains a backtick")
    if value and not any(ch.isspace() for ch in value):
        return value
    return f"{c.LITERAL_QUOTE}{value}{c.LITERAL_QUOTE}"


def format_instruction(instr: Instruction) -> str:
    parts = [instr.command]
    parts.extend(f"{key}={_format_value(value)}" for key, value in instr.attributes.items())
    return " ".join(parts)
