from __future__ import annotations

from pathlib import Path

from .assembler import assemble
from .commands import DispatchTable
from .lexer import parse_source
from .model import Program


def load(
    text: str,
    source: str = "<script>",
    table: DispatchTable | None = None,
    entry: str | None = None,
) -> Program:
    """Tokenize, parse and assemble a whole script.

    Raises ``LoadError`` listing every problem; nothing is partially loaded.
    """
    instructions = parse_source(text, source)
    return assemble(instructions, table, source, entry)


def load_file(path: str | Path, table: DispatchTable | None = None, entry: str | None = None) -> Program:
    path = Path(path)
    return load(path.read_text(encoding="utf-8"), str(path), table, entry)
