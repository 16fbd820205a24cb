from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import constants as c
from .engine import ScriptEngine
from .errors import LoadError
from .model import EngineConfig, GameState
from .player import ScriptPlayer, play_text
from .script import load_file


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Sabi visual novel script runner")
    p.add_argument("script", help=f"Path to a {c.SCRIPT_EXT} script")
    p.add_argument("--check", action="store_true", help="Validate the script and exit")
    p.add_argument("--text", action="store_true", help="Play in the terminal instead of a window")
    p.add_argument("--entry", help="Scene to start from (default: first scene)")
    p.add_argument("--player-name", default=c.DEFAULT_PLAYER_NAME, help="Name used by psay lines")
    p.add_argument(
        "--strict-end",
        action="store_true",
        help="Treat running off the end of the entry scene as an error",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = Path(args.script)
    if not path.is_file():
        print(f"{path}: no such script", file=sys.stderr)
        return 2

    try:
        program = load_file(path, entry=args.entry)
    except LoadError as err:
        print(err, file=sys.stderr)
        return 1

    if args.check:
        print(f"{path}: ok, {len(program.scenes)} scene(s), {program.instruction_count} instruction(s)")
        return 0

    config = EngineConfig(fall_through=c.FALL_THROUGH_ERROR if args.strict_end else c.FALL_THROUGH_FINISH)
    engine = ScriptEngine(state=GameState(player_name=args.player_name), config=config)

    if args.text:
        return 0 if play_text(engine, program) else 1

    ScriptPlayer(engine, program, path).run()
    return 0 if engine.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
