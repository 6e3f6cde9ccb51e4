from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .decoder import EncodingError, decode
from .interpreter import Interpreter, StepLimitExceeded
from .program import ParseError, parse
from .tape import Tape, parse_cells


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_text(encoding="utf-8")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="typedbf Brainfuck interpreter")
    parser.add_argument("source", help="Path to Brainfuck source file")
    parser.add_argument(
        "--tape",
        default="",
        help="Initial tape cells as comma separated non-negative integers (default: empty tape)",
    )
    parser.add_argument(
        "--pointer",
        type=int,
        default=0,
        help="Initial pointer position (default: 0)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Abort after this many executed instructions (default: unlimited)",
    )
    parser.add_argument(
        "--encoding",
        default="utf-8",
        help="Text encoding used to decode the program output (default: utf-8)",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print output values as integers instead of decoding them",
    )
    parser.add_argument(
        "--dump-tape",
        action="store_true",
        help="Print the final tape and pointer to stderr",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every executed instruction")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        source_text = _read_source(args.source)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        cells = parse_cells(args.tape)
        initial_tape = Tape(cells, pointer=args.pointer)
    except ValueError as exc:
        print(f"Invalid initial tape: {exc}", file=sys.stderr)
        return 1

    try:
        program = parse(source_text)
    except ParseError as exc:
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1

    interpreter = Interpreter(debug=args.verbose)
    try:
        final_tape, output = interpreter.execute(program, initial_tape, max_steps=args.max_steps)
    except StepLimitExceeded as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if args.dump_tape:
        print(f"pointer={final_tape.pointer} tape={final_tape.values()}", file=sys.stderr)

    if args.raw:
        sys.stdout.write(" ".join(str(value) for value in output.values()))
        sys.stdout.write("\n")
        return 0

    try:
        text = decode(output, args.encoding)
    except EncodingError as exc:
        print(f"Output could not be decoded: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
