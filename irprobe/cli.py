"""Command-line entry point: print listings, member sequences and pattern literals."""

from __future__ import annotations

import argparse
import logging
import sys

from .api import dump_listing
from .compiler import CompilationError, compile_source
from .disassembler import disassemble
from .member_filter import filter_member
from .options import ExtractionOptions
from .sequence import InstructionSequence
from . import constants

DEMO_SOURCE = """\
def add(a, b):
    return a + b

total = add(1, 2)
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="irprobe",
        description="Compile a source file and print the instructions generated for one member",
    )
    parser.add_argument("file", nargs="?", help="Source file (default: built-in demo)")
    parser.add_argument(
        "--language",
        "-l",
        default=constants.DEFAULT_LANGUAGE,
        help=f"Source language (default: {constants.DEFAULT_LANGUAGE})",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--method",
        "-m",
        help=f"Method to extract (default: {constants.ENTRY_METHOD_NAME})",
    )
    target.add_argument("--field", "-f", help="Field initializer to extract")
    parser.add_argument(
        "--listing", action="store_true", help="Print the full listing of every member"
    )
    parser.add_argument(
        "--literal",
        action="store_true",
        help="Print the member as a pattern literal for use in tests",
    )
    parser.add_argument(
        "--locations", action="store_true", help="Annotate instructions with source spans"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.file:
        with open(args.file, encoding="utf-8") as f:
            source = f.read()
        name = args.file
    else:
        source = DEMO_SOURCE
        name = constants.DEFAULT_UNIT_NAME

    try:
        if args.listing:
            print(dump_listing(source, args.language, with_locations=args.locations), end="")
            return 0
        result = compile_source(source, language=args.language, name=name)
    except (CompilationError, ValueError) as e:
        print(f"irprobe: {e}", file=sys.stderr)
        return 1

    options = ExtractionOptions(target_method=args.method, target_field=args.field)
    listing = disassemble(result.class_bytes, with_locations=args.locations)
    sequence = InstructionSequence(filter_member(listing, options))
    print(sequence.to_literal() if args.literal else sequence.render())
    return 0


if __name__ == "__main__":
    sys.exit(main())
