"""Main CLI entry point for didl."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .. import __version__
from ..cli.analyze import analyze_file
from ..cli.message import inspect_message
from ..exceptions import DidlError
from ..utils.hashing import idl_hash


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the didl CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="didl: self-describing IDL codec",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  didl --hash name age                  Show record field ids
  didl --inspect 4449444c00017d2a       Show the types and values of a message
  didl --analyze models.py              Show the record types of IDLModel classes
  didl --version                        Show version
        """,
    )

    parser.add_argument(
        "--hash",
        metavar="NAME",
        nargs="+",
        help="Print the field id of each name",
    )

    parser.add_argument(
        "--inspect",
        metavar="HEX",
        type=str,
        help="Decode a hex-encoded message against its own type table",
    )

    parser.add_argument(
        "--analyze",
        metavar="FILE",
        type=str,
        help="Analyze model classes and show their record types",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"didl {__version__}",
    )

    args = parser.parse_args(argv)

    if args.hash:
        try:
            for name in args.hash:
                print(f"{name}\t{idl_hash(name)}")
        except DidlError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    if args.inspect:
        try:
            data = bytes.fromhex(args.inspect)
        except ValueError as e:
            print(f"Error: invalid hex: {e}", file=sys.stderr)
            return 1
        try:
            for line in inspect_message(data):
                print(line)
        except DidlError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    if args.analyze:
        file_path = Path(args.analyze)
        if not file_path.exists():
            print(f"Error: File not found: {file_path}", file=sys.stderr)
            return 1

        try:
            analyze_file(file_path)
            return 0
        except Exception as e:
            print(f"Error analyzing file: {e}", file=sys.stderr)
            return 1

    # If no command specified, show help
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
