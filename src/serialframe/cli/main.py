"""Main CLI entry point for serialframe."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .. import __version__
from ..cli.analyze import analyze_file
from ..cli.monitor import monitor


def main() -> int:
    """Main entry point for the serialframe CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="serialframe: pattern-based serial message framing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  serialframe --analyze messages.py                          Show message templates
  serialframe --monitor /dev/ttyUSB0 --definitions messages.py
  serialframe --version                                      Show version
        """,
    )

    parser.add_argument(
        "--analyze",
        metavar="FILE",
        type=str,
        help="Analyze message templates defined in a Python file",
    )

    parser.add_argument(
        "--monitor",
        metavar="PORT",
        type=str,
        help="Print messages recognized on a serial port (needs --definitions)",
    )

    parser.add_argument(
        "--definitions",
        metavar="FILE",
        type=str,
        help="Python file with the message templates used by --monitor",
    )

    parser.add_argument(
        "--baudrate",
        type=int,
        default=9600,
        help="Baud rate for --monitor (default: 9600)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log discarded bytes and transport activity",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"serialframe {__version__}",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Handle --analyze
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

    # Handle --monitor
    if args.monitor:
        if not args.definitions:
            print("Error: --monitor requires --definitions FILE", file=sys.stderr)
            return 1

        definitions = Path(args.definitions)
        if not definitions.exists():
            print(f"Error: File not found: {definitions}", file=sys.stderr)
            return 1

        try:
            asyncio.run(monitor(args.monitor, definitions, args.baudrate))
            return 0
        except KeyboardInterrupt:
            return 0
        except Exception as e:
            print(f"Error monitoring {args.monitor}: {e}", file=sys.stderr)
            return 1

    # If no command specified, show help
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
