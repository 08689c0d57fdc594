"""
regactivity CLI - Command-line interface for regulator activity inference.

Commands:
    regactivity run      - Score regulator activities from a matrix and a network
    regactivity methods  - List the available methods
"""

import argparse
import sys
from typing import Optional, List


def _show_methods(args: argparse.Namespace) -> int:
    from regactivity.pipeline import show_methods

    print(show_methods().to_string(index=False))
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for regactivity."""
    parser = argparse.ArgumentParser(
        prog="regactivity",
        description="Regulator activity inference from omics data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run       Score regulator activities from a matrix and a network
  methods   List the available methods

Examples:
  regactivity run --mat expr.csv --net net.csv --output activities.csv
  regactivity run --config run.yaml --methods ulm mlm wsum --times 1000
  regactivity methods
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from regactivity.cli import run
    run.register_parser(subparsers)
    methods_parser = subparsers.add_parser("methods", help="List the available methods")
    methods_parser.set_defaults(func=_show_methods)

    raw_args = list(sys.argv[1:] if args is None else args)
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # Raw tokens after the subcommand, used to tell explicit flags from defaults
    parsed_args.cli_args = raw_args[raw_args.index(parsed_args.command) + 1:]
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
