"""
Command Line Interface for asa-host.

Provides subcommands for watching, operating and backing up ARK: Survival
Ascended server containers from the Docker host.
"""

import argparse
import sys
from typing import List, Optional

from .cli_commands import COMMANDS
from .common.constants import ExitCodes
from .common.logging_config import configure_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='asa-host',
        description='ARK: Survival Ascended - Docker host management tool'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    for command in COMMANDS:
        command.add_parser(subparsers)

    return parser


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    # Configure logging early (idempotent)
    configure_logging()
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    # If no arguments provided, show help
    if not args or args[0] == 'help':
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)

    # Execute the appropriate command
    if hasattr(parsed_args, 'func'):
        parsed_args.func(parsed_args)
    else:
        parser.print_help()
        sys.exit(ExitCodes.OK)


if __name__ == '__main__':
    main()
