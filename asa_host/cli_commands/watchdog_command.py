"""Watchdog command handling for the asa-host CLI."""

import argparse
import sys
from typing import List, Optional

from asa_host.cli_helpers import container_name, fail, get_runtime, get_settings, is_whole_number
from asa_host.common.constants import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_CONTAINER_NAME,
    MAX_RESTART_ATTEMPTS,
    RESTART_WINDOW_SECONDS,
    ExitCodes,
)
from asa_host.common.errors import AsaHostError, InvalidArgumentError
from asa_host.common.logging_config import configure_logging, get_logger
from asa_host.core.watchdog import Watchdog

EPILOG = f"""\
examples:
  asa-watchdog                    monitor {DEFAULT_CONTAINER_NAME} every {DEFAULT_CHECK_INTERVAL}s
  asa-watchdog asa-server-2       monitor asa-server-2 every {DEFAULT_CHECK_INTERVAL}s
  asa-watchdog asa-server-1 30    monitor asa-server-1 every 30s

Crashed, dead or unhealthy containers are restarted after a best-effort
world save. More than {MAX_RESTART_ATTEMPTS} restarts within {RESTART_WINDOW_SECONDS}s stop the
watchdog with a non-zero exit status.

To run in the background:
  nohup asa-watchdog asa-server-1 60 > /var/log/asa-watchdog.log 2>&1 &
"""


def parse_interval(raw) -> int:
    """Validate the check interval argument (positive whole seconds)."""
    text = str(raw).strip()
    if not is_whole_number(text) or int(text) <= 0:
        raise InvalidArgumentError(
            f"Invalid check interval: {raw}. Check interval must be a positive integer"
        )
    return int(text)


class WatchdogCommand:
    """Runs the crash watchdog against one container."""

    @staticmethod
    def configure_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument('name', nargs='?', default=None,
                            help=f'Name of the container to monitor (default: {DEFAULT_CONTAINER_NAME})')
        parser.add_argument('interval', nargs='?', default=None,
                            help=f'Check interval in seconds (default: {DEFAULT_CHECK_INTERVAL})')
        parser.set_defaults(func=WatchdogCommand.execute)

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add watchdog command parser to subparsers."""
        parser = subparsers.add_parser(
            'watchdog',
            help='Monitor a server container and restart it when it crashes',
            epilog=EPILOG,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        WatchdogCommand.configure_arguments(parser)

    @staticmethod
    def execute(args) -> None:
        logger = get_logger("asa_host.watchdog")
        settings = get_settings(args)
        try:
            interval = parse_interval(args.interval if args.interval is not None else settings.check_interval)
        except InvalidArgumentError as exc:
            logger.error("%s", exc)
            fail(exc)
            return

        try:
            watchdog = Watchdog(
                get_runtime(args),
                container_name(args),
                interval,
                logger,
                asa_ctrl_bin=settings.asa_ctrl_bin,
            )
            watchdog.install_signal_handlers()
            code = watchdog.run()
        except AsaHostError as exc:
            fail(exc)
            return
        sys.exit(code)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='asa-watchdog',
        description='ARK: Survival Ascended - Server Watchdog',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    WatchdogCommand.configure_arguments(parser)
    return parser


def main(args: Optional[List[str]] = None) -> None:
    """Entry point for the standalone ``asa-watchdog`` script."""
    configure_logging()
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    if args and args[0] == 'help':
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)
    parsed_args.func(parsed_args)
