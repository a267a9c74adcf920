"""Scheduled restart command handling for the asa-host CLI."""

import argparse

from asa_host.cli_helpers import container_name, exit_with_error, fail, get_runtime, get_settings
from asa_host.common.constants import DEFAULT_CONTAINER_NAME, ExitCodes, SUPPORTED_WARNING_MINUTES
from asa_host.common.errors import AsaHostError
from asa_host.common.logging_config import get_logger
from asa_host.core.scheduled_restart import CronSchedule, ScheduledRestart, parse_warning_minutes

EPILOG = """\
warning schedule:
  60 min: warnings at 60, 45, 30, 15, 10, 5, 3, 1 min and 30 sec
  30 min: warnings at 30, 15, 10, 5, 3, 1 min and 30 sec
  15 min: warnings at 15, 10, 5, 3, 1 min and 30 sec
  10 min: warnings at 10, 5, 3, 1 min and 30 sec
  5 min:  warnings at 5, 3, 1 min and 30 sec

With --cron (or SERVER_RESTART_CRON) the command keeps running and starts each
countdown so the restart lands on the cron time.
"""


class ScheduledRestartCommand:
    """Graceful restart with player warnings, once or on a cron schedule."""

    @staticmethod
    def add_parser(subparsers) -> None:
        parser = subparsers.add_parser(
            'scheduled-restart',
            help='Restart a server after warning players over RCON',
            epilog=EPILOG,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument('name', nargs='?', default=None,
                            help=f'Container name (default: {DEFAULT_CONTAINER_NAME})')
        parser.add_argument('warning', nargs='?', default=None,
                            help='Warning time in minutes; supported values: '
                                 + ', '.join(str(v) for v in SUPPORTED_WARNING_MINUTES))
        parser.add_argument('--cron', default=None,
                            help='Cron expression for recurring restarts')
        parser.set_defaults(func=ScheduledRestartCommand.execute)

    @staticmethod
    def execute(args) -> None:
        logger = get_logger("asa_host.scheduled_restart")
        settings = get_settings(args)
        raw_warning = args.warning if args.warning is not None else settings.restart_warning_minutes
        cron_expression = (args.cron or settings.restart_cron or "").strip()
        try:
            warning = parse_warning_minutes(raw_warning, logger)
            restarter = ScheduledRestart(get_runtime(args), logger, settings.asa_ctrl_bin)
            if cron_expression:
                try:
                    schedule = CronSchedule(cron_expression)
                except ValueError as exc:
                    exit_with_error(
                        f"Invalid cron expression '{cron_expression}': {exc}",
                        ExitCodes.INVALID_ARGUMENT,
                    )
                    return
                restarter.run_schedule(container_name(args), warning, schedule)
            elif not restarter.run(container_name(args), warning):
                exit_with_error("Server did not come back online", ExitCodes.GENERAL_ERROR)
        except AsaHostError as exc:
            fail(exc)
