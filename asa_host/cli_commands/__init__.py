"""Registry for CLI subcommands."""

from .backup_command import BackupCommand
from .scheduled_restart_command import ScheduledRestartCommand
from .server_command import ServerCommand
from .watchdog_command import WatchdogCommand

COMMANDS = (
    WatchdogCommand,
    ServerCommand,
    ScheduledRestartCommand,
    BackupCommand,
)

__all__ = ["COMMANDS", "BackupCommand", "ScheduledRestartCommand", "ServerCommand", "WatchdogCommand"]
