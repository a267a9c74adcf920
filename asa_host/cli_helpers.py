"""Shared CLI helpers for asa-host commands."""

import re
import sys
from typing import Optional

from asa_host.common.config import HostSettings
from asa_host.common.constants import ExitCodes
from asa_host.common.errors import (
    BackupError,
    ContainerNotFoundError,
    ContainerNotRunningError,
    InvalidArgumentError,
    RconCommandError,
    RestartLimitExceededError,
    RuntimeUnavailableError,
)
from asa_host.core.runtime import DockerRuntime


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to asa-host exit codes."""
    if isinstance(exc, InvalidArgumentError):
        return ExitCodes.INVALID_ARGUMENT
    if isinstance(exc, ContainerNotFoundError):
        return ExitCodes.CONTAINER_NOT_FOUND
    if isinstance(exc, RestartLimitExceededError):
        return ExitCodes.RESTART_LIMIT_EXCEEDED
    if isinstance(exc, RuntimeUnavailableError):
        return ExitCodes.RUNTIME_UNAVAILABLE
    if isinstance(exc, ContainerNotRunningError):
        return ExitCodes.CONTAINER_NOT_RUNNING
    if isinstance(exc, RconCommandError):
        return ExitCodes.RCON_COMMAND_FAILED
    if isinstance(exc, BackupError):
        return ExitCodes.BACKUP_FAILED
    return None


def fail(exc: Exception) -> None:
    """Exit with the message and code matching ``exc``."""
    exit_code = map_exception_to_exit_code(exc)
    if exit_code is None:
        exit_code = ExitCodes.GENERAL_ERROR
    exit_with_error(str(exc), exit_code)


def get_settings(args) -> HostSettings:
    settings = getattr(args, "settings", None)
    if not isinstance(settings, HostSettings):
        settings = HostSettings.from_env()
    return settings


def get_runtime(args) -> DockerRuntime:
    runtime = getattr(args, "runtime", None)
    if runtime is None:
        runtime = DockerRuntime()
    return runtime


def container_name(args) -> str:
    return getattr(args, "name", None) or get_settings(args).container_name


def format_size(num_bytes: float) -> str:
    """Human readable size in the style of ``du -h``."""
    for unit in ("B", "K", "M", "G"):
        if num_bytes < 1024:
            return f"{num_bytes:.0f}{unit}" if unit == "B" else f"{num_bytes:.1f}{unit}"
        num_bytes /= 1024
    return f"{num_bytes:.1f}T"


def is_whole_number(text) -> bool:
    """True for plain ASCII digit strings such as ``"60"``."""
    return re.fullmatch(r"[0-9]+", str(text).strip()) is not None
