"""Settings helpers for asa-host.

All values are read from the environment once at start-up; command line
arguments take precedence over anything resolved here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    DEFAULT_ASA_CTRL_BIN,
    DEFAULT_BACKUP_DIR,
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_CONTAINER_NAME,
    DEFAULT_DOCKER_VOLUMES_DIR,
    DEFAULT_MAX_BACKUPS,
    DEFAULT_RESTART_WARNING_MINUTES,
    DEFAULT_VOLUME_PATTERN,
)


def env_int(key: str, default: int, environ: Optional[Mapping[str, str]] = None) -> int:
    value = (environ if environ is not None else os.environ).get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_str(key: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    value = (environ if environ is not None else os.environ).get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class HostSettings:
    """Typed host-side settings sourced from the environment."""

    container_name: str = DEFAULT_CONTAINER_NAME
    check_interval: int = DEFAULT_CHECK_INTERVAL
    backup_dir: str = DEFAULT_BACKUP_DIR
    max_backups: int = DEFAULT_MAX_BACKUPS
    asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN
    volume_pattern: str = DEFAULT_VOLUME_PATTERN
    docker_volumes_dir: str = DEFAULT_DOCKER_VOLUMES_DIR
    restart_cron: str = ""
    restart_warning_minutes: int = DEFAULT_RESTART_WARNING_MINUTES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HostSettings":
        return cls(
            container_name=env_str("ASA_CONTAINER_NAME", DEFAULT_CONTAINER_NAME, environ),
            check_interval=env_int("ASA_WATCHDOG_INTERVAL", DEFAULT_CHECK_INTERVAL, environ),
            backup_dir=env_str("ASA_BACKUP_DIR", DEFAULT_BACKUP_DIR, environ),
            max_backups=env_int("ASA_MAX_BACKUPS", DEFAULT_MAX_BACKUPS, environ),
            asa_ctrl_bin=env_str("ASA_CTRL_BIN", DEFAULT_ASA_CTRL_BIN, environ),
            volume_pattern=env_str("ASA_VOLUME_PATTERN", DEFAULT_VOLUME_PATTERN, environ),
            docker_volumes_dir=env_str("ASA_DOCKER_VOLUMES_DIR", DEFAULT_DOCKER_VOLUMES_DIR, environ),
            restart_cron=env_str("SERVER_RESTART_CRON", "", environ),
            restart_warning_minutes=env_int(
                "ASA_RESTART_WARNING", DEFAULT_RESTART_WARNING_MINUTES, environ
            ),
        )
