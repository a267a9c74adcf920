"""Graceful restarts with in-game countdown warnings."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Tuple

from croniter import croniter

from asa_host.common.constants import (
    DEFAULT_ASA_CTRL_BIN,
    SAVE_SETTLE_SECONDS,
    SCHEDULED_START_WAIT_SECONDS,
    SUPPORTED_WARNING_MINUTES,
)
from asa_host.common.errors import ContainerNotFoundError, InvalidArgumentError
from .rcon import broadcast, send_saveworld
from .runtime import DockerRuntime, wait_until_running


MAX_SLEEP_INTERVAL_SECONDS = 30
POST_RESTART_DELAY_SECONDS = 10
FINAL_WARNING_DELAY_SECONDS = 2


@dataclass(frozen=True)
class WarningStep:
    minutes: float
    message: str
    wait_seconds: int


# Steps are played from the first one not exceeding the chosen warning time.
WARNING_LADDER = (
    WarningStep(60, "Server will restart in 60 minutes", 900),
    WarningStep(45, "Server will restart in 45 minutes", 900),
    WarningStep(30, "Server will restart in 30 minutes", 900),
    WarningStep(15, "Server will restart in 15 minutes", 300),
    WarningStep(10, "Server will restart in 10 minutes", 300),
    WarningStep(5, "Server will restart in 5 minutes", 120),
    WarningStep(3, "Server will restart in 3 minutes", 120),
    WarningStep(1, "Server will restart in 1 minute! Please find a safe place!", 30),
    WarningStep(0.5, "Server restarting in 30 seconds!", 30),
)


def snap_warning_minutes(value: int) -> int:
    """Round a warning time to the closest supported ladder entry."""
    if value in SUPPORTED_WARNING_MINUTES:
        return value
    if value < 8:
        return 5
    if value < 13:
        return 10
    if value < 23:
        return 15
    if value < 45:
        return 30
    return 60


def parse_warning_minutes(raw: str, logger: logging.Logger) -> int:
    """Validate a warning time argument, snapping unsupported values with a warning."""
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(
            f"Invalid warning time: {raw}. Warning time must be a positive integer"
        ) from exc
    if value <= 0:
        raise InvalidArgumentError(
            f"Invalid warning time: {raw}. Warning time must be a positive integer"
        )

    snapped = snap_warning_minutes(value)
    if snapped != value:
        logger.warning("Warning time %s is not a standard value", value)
        logger.warning("Supported values: %s", ", ".join(str(v) for v in SUPPORTED_WARNING_MINUTES))
        logger.info("Using warning time: %s minutes", snapped)
    return snapped


def warning_steps(warning_minutes: int) -> List[WarningStep]:
    if warning_minutes not in SUPPORTED_WARNING_MINUTES:
        raise InvalidArgumentError(f"Invalid warning time: {warning_minutes}")
    return [step for step in WARNING_LADDER if step.minutes <= warning_minutes]


@dataclass(frozen=True)
class CronSchedule:
    """A restart cron expression and the countdown windows it produces."""

    expression: str

    def __post_init__(self) -> None:
        if not croniter.is_valid(self.expression):
            raise ValueError(f"not a valid cron expression: {self.expression!r}")

    def next_run(self, reference: datetime) -> datetime:
        """Next restart time strictly after ``reference``."""
        return croniter(self.expression, reference).get_next(datetime)

    def next_countdown(self, now: datetime, lead: timedelta) -> Tuple[datetime, datetime]:
        """Return ``(restart_at, countdown_at)`` for the first restart whose
        countdown has not started yet."""
        restart_at = self.next_run(now)
        while restart_at - lead < now:
            restart_at = self.next_run(restart_at)
        return restart_at, restart_at - lead


class ScheduledRestart:
    """Warn players over RCON, save, and restart a server container."""

    def __init__(
        self,
        runtime: DockerRuntime,
        logger: logging.Logger,
        asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runtime = runtime
        self.logger = logger
        self.asa_ctrl_bin = asa_ctrl_bin
        self.sleep = sleep

    def _announce(self, name: str, message: str) -> None:
        if not self.runtime.is_running(name):
            self.logger.warning("Container is not running, cannot send RCON message")
            return
        broadcast(self.runtime, name, message, self.logger, self.asa_ctrl_bin)

    def perform_restart(self, name: str) -> bool:
        self.logger.info("Performing server restart...")
        self.logger.info("Saving world...")
        send_saveworld(self.runtime, name, self.logger, self.asa_ctrl_bin)
        self.sleep(SAVE_SETTLE_SECONDS)

        self.logger.info("Restarting container (this will also check for updates)...")
        self.runtime.restart(name)

        self.logger.info("Waiting for server to come back online...")
        if wait_until_running(self.runtime, name, SCHEDULED_START_WAIT_SECONDS, self.sleep):
            self.logger.info("Server restarted successfully")
            return True
        self.logger.error("Server did not start within %s seconds", SCHEDULED_START_WAIT_SECONDS)
        return False

    def run(self, name: str, warning_minutes: int) -> bool:
        """Run the countdown and restart once.

        A stopped container is simply started; no countdown is played.
        """
        steps = warning_steps(warning_minutes)
        self.logger.info("Starting scheduled restart for: %s", name)
        self.logger.info("Warning time: %s minutes", warning_minutes)

        if not self.runtime.exists(name):
            raise ContainerNotFoundError(name)
        if not self.runtime.is_running(name):
            self.logger.warning("Container is not running. Starting it instead...")
            self.runtime.start(name)
            return True

        for step in steps:
            self._announce(name, step.message)
            self.sleep(step.wait_seconds)

        self._announce(name, "Server restarting NOW!")
        self.sleep(FINAL_WARNING_DELAY_SECONDS)

        ok = self.perform_restart(name)
        if ok:
            self.logger.info("Scheduled restart completed")
        return ok

    def run_schedule(self, name: str, warning_minutes: int, schedule: CronSchedule) -> None:
        """Repeat :meth:`run` so each restart lands on the cron time."""
        lead = timedelta(minutes=warning_minutes)
        self.logger.info(
            "Restart scheduler active (cron='%s', warning=%s minutes)",
            schedule.expression,
            warning_minutes,
        )

        while True:
            next_run, start_at = schedule.next_countdown(datetime.now(), lead)
            self.logger.info(
                "Next scheduled restart at %s (countdown starts %s)",
                next_run.strftime("%Y-%m-%d %H:%M"),
                start_at.strftime("%H:%M"),
            )

            while True:
                delta = (start_at - datetime.now()).total_seconds()
                if delta <= 0:
                    break
                self.sleep(min(delta, MAX_SLEEP_INTERVAL_SECONDS))

            try:
                self.run(name, warning_minutes)
            except ContainerNotFoundError:
                self.logger.error("Container '%s' does not exist; skipping this restart", name)

            # Small delay before computing next window to avoid tight loops
            self.sleep(POST_RESTART_DELAY_SECONDS)


__all__ = [
    "CronSchedule",
    "ScheduledRestart",
    "WARNING_LADDER",
    "WarningStep",
    "parse_warning_minutes",
    "snap_warning_minutes",
    "warning_steps",
]
