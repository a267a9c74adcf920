"""Crash watchdog for a single server container.

The watchdog polls one container, classifies what it sees into a
:class:`TargetState` and restarts the container when it is down or reported
unhealthy. Restarts are budgeted: at most ``MAX_RESTART_ATTEMPTS`` inside a
``RESTART_WINDOW_SECONDS`` window anchored at the first attempt. Once the
budget is spent the watchdog raises :class:`RestartLimitExceededError` and
stops, leaving the crash loop for an operator to investigate.
"""

from __future__ import annotations

import enum
import logging
import signal
import time
from dataclasses import dataclass
from typing import Callable, Optional

from asa_host.common.constants import (
    DEFAULT_ASA_CTRL_BIN,
    MAX_RESTART_ATTEMPTS,
    MAX_STARTUP_WAIT_SECONDS,
    MIN_RECOMMENDED_CHECK_INTERVAL,
    RESTART_WINDOW_SECONDS,
    SAVE_SETTLE_SECONDS,
)
from asa_host.common.errors import (
    ContainerNotFoundError,
    RestartLimitExceededError,
    RuntimeUnavailableError,
)
from .rcon import send_saveworld
from .runtime import ContainerObservation, DockerRuntime, wait_until_running


class TargetState(enum.Enum):
    RUNNING_HEALTHY = "running"
    RUNNING_DEGRADED = "degraded"
    RUNNING_UNHEALTHY = "unhealthy"
    STOPPED_EXPECTED = "transitional"
    STOPPED_CRASHED = "crashed"
    STOPPED_UNKNOWN = "unknown"

    @property
    def needs_restart(self) -> bool:
        return self in _RESTART_STATES


_RESTART_STATES = frozenset(
    {TargetState.RUNNING_UNHEALTHY, TargetState.STOPPED_CRASHED, TargetState.STOPPED_UNKNOWN}
)


def classify(observation: ContainerObservation) -> TargetState:
    """Map a raw observation onto the watchdog's state table."""
    lifecycle = observation.lifecycle_state
    if lifecycle == "running":
        if observation.health_state == "unhealthy":
            return TargetState.RUNNING_UNHEALTHY
        if observation.health_state in ("none", "healthy"):
            return TargetState.RUNNING_HEALTHY
        # health check still warming up; never restarted from here
        return TargetState.RUNNING_DEGRADED
    if lifecycle in ("exited", "dead"):
        return TargetState.STOPPED_CRASHED
    if lifecycle in ("created", "restarting"):
        return TargetState.STOPPED_EXPECTED
    return TargetState.STOPPED_UNKNOWN


@dataclass
class RestartWindow:
    """Restart attempts counted since ``window_start`` (0 means no window yet)."""

    window_start: float = 0
    attempt_count: int = 0

    def expired(self, now: float, window_seconds: int = RESTART_WINDOW_SECONDS) -> bool:
        return self.window_start == 0 or (now - self.window_start) > window_seconds

    def reset(self, now: float) -> None:
        self.window_start = now
        self.attempt_count = 0


class WatchdogInterrupted(Exception):
    """Raised from the signal handler to leave the poll loop."""


def signal_name(sig: int) -> str:
    """Best effort signal name for logging."""
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


class Watchdog:
    """Supervises one container and restarts it within a bounded budget."""

    def __init__(
        self,
        runtime: DockerRuntime,
        name: str,
        poll_interval: int,
        logger: logging.Logger,
        *,
        asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN,
        max_attempts: int = MAX_RESTART_ATTEMPTS,
        window_seconds: int = RESTART_WINDOW_SECONDS,
        startup_wait: int = MAX_STARTUP_WAIT_SECONDS,
        save_settle: int = SAVE_SETTLE_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.runtime = runtime
        self.name = name
        self.poll_interval = poll_interval
        self.logger = logger
        self.asa_ctrl_bin = asa_ctrl_bin
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.startup_wait = startup_wait
        self.save_settle = save_settle
        self.clock = clock or time.time
        self.sleep = sleep or time.sleep
        self.window = RestartWindow()
        self.last_observation: Optional[ContainerObservation] = None
        self.restart_in_progress = False
        self.stop_requested = False
        self.interruptible = False

    def poll(self) -> TargetState:
        """Observe the container once and log what was seen.

        Raises:
            ContainerNotFoundError: the container has been removed
        """
        try:
            observation = self.runtime.inspect(self.name)
        except RuntimeUnavailableError as exc:
            self.logger.warning("Could not inspect container: %s", exc)
            observation = ContainerObservation.unknown()
        self.last_observation = observation

        state = classify(observation)
        if state is TargetState.RUNNING_HEALTHY:
            self.logger.info("Container is running (Started: %s)", observation.started_at)
        elif state is TargetState.RUNNING_DEGRADED:
            self.logger.warning("Container health check failed: %s", observation.health_state)
        elif state is TargetState.RUNNING_UNHEALTHY:
            self.logger.warning("Container health check failed: %s", observation.health_state)
            self.logger.error("Container is unhealthy, restarting...")
        else:
            self.logger.warning("Container is not running (Status: %s)", observation.lifecycle_state)
            if state is TargetState.STOPPED_CRASHED:
                self.logger.error("Container has crashed or exited unexpectedly")
            elif state is TargetState.STOPPED_EXPECTED:
                self.logger.info("Container is in %s state, waiting...", observation.lifecycle_state)
            else:
                self.logger.error("Container is in unexpected state: %s", observation.lifecycle_state)
        return state

    def attempt_restart(self) -> bool:
        """Restart the container if the budget allows.

        Returns True once the container is observed running again, False when
        the restart command failed or the container did not come up in time.

        Raises:
            RestartLimitExceededError: the budget for the current window is spent
        """
        now = self.clock()
        if self.window.expired(now, self.window_seconds):
            self.window.reset(now)

        if self.window.attempt_count >= self.max_attempts:
            self.logger.error(
                "Too many restarts (%s) in %ss window. Stopping watchdog to prevent restart loop.",
                self.window.attempt_count,
                self.window_seconds,
            )
            self.logger.error("Please investigate the issue and restart the watchdog manually.")
            raise RestartLimitExceededError(self.window.attempt_count, self.window_seconds)

        self.window.attempt_count += 1
        self.logger.warning("Attempting restart %s/%s...", self.window.attempt_count, self.max_attempts)

        exit_code = self.last_observation.exit_code if self.last_observation else None
        self.logger.info("Container exit code: %s", exit_code if exit_code is not None else "unknown")

        self.restart_in_progress = True
        try:
            self.logger.info("Attempting to save world data...")
            if send_saveworld(self.runtime, self.name, self.logger, self.asa_ctrl_bin):
                self.sleep(self.save_settle)

            self.logger.info("Restarting container...")
            try:
                self.runtime.restart(self.name)
            except RuntimeUnavailableError as exc:
                self.logger.error("Restart command failed: %s", exc)
                return False

            if wait_until_running(self.runtime, self.name, self.startup_wait, self.sleep):
                self.logger.info("Container restarted successfully")
                return True

            self.logger.error("Container did not start within %s seconds", self.startup_wait)
            return False
        finally:
            self.restart_in_progress = False

    def check_once(self) -> TargetState:
        state = self.poll()
        if state.needs_restart:
            self.attempt_restart()
        return state

    def _handle_stop_signal(self, sig: int, _frame) -> None:
        self.stop_requested = True
        if self.interruptible and not self.restart_in_progress:
            raise WatchdogInterrupted(signal_name(sig))
        self.logger.info("Signal %s received; stopping after the current step.", signal_name(sig))

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_stop_signal)
        signal.signal(signal.SIGINT, self._handle_stop_signal)

    def _startup(self) -> None:
        if not self.runtime.exists(self.name):
            self.logger.error("Container '%s' does not exist", self.name)
            raise ContainerNotFoundError(self.name)

        if self.poll_interval < MIN_RECOMMENDED_CHECK_INTERVAL:
            self.logger.warning(
                "Check interval is very short (%ss). Recommended minimum: 30s", self.poll_interval
            )

        self.logger.info("Starting watchdog for container: %s", self.name)
        self.logger.info("Check interval: %s seconds", self.poll_interval)
        self.logger.info(
            "Restart limit: %s restarts in %ss", self.max_attempts, self.window_seconds
        )

    def run(self) -> int:
        """Run the poll loop until a signal arrives; fatal conditions raise.

        Raises:
            ContainerNotFoundError: the container is missing at start-up or is removed
            RestartLimitExceededError: the restart budget was exhausted
        """
        self.interruptible = True
        try:
            self._startup()
            while not self.stop_requested:
                self.check_once()
                if self.stop_requested:
                    break
                self.sleep(self.poll_interval)
        except WatchdogInterrupted as exc:
            self.logger.info("Received signal %s.", exc)
        except ContainerNotFoundError:
            if self.last_observation is not None:
                self.logger.error("Container '%s' was removed; cannot restart it.", self.name)
            raise
        finally:
            self.interruptible = False

        self.logger.info("Watchdog stopped")
        return 0


__all__ = [
    "RestartWindow",
    "TargetState",
    "Watchdog",
    "WatchdogInterrupted",
    "classify",
    "signal_name",
]
