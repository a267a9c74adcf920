"""Shared fakes for asa_host tests: a manual clock and an in-memory runtime."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import pytest

from asa_host.common.errors import ContainerNotFoundError
from asa_host.core.runtime import (
    ContainerObservation,
    ContainerSummary,
    ExecResult,
    ResourceUsage,
    VolumeMount,
)


RUNNING = ContainerObservation("running", started_at="2024-01-01T00:00:00Z")
EXITED = ContainerObservation("exited", exit_code=1)


class FakeClock:
    """Deterministic replacement for ``time.time`` / ``time.sleep``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []
        self.on_sleep: Optional[Callable[[float], None]] = None

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(seconds)

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRuntime:
    """Scriptable stand-in for :class:`asa_host.core.runtime.DockerRuntime`.

    ``inspect`` first drains ``observations`` and then keeps returning
    ``current``; ``restart`` switches ``current`` to ``after_restart`` unless
    that is ``None``.
    """

    def __init__(self, current: ContainerObservation = RUNNING, present: bool = True) -> None:
        self.current = current
        self.present = present
        self.observations: List[ContainerObservation] = []
        self.after_restart: Optional[ContainerObservation] = RUNNING
        self.after_start: Optional[ContainerObservation] = RUNNING
        self.restart_error: Optional[Exception] = None
        self.inspect_error: Optional[Exception] = None
        self.exec_handler: Callable[[List[str]], ExecResult] = lambda _cmd: ExecResult(0, "")
        self.on_restart: Optional[Callable[[], None]] = None
        self.volume: Optional[VolumeMount] = None
        self.containers: List[ContainerSummary] = []
        self.usage = ResourceUsage(12.5, 4 * 1024 ** 3, 16 * 1024 ** 3, 2048, 4096)
        self.log_lines: List[str] = []
        self.calls: List[Tuple[str, ...]] = []
        self.exec_calls: List[List[str]] = []

    @property
    def restart_count(self) -> int:
        return sum(1 for call in self.calls if call[0] == "restart")

    def _require(self, name: str) -> None:
        if not self.present:
            raise ContainerNotFoundError(name)

    def exists(self, name: str) -> bool:
        self.calls.append(("exists", name))
        return self.present

    def inspect(self, name: str) -> ContainerObservation:
        self.calls.append(("inspect", name))
        self._require(name)
        if self.inspect_error is not None:
            error, self.inspect_error = self.inspect_error, None
            raise error
        if self.observations:
            self.current = self.observations.pop(0)
        return self.current

    def is_running(self, name: str) -> bool:
        return self.present and self.current.running

    def start(self, name: str) -> None:
        self.calls.append(("start", name))
        self._require(name)
        if self.after_start is not None:
            self.current = self.after_start

    def stop(self, name: str, timeout: int = 10) -> None:
        self.calls.append(("stop", name, str(timeout)))
        self._require(name)
        self.current = ContainerObservation("exited", exit_code=0)

    def restart(self, name: str) -> None:
        self.calls.append(("restart", name))
        self._require(name)
        if self.on_restart is not None:
            self.on_restart()
        if self.restart_error is not None:
            raise self.restart_error
        if self.after_restart is not None:
            self.current = self.after_restart

    def exec(self, name: str, command) -> ExecResult:
        self._require(name)
        self.exec_calls.append(list(command))
        return self.exec_handler(list(command))

    def logs(self, name: str, follow: bool = True, tail: Optional[int] = None):
        self.calls.append(("logs", name))
        return iter(self.log_lines)

    def resource_usage(self, name: str) -> ResourceUsage:
        return self.usage

    def list_containers(self, name_filter: str) -> List[ContainerSummary]:
        return [c for c in self.containers if name_filter in c.name]

    def find_volume(self, name: str, pattern: str, volumes_dir: str) -> Optional[VolumeMount]:
        self._require(name)
        return self.volume

    def rcon_commands(self) -> List[str]:
        return [cmd[-1] for cmd in self.exec_calls if cmd[1:3] == ["rcon", "--exec"]]


def failing_exec(_command) -> ExecResult:
    return ExecResult(1, "RCON connection refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("asa_host.test")


