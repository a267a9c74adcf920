"""Start/stop/status operations for server containers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from asa_host.common.constants import (
    DEFAULT_ASA_CTRL_BIN,
    DEFAULT_SERVER_FILTER,
    START_WAIT_SECONDS,
    STOP_SAVE_SETTLE_SECONDS,
    STOP_TIMEOUT_SECONDS,
    UPDATE_START_WAIT_SECONDS,
)
from asa_host.common.errors import (
    AsaHostError,
    ContainerNotFoundError,
    ContainerNotRunningError,
    InvalidArgumentError,
)
from .rcon import broadcast, execute_rcon, send_saveworld
from .runtime import ContainerSummary, DockerRuntime, ResourceUsage, wait_until_running


# (message, seconds to wait afterwards)
UPDATE_COUNTDOWN = (
    ("Server will restart in 5 minutes for updates", 60),
    ("Server will restart in 4 minutes for updates", 60),
    ("Server will restart in 3 minutes for updates", 60),
    ("Server will restart in 2 minutes for updates", 60),
    ("Server will restart in 1 minute for updates", 30),
    ("Server restarting in 30 seconds!", 30),
)


@dataclass
class ServerStatus:
    name: str
    status: str
    running: bool
    started_at: str
    usage: Optional[ResourceUsage] = None
    players: Optional[str] = None


class ServerManager:
    """Operator commands for one or more server containers."""

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

    def ensure_exists(self, name: str) -> None:
        if not self.runtime.exists(name):
            raise ContainerNotFoundError(name)

    def start(self, name: str) -> bool:
        self.logger.info("Starting server: %s", name)
        self.ensure_exists(name)
        if self.runtime.is_running(name):
            self.logger.warning("Server '%s' is already running", name)
            return True

        self.runtime.start(name)
        self.logger.info("Waiting for container to be ready...")
        if wait_until_running(self.runtime, name, START_WAIT_SECONDS, self.sleep):
            self.logger.info("Server '%s' started successfully", name)
            return True
        self.logger.warning("Container did not start within %s seconds", START_WAIT_SECONDS)
        return False

    def stop(self, name: str, timeout: int = STOP_TIMEOUT_SECONDS) -> None:
        self.logger.info("Stopping server: %s", name)
        self.ensure_exists(name)
        if not self.runtime.is_running(name):
            self.logger.warning("Server '%s' is not running", name)
            return

        self.logger.info("Attempting to save world via RCON...")
        if send_saveworld(self.runtime, name, self.logger, self.asa_ctrl_bin):
            self.sleep(STOP_SAVE_SETTLE_SECONDS)
        else:
            self.logger.warning("Proceeding with stop")

        self.runtime.stop(name, timeout=timeout)
        self.logger.info("Server '%s' stopped successfully", name)

    def restart(self, name: str) -> bool:
        self.logger.info("Restarting server: %s", name)
        self.stop(name)
        self.sleep(2)
        return self.start(name)

    def status(self, name: str) -> ServerStatus:
        self.ensure_exists(name)
        observation = self.runtime.inspect(name)
        result = ServerStatus(
            name=name,
            status=observation.lifecycle_state,
            running=observation.running,
            started_at=observation.started_at,
        )
        if not observation.running:
            return result

        try:
            result.usage = self.runtime.resource_usage(name)
        except AsaHostError as exc:
            self.logger.warning("Could not read resource usage: %s", exc)
        try:
            result.players = execute_rcon(self.runtime, name, "listplayers", self.asa_ctrl_bin)
        except AsaHostError:
            self.logger.warning("RCON not available or not configured")
        return result

    def update(self, name: str) -> bool:
        """Announce a countdown, then restart so the container pulls updates on boot."""
        self.logger.info("Updating server: %s", name)
        self.ensure_exists(name)
        if self.runtime.is_running(name):
            self.logger.info("Notifying players about restart...")
            for message, delay in UPDATE_COUNTDOWN:
                broadcast(self.runtime, name, message, self.logger, self.asa_ctrl_bin)
                self.sleep(delay)

        self.logger.info("Restarting server to apply updates...")
        self.runtime.restart(name)
        if wait_until_running(self.runtime, name, UPDATE_START_WAIT_SECONDS, self.sleep):
            self.logger.info("Server '%s' updated and restarted", name)
            return True
        self.logger.warning("Container did not start within %s seconds", UPDATE_START_WAIT_SECONDS)
        return False

    def logs(self, name: str, follow: bool = True, tail: Optional[int] = None) -> Iterator[str]:
        self.ensure_exists(name)
        return self.runtime.logs(name, follow=follow, tail=tail)

    def rcon(self, name: str, command: str) -> str:
        if not command or not command.strip():
            raise InvalidArgumentError("No RCON command provided")
        self.ensure_exists(name)
        if not self.runtime.is_running(name):
            raise ContainerNotRunningError(name)
        self.logger.info("Executing RCON command: %s", command)
        return execute_rcon(self.runtime, name, command, self.asa_ctrl_bin)

    def list_servers(self, name_filter: str = DEFAULT_SERVER_FILTER) -> List[ContainerSummary]:
        return self.runtime.list_containers(name_filter)


__all__ = ["ServerManager", "ServerStatus", "UPDATE_COUNTDOWN"]
