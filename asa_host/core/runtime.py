"""Docker runtime access for asa-host.

Every interaction with the container engine goes through :class:`DockerRuntime`,
a thin wrapper around the :mod:`docker` SDK that translates SDK exceptions into
the asa-host error hierarchy and hands back plain dataclasses.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from asa_host.common.errors import ContainerNotFoundError, RuntimeUnavailableError
from asa_host.common.logging_config import get_logger


HEALTH_NONE = "none"

# Engine failures; NotFound is a subclass and must be handled first.
ENGINE_ERRORS = (DockerException, RequestException)


@dataclass(frozen=True)
class ContainerObservation:
    """Point-in-time snapshot of a container's state."""

    lifecycle_state: str
    health_state: str = HEALTH_NONE
    exit_code: Optional[int] = None
    started_at: str = ""

    @property
    def running(self) -> bool:
        return self.lifecycle_state == "running"

    @classmethod
    def from_attrs(cls, attrs: Dict[str, Any]) -> "ContainerObservation":
        state = attrs.get("State") or {}
        health = state.get("Health") or {}
        exit_code = state.get("ExitCode")
        return cls(
            lifecycle_state=str(state.get("Status") or "unknown").lower(),
            health_state=str(health.get("Status") or HEALTH_NONE).lower(),
            exit_code=exit_code if isinstance(exit_code, int) else None,
            started_at=str(state.get("StartedAt") or ""),
        )

    @classmethod
    def unknown(cls) -> "ContainerObservation":
        return cls(lifecycle_state="unknown")


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class ContainerSummary:
    name: str
    status: str
    ports: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class VolumeMount:
    name: str
    path: Path


@dataclass(frozen=True)
class ResourceUsage:
    cpu_percent: float
    memory_usage: int
    memory_limit: int
    network_rx: int
    network_tx: int


def _format_ports(attrs: Dict[str, Any]) -> List[str]:
    ports = ((attrs.get("NetworkSettings") or {}).get("Ports")) or {}
    formatted: List[str] = []
    for container_port, bindings in sorted(ports.items()):
        if not bindings:
            formatted.append(container_port)
            continue
        for binding in bindings:
            host_ip = binding.get("HostIp") or "0.0.0.0"
            formatted.append(f"{host_ip}:{binding.get('HostPort')}->{container_port}")
    return formatted


def _resource_usage(stats: Dict[str, Any]) -> ResourceUsage:
    """Reduce a raw ``docker stats`` sample to the numbers shown to operators."""
    cpu = stats.get("cpu_stats") or {}
    precpu = stats.get("precpu_stats") or {}
    cpu_delta = (cpu.get("cpu_usage") or {}).get("total_usage", 0) - (
        (precpu.get("cpu_usage") or {}).get("total_usage", 0)
    )
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    online_cpus = cpu.get("online_cpus") or len((cpu.get("cpu_usage") or {}).get("percpu_usage") or []) or 1
    cpu_percent = 0.0
    if cpu_delta > 0 and system_delta > 0:
        cpu_percent = cpu_delta / system_delta * online_cpus * 100.0

    memory = stats.get("memory_stats") or {}
    networks = stats.get("networks") or {}
    return ResourceUsage(
        cpu_percent=round(cpu_percent, 2),
        memory_usage=int(memory.get("usage", 0)),
        memory_limit=int(memory.get("limit", 0)),
        network_rx=sum(int(net.get("rx_bytes", 0)) for net in networks.values()),
        network_tx=sum(int(net.get("tx_bytes", 0)) for net in networks.values()),
    )


class DockerRuntime:
    """Container runtime collaborator backed by the Docker Engine API."""

    def __init__(self, client: Optional[docker.DockerClient] = None) -> None:
        self._client = client
        self._log = get_logger(__name__)

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
            except ENGINE_ERRORS as exc:
                raise RuntimeUnavailableError(f"Docker is not available: {exc}") from exc
        return self._client

    def _get(self, name: str):
        try:
            return self.client.containers.get(name)
        except NotFound as exc:
            raise ContainerNotFoundError(name) from exc
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to query container '{name}': {exc}") from exc

    def exists(self, name: str) -> bool:
        try:
            self._get(name)
        except ContainerNotFoundError:
            return False
        return True

    def inspect(self, name: str) -> ContainerObservation:
        """Return a fresh observation; raises ContainerNotFoundError if missing."""
        return ContainerObservation.from_attrs(self._get(name).attrs)

    def is_running(self, name: str) -> bool:
        try:
            return self.inspect(name).running
        except (ContainerNotFoundError, RuntimeUnavailableError) as exc:
            self._log.debug("Running check for '%s' failed: %s", name, exc)
            return False

    def start(self, name: str) -> None:
        container = self._get(name)
        try:
            container.start()
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to start '{name}': {exc}") from exc

    def stop(self, name: str, timeout: int = 10) -> None:
        container = self._get(name)
        try:
            container.stop(timeout=timeout)
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to stop '{name}': {exc}") from exc

    def restart(self, name: str) -> None:
        container = self._get(name)
        try:
            container.restart()
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to restart '{name}': {exc}") from exc

    def exec(self, name: str, command: Sequence[str]) -> ExecResult:
        container = self._get(name)
        try:
            result = container.exec_run(list(command), stdout=True, stderr=True)
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to exec in '{name}': {exc}") from exc
        output = result.output or b""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        exit_code = result.exit_code if result.exit_code is not None else 1
        return ExecResult(exit_code=exit_code, output=output)

    def logs(self, name: str, follow: bool = True, tail: Optional[int] = None) -> Iterator[str]:
        container = self._get(name)
        try:
            stream = container.logs(stream=True, follow=follow, tail=tail if tail is not None else "all")
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to read logs of '{name}': {exc}") from exc
        for chunk in stream:
            yield chunk.decode("utf-8", errors="replace")

    def resource_usage(self, name: str) -> ResourceUsage:
        container = self._get(name)
        try:
            stats = container.stats(stream=False)
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to read stats of '{name}': {exc}") from exc
        return _resource_usage(stats)

    def list_containers(self, name_filter: str) -> List[ContainerSummary]:
        try:
            containers = self.client.containers.list(all=True, filters={"name": name_filter})
        except ENGINE_ERRORS as exc:
            raise RuntimeUnavailableError(f"Failed to list containers: {exc}") from exc
        return [
            ContainerSummary(name=c.name, status=c.status, ports=_format_ports(c.attrs))
            for c in containers
        ]

    def find_volume(self, name: str, pattern: str, volumes_dir: str) -> Optional[VolumeMount]:
        """Locate the server files volume mounted into ``name``."""
        regex = re.compile(pattern)
        for mount in self._get(name).attrs.get("Mounts") or []:
            volume_name = mount.get("Name") or ""
            if mount.get("Type", "volume") != "volume" or not regex.search(volume_name):
                continue
            source = mount.get("Source")
            path = Path(source) if source else Path(volumes_dir) / volume_name / "_data"
            return VolumeMount(name=volume_name, path=path)
        return None


def wait_until_running(
    runtime: DockerRuntime,
    name: str,
    timeout: int,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll once per second until ``name`` is running or ``timeout`` checks elapse."""
    for _ in range(max(timeout, 0)):
        if runtime.is_running(name):
            return True
        sleep(1)
    return False


__all__ = [
    "ContainerObservation",
    "ContainerSummary",
    "DockerRuntime",
    "ExecResult",
    "ResourceUsage",
    "VolumeMount",
    "wait_until_running",
]
