"""asa-host - Docker host tooling for ARK: Survival Ascended servers.

Provides:
* A crash watchdog with a bounded restart budget
* Start / stop / status / update / RCON helpers for server containers
* Scheduled restarts with in-game countdown warnings
* Volume backups with rotation and safe restore
* Thin CLI wrappers (`asa-host`, `asa-watchdog`)
"""

from .common.logging_config import configure_logging  # noqa: F401
from .core.runtime import ContainerObservation, DockerRuntime  # noqa: F401
from .core.watchdog import RestartWindow, TargetState, Watchdog, classify  # noqa: F401

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "configure_logging",
    "ContainerObservation",
    "DockerRuntime",
    "RestartWindow",
    "TargetState",
    "Watchdog",
    "classify",
]
