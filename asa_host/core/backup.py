"""
Backup and restore of a server container's files volume.

Archives are gzip-compressed tarballs of the volume contents named
``<container>_backup_<YYYYmmdd_HHMMSS>[_<label>].tar.gz``; each one gets a
JSON sidecar with the same base name describing where it came from.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import tarfile
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from asa_host.common.constants import DEFAULT_ASA_CTRL_BIN, SAVE_SETTLE_SECONDS
from asa_host.common.errors import (
    BackupError,
    ContainerNotFoundError,
    InvalidArgumentError,
    VolumeNotFoundError,
)
from asa_host.common.config import HostSettings
from .rcon import send_saveworld
from .runtime import DockerRuntime, VolumeMount

ARCHIVE_SUFFIX = ".tar.gz"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_LABEL_RE = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_label(label: Optional[str]) -> str:
    """Strip everything but letters, digits, underscores and dashes."""
    return _LABEL_RE.sub("", label or "")


def _metadata_path(archive: Path) -> Path:
    return archive.with_name(archive.name[: -len(ARCHIVE_SUFFIX)] + ".json")


def _clear_directory(path: Path) -> None:
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _extract(archive: Path, destination: Path) -> None:
    with tarfile.open(archive, "r:gz") as tar:
        if hasattr(tarfile, "data_filter"):
            tar.extractall(destination, filter="data")
        else:  # pragma: no cover - interpreters without extraction filters
            tar.extractall(destination)


@dataclass
class BackupInfo:
    name: str
    path: Path
    size_bytes: int
    modified: datetime
    label: str = ""


class BackupManager:
    """Create, list, restore and rotate volume backups for server containers."""

    def __init__(
        self,
        runtime: DockerRuntime,
        settings: HostSettings,
        logger: logging.Logger,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.runtime = runtime
        self.settings = settings
        self.backup_dir = Path(settings.backup_dir)
        self.logger = logger
        self.sleep = sleep
        self.now = now

    @property
    def asa_ctrl_bin(self) -> str:
        return self.settings.asa_ctrl_bin or DEFAULT_ASA_CTRL_BIN

    def _volume(self, name: str) -> VolumeMount:
        if not self.runtime.exists(name):
            raise ContainerNotFoundError(name)
        volume = self.runtime.find_volume(
            name, self.settings.volume_pattern, self.settings.docker_volumes_dir
        )
        if volume is None:
            raise VolumeNotFoundError(
                f"Could not determine server files volume for container: {name}"
            )
        if not volume.path.is_dir():
            raise VolumeNotFoundError(f"Volume path does not exist: {volume.path}")
        return volume

    def _save_world(self, name: str) -> None:
        if not self.runtime.is_running(name):
            self.logger.info("Container is not running, skipping world save")
            return
        self.logger.info("Saving world via RCON...")
        if send_saveworld(self.runtime, name, self.logger, self.asa_ctrl_bin):
            self.sleep(SAVE_SETTLE_SECONDS)

    def _archive(self, source: Path, destination: Path) -> None:
        try:
            with tarfile.open(destination, "w:gz") as tar:
                tar.add(str(source), arcname=".")
        except (OSError, tarfile.TarError) as exc:
            destination.unlink(missing_ok=True)
            raise BackupError(f"Backup creation failed: {exc}") from exc

    def create(self, name: str, label: Optional[str] = None) -> Path:
        """Archive the container's volume and return the archive path."""
        label = sanitize_label(label)
        backup_name = f"{name}_backup_{self.now().strftime(TIMESTAMP_FORMAT)}"
        if label:
            backup_name = f"{backup_name}_{label}"
        self.logger.info("Creating backup: %s", backup_name)

        volume = self._volume(name)
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info("Volume: %s", volume.name)
        self.logger.info("Source: %s", volume.path)

        self._save_world(name)

        archive = self.backup_dir / f"{backup_name}{ARCHIVE_SUFFIX}"
        self.logger.info("Creating compressed backup...")
        self._archive(volume.path, archive)

        size = archive.stat().st_size
        metadata = {
            "backup_name": backup_name,
            "container": name,
            "volume": volume.name,
            "created_at": self.now().isoformat(timespec="seconds"),
            "size_bytes": size,
            "label": label,
        }
        with open(_metadata_path(archive), "w", encoding="utf-8") as handle:
            json.dump(metadata, handle, indent=2)

        self.logger.info("Backup created successfully: %s (%.2f MB)", archive, size / (1024 * 1024))
        return archive

    def list(self, name: str) -> List[BackupInfo]:
        """Return the container's backups, newest first."""
        if not self.backup_dir.is_dir():
            self.logger.warning("Backup directory does not exist: %s", self.backup_dir)
            return []

        backups: List[BackupInfo] = []
        for archive in sorted(self.backup_dir.glob(f"{name}_backup_*{ARCHIVE_SUFFIX}"), reverse=True):
            stat = archive.stat()
            label = ""
            metadata_file = _metadata_path(archive)
            if metadata_file.exists():
                try:
                    with open(metadata_file, "r", encoding="utf-8") as handle:
                        label = json.load(handle).get("label") or ""
                except (OSError, ValueError) as exc:
                    self.logger.warning("Failed to read backup metadata for %s: %s", archive.name, exc)
            backups.append(
                BackupInfo(
                    name=archive.name,
                    path=archive,
                    size_bytes=stat.st_size,
                    modified=datetime.fromtimestamp(stat.st_mtime),
                    label=label,
                )
            )
        return backups

    def resolve(self, backup_file: str) -> Path:
        path = Path(backup_file)
        if not path.is_absolute():
            path = self.backup_dir / path
        if not path.is_file():
            raise BackupError(f"Backup file does not exist: {path}")
        return path

    def restore(self, name: str, backup_file: str) -> Path:
        """Replace the container's volume contents with ``backup_file``.

        The current contents are archived first; if extraction fails they are
        put back before the error is raised. A container that was running is
        started again however the restore ends. Returns the safety archive path.
        """
        archive = self.resolve(backup_file)
        volume = self._volume(name)

        was_running = self.runtime.is_running(name)
        if was_running:
            self.logger.info("Stopping container...")
            self.runtime.stop(name)
            self.sleep(3)

        try:
            safety = self._replace_volume(name, archive, volume)
        finally:
            if was_running:
                self.logger.info("Restarting container...")
                self.runtime.start(name)

        if was_running:
            self.sleep(3)
        self.logger.info("Restore completed successfully")
        return safety

    def _replace_volume(self, name: str, archive: Path, volume: VolumeMount) -> Path:
        self.logger.info("Restoring to: %s", volume.path)

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        safety = self.backup_dir / f"{name}_pre_restore_{self.now().strftime(TIMESTAMP_FORMAT)}{ARCHIVE_SUFFIX}"
        self.logger.info("Creating safety backup of current data...")
        self._archive(volume.path, safety)
        self.logger.info("Safety backup created: %s", safety)

        try:
            self.logger.info("Clearing existing server data...")
            _clear_directory(volume.path)
            self.logger.info("Restoring from backup...")
            _extract(archive, volume.path)
        except (OSError, tarfile.TarError) as exc:
            self.logger.error("Failed to restore backup: %s", exc)
            self.logger.info("Restoring from safety backup...")
            _clear_directory(volume.path)
            _extract(safety, volume.path)
            raise BackupError(f"Backup restoration failed: {exc}") from exc

        self.logger.info("Backup restored successfully")
        return safety

    def cleanup(self, name: str, keep: int) -> int:
        """Delete all but the ``keep`` newest backups; returns how many were removed."""
        if keep < 1:
            raise InvalidArgumentError(
                f"Invalid keep count: {keep}. Keep count must be a positive integer"
            )
        self.logger.info("Cleaning up backups for: %s", name)
        self.logger.info("Keeping: %s most recent backups", keep)

        backups = self.list(name)
        if len(backups) <= keep:
            self.logger.info("No cleanup needed (%s <= %s)", len(backups), keep)
            return 0

        stale = backups[keep:]
        self.logger.info("Will delete %s old backups", len(stale))
        for backup in stale:
            self.logger.info("Deleting: %s", backup.name)
            backup.path.unlink()
            _metadata_path(backup.path).unlink(missing_ok=True)

        self.logger.info("Cleanup completed: %s backups removed", len(stale))
        return len(stale)


__all__ = ["BackupInfo", "BackupManager", "sanitize_label"]
