"""RCON pass-through into a server container.

The server image ships ``asa-ctrl``; commands are executed through
``asa-ctrl rcon --exec <command>`` inside the container, so RCON itself is an
opaque call that either succeeds or fails.
"""

from __future__ import annotations

import logging
from typing import List

from asa_host.common.constants import DEFAULT_ASA_CTRL_BIN
from asa_host.common.errors import AsaHostError, InvalidArgumentError, RconCommandError
from .runtime import DockerRuntime, ExecResult


def rcon_command(command: str, asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN) -> List[str]:
    return [asa_ctrl_bin, "rcon", "--exec", command]


def execute_rcon(
    runtime: DockerRuntime,
    name: str,
    command: str,
    asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN,
) -> str:
    """Run an RCON command and return its output.

    Raises:
        InvalidArgumentError: if ``command`` is blank
        RconCommandError: if asa-ctrl exits non-zero
    """
    if not command or not command.strip():
        raise InvalidArgumentError("No RCON command provided")
    result: ExecResult = runtime.exec(name, rcon_command(command, asa_ctrl_bin))
    if not result.ok:
        raise RconCommandError(
            f"RCON command '{command}' failed with exit code {result.exit_code}: {result.output.strip()}"
        )
    return result.output


def send_saveworld(
    runtime: DockerRuntime,
    name: str,
    logger: logging.Logger,
    asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN,
) -> bool:
    """Try issuing saveworld via asa-ctrl rcon."""
    try:
        execute_rcon(runtime, name, "saveworld", asa_ctrl_bin)
        ok = True
    except AsaHostError as exc:
        logger.debug("saveworld failed: %s", exc)
        ok = False

    if ok:
        logger.info("World saved successfully")
    else:
        logger.warning("Could not save world via RCON")
    return ok


def broadcast(
    runtime: DockerRuntime,
    name: str,
    message: str,
    logger: logging.Logger,
    asa_ctrl_bin: str = DEFAULT_ASA_CTRL_BIN,
) -> bool:
    """Send a ``serverchat`` message to all players; failures are only logged."""
    try:
        execute_rcon(runtime, name, f"serverchat {message}", asa_ctrl_bin)
    except AsaHostError as exc:
        logger.warning("Failed to send RCON message '%s': %s", message, exc)
        return False
    logger.info("RCON: %s", message)
    return True


__all__ = ["broadcast", "execute_rcon", "rcon_command", "send_saveworld"]
