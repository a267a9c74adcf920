from __future__ import annotations

import logging

import pytest

from asa_host.common.errors import (
    ContainerNotFoundError,
    ContainerNotRunningError,
    InvalidArgumentError,
    RconCommandError,
)
from asa_host.core.rcon import broadcast, execute_rcon, rcon_command, send_saveworld
from asa_host.core.runtime import ContainerSummary, ExecResult
from asa_host.core.server import UPDATE_COUNTDOWN, ServerManager

from conftest import EXITED, RUNNING, FakeRuntime, failing_exec


@pytest.fixture
def manager(runtime, clock, logger):
    return ServerManager(runtime, logger, sleep=clock.sleep)


def test_rcon_command_uses_asa_ctrl():
    assert rcon_command("saveworld") == ["/usr/local/bin/asa-ctrl", "rcon", "--exec", "saveworld"]
    assert rcon_command("listplayers", "asa-ctrl")[0] == "asa-ctrl"


def test_execute_rcon_returns_output(runtime):
    runtime.exec_handler = lambda _cmd: ExecResult(0, "0. Survivor, 123\n")
    assert execute_rcon(runtime, "asa-server-1", "listplayers") == "0. Survivor, 123\n"


def test_execute_rcon_rejects_blank_command(runtime):
    with pytest.raises(InvalidArgumentError):
        execute_rcon(runtime, "asa-server-1", "   ")
    assert runtime.exec_calls == []


def test_execute_rcon_raises_on_failure(runtime):
    runtime.exec_handler = failing_exec
    with pytest.raises(RconCommandError, match="connection refused"):
        execute_rcon(runtime, "asa-server-1", "saveworld")


def test_send_saveworld_reports_outcome(runtime, logger, caplog):
    caplog.set_level(logging.INFO)
    assert send_saveworld(runtime, "asa-server-1", logger) is True
    assert "World saved successfully" in caplog.text

    runtime.exec_handler = failing_exec
    assert send_saveworld(runtime, "asa-server-1", logger) is False
    assert "Could not save world via RCON" in caplog.text


def test_broadcast_failure_is_only_logged(runtime, logger, caplog):
    runtime.exec_handler = failing_exec
    assert broadcast(runtime, "asa-server-1", "hello", logger) is False
    assert "Failed to send RCON message 'hello'" in caplog.text
    assert runtime.rcon_commands() == ["serverchat hello"]


def test_start_stopped_server(manager, runtime):
    runtime.current = EXITED
    assert manager.start("asa-server-1") is True
    assert ("start", "asa-server-1") in runtime.calls


def test_start_running_server_is_noop(manager, runtime, caplog):
    assert manager.start("asa-server-1") is True
    assert ("start", "asa-server-1") not in runtime.calls
    assert "already running" in caplog.text


def test_start_times_out(manager, runtime, clock):
    runtime.current = EXITED
    runtime.after_start = None
    assert manager.start("asa-server-1") is False
    assert clock.sleeps == [1] * 30


def test_start_missing_container(manager):
    manager.runtime.present = False
    with pytest.raises(ContainerNotFoundError):
        manager.start("asa-server-1")


def test_stop_saves_world_first(manager, runtime, clock):
    manager.stop("asa-server-1")
    assert runtime.rcon_commands() == ["saveworld"]
    assert clock.sleeps == [5]
    assert ("stop", "asa-server-1", "60") in runtime.calls
    assert not runtime.current.running


def test_stop_without_rcon_still_stops(manager, runtime, clock, caplog):
    runtime.exec_handler = failing_exec
    manager.stop("asa-server-1", timeout=15)
    assert clock.sleeps == []
    assert ("stop", "asa-server-1", "15") in runtime.calls
    assert "Proceeding with stop" in caplog.text


def test_stop_not_running(manager, runtime):
    runtime.current = EXITED
    manager.stop("asa-server-1")
    assert runtime.exec_calls == []
    assert not any(call[0] == "stop" for call in runtime.calls)


def test_restart_is_stop_then_start(manager, runtime, clock):
    assert manager.restart("asa-server-1") is True
    names = [call[0] for call in runtime.calls if call[0] in ("stop", "start")]
    assert names == ["stop", "start"]
    assert clock.sleeps == [5, 2]


def test_status_running_includes_usage_and_players(manager, runtime):
    runtime.exec_handler = lambda _cmd: ExecResult(0, "No Players Connected\n")
    status = manager.status("asa-server-1")
    assert status.running
    assert status.status == "running"
    assert status.started_at == "2024-01-01T00:00:00Z"
    assert status.usage is runtime.usage
    assert status.players == "No Players Connected\n"


def test_status_tolerates_missing_rcon(manager, runtime, caplog):
    runtime.exec_handler = failing_exec
    status = manager.status("asa-server-1")
    assert status.players is None
    assert "RCON not available or not configured" in caplog.text


def test_status_stopped_skips_usage(manager, runtime):
    runtime.current = EXITED
    status = manager.status("asa-server-1")
    assert not status.running
    assert status.usage is None
    assert runtime.exec_calls == []


def test_update_counts_down_then_restarts(manager, runtime, clock):
    assert manager.update("asa-server-1") is True
    assert runtime.rcon_commands() == [f"serverchat {message}" for message, _ in UPDATE_COUNTDOWN]
    assert clock.sleeps == [delay for _, delay in UPDATE_COUNTDOWN]
    assert sum(clock.sleeps) == 300
    assert runtime.restart_count == 1


def test_update_stopped_server_skips_countdown(manager, runtime, clock):
    runtime.current = EXITED
    assert manager.update("asa-server-1") is True
    assert runtime.exec_calls == []
    assert runtime.restart_count == 1


def test_rcon_requires_running_container(manager, runtime):
    runtime.current = EXITED
    with pytest.raises(ContainerNotRunningError):
        manager.rcon("asa-server-1", "listplayers")


def test_rcon_blank_command(manager, runtime):
    runtime.present = False
    with pytest.raises(InvalidArgumentError):
        manager.rcon("asa-server-1", "")


def test_rcon_passes_command_through(manager, runtime):
    runtime.exec_handler = lambda cmd: ExecResult(0, f"ran {cmd[-1]}")
    assert manager.rcon("asa-server-1", "broadcast Hello") == "ran broadcast Hello"


def test_logs_stream_from_runtime(manager, runtime):
    runtime.log_lines = ["a\n", "b\n"]
    assert list(manager.logs("asa-server-1", follow=False, tail=10)) == ["a\n", "b\n"]


def test_list_servers_filters_by_name():
    runtime = FakeRuntime(current=RUNNING)
    runtime.containers = [
        ContainerSummary("asa-server-1", "running", ["0.0.0.0:7777->7777/udp"]),
        ContainerSummary("postgres", "running"),
    ]
    manager = ServerManager(runtime, logging.getLogger("asa_host.test"))
    assert [c.name for c in manager.list_servers()] == ["asa-server-1"]
