from __future__ import annotations

import logging
from datetime import datetime, timedelta

import pytest

import asa_host.core.scheduled_restart as scheduled
from asa_host.common.errors import ContainerNotFoundError, InvalidArgumentError
from asa_host.core.runtime import ExecResult
from asa_host.core.scheduled_restart import (
    CronSchedule,
    ScheduledRestart,
    parse_warning_minutes,
    snap_warning_minutes,
    warning_steps,
)

from conftest import EXITED, FakeRuntime, failing_exec


def make_dt(text: str) -> datetime:
    return datetime.strptime(text, "%Y-%m-%d %H:%M")


def announcements(runtime: FakeRuntime):
    return [cmd[len("serverchat "):] for cmd in runtime.rcon_commands() if cmd.startswith("serverchat ")]


def test_cron_schedule_basic_minute_progression():
    schedule = CronSchedule("0 4 * * *")
    assert schedule.next_run(make_dt("2024-03-10 03:59")) == make_dt("2024-03-10 04:00")
    assert schedule.next_run(make_dt("2024-03-10 04:00")) == make_dt("2024-03-11 04:00")


def test_cron_schedule_range_and_step():
    schedule = CronSchedule("*/15 8-9 * * mon-fri")
    assert schedule.next_run(make_dt("2024-06-03 08:00")) == make_dt("2024-06-03 08:15")
    assert schedule.next_run(make_dt("2024-06-03 08:59")) == make_dt("2024-06-03 09:00")


def test_cron_schedule_rejects_garbage():
    with pytest.raises(ValueError):
        CronSchedule("not a cron")


def test_next_countdown_skips_restart_whose_countdown_already_began():
    schedule = CronSchedule("0 * * * *")
    lead = timedelta(minutes=30)

    # 10:00 restart would need its countdown to start at 09:30, already past
    restart_at, countdown_at = schedule.next_countdown(make_dt("2024-03-10 09:45"), lead)
    assert restart_at == make_dt("2024-03-10 11:00")
    assert countdown_at == make_dt("2024-03-10 10:30")

    restart_at, countdown_at = schedule.next_countdown(make_dt("2024-03-10 09:15"), lead)
    assert restart_at == make_dt("2024-03-10 10:00")
    assert countdown_at == make_dt("2024-03-10 09:30")


@pytest.mark.parametrize(
    "value, expected",
    [(1, 5), (5, 5), (7, 5), (8, 10), (12, 10), (13, 15), (20, 15), (23, 30), (44, 30), (45, 60), (240, 60)],
)
def test_snap_warning_minutes(value, expected):
    assert snap_warning_minutes(value) == expected


def test_parse_warning_minutes_warns_when_snapping(caplog):
    logger = logging.getLogger("asa_host.test")
    assert parse_warning_minutes("20", logger) == 15
    assert "Warning time 20 is not a standard value" in caplog.text
    assert parse_warning_minutes("30", logger) == 30


@pytest.mark.parametrize("raw", ["abc", "0", "-5", ""])
def test_parse_warning_minutes_rejects_invalid(raw):
    with pytest.raises(InvalidArgumentError):
        parse_warning_minutes(raw, logging.getLogger("asa_host.test"))


@pytest.mark.parametrize("minutes", [5, 10, 15, 30, 60])
def test_warning_ladder_spans_warning_time(minutes):
    steps = warning_steps(minutes)
    assert steps[0].minutes == minutes
    assert steps[-1].message == "Server restarting in 30 seconds!"
    assert sum(step.wait_seconds for step in steps) == minutes * 60


def test_run_plays_countdown_then_restarts(runtime, clock, logger):
    restarter = ScheduledRestart(runtime, logger, sleep=clock.sleep)

    assert restarter.run("asa-server-1", 5) is True

    assert announcements(runtime) == [
        "Server will restart in 5 minutes",
        "Server will restart in 3 minutes",
        "Server will restart in 1 minute! Please find a safe place!",
        "Server restarting in 30 seconds!",
        "Server restarting NOW!",
    ]
    assert runtime.rcon_commands()[-1] == "saveworld"
    assert clock.sleeps == [120, 120, 30, 30, 2, 3]
    assert runtime.restart_count == 1


def test_run_starts_stopped_container_without_countdown(runtime, clock, logger, caplog):
    runtime.current = EXITED
    restarter = ScheduledRestart(runtime, logger, sleep=clock.sleep)

    assert restarter.run("asa-server-1", 30) is True

    assert ("start", "asa-server-1") in runtime.calls
    assert runtime.restart_count == 0
    assert runtime.exec_calls == []
    assert "Starting it instead" in caplog.text


def test_run_missing_container(clock, logger):
    restarter = ScheduledRestart(FakeRuntime(present=False), logger, sleep=clock.sleep)
    with pytest.raises(ContainerNotFoundError):
        restarter.run("asa-server-1", 5)


def test_run_survives_rcon_failures(runtime, clock, logger, caplog):
    runtime.exec_handler = failing_exec
    restarter = ScheduledRestart(runtime, logger, sleep=clock.sleep)

    assert restarter.run("asa-server-1", 5) is True
    assert runtime.restart_count == 1
    assert "Failed to send RCON message" in caplog.text
    assert "Could not save world via RCON" in caplog.text


def test_perform_restart_reports_timeout(runtime, clock, logger, caplog):
    runtime.after_restart = None
    runtime.current = EXITED
    restarter = ScheduledRestart(runtime, logger, sleep=clock.sleep)

    assert restarter.perform_restart("asa-server-1") is False
    assert clock.sleeps == [3] + [1] * 180
    assert "Server did not start within 180 seconds" in caplog.text


def test_run_schedule_lands_restart_on_cron_time(monkeypatch, runtime, logger):
    base_time = datetime(2024, 1, 1, 12, 0, 30)

    class FakeDateTime(datetime):
        current = base_time

        @classmethod
        def now(cls, tz=None):
            return cls.current

        @classmethod
        def advance(cls, seconds: float) -> None:
            cls.current = cls.current + timedelta(seconds=seconds)

    sleeps = []

    def fast_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        FakeDateTime.advance(seconds)

    restarted_at = []

    class StopScheduler(Exception):
        pass

    def stop_on_restart():
        restarted_at.append(FakeDateTime.current)
        raise StopScheduler()

    countdown_started_at = []

    def record_countdown(command):
        if command[-1].startswith("serverchat ") and not countdown_started_at:
            countdown_started_at.append(len(sleeps))
        return ExecResult(0, "")

    monkeypatch.setattr(scheduled, "datetime", FakeDateTime)
    runtime.on_restart = stop_on_restart
    runtime.exec_handler = record_countdown
    restarter = ScheduledRestart(runtime, logger, sleep=fast_sleep)

    with pytest.raises(StopScheduler):
        restarter.run_schedule("asa-server-1", 5, CronSchedule("0 13 * * *"))

    waiting = sleeps[: countdown_started_at[0]]
    assert waiting and max(waiting) <= 30
    assert sum(waiting) == 3270
    assert announcements(runtime)[0] == "Server will restart in 5 minutes"
    assert announcements(runtime)[-1] == "Server restarting NOW!"
    assert datetime(2024, 1, 1, 13, 0) <= restarted_at[0] <= datetime(2024, 1, 1, 13, 0, 10)
