"""Tests for the periodic session sweeper."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from shopadmin.sessions import SessionRegistry
from shopadmin.sweeper import DEFAULT_SWEEP_INTERVAL, SessionSweeper


def test_default_interval_is_one_hour() -> None:
    sweeper = SessionSweeper(SessionRegistry())
    assert sweeper.interval == DEFAULT_SWEEP_INTERVAL == timedelta(hours=1)


@pytest.mark.parametrize("interval", [timedelta(0), timedelta(seconds=-5)])
def test_interval_must_be_positive(interval: timedelta) -> None:
    with pytest.raises(ValueError):
        SessionSweeper(SessionRegistry(), interval=interval)


def test_run_once_logs_removed_sessions(caplog: pytest.LogCaptureFixture) -> None:
    registry = SessionRegistry()
    registry.create("old", 1, "admin", timedelta(seconds=-10))
    registry.create("fresh", 2, "editor", timedelta(hours=1))
    sweeper = SessionSweeper(registry)

    with caplog.at_level(logging.INFO, logger="shopadmin.sweeper"):
        assert sweeper.run_once() == 1

    assert len(registry) == 1
    assert "Cleaned up 1 expired admin session(s)" in caplog.text


def test_background_loop_evicts_abandoned_sessions() -> None:
    registry = SessionRegistry()
    registry.create("abandoned", 1, "admin", timedelta(seconds=-1))
    registry.create("live", 2, "admin", timedelta(hours=1))
    sweeper = SessionSweeper(registry, interval=timedelta(milliseconds=10))

    async def scenario() -> None:
        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if len(registry) == 1:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    asyncio.run(scenario())

    assert len(registry) == 1
    assert registry.get("live") is not None
    assert not sweeper.running


def test_loop_survives_failing_sweep(caplog: pytest.LogCaptureFixture) -> None:
    class FlakyRegistry(SessionRegistry):
        def __init__(self) -> None:
            super().__init__()
            self.calls = 0

        def sweep(self, now: datetime | None = None) -> int:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("boom")
            return super().sweep(now)

    registry = FlakyRegistry()
    sweeper = SessionSweeper(registry, interval=timedelta(milliseconds=5))

    async def scenario() -> None:
        sweeper.start()
        for _ in range(100):
            if registry.calls >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    with caplog.at_level(logging.ERROR, logger="shopadmin.sweeper"):
        asyncio.run(scenario())

    assert registry.calls >= 2
    assert "Session sweep failed" in caplog.text


def test_start_is_idempotent_and_stop_is_safe_when_idle() -> None:
    sweeper = SessionSweeper(SessionRegistry(), interval=timedelta(hours=1))

    async def scenario() -> None:
        await sweeper.stop()
        sweeper.start()
        first = sweeper._task
        sweeper.start()
        assert sweeper._task is first
        await sweeper.stop()
        await sweeper.stop()

    asyncio.run(scenario())
    assert not sweeper.running


def test_run_once_uses_supplied_timestamp() -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    registry = SessionRegistry(clock=lambda: start)
    registry.create("tok", 1, "admin", timedelta(minutes=30))
    sweeper = SessionSweeper(registry)

    assert sweeper.run_once(start + timedelta(minutes=29)) == 0
    assert sweeper.run_once(start + timedelta(minutes=31)) == 1
