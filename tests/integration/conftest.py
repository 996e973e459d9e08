"""Shared fixtures for dirmon integration tests.

Provides a scripted in-memory SnapshotFetcher and a recording listener so
the monitor can be driven end to end without a directory server.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import pytest

from dirmon.models.changes import ChangeEvent, ChangeKind, Snapshot
from dirmon.models.config import MonitorConfig
from dirmon.monitor.controller import Monitor
from dirmon.source.base import SnapshotFetcher

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ScriptedFetcher(SnapshotFetcher):
    """Returns (or raises) the scripted items in order, then repeats the last one."""

    def __init__(self, script: Iterable[Snapshot | Exception]) -> None:
        self._script = list(script)
        self._index = 0
        self.fetches = 0
        self.closed = False

    @property
    def source_name(self) -> str:
        return "scripted"

    async def fetch_snapshot(self) -> Snapshot:
        self.fetches += 1
        item = self._script[min(self._index, len(self._script) - 1)]
        self._index += 1
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class RecordingListener:
    """Async listener that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []
        self.received = asyncio.Event()

    async def __call__(self, event: ChangeEvent) -> None:
        self.events.append(event)
        self.received.set()

    def summary(self) -> set[tuple[str, str, ChangeKind, str, str]]:
        return {(e.entity_key, e.field_name, e.change_kind, e.value_before, e.value_after) for e in self.events}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def fast_config(**overrides: object) -> MonitorConfig:
    """MonitorConfig with near-zero delays for tests."""
    defaults: dict[str, object] = {
        "refresh_period": 0.01,
        "retry_initial_delay": 0.01,
        "retry_max_delay": 0.05,
        "shutdown_grace_seconds": 1.0,
    }
    defaults.update(overrides)
    return MonitorConfig(**defaults)  # type: ignore[arg-type]


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll *predicate* until it returns True or *timeout* expires."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
async def make_monitor():
    """Factory that builds monitors and closes them after the test."""
    monitors: list[Monitor] = []

    def _make(script: Iterable[Snapshot | Exception], **config: object) -> tuple[Monitor, ScriptedFetcher]:
        fetcher = ScriptedFetcher(script)
        monitor = Monitor(fetcher, fast_config(**config))
        monitors.append(monitor)
        return monitor, fetcher

    yield _make

    for monitor in monitors:
        await monitor.close()
