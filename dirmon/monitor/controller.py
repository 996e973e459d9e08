"""Monitor controller: lifecycle, poll loop and snapshot retention.

State machine::

    CREATED --start()--> RUNNING --close()--> CLOSED

``start`` launches two background tasks, the poll loop and the dispatch
loop, which communicate only through the EventQueue.  The poll loop is the
sole owner of the retained snapshot.  Nothing raised inside either task
ever propagates to the caller of ``start``.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime
from enum import StrEnum

import structlog

from dirmon.models.changes import ChangeEvent, Snapshot
from dirmon.models.config import MonitorConfig
from dirmon.monitor.diff import diff_snapshots
from dirmon.monitor.dispatcher import Dispatcher
from dirmon.monitor.queue import EventQueue, QueueClosedError
from dirmon.monitor.registry import Listener, ListenerRegistry
from dirmon.observability.metrics import (
    change_events_total,
    fetch_failures_total,
    poll_cycles_total,
    queue_depth as queue_depth_gauge,
    snapshot_entities,
)
from dirmon.source.base import FetchError, SnapshotFetcher

_log = structlog.get_logger(component="monitor.controller")

# Lower bound on the wait after a failed fetch.
MIN_RETRY_DELAY = 0.01


class MonitorState(StrEnum):
    """Lifecycle state of a Monitor."""

    CREATED = "created"
    RUNNING = "running"
    CLOSED = "closed"


class Monitor:
    """Polls a SnapshotFetcher and streams field-level changes to listeners.

    Args:
        fetcher:  Source of full snapshots.
        config:   Refresh period, ignore set, queue capacity, retry policy.
        registry: Listener registry; a fresh one is created when omitted.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        config: MonitorConfig | None = None,
        registry: ListenerRegistry | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config or MonitorConfig()
        self._ignore = frozenset(self._config.ignore_fields)
        self._registry = registry or ListenerRegistry()
        self._queue: EventQueue[ChangeEvent] = EventQueue(self._config.queue_capacity)
        self._dispatcher = Dispatcher(self._queue, self._registry)

        self._state = MonitorState.CREATED
        self._closing = False
        self._before: Snapshot | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._dispatch_task: asyncio.Task[None] | None = None

        self._cycles_completed = 0
        self._consecutive_failures = 0
        self._last_poll_at: datetime | None = None

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def ignore_fields(self) -> frozenset[str]:
        return self._ignore

    @property
    def refresh_period(self) -> float:
        return self._config.refresh_period

    @property
    def source_name(self) -> str:
        return self._fetcher.source_name

    @property
    def cycles_completed(self) -> int:
        return self._cycles_completed

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def last_poll_at(self) -> datetime | None:
        return self._last_poll_at

    @property
    def baseline_size(self) -> int:
        """Entities in the retained snapshot (0 before the baseline cycle)."""
        return len(self._before) if self._before is not None else 0

    @property
    def queue_depth(self) -> int:
        return len(self._queue)

    @property
    def events_dispatched(self) -> int:
        return self._dispatcher.dispatched

    @property
    def listener_names(self) -> list[str]:
        return self._registry.names()

    def register_listener(self, name: str, callback: Listener) -> None:
        """Register *callback* under *name*; raises ListenerNameError if empty."""
        self._registry.register(name, callback)

    def unregister_listener(self, name: str) -> None:
        """Remove the listener called *name*; raises ListenerNameError if empty."""
        self._registry.unregister(name)

    async def start(self) -> None:
        """Launch the poll and dispatch loops.  No-op unless CREATED."""
        if self._state is not MonitorState.CREATED:
            _log.debug("monitor_start_ignored", state=self._state.value)
            return
        self._state = MonitorState.RUNNING
        self._dispatch_task = asyncio.create_task(self._dispatcher.run(), name="dirmon-dispatch")
        self._poll_task = asyncio.create_task(self._poll_loop(), name="dirmon-poll")
        self._diagnostic(
            "monitor_started",
            source=self._fetcher.source_name,
            refresh_period=self._config.refresh_period,
            ignore_fields=sorted(self._ignore),
        )

    async def close(self) -> None:
        """Shut down.  Idempotent: closing a closed or closing monitor is a no-op.

        Events already queued are still delivered; events from a fetch in
        flight at close time may be dropped.
        """
        if self._closing or self._state is MonitorState.CLOSED:
            return
        self._closing = True
        self._state = MonitorState.CLOSED

        try:
            await self._fetcher.close()
        except Exception as exc:  # noqa: BLE001
            _log.warning("source_close_failed", source=self._fetcher.source_name, error=str(exc))
        await self._queue.close()

        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task

        if self._dispatch_task is not None:
            await self._dispatch_task
            idle = await self._dispatcher.wait_idle(timeout=self._config.shutdown_grace_seconds)
            if not idle:
                _log.warning(
                    "listeners_still_running_at_close",
                    inflight=self._dispatcher.inflight,
                    timeout=self._config.shutdown_grace_seconds,
                )

        self._diagnostic("monitor_closed", cycles=self._cycles_completed)

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while self._state is MonitorState.RUNNING:
            try:
                delay = await self.poll_once()
            except QueueClosedError:
                _log.debug("poll_loop_stopped", reason="queue closed")
                return
            except Exception as exc:  # noqa: BLE001
                _log.error("poll_cycle_unexpected_error", error=str(exc), exc_info=True)
                delay = self._config.refresh_period
            await asyncio.sleep(delay)

    async def poll_once(self) -> float:
        """Run one poll cycle; return the delay before the next one.

        Raises:
            QueueClosedError: the monitor was closed while events were
                being enqueued.
        """
        cycle = self._cycles_completed + 1
        self._diagnostic("poll_cycle_started", cycle=cycle)
        try:
            after = await self._fetcher.fetch_snapshot()
        except Exception as exc:  # noqa: BLE001
            return self._fetch_failed(cycle, exc)

        self._consecutive_failures = 0
        self._last_poll_at = datetime.now(tz=UTC)
        snapshot_entities.set(len(after))

        if not self._before:
            # Baseline cycle: an absent or empty prior snapshot is never
            # diffed, so startup does not report every entity as created.
            self._before = after
            self._cycles_completed += 1
            poll_cycles_total.labels(outcome="baseline").inc()
            self._diagnostic("poll_cycle_finished", cycle=cycle, baseline=True, entities=len(after))
            return self._config.refresh_period

        events = diff_snapshots(self._before, after, self._ignore)
        for event in events:
            await self._queue.put(event)
            change_events_total.labels(kind=event.change_kind.value).inc()
        queue_depth_gauge.set(len(self._queue))
        self._before = after

        self._cycles_completed += 1
        poll_cycles_total.labels(outcome="diffed").inc()
        self._diagnostic("poll_cycle_finished", cycle=cycle, events=len(events), entities=len(after))
        return self._config.refresh_period

    def _fetch_failed(self, cycle: int, exc: Exception) -> float:
        """Record a failed fetch; the retained snapshot is left untouched."""
        self._consecutive_failures += 1
        fetch_failures_total.labels(error=type(exc).__name__).inc()
        poll_cycles_total.labels(outcome="failed").inc()
        delay = self.retry_delay(self._consecutive_failures)
        log = _log.warning if isinstance(exc, FetchError) else _log.error
        log(
            "snapshot_fetch_failed",
            cycle=cycle,
            source=self._fetcher.source_name,
            error=str(exc),
            error_type=type(exc).__name__,
            consecutive_failures=self._consecutive_failures,
            retry_in=delay,
        )
        return delay

    def retry_delay(self, failures: int) -> float:
        """Capped exponential backoff for the *failures*-th consecutive failure.

        Never below ``MIN_RETRY_DELAY``, whatever the configured bounds.
        """
        if failures < 1:
            return 0.0
        delay = self._config.retry_initial_delay * (2 ** min(failures - 1, 32))
        return max(min(delay, self._config.retry_max_delay), MIN_RETRY_DELAY)

    def _diagnostic(self, event: str, **kwargs: object) -> None:
        if self._config.diagnostic_logging:
            _log.info(event, **kwargs)
        else:
            _log.debug(event, **kwargs)
