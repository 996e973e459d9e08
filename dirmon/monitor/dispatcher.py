"""Change event dispatcher.

Drains the EventQueue and fans every event out to all listeners registered
at the moment the event is dequeued.

* One independent asyncio task per (event, listener) pair; the dispatcher
  never waits for a listener before taking the next event.
* Coroutine callbacks run on the event loop; plain callables run in the
  default thread pool so a blocking listener cannot stall the loop.
* Never raises: listener exceptions are caught, logged and counted.
"""

from __future__ import annotations

import asyncio
import inspect

import structlog

from dirmon.models.changes import ChangeEvent
from dirmon.monitor.queue import EventQueue
from dirmon.monitor.registry import Listener, ListenerRegistry
from dirmon.observability.metrics import listener_invocations_total, queue_depth

_log = structlog.get_logger(component="monitor.dispatcher")


class Dispatcher:
    """Single consumer of the event queue."""

    def __init__(self, queue: EventQueue[ChangeEvent], registry: ListenerRegistry) -> None:
        self._queue = queue
        self._registry = registry
        self._inflight: set[asyncio.Task[None]] = set()
        self._dispatched = 0

    @property
    def dispatched(self) -> int:
        """Number of events taken off the queue so far."""
        return self._dispatched

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def run(self) -> None:
        """Dispatch until the queue is closed and drained."""
        async for event in self._queue:
            queue_depth.set(len(self._queue))
            self.fan_out(event)
        _log.debug("dispatcher_drained", dispatched=self._dispatched)

    def fan_out(self, event: ChangeEvent) -> None:
        """Schedule one invocation of every registered listener for *event*."""
        self._dispatched += 1
        for name, callback in self._registry.snapshot().items():
            task = asyncio.create_task(
                self._invoke(name, callback, event),
                name=f"listener:{name}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait for in-flight listener invocations to finish.

        Returns False if *timeout* expired with invocations still running.
        A listener waiting here (e.g. one that closes the monitor) does not
        wait on itself.
        """
        waiting = self._inflight - {asyncio.current_task()}
        if not waiting:
            return True
        _, pending = await asyncio.wait(waiting, timeout=timeout)
        return not pending

    async def _invoke(self, name: str, callback: Listener, event: ChangeEvent) -> None:
        """Run a single listener, recording metrics regardless of outcome."""
        try:
            if inspect.iscoroutinefunction(callback) or inspect.iscoroutinefunction(
                getattr(callback, "__call__", None)
            ):
                await callback(event)  # type: ignore[misc]
            else:
                result = await asyncio.to_thread(callback, event)
                if inspect.isawaitable(result):
                    await result
            success = True
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "listener_unexpected_error",
                listener=name,
                event_id=event.event_id,
                entity_key=event.entity_key,
                field_name=event.field_name,
                error=str(exc),
            )
            success = False

        listener_invocations_total.labels(listener=name, success="true" if success else "false").inc()
