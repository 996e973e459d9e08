"""Snapshot-diff change monitor.

Submodules
----------
diff       -- diff_snapshots: field-level comparison of two snapshots.
queue      -- EventQueue: bounded, closable FIFO (backpressure on put).
registry   -- ListenerRegistry: name -> callback map read live by dispatch.
dispatcher -- Dispatcher: per-event, per-listener fire-and-forget fan-out.
controller -- Monitor: lifecycle, poll loop and baseline retention.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dirmon.monitor.controller import Monitor, MonitorState
from dirmon.monitor.diff import diff_snapshots
from dirmon.monitor.dispatcher import Dispatcher
from dirmon.monitor.queue import EventQueue, QueueClosedError
from dirmon.monitor.registry import Listener, ListenerNameError, ListenerRegistry

if TYPE_CHECKING:
    from dirmon.models.config import DirMonConfig

__all__ = [
    "Dispatcher",
    "EventQueue",
    "Listener",
    "ListenerNameError",
    "ListenerRegistry",
    "Monitor",
    "MonitorState",
    "QueueClosedError",
    "create_monitor",
    "diff_snapshots",
]


async def create_monitor(config: DirMonConfig) -> Monitor:
    """Build a Monitor backed by an LDAP source and open the connection.

    Raises:
        SourceUnavailableError: the directory is unreachable or rejected the
            bind, so the monitor is never returned.
    """
    from dirmon.source.ldap import LDAPSnapshotFetcher

    fetcher = LDAPSnapshotFetcher(config.source)
    await fetcher.connect()
    return Monitor(fetcher, config.monitor)
