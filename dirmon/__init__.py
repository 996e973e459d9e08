"""dirmon: snapshot-diff change data capture for directory sources."""

from dirmon.models.changes import ChangeEvent, ChangeKind, Snapshot
from dirmon.monitor import (
    ListenerNameError,
    Monitor,
    MonitorState,
    create_monitor,
    diff_snapshots,
)
from dirmon.source.base import FetchError, SnapshotFetcher

__version__ = "0.3.0"

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "FetchError",
    "ListenerNameError",
    "Monitor",
    "MonitorState",
    "Snapshot",
    "SnapshotFetcher",
    "__version__",
    "create_monitor",
    "diff_snapshots",
]
