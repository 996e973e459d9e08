"""Core data structures for dirmon."""

from dirmon.models.changes import ChangeEvent, ChangeKind, FieldMapping, Snapshot
from dirmon.models.config import (
    APIConfig,
    DirMonConfig,
    ListenerConfig,
    LogConfig,
    MonitorConfig,
    SourceConfig,
)

__all__ = [
    "APIConfig",
    "ChangeEvent",
    "ChangeKind",
    "DirMonConfig",
    "FieldMapping",
    "ListenerConfig",
    "LogConfig",
    "MonitorConfig",
    "Snapshot",
    "SourceConfig",
]
