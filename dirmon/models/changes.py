"""Snapshot and change event data structures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

# entity key -> field name -> serialised value
FieldMapping = Mapping[str, str]
Snapshot = Mapping[str, FieldMapping]


class ChangeKind(StrEnum):
    """Kind of field-level change between two snapshots."""

    CREATE = "Create"
    DELETE = "Delete"
    MODIFY = "Modify"


@dataclass(frozen=True)
class ChangeEvent:
    """One field-level difference between two consecutive snapshots.

    Produced by the diff engine, consumed by every registered listener.
    ``value_before`` is empty for CREATE, ``value_after`` is empty for DELETE.
    """

    entity_key: str
    field_name: str
    change_kind: ChangeKind
    value_before: str = ""
    value_after: str = ""
    detected_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    event_id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def partition_key(self) -> tuple[str, str]:
        return (self.entity_key, self.field_name)

    def to_dict(self) -> dict[str, str]:
        """Serialise to a JSON-safe dict."""
        return {
            "event_id": self.event_id,
            "entity_key": self.entity_key,
            "field_name": self.field_name,
            "change_kind": self.change_kind.value,
            "value_before": self.value_before,
            "value_after": self.value_after,
            "detected_at": self.detected_at.isoformat(),
        }
