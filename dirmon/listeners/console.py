"""Console listener: one structured log line per change event."""

from __future__ import annotations

import structlog

from dirmon.models.changes import ChangeEvent

_log = structlog.get_logger(component="listeners.console")


async def log_change_event(event: ChangeEvent) -> None:
    _log.info(
        "change_detected",
        entity_key=event.entity_key,
        field_name=event.field_name,
        change_kind=event.change_kind.value,
        before=event.value_before,
        after=event.value_after,
    )
