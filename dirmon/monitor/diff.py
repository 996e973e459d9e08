"""Snapshot diff engine.

Compares two full snapshots and produces one ChangeEvent per field-level
difference.  Output order carries no meaning: callers should treat the
result as a multiset partitioned by ``(entity_key, field_name)``.
"""

from __future__ import annotations

from collections.abc import Iterator, Set

from dirmon.models.changes import ChangeEvent, ChangeKind, FieldMapping, Snapshot


def diff_snapshots(
    before: Snapshot,
    after: Snapshot,
    ignore: Set[str] = frozenset(),
) -> list[ChangeEvent]:
    """Return the change events that turn *before* into *after*.

    Entities present on one side only yield a CREATE or DELETE per field.
    Entities present on both sides are compared field by field.  Fields
    named in *ignore* never produce events.
    """
    events: list[ChangeEvent] = []
    for key in before.keys() | after.keys():
        fields_before = before.get(key)
        fields_after = after.get(key)
        if fields_after is None:
            events.extend(_whole_entity(key, fields_before or {}, ChangeKind.DELETE, ignore))
        elif fields_before is None:
            events.extend(_whole_entity(key, fields_after, ChangeKind.CREATE, ignore))
        else:
            events.extend(diff_fields(key, fields_before, fields_after, ignore))
    return events


def diff_fields(
    entity_key: str,
    fields_before: FieldMapping,
    fields_after: FieldMapping,
    ignore: Set[str] = frozenset(),
) -> Iterator[ChangeEvent]:
    """Yield field-level changes for an entity present in both snapshots."""
    for name in fields_before.keys() | fields_after.keys():
        if name in ignore:
            continue
        in_before = name in fields_before
        in_after = name in fields_after
        if in_before and not in_after:
            yield ChangeEvent(entity_key, name, ChangeKind.DELETE, value_before=fields_before[name])
        elif in_after and not in_before:
            yield ChangeEvent(entity_key, name, ChangeKind.CREATE, value_after=fields_after[name])
        elif fields_before[name] != fields_after[name]:
            yield ChangeEvent(
                entity_key,
                name,
                ChangeKind.MODIFY,
                value_before=fields_before[name],
                value_after=fields_after[name],
            )


def _whole_entity(
    entity_key: str,
    fields: FieldMapping,
    kind: ChangeKind,
    ignore: Set[str],
) -> Iterator[ChangeEvent]:
    for name, value in fields.items():
        if name in ignore:
            continue
        if kind is ChangeKind.CREATE:
            yield ChangeEvent(entity_key, name, kind, value_after=value)
        else:
            yield ChangeEvent(entity_key, name, kind, value_before=value)
