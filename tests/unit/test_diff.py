"""Unit tests for the snapshot diff engine.

Outputs are compared as multisets keyed by (entity_key, field_name) since
the engine makes no ordering promise.
"""

from __future__ import annotations

from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from dirmon.models.changes import ChangeEvent, ChangeKind
from dirmon.monitor.diff import diff_fields, diff_snapshots

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _summary(events: list[ChangeEvent]) -> Counter[tuple[str, str, ChangeKind, str, str]]:
    return Counter(
        (e.entity_key, e.field_name, e.change_kind, e.value_before, e.value_after) for e in events
    )


_SWAPPED_KIND = {
    ChangeKind.CREATE: ChangeKind.DELETE,
    ChangeKind.DELETE: ChangeKind.CREATE,
    ChangeKind.MODIFY: ChangeKind.MODIFY,
}

# Small alphabets so generated snapshots overlap and actually differ.
_keys = st.sampled_from(["alice", "bob", "carol", "dave"])
_fields = st.sampled_from(["title", "mail", "logonCount", "memberOf", "cn"])
_values = st.sampled_from(["", "eng", "lead", "5", "6", "[a b]"])
_snapshots = st.dictionaries(_keys, st.dictionaries(_fields, _values, max_size=5), max_size=4)


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_modified_field_yields_single_modify(self) -> None:
        """A changed title produces exactly one MODIFY with both values."""
        events = diff_snapshots({"alice": {"title": "eng"}}, {"alice": {"title": "lead"}})
        assert len(events) == 1
        event = events[0]
        assert event.entity_key == "alice"
        assert event.field_name == "title"
        assert event.change_kind is ChangeKind.MODIFY
        assert event.value_before == "eng"
        assert event.value_after == "lead"

    def test_new_entity_against_explicit_empty_prior_yields_create(self) -> None:
        """Diffing against an explicit empty snapshot reports every field as created."""
        events = diff_snapshots({}, {"bob": {"title": "eng"}})
        assert _summary(events) == Counter({("bob", "title", ChangeKind.CREATE, "", "eng"): 1})

    def test_ignored_field_change_yields_nothing(self) -> None:
        """A change confined to an ignored field produces zero events."""
        before = {"carol": {"logonCount": "5", "title": "eng"}}
        after = {"carol": {"logonCount": "6", "title": "eng"}}
        assert diff_snapshots(before, after, frozenset({"logonCount"})) == []

    def test_removed_entity_yields_delete_per_field(self) -> None:
        """An entity missing from the new snapshot yields one DELETE per field."""
        events = diff_snapshots({"dave": {"title": "eng", "mail": "d@x"}}, {})
        assert _summary(events) == Counter(
            {
                ("dave", "title", ChangeKind.DELETE, "eng", ""): 1,
                ("dave", "mail", ChangeKind.DELETE, "d@x", ""): 1,
            }
        )

    def test_field_added_and_removed_on_existing_entity(self) -> None:
        """Field-level CREATE and DELETE on an entity present on both sides."""
        events = diff_snapshots(
            {"alice": {"title": "eng", "mail": "a@x"}},
            {"alice": {"title": "eng", "phone": "123"}},
        )
        assert _summary(events) == Counter(
            {
                ("alice", "mail", ChangeKind.DELETE, "a@x", ""): 1,
                ("alice", "phone", ChangeKind.CREATE, "", "123"): 1,
            }
        )

    def test_empty_string_differs_from_absent(self) -> None:
        """A field present with an empty value is not the same as no field."""
        events = diff_snapshots({"alice": {}}, {"alice": {"title": ""}})
        assert _summary(events) == Counter({("alice", "title", ChangeKind.CREATE, "", ""): 1})

    def test_identical_entity_contributes_nothing(self) -> None:
        """Unchanged entities are skipped even when others change."""
        before = {"alice": {"title": "eng"}, "bob": {"title": "eng"}}
        after = {"alice": {"title": "eng"}, "bob": {"title": "lead"}}
        events = diff_snapshots(before, after)
        assert [e.entity_key for e in events] == ["bob"]

    def test_ignore_applies_to_whole_entity_create(self) -> None:
        """Ignored fields are excluded from whole-entity CREATE events too."""
        events = diff_snapshots({}, {"bob": {"title": "eng", "logonCount": "1"}}, frozenset({"logonCount"}))
        assert {e.field_name for e in events} == {"title"}

    def test_diff_fields_for_single_entity(self) -> None:
        """diff_fields compares a single entity's field mappings."""
        events = list(diff_fields("alice", {"a": "1", "b": "2"}, {"a": "1", "b": "3"}))
        assert _summary(events) == Counter({("alice", "b", ChangeKind.MODIFY, "2", "3"): 1})

    def test_events_carry_unique_ids(self) -> None:
        events = diff_snapshots({}, {"bob": {"title": "eng", "mail": "b@x"}})
        assert len({e.event_id for e in events}) == 2


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    @given(snapshot=_snapshots)
    @settings(max_examples=200)
    def test_idempotence(self, snapshot: dict[str, dict[str, str]]) -> None:
        """diff(A, A) is always empty."""
        assert diff_snapshots(snapshot, snapshot) == []

    @given(a=_snapshots, b=_snapshots)
    @settings(max_examples=200)
    def test_symmetry(self, a: dict[str, dict[str, str]], b: dict[str, dict[str, str]]) -> None:
        """diff(B, A) mirrors diff(A, B) with CREATE/DELETE and values swapped."""
        forward = _summary(diff_snapshots(a, b))
        backward = _summary(diff_snapshots(b, a))
        mirrored = Counter(
            {
                (key, name, _SWAPPED_KIND[kind], after, before): n
                for (key, name, kind, before, after), n in forward.items()
            }
        )
        assert backward == mirrored

    @given(a=_snapshots, b=_snapshots, ignore=st.frozensets(_fields, max_size=3))
    @settings(max_examples=200)
    def test_ignored_fields_never_reported(
        self,
        a: dict[str, dict[str, str]],
        b: dict[str, dict[str, str]],
        ignore: frozenset[str],
    ) -> None:
        """No event ever names a field in the ignore set."""
        assert all(e.field_name not in ignore for e in diff_snapshots(a, b, ignore))

    @given(a=_snapshots, b=_snapshots)
    @settings(max_examples=200)
    def test_kind_invariants(self, a: dict[str, dict[str, str]], b: dict[str, dict[str, str]]) -> None:
        """CREATE has no before value, DELETE no after value, MODIFY differing values."""
        for event in diff_snapshots(a, b):
            if event.change_kind is ChangeKind.CREATE:
                assert event.value_before == ""
                assert event.field_name not in a.get(event.entity_key, {})
            elif event.change_kind is ChangeKind.DELETE:
                assert event.value_after == ""
                assert event.field_name not in b.get(event.entity_key, {})
            else:
                assert event.value_before != event.value_after

    @given(a=_snapshots, b=_snapshots)
    @settings(max_examples=200)
    def test_completeness_for_one_sided_entities(
        self, a: dict[str, dict[str, str]], b: dict[str, dict[str, str]]
    ) -> None:
        """Entities on one side only get exactly one event per field, of the right kind."""
        events = diff_snapshots(a, b)
        for key in a.keys() - b.keys():
            got = sorted((e.field_name, e.change_kind) for e in events if e.entity_key == key)
            assert got == sorted((name, ChangeKind.DELETE) for name in a[key])
        for key in b.keys() - a.keys():
            got = sorted((e.field_name, e.change_kind) for e in events if e.entity_key == key)
            assert got == sorted((name, ChangeKind.CREATE) for name in b[key])

    @given(a=_snapshots, b=_snapshots)
    @settings(max_examples=200)
    def test_at_most_one_event_per_field(self, a: dict[str, dict[str, str]], b: dict[str, dict[str, str]]) -> None:
        """Each (entity_key, field_name) pair appears at most once."""
        keys = [e.partition_key for e in diff_snapshots(a, b)]
        assert len(keys) == len(set(keys))
