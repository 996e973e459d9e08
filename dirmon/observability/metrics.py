"""Prometheus metrics for dirmon.

All metrics live in the default ``prometheus_client`` registry and are
exposed by the REST API at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

poll_cycles_total = Counter(
    "dirmon_poll_cycles_total",
    "Completed poll cycles, by outcome.",
    ["outcome"],
)

fetch_failures_total = Counter(
    "dirmon_fetch_failures_total",
    "Snapshot fetches that failed, by error type.",
    ["error"],
)

source_reconnects_total = Counter(
    "dirmon_source_reconnects_total",
    "Reconnect attempts made by the snapshot fetcher.",
)

change_events_total = Counter(
    "dirmon_change_events_total",
    "Change events produced by the diff engine, by kind.",
    ["kind"],
)

listener_invocations_total = Counter(
    "dirmon_listener_invocations_total",
    "Listener invocations, by listener name and success.",
    ["listener", "success"],
)

registered_listeners = Gauge(
    "dirmon_registered_listeners",
    "Listeners currently registered.",
)

queue_depth = Gauge(
    "dirmon_event_queue_depth",
    "Change events waiting for dispatch.",
)

snapshot_entities = Gauge(
    "dirmon_snapshot_entities",
    "Entities in the most recently captured snapshot.",
)
