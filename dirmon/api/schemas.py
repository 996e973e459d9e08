"""Pydantic response models for the dirmon REST API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    monitor_state: str


class StatusResponse(BaseModel):
    """Point-in-time view of the monitor."""

    version: str
    source: str
    monitor_state: str
    refresh_period: float
    ignore_fields: list[str]
    cycles_completed: int
    consecutive_failures: int
    last_poll_at: str | None
    baseline_entities: int
    queue_depth: int
    events_dispatched: int
    listeners: list[str]


class ListenersResponse(BaseModel):
    listeners: list[str]
