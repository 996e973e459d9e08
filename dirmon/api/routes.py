"""Route handlers for the dirmon REST API."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dirmon.api.schemas import HealthResponse, ListenersResponse, StatusResponse
from dirmon.monitor.controller import MonitorState

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> JSONResponse:
    """200 while the monitor is running, 503 otherwise."""
    monitor = request.app.state.monitor
    running = monitor.state is MonitorState.RUNNING
    body = HealthResponse(status="ok" if running else "unavailable", monitor_state=monitor.state.value)
    return JSONResponse(status_code=200 if running else 503, content=body.model_dump())


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    from dirmon import __version__

    monitor = request.app.state.monitor
    last_poll = monitor.last_poll_at
    return StatusResponse(
        version=__version__,
        source=monitor.source_name,
        monitor_state=monitor.state.value,
        refresh_period=monitor.refresh_period,
        ignore_fields=sorted(monitor.ignore_fields),
        cycles_completed=monitor.cycles_completed,
        consecutive_failures=monitor.consecutive_failures,
        last_poll_at=last_poll.isoformat() if last_poll is not None else None,
        baseline_entities=monitor.baseline_size,
        queue_depth=monitor.queue_depth,
        events_dispatched=monitor.events_dispatched,
        listeners=monitor.listener_names,
    )


@router.get("/listeners", response_model=ListenersResponse)
async def listeners(request: Request) -> ListenersResponse:
    return ListenersResponse(listeners=request.app.state.monitor.listener_names)
