"""Application bootstrap for dirmon.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → source → monitor → listeners → REST

Shutdown runs in reverse startup order.  Each component's stop error is
caught and logged independently so that one failure does not prevent the
rest from shutting down cleanly.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from dirmon.config import load_config
from dirmon.models.config import DirMonConfig
from dirmon.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from dirmon.monitor.controller import Monitor

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class DirMonApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` on an app that was never started (or already stopped) is safe.
    """

    def __init__(self, config: DirMonConfig | None = None) -> None:
        self.config = config
        self._monitor: Monitor | None = None
        self._rest_server: object | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def monitor(self) -> Monitor | None:
        return self._monitor

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("dirmon starting", version=_dirmon_version())

        await self._start_monitor()
        self._register_listeners()
        await self._start_rest()

        assert self._monitor is not None
        await self._monitor.start()

        self._running = True
        self._log.info("dirmon started", source=self.config.source.url)

    async def _start_monitor(self) -> None:
        """Connect to the directory and build the monitor.  Fatal on failure."""
        assert self._log is not None
        assert self.config is not None
        self._log.debug("starting monitor")
        try:
            from dirmon.monitor import create_monitor

            self._monitor = await create_monitor(self.config)
            self._log.info(
                "monitor created",
                refresh_period=self.config.monitor.refresh_period,
                ignore_fields=sorted(self.config.monitor.ignore_fields),
            )
        except Exception as exc:
            raise _ComponentError("monitor", exc) from exc

    def _register_listeners(self) -> None:
        """Register the built-in listeners.  Non-fatal."""
        assert self._log is not None
        assert self.config is not None
        assert self._monitor is not None
        try:
            from dirmon.listeners import build_listeners

            for name, callback in build_listeners(self.config.listeners).items():
                self._monitor.register_listener(name, callback)
            self._log.info("listeners registered", listeners=self._monitor.listener_names)
        except Exception as exc:
            self._log.warning("listener setup failed; no built-in listeners", error=str(exc))

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        if not self.config.api.enabled:
            self._log.info("rest api disabled (api.enabled=false)")
            return

        self._log.debug("starting rest api")
        try:
            import uvicorn

            from dirmon.api import create_app

            fastapi_app = create_app(monitor=self._monitor)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("dirmon shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True  # type: ignore[attr-defined]

        # The monitor closes its source and drains queued events itself.
        if self._monitor is not None:
            try:
                await asyncio.wait_for(self._monitor.close(), timeout=_SHUTDOWN_GRACE_SECONDS)
            except TimeoutError:
                log.warning("monitor close timed out", timeout=_SHUTDOWN_GRACE_SECONDS)
            except Exception as exc:
                log.error("monitor close raised an error", error=str(exc))

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        log.info("dirmon stopped")


def _dirmon_version() -> str:
    from dirmon import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = DirMonApp()
    loop = asyncio.get_running_loop()
    stopped = asyncio.Event()

    def _request_shutdown() -> None:
        stopped.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await stopped.wait()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()
