"""Built-in change listeners for dirmon.

Exports:
    WebhookListener  -- POSTs each change event as JSON.
    log_change_event -- Logs each change event as a structured line.
    build_listeners  -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from dirmon.listeners.console import log_change_event
from dirmon.listeners.webhook import WebhookListener

if TYPE_CHECKING:
    from dirmon.models.config import ListenerConfig
    from dirmon.monitor.registry import Listener

_log = structlog.get_logger(component="listeners")

__all__ = [
    "WebhookListener",
    "build_listeners",
    "log_change_event",
]


def build_listeners(config: ListenerConfig) -> dict[str, Listener]:
    """Build the enabled listeners, keyed by registration name.

    Webhook:
        DIRMON_LISTENERS_WEBHOOK_SECRET_REF (env var name) ->
        env var value is the webhook URL.
    """
    listeners: dict[str, Listener] = {}

    if config.console_enabled:
        listeners["console"] = log_change_event
        _log.info("console_listener_enabled")

    webhook_ref = config.webhook_secret_ref
    if webhook_ref:
        webhook_url = os.environ.get(webhook_ref, "")
        if webhook_url:
            listeners["webhook"] = WebhookListener(url=webhook_url)
            _log.info("webhook_listener_enabled")
        else:
            _log.debug("webhook_listener_skipped", reason="secret ref env var is empty")

    if not listeners:
        _log.info("no_listeners_configured")

    return listeners
