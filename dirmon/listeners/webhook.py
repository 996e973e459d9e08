"""Generic JSON webhook listener for dirmon.

Posts every ChangeEvent as a JSON body to a configured HTTP endpoint.  The
payload mirrors the ChangeEvent fields so consumers can parse it without
dirmon-specific knowledge.
"""

from __future__ import annotations

import httpx
import structlog

from dirmon.models.changes import ChangeEvent

_log = structlog.get_logger(component="listeners.webhook")


class WebhookListener:
    """Delivers change events by POSTing a JSON payload to a URL.

    Args:
        url:       Full endpoint URL (must be HTTPS in production).
        headers:   Optional extra headers (e.g. Authorization).
        timeout:   HTTP request timeout in seconds. Defaults to 10.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport

    async def __call__(self, event: ChangeEvent) -> bool:
        """POST *event* as JSON to the configured endpoint.

        Returns True on 2xx response, False otherwise.  Never raises for
        transport errors.
        """
        request_headers = {
            "Content-Type": "application/json",
            **self._headers,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    json=event.to_dict(),
                    headers=request_headers,
                )
                if response.is_success:
                    return True
                _log.warning(
                    "webhook_non_2xx_response",
                    status_code=response.status_code,
                    body=response.text[:200],
                    event_id=event.event_id,
                )
                return False
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", event_id=event.event_id, url=self._url)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", error=str(exc), event_id=event.event_id)
            return False
