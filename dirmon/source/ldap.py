"""LDAP snapshot fetcher built on ldap3.

Reads the whole subtree under the configured base DN with the simple paged
results control and keys every entry by a unique attribute (by default
``sAMAccountName``).  ldap3 is synchronous, so every network call runs in a
worker thread via ``asyncio.to_thread``; only the poll loop ever touches
the connection, one call at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from ldap3 import ALL_ATTRIBUTES, DEREF_ALWAYS, NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import (
    LDAPCommunicationError,
    LDAPException,
    LDAPOperationsErrorResult,
    LDAPUnavailableCriticalExtensionResult,
)

from dirmon.models.changes import Snapshot
from dirmon.models.config import SourceConfig
from dirmon.observability.metrics import source_reconnects_total
from dirmon.source.base import (
    FetchError,
    SnapshotFetcher,
    SourceUnavailableError,
    TransientSourceError,
)

_log = structlog.get_logger(component="source.ldap")

_PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

# Dropped connections and stale paging cookies are recovered by reconnecting
# and restarting the read from the first page.
_TRANSIENT_ERRORS = (
    LDAPCommunicationError,
    LDAPOperationsErrorResult,
    LDAPUnavailableCriticalExtensionResult,
)


class LDAPSnapshotFetcher(SnapshotFetcher):
    """Captures full snapshots of an LDAP directory.

    Args:
        config: Connection, search and reconnect settings.
    """

    def __init__(self, config: SourceConfig) -> None:
        self._config = config
        self._conn: Connection | None = None
        self._closed = False

    @property
    def source_name(self) -> str:
        return self._config.url

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """Open and bind the connection; failures are fatal to the caller."""
        try:
            self._conn = await asyncio.to_thread(self._open)
        except LDAPException as exc:
            raise SourceUnavailableError(f"cannot bind to {self._config.url}: {exc}") from exc
        _log.info("source_connected", url=self._config.url, base_dn=self._config.base_dn)

    async def fetch_snapshot(self) -> Snapshot:
        """Read every entry, reconnecting on transient errors.

        Raises:
            FetchError: the read failed, or kept failing after
                ``max_reconnect_attempts`` reconnects.
        """
        attempts = 0
        while True:
            if self._closed:
                raise FetchError("fetcher is closed")
            try:
                return await asyncio.to_thread(self._search_all)
            except TransientSourceError as exc:
                if attempts >= self._config.max_reconnect_attempts:
                    raise FetchError(f"giving up after {attempts} reconnect attempts: {exc}") from exc
                attempts += 1
                await self._reconnect(attempts, exc)

    async def close(self) -> None:
        self._closed = True
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            await asyncio.to_thread(conn.unbind)
        except LDAPException as exc:
            _log.debug("source_unbind_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Internals (run in worker threads)
    # ------------------------------------------------------------------

    def _open(self) -> Connection:
        server = Server(
            self._config.url,
            connect_timeout=self._config.timeout_seconds,
            get_info=NONE,
        )
        return Connection(
            server,
            user=self._config.bind_dn or None,
            password=self._config.bind_password or None,
            auto_bind=True,
            raise_exceptions=True,
            receive_timeout=self._config.timeout_seconds,
        )

    def _search_all(self) -> dict[str, dict[str, str]]:
        conn = self._conn
        if conn is None:
            raise TransientSourceError("not connected")

        result: dict[str, dict[str, str]] = {}
        cookie: bytes | None = None
        pages = 0
        while True:
            try:
                conn.search(
                    search_base=self._config.base_dn,
                    search_filter=self._config.search_filter,
                    search_scope=SUBTREE,
                    dereference_aliases=DEREF_ALWAYS,
                    attributes=ALL_ATTRIBUTES,
                    paged_size=self._config.page_size,
                    paged_cookie=cookie,
                )
            except _TRANSIENT_ERRORS as exc:
                raise TransientSourceError(str(exc)) from exc
            except LDAPException as exc:
                raise FetchError(f"search failed: {exc}") from exc

            pages += 1
            for entry in conn.response or []:
                if entry.get("type") != "searchResEntry":
                    continue
                self._collect(entry, result)

            cookie = _paging_cookie(conn.result)
            if not cookie:
                break

        _log.debug("source_read_complete", entities=len(result), pages=pages)
        return result

    def _collect(self, entry: Mapping[str, Any], result: dict[str, dict[str, str]]) -> None:
        raw = entry.get("raw_attributes") or {}
        fields = {name: serialize_values(values) for name, values in raw.items()}
        key = _first_value(raw, self._config.key_attribute)
        if not key:
            _log.debug("entry_without_key_skipped", dn=entry.get("dn", ""), key_attribute=self._config.key_attribute)
            return
        # Duplicate keys: the last entry read wins.
        result[key] = fields

    async def _reconnect(self, attempt: int, cause: Exception) -> None:
        _log.warning(
            "source_reconnecting",
            url=self._config.url,
            attempt=attempt,
            max_attempts=self._config.max_reconnect_attempts,
            error=str(cause),
        )
        source_reconnects_total.inc()
        old, self._conn = self._conn, None
        if old is not None:
            try:
                await asyncio.to_thread(old.unbind)
            except LDAPException as exc:
                _log.debug("source_unbind_failed", error=str(exc))
        try:
            self._conn = await asyncio.to_thread(self._open)
        except LDAPException as exc:
            _log.warning("source_reconnect_failed", url=self._config.url, attempt=attempt, error=str(exc))
        await asyncio.sleep(self._config.reconnect_delay)


def serialize_values(values: Iterable[bytes | str]) -> str:
    """Render a multi-valued attribute as ``[v1 v2 ...]``."""
    return "[" + " ".join(_decode(v) for v in values) + "]"


def _decode(value: bytes | str) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _first_value(raw: Mapping[str, Iterable[bytes | str]], attribute: str) -> str:
    wanted = attribute.lower()
    for name, values in raw.items():
        if name.lower() == wanted:
            for value in values:
                return _decode(value)
    return ""


def _paging_cookie(result: Mapping[str, Any] | None) -> bytes | None:
    controls = (result or {}).get("controls") or {}
    paged = controls.get(_PAGED_RESULTS_OID) or {}
    value = paged.get("value") or {}
    return value.get("cookie") or None
