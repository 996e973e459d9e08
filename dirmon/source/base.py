"""Snapshot fetcher contract and error taxonomy."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dirmon.models.changes import Snapshot


class FetchError(Exception):
    """A snapshot could not be captured.  The poll cycle is retried."""


class TransientSourceError(FetchError):
    """Connection dropped or paging cursor went stale; reconnecting may help."""


class SourceUnavailableError(FetchError):
    """The source could not be reached or bound at startup."""


class SnapshotFetcher(ABC):
    """Abstract base class for every snapshot source.

    ``fetch_snapshot`` must page through the whole source internally and
    either return a complete snapshot or raise FetchError; partial results
    are never returned.  Reconnection policy belongs to the implementation.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable source identifier used in logs."""

    async def connect(self) -> None:
        """Establish the initial connection.

        Raises:
            SourceUnavailableError: the source is unreachable or rejected
                the credentials.
        """

    @abstractmethod
    async def fetch_snapshot(self) -> Snapshot:
        """Capture the full current state of the source."""

    async def close(self) -> None:
        """Release the underlying connection.  Must be idempotent."""
