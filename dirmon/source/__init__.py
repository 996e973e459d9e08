"""Snapshot sources for dirmon.

Submodules
----------
base -- SnapshotFetcher ABC and the FetchError taxonomy.
ldap -- LDAPSnapshotFetcher: paged subtree read with reconnect on transient errors.
"""

from dirmon.source.base import (
    FetchError,
    SnapshotFetcher,
    SourceUnavailableError,
    TransientSourceError,
)

__all__ = [
    "FetchError",
    "SnapshotFetcher",
    "SourceUnavailableError",
    "TransientSourceError",
]
