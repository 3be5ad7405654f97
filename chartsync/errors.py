"""
Error taxonomy for chartsync.

Every failure that aborts a sync pass is a ChartSyncError subclass, so
callers (the scheduler, the CLI) can report them uniformly while still
telling trust, transport, parsing and storage problems apart.
"""

from typing import Optional


class ChartSyncError(Exception):
    """Base class for all chartsync errors."""


class ConfigLookupError(ChartSyncError):
    """A referenced config object or secret does not exist."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} {name!r} not found")


class ConfigKeyError(ChartSyncError):
    """A config object or secret exists but lacks an expected key."""

    def __init__(self, kind: str, name: str, key: str):
        self.kind = kind
        self.name = name
        self.key = key
        super().__init__(f"Failed to find {key} key in {kind} {name}")


class TrustParseError(ChartSyncError):
    """Certificate or key material could not be parsed."""


class FetchError(ChartSyncError):
    """The index document could not be retrieved."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (status code {status_code})"
        super().__init__(f"{url}: {message}")


class ParseError(ChartSyncError):
    """The index document is structurally invalid."""


class PersistenceError(ChartSyncError):
    """A record could not be read from or written to the store."""


class SyncCancelled(ChartSyncError):
    """The enclosing context cancelled the pass."""
