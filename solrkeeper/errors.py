"""Error taxonomy for SolrKeeper.

Every failure the export pipeline reports to its caller is a SolrKeeperError.
Library exceptions (requests, json, OSError) are translated into one of these
at the component that first meets them.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class SolrKeeperError(Exception):
    """Base exception for all SolrKeeper operations."""
    pass


class ConfigNotFound(SolrKeeperError):
    """The engine profile store file does not exist or cannot be parsed."""
    pass


class EngineNotFound(SolrKeeperError):
    """The requested engine name is not present in the profile store."""

    def __init__(self, engine: str, available: Optional[Sequence[str]] = None):
        self.engine = engine
        self.available: List[str] = list(available or [])
        message = f"Solr engine '{engine}' not found in configuration"
        if self.available:
            message += f" (available engines: {', '.join(self.available)})"
        super().__init__(message)


class UnsupportedFormat(SolrKeeperError):
    """The requested export format has no writer."""

    def __init__(self, fmt: str, supported: Sequence[str] = ()):
        self.format = fmt
        message = f"Unsupported format: {fmt}"
        if supported:
            message += f" (expected one of: {', '.join(supported)})"
        super().__init__(message)


class InvalidRequest(SolrKeeperError, ValueError):
    """A BackupRequest field is out of range (batch size, field list)."""
    pass


class InvalidResponseShape(SolrKeeperError):
    """Solr answered, but not with a parseable select response."""
    pass


class NetworkFailure(SolrKeeperError):
    """Connect error, timeout or non-2xx status from the transport layer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FileIOFailure(SolrKeeperError):
    """An output, compressed or metadata file could not be opened, written or renamed."""
    pass
