"""Backup run data models for SolrKeeper.

Defines the connection profile, the validated backup request, the cursor
state machine record, run statistics, and the persisted metadata record.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from config.defaults import (
    CURSOR_MARK_START,
    DEFAULT_BATCH_SIZE,
    DEFAULT_ENGINE,
    DEFAULT_FIELDS,
    DEFAULT_FORMAT,
    DEFAULT_QUERY,
    FIELD_LIST_WITHOUT_VERSION,
    SOLR_PATH_ROOT,
    SUPPORTED_FORMATS,
    VERSION_FIELD,
)
from solrkeeper.errors import InvalidRequest, UnsupportedFormat

FieldSelection = Union[str, Tuple[str, ...]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_field_list(text: Optional[str]) -> FieldSelection:
    """Parse a comma-separated --fields value.

    Args:
        text: Raw flag value. None, "" and "*" all mean every field.

    Returns:
        "*" or an ordered, de-duplicated tuple of field names.

    Raises:
        InvalidRequest: If the value contains only separators.
    """
    if text is None or text.strip() in ("", DEFAULT_FIELDS):
        return DEFAULT_FIELDS
    names: List[str] = []
    for part in text.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    if not names:
        raise InvalidRequest(f"Field list {text!r} names no fields")
    return tuple(names)


@dataclass(frozen=True)
class EngineConnection:
    """A resolved Solr connection profile. Immutable for the whole run."""

    name: str
    host: str
    port: str
    core: str
    auth: Optional[Tuple[str, str]] = None

    @classmethod
    def from_profile(cls, name: str, profile: Dict[str, Any]) -> "EngineConnection":
        """Build a connection from one entry of the engines JSON file.

        Args:
            name: Engine name (the JSON key).
            profile: ``{host, port, core, auth: [user, password] | null}``.
        """
        auth = profile.get("auth")
        auth_pair: Optional[Tuple[str, str]] = None
        if auth:
            auth_pair = (str(auth[0]), str(auth[1]) if len(auth) > 1 else "")
        return cls(
            name=name,
            host=str(profile["host"]),
            port=str(profile["port"]),
            core=str(profile["core"]),
            auth=auth_pair,
        )

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if "://" not in host:
            host = f"http://{host}"
        return f"{host}:{self.port}"

    @property
    def select_url(self) -> str:
        return f"{self.base_url}/{SOLR_PATH_ROOT}/{self.core}/select"

    def describe(self) -> str:
        """Human-readable ``host:port/core`` without credentials."""
        return f"{self.host}:{self.port}/{self.core}"


@dataclass(frozen=True)
class BackupRequest:
    """What to export. Validated and normalized once at construction."""

    engine: str = DEFAULT_ENGINE
    format: str = DEFAULT_FORMAT
    query: str = DEFAULT_QUERY
    fields: FieldSelection = DEFAULT_FIELDS
    batch_size: int = DEFAULT_BATCH_SIZE
    compress: bool = True
    exclude_version: bool = True
    output_override: Optional[str] = None

    def __post_init__(self) -> None:
        fmt = (self.format or "").strip().lower()
        if fmt not in SUPPORTED_FORMATS:
            raise UnsupportedFormat(self.format, SUPPORTED_FORMATS)
        object.__setattr__(self, "format", fmt)

        # Recovers the query mangled by shells that glob-expand the default
        query = self.query if self.query else DEFAULT_QUERY
        if query == ":*":
            query = DEFAULT_QUERY
        object.__setattr__(self, "query", query)

        if isinstance(self.fields, str):
            object.__setattr__(self, "fields", parse_field_list(self.fields))
        elif not self.fields:
            raise InvalidRequest("Field list must not be empty")
        else:
            object.__setattr__(self, "fields", tuple(self.fields))

        if int(self.batch_size) < 1:
            raise InvalidRequest(f"Batch size must be a positive integer, got {self.batch_size}")
        object.__setattr__(self, "batch_size", int(self.batch_size))

        if self.output_override is not None:
            name = self.output_override.strip()
            if not name or name in (".", "..") or any(sep in name for sep in ("/", "\\")):
                raise InvalidRequest(
                    f"Output name must be a plain file name, got {self.output_override!r}"
                )
            object.__setattr__(self, "output_override", name)

    @property
    def fields_excluded(self) -> List[str]:
        return [VERSION_FIELD] if self.exclude_version else []

    @property
    def field_list_param(self) -> Optional[str]:
        """Value of the Solr ``fl`` parameter, or None to omit it."""
        if self.fields != DEFAULT_FIELDS:
            return ",".join(self.fields)
        if self.exclude_version:
            return FIELD_LIST_WITHOUT_VERSION
        return None


@dataclass
class CursorState:
    """Pagination position. Only CursorPaginator mutates this."""

    mark: str = CURSOR_MARK_START
    previous_mark: Optional[str] = None
    exhausted: bool = False

    def advance(self, next_mark: str) -> None:
        self.previous_mark = self.mark
        self.mark = next_mark

    def exhaust(self) -> None:
        self.exhausted = True


@dataclass
class BackupStats:
    """Run counters owned by the orchestrator. Counters only ever grow."""

    started_at: datetime = field(default_factory=_utcnow)
    start_monotonic: float = field(default_factory=time.monotonic)
    documents_processed: int = 0
    batches_processed: int = 0
    errors: List[str] = field(default_factory=list)

    def record_batch(self, document_count: int) -> None:
        if document_count < 0:
            raise ValueError(f"document_count must be >= 0, got {document_count}")
        self.documents_processed += document_count
        self.batches_processed += 1

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self.start_monotonic) * 1000, 2)


class RunPhase:
    """Backup run states, in the order a successful run visits them."""

    IDLE = "IDLE"
    CONFIGURING_ENGINE = "CONFIGURING_ENGINE"
    PREPARING_OUTPUT = "PREPARING_OUTPUT"
    PAGINATING = "PAGINATING"
    FINALIZING = "FINALIZING"
    COMPRESSING = "COMPRESSING"
    WRITING_METADATA = "WRITING_METADATA"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class PhaseRecord:
    """Timing and status record for a single run phase."""

    phase_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str = "OK"

    @property
    def elapsed_seconds(self) -> float:
        """Compute elapsed time in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase_name,
            "status": self.status,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass
class BackupMetadata:
    """Persisted summary of one backup run, successful or not."""

    backup_file: str
    engine: str
    format: str
    query: str
    total_documents: int
    batches_processed: int
    execution_time_ms: float
    compressed: bool
    fields_excluded: List[str] = field(default_factory=list)
    created_at: str = ""
    errors: List[str] = field(default_factory=list)
    status: str = "OK"   # "OK" or "FAILED"
    size_bytes: int = 0
    checksum: str = ""   # SHA-256 hex digest of backup_file
    phases: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class BackupResult:
    """What a run hands back to its caller."""

    run_id: str
    output_path: Path
    metadata_path: Optional[Path]
    stats: BackupStats
    metadata: Optional[BackupMetadata] = None
    phase_log: List[PhaseRecord] = field(default_factory=list)
    status: str = RunPhase.DONE
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunPhase.DONE

    def raise_for_status(self) -> None:
        """Re-raise the error that failed this run, if any."""
        if self.error is not None:
            raise self.error
