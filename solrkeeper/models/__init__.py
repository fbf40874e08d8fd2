"""SolrKeeper data models package.

Typed dataclasses for documents, connection profiles, requests and run records.
Never pass raw response dicts past the client layer; always use Document.
"""

from solrkeeper.models.backup import (
    BackupMetadata,
    BackupRequest,
    BackupResult,
    BackupStats,
    CursorState,
    EngineConnection,
    PhaseRecord,
    RunPhase,
    parse_field_list,
)
from solrkeeper.models.document import (
    Document,
    ListValue,
    NestedValue,
    Scalar,
    ScalarValue,
    Value,
)

__all__ = [
    # document
    "Document",
    "ScalarValue",
    "ListValue",
    "NestedValue",
    "Scalar",
    "Value",
    # backup
    "BackupMetadata",
    "BackupRequest",
    "BackupResult",
    "BackupStats",
    "CursorState",
    "EngineConnection",
    "PhaseRecord",
    "RunPhase",
    "parse_field_list",
]
