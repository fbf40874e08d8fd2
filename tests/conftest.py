"""Shared pytest fixtures for SolrKeeper tests.

- sample_docs: raw Solr documents shaped like a real select response
- fake_solr_client: in-memory search client with real cursor-mark semantics
- solr_http_mock: patches requests.Session.get with a configurable response
- engines_config / backup_settings: isolated profile file and backup root
- No real external HTTP calls are made in any test
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest


# ── Raw document fixtures ────────────────────────────────────────────────────────

@pytest.fixture
def sample_docs() -> List[Dict[str, Any]]:
    """Five raw Solr documents with scalars, multi-valued and nested fields."""
    return [
        {"id": "1", "title": "Dune", "tags": ["scifi", "classic"], "_version_": 101},
        {"id": "2", "title": "Emma", "tags": ["romance"], "_version_": 102},
        {"id": "3", "title": "Ulysses & Co <draft>", "tags": [], "_version_": 103},
        {"id": "4", "title": "Beloved", "tags": ["fiction"], "_version_": 104},
        {"id": "5", "title": "Kindred", "tags": ["scifi"], "_version_": 105},
    ]


def _select_body(docs: List[Dict[str, Any]], next_mark: Optional[str] = "AoE") -> str:
    """Build a Solr wt=json select response body."""
    body: Dict[str, Any] = {
        "responseHeader": {"status": 0, "QTime": 1},
        "response": {"numFound": len(docs), "start": 0, "docs": docs},
    }
    if next_mark is not None:
        body["nextCursorMark"] = next_mark
    return json.dumps(body)


@pytest.fixture
def select_body():
    """Factory fixture: select_body(docs, next_mark="AoE") -> JSON response text."""
    return _select_body


# ── In-memory search client ──────────────────────────────────────────────────────

class FakeSolrClient:
    """Pages through a static document list the way Solr cursors do.

    The mark encodes the offset of the next document; an exhausted cursor
    answers with an empty page and the same mark it was given.
    """

    def __init__(
        self,
        raw_docs: List[Dict[str, Any]],
        fail_on_call: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        from solrkeeper.models.document import Document

        self.docs = [Document.from_raw(doc) for doc in raw_docs]
        self.fail_on_call = fail_on_call
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def select(self, query, rows, cursor_mark, field_list=None):
        from solrkeeper.clients.solr_client import SelectBatch
        from solrkeeper.errors import NetworkFailure

        self.calls.append(
            {"query": query, "rows": rows, "cursor_mark": cursor_mark, "field_list": field_list}
        )
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise self.error or NetworkFailure("Connection refused")

        offset = 0 if cursor_mark == "*" else int(cursor_mark.split("-")[1])
        page = self.docs[offset:offset + rows]
        next_mark = f"mark-{offset + len(page)}" if page else cursor_mark
        return SelectBatch(docs=page, next_cursor_mark=next_mark, num_found=len(self.docs))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_solr_client():
    """Factory fixture: fake_solr_client(raw_docs, fail_on_call=None, error=None)."""
    return FakeSolrClient


# ── HTTP mock ────────────────────────────────────────────────────────────────────

@pytest.fixture
def solr_http_mock():
    """Context manager that patches requests.Session.get with a configurable response.

    Usage:
        def test_something(solr_http_mock):
            with solr_http_mock(status_code=200, text=body) as mock_get:
                ...
    """
    import requests

    class _HttpMockContext:
        def __call__(self, status_code: int = 200, text: str = "{}"):
            mock_resp = MagicMock()
            mock_resp.status_code = status_code
            mock_resp.text = text
            return patch.object(requests.Session, "get", return_value=mock_resp)

    return _HttpMockContext()


# ── Profiles and settings ────────────────────────────────────────────────────────

@pytest.fixture
def engines_config(tmp_path) -> Path:
    """Engine profile file with a plain and an authenticated engine."""
    path = tmp_path / "solr_engines.json"
    path.write_text(
        json.dumps(
            {
                "local": {"host": "http://localhost", "port": "8983", "core": "books", "auth": None},
                "secure": {
                    "host": "https://solr.example.com/",
                    "port": 443,
                    "core": "catalog",
                    "auth": ["reader", "s3cret"],
                },
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def backup_settings(tmp_path, engines_config):
    """BackupSettings isolated under tmp_path."""
    from config.settings import BackupSettings

    return BackupSettings(
        engines_config_path=str(engines_config),
        backup_root=str(tmp_path / "backups"),
        request_timeout=5,
        connect_timeout=2,
        log_level="WARNING",
    )
