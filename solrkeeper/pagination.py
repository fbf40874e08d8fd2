"""Cursor-mark pagination over a Solr select handler.

CursorPaginator turns repeated select calls into a lazy, finite sequence of
document batches. Each iteration starts a fresh run from the ``*`` mark.

Termination (checked after each response, before requesting the next page):
  - an empty page ends the run without emitting anything
  - a page shorter than batch_size is emitted and ends the run
  - a page that brings the running count up to the server's numFound is
    emitted and ends the run, so N = k * batch_size takes exactly k requests
  - a page whose nextCursorMark equals the mark it was requested with (or
    that carries no nextCursorMark) is emitted and ends the run

Documents are visited at most once as long as the ``id`` field and the data
set are stable during the run. Concurrent writes to the core may cause
missed or duplicated documents; that is a limitation of cursor paging.

Errors from the client propagate unchanged: no retry, no resume.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Protocol

from solrkeeper.clients.solr_client import SelectBatch
from solrkeeper.errors import InvalidRequest
from solrkeeper.models.backup import CursorState
from solrkeeper.models.document import Document

logger = logging.getLogger(__name__)


class SearchClient(Protocol):
    """Anything that can fetch one cursor page."""

    def select(
        self,
        query: str,
        rows: int,
        cursor_mark: str,
        field_list: Optional[str] = None,
    ) -> SelectBatch:
        ...


class CursorPaginator:
    """Lazy batch sequence for one query.

    Args:
        client: Search client used for every page request.
        query: Solr ``q`` parameter.
        batch_size: Rows requested per page (>= 1).
        field_list: Optional ``fl`` parameter passed through unchanged.
    """

    def __init__(
        self,
        client: SearchClient,
        query: str,
        batch_size: int,
        field_list: Optional[str] = None,
    ) -> None:
        if batch_size < 1:
            raise InvalidRequest(f"batch_size must be >= 1, got {batch_size}")
        self.client = client
        self.query = query
        self.batch_size = batch_size
        self.field_list = field_list
        self.state = CursorState()
        self.requests_made = 0

    def __iter__(self) -> Iterator[List[Document]]:
        self.state = CursorState()
        self.requests_made = 0
        seen = 0

        while not self.state.exhausted:
            current = self.state.mark
            batch = self.client.select(self.query, self.batch_size, current, self.field_list)
            self.requests_made += 1

            if not batch.docs:
                logger.debug("Cursor exhausted at mark %s: empty page", current)
                self.state.exhaust()
                return

            seen += len(batch.docs)
            next_mark = batch.next_cursor_mark
            if next_mark is not None and next_mark != current:
                self.state.advance(next_mark)

            if next_mark is None or next_mark == current:
                logger.debug("Cursor exhausted at mark %s: mark did not move", current)
                self.state.exhaust()
            elif batch.num_found is not None and seen >= batch.num_found:
                logger.debug("Cursor exhausted: %d of %d documents read", seen, batch.num_found)
                self.state.exhaust()
            elif len(batch.docs) < self.batch_size:
                logger.debug(
                    "Cursor exhausted: short page (%d < %d)", len(batch.docs), self.batch_size
                )
                self.state.exhaust()

            yield batch.docs
