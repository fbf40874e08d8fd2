"""Solr select API client for SolrKeeper.

Handles all HTTP communication with a Solr core: request construction,
basic auth, timeouts, and strict JSON response parsing.

No pagination logic lives here: one call to select() is one HTTP GET.
The cursor state machine lives in solrkeeper.pagination.

Failure policy:
- No retries. The adapter is mounted with max_retries=0 and every transport
  error surfaces as NetworkFailure on the first attempt.
- A 2xx body that is not JSON, or lacks ``response.docs``, is an
  InvalidResponseShape; the caller aborts the run.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import requests
from requests import Session
from requests.adapters import HTTPAdapter

from config.defaults import CONNECT_TIMEOUT, CURSOR_SORT, REQUEST_TIMEOUT
from solrkeeper.errors import InvalidResponseShape, NetworkFailure
from solrkeeper.models.backup import EngineConnection
from solrkeeper.models.document import Document

logger = logging.getLogger(__name__)


@dataclass
class SelectBatch:
    """One parsed page of a cursor-paginated select."""

    docs: List[Document] = field(default_factory=list)
    next_cursor_mark: Optional[str] = None
    num_found: Optional[int] = None


def parse_select_response(text: str) -> SelectBatch:
    """Parse a Solr ``wt=json`` select body.

    Args:
        text: Raw response body.

    Returns:
        SelectBatch with documents in server order.

    Raises:
        InvalidResponseShape: If the body is not JSON, or ``response.docs``
            is missing or not a list of objects.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise InvalidResponseShape(f"Invalid response format from Solr: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidResponseShape("Invalid response format from Solr: body is not an object")

    response = data.get("response")
    docs = response.get("docs") if isinstance(response, dict) else None
    if not isinstance(docs, list):
        raise InvalidResponseShape("Invalid response format from Solr: missing response.docs")

    try:
        documents = [Document.from_raw(doc) for doc in docs]
    except TypeError as exc:
        raise InvalidResponseShape(f"Invalid response format from Solr: {exc}") from exc

    next_mark = data.get("nextCursorMark")
    num_found = response.get("numFound")
    return SelectBatch(
        docs=documents,
        next_cursor_mark=str(next_mark) if next_mark is not None else None,
        num_found=num_found if isinstance(num_found, int) else None,
    )


class SolrClient:
    """Client for the select handler of one Solr core.

    Args:
        connection: Resolved engine profile (host, port, core, auth).
        request_timeout: Read timeout in seconds.
        connect_timeout: Connect timeout in seconds.
    """

    def __init__(
        self,
        connection: EngineConnection,
        request_timeout: float = REQUEST_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self.connection = connection
        self.request_timeout = request_timeout
        self.connect_timeout = connect_timeout

        self._session = Session()
        adapter = HTTPAdapter(max_retries=0)   # Failed batches abort the run
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        if connection.auth:
            self._session.auth = connection.auth

    def build_params(
        self,
        query: str,
        rows: int,
        cursor_mark: str,
        field_list: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build the select query parameters for one cursor step.

        Sort is always ``id asc``: Solr rejects cursorMark without a sort on
        the unique key.
        """
        params: Dict[str, Any] = {
            "q": query,
            "rows": rows,
            "wt": "json",
            "indent": "false",
            "cursorMark": cursor_mark,
            "sort": CURSOR_SORT,
        }
        if field_list:
            params["fl"] = field_list
        return params

    def _build_url(self, params: Dict[str, Any]) -> str:
        return f"{self.connection.select_url}?{urlencode(params)}"

    def _get(self, url: str) -> str:
        """Execute one HTTP GET and return the body text.

        Raises:
            NetworkFailure: On timeout, connection error or non-2xx status.
        """
        timeout: Tuple[float, float] = (self.connect_timeout, self.request_timeout)
        try:
            resp = self._session.get(url, timeout=timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkFailure(f"Solr request timed out: {exc}") from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkFailure(f"Cannot connect to Solr: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkFailure(f"Solr request error: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise NetworkFailure(
                f"Solr returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.text

    def select(
        self,
        query: str,
        rows: int,
        cursor_mark: str,
        field_list: Optional[str] = None,
    ) -> SelectBatch:
        """Fetch one page of documents at the given cursor mark.

        Args:
            query: Solr ``q`` parameter.
            rows: Maximum documents to return.
            cursor_mark: Opaque mark from the previous page (``*`` to start).
            field_list: Optional ``fl`` parameter.

        Returns:
            Parsed SelectBatch.

        Raises:
            NetworkFailure: Transport failure or non-2xx status.
            InvalidResponseShape: Body is not a select response.
        """
        params = self.build_params(query, rows, cursor_mark, field_list)
        url = self._build_url(params)
        logger.debug(
            "Solr select: core=%s rows=%d cursorMark=%s", self.connection.core, rows, cursor_mark
        )

        batch = parse_select_response(self._get(url))
        logger.debug(
            "Solr select returned %d docs (nextCursorMark=%s)",
            len(batch.docs),
            batch.next_cursor_mark,
        )
        return batch

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "SolrClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
