"""SolrKeeper utilities package.

Stateless helpers with no network calls.
"""

from solrkeeper.utils.flatten import flatten_document, join_list, scalar_to_text
from solrkeeper.utils.logging_utils import configure_logging, get_logger, get_run_logger

__all__ = [
    "flatten_document",
    "join_list",
    "scalar_to_text",
    "configure_logging",
    "get_logger",
    "get_run_logger",
]
