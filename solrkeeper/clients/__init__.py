"""SolrKeeper clients package.

HTTP API clients only, no pagination or export logic in this layer.
"""

from solrkeeper.clients.solr_client import SelectBatch, SolrClient, parse_select_response

__all__ = [
    "SelectBatch",
    "SolrClient",
    "parse_select_response",
]
