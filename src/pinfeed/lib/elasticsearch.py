"""Shared Elasticsearch utilities.

Helpers for working with Elasticsearch responses that are used by the
content store backend.
"""

import logging

from elastic_transport import ObjectApiResponse

from ..errors import StoreError

logger = logging.getLogger(__name__)


def unwrap_es_response(resp) -> dict:
    """Unwrap an Elasticsearch response, handling both ObjectApiResponse and dict.

    Raises ``StoreError`` if the response type is unexpected.
    """
    if isinstance(resp, ObjectApiResponse):
        return resp.body
    elif isinstance(resp, dict):
        return resp
    else:
        logger.error("Unexpected Elasticsearch response type: %s", type(resp))
        raise StoreError("Invalid Elasticsearch response")


def hit_to_record(hit: dict) -> dict:
    """Flatten a search/get hit into a record dict carrying its ``id``."""
    record = dict(hit.get("_source") or {})
    record["id"] = hit.get("_id")
    return record


def term_filter(filter: dict | None) -> dict:
    """Translate an equality filter into a ``bool`` query of ``term`` clauses."""
    if not filter:
        return {"match_all": {}}
    return {
        "bool": {
            "filter": [{"term": {field: value}} for field, value in filter.items()],
        }
    }
