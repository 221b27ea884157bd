"""Content store accessor.

The engine only talks to the four record collections (``users``, ``pins``,
``boards``, ``topics``) through :class:`ContentStore`.  Two backends ship:

* :class:`ElasticsearchContentStore` keeps one index per collection.
* :class:`InMemoryContentStore` keeps plain dicts, for local runs and tests.

Records are plain dicts that carry their identifier under ``id``.
"""

import copy
import logging
from abc import ABC, abstractmethod

from elasticsearch import NotFoundError
from elasticsearch.helpers import async_scan

from ..errors import StoreError
from .elasticsearch import hit_to_record, term_filter, unwrap_es_response

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "pins", "boards", "topics")

# Returns ``params._source[field][start:start+count]`` clamped to the array.
SLICE_SCRIPT = """
def values = params._source[params.field];
if (values == null) { return []; }
int from = (int) Math.min(Math.max(params.start, 0), values.size());
int to = (int) Math.min(from + params.count, values.size());
return new ArrayList(values.subList(from, to));
"""


class ContentStore(ABC):
    """Point lookups, filtered reads and partial writes over the collections."""

    @abstractmethod
    async def get_by_id(
        self,
        collection: str,
        record_id: str,
        fields: list[str] | None = None,
    ) -> dict | None:
        """Return the record projected to *fields*, or ``None`` if absent."""
        ...

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filter: dict,
        fields: list[str] | None = None,
        array_slice: tuple[str, int, int] | None = None,
    ) -> dict | None:
        """Return the first record matching the equality *filter*.

        ``array_slice=(field, start, count)`` loads only
        ``field[start:start + count]`` instead of the whole array.
        """
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: dict | None = None,
        fields: list[str] | None = None,
    ) -> list[dict]:
        """Return every record matching *filter*, in store (index) order."""
        ...

    @abstractmethod
    async def update_fields(self, collection: str, record_id: str, partial: dict) -> None:
        """Overwrite the given top-level fields of one record."""
        ...


# ---------------------------------------------------------------------------
# Elasticsearch backend
# ---------------------------------------------------------------------------

class ElasticsearchContentStore(ContentStore):
    """Store backed by an ``AsyncElasticsearch`` client, one index per collection."""

    def __init__(self, es, index_prefix: str = ""):
        self.es = es
        self.index_prefix = index_prefix

    def index(self, collection: str) -> str:
        return f"{self.index_prefix}{collection}"

    async def get_by_id(self, collection, record_id, fields=None):
        try:
            resp = await self.es.get(
                index=self.index(collection),
                id=record_id,
                source_includes=fields,
            )
        except NotFoundError:
            return None
        data = unwrap_es_response(resp)
        if not data.get("found", True):
            return None
        return hit_to_record(data)

    async def find_one(self, collection, filter, fields=None, array_slice=None):
        kwargs = {}
        if array_slice is not None:
            field, start, count = array_slice
            kwargs["script_fields"] = {
                field: {
                    "script": {
                        "lang": "painless",
                        "source": SLICE_SCRIPT,
                        "params": {"field": field, "start": start, "count": count},
                    }
                }
            }
            # The sliced array must not also come back whole in _source.
            fields = [f for f in (fields or []) if f != field]
            kwargs["_source"] = fields or False
        elif fields is not None:
            kwargs["_source"] = fields

        resp = await self.es.search(
            index=self.index(collection),
            query=term_filter(filter),
            size=1,
            **kwargs,
        )
        data = unwrap_es_response(resp)
        hits = data.get("hits", {}).get("hits", [])
        if not hits:
            return None
        record = hit_to_record(hits[0])
        if array_slice is not None:
            field = array_slice[0]
            record[field] = list((hits[0].get("fields") or {}).get(field, []))
        return record

    async def find(self, collection, filter=None, fields=None):
        # Index order (`_doc`); matches insertion order on single-shard indices.
        body = {"query": term_filter(filter), "sort": ["_doc"]}
        if fields is not None:
            body["_source"] = fields
        records = []
        async for hit in async_scan(
            self.es,
            index=self.index(collection),
            query=body,
            preserve_order=True,
        ):
            records.append(hit_to_record(hit))
        return records

    async def update_fields(self, collection, record_id, partial):
        await self.es.update(index=self.index(collection), id=record_id, doc=partial)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

def _project(record: dict, fields: list[str] | None) -> dict:
    if fields is None:
        projected = copy.deepcopy(record)
    else:
        projected = {f: copy.deepcopy(record[f]) for f in fields if f in record}
    projected["id"] = record["id"]
    return projected


def _matches(record: dict, filter: dict | None) -> bool:
    return all(record.get(field) == value for field, value in (filter or {}).items())


class InMemoryContentStore(ContentStore):
    """Dict-backed store with the same contract as the Elasticsearch one."""

    def __init__(self, data: dict[str, list[dict]] | None = None):
        self.collections: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        for collection, records in (data or {}).items():
            for record in records:
                self.insert(collection, record)

    def insert(self, collection: str, record: dict) -> dict:
        if "id" not in record:
            raise StoreError("record must carry an id")
        self.collections.setdefault(collection, {})[record["id"]] = copy.deepcopy(record)
        return record

    def raw(self, collection: str, record_id: str) -> dict | None:
        """Direct access to a stored record (no projection, no copy)."""
        return self.collections.get(collection, {}).get(record_id)

    async def get_by_id(self, collection, record_id, fields=None):
        record = self.raw(collection, record_id)
        if record is None:
            return None
        return _project(record, fields)

    async def find_one(self, collection, filter, fields=None, array_slice=None):
        for record in self.collections.get(collection, {}).values():
            if not _matches(record, filter):
                continue
            if array_slice is None:
                return _project(record, fields)
            field, start, count = array_slice
            projected = _project(record, [f for f in (fields or []) if f != field])
            values = record.get(field) or []
            start = min(max(start, 0), len(values))
            projected[field] = copy.deepcopy(values[start:start + count])
            return projected
        return None

    async def find(self, collection, filter=None, fields=None):
        return [
            _project(record, fields)
            for record in self.collections.get(collection, {}).values()
            if _matches(record, filter)
        ]

    async def update_fields(self, collection, record_id, partial):
        record = self.raw(collection, record_id)
        if record is None:
            raise StoreError(f"no {collection} record {record_id}")
        record.update(copy.deepcopy(partial))
