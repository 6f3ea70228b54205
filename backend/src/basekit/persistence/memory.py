"""In-process document store."""

import copy
from typing import Any

from basekit.persistence.adapter import DuplicateKeyError
from basekit.persistence.query import Query, index_key, new_id, run_query, utcnow
from basekit.schema.types import IndexSpec


class MemoryAdapter:
    """Dict-backed adapter for tests and ephemeral deployments.

    Records are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._indexes: dict[str, list[IndexSpec]] = {}
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    def _records(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _check_unique(
        self,
        collection: str,
        record: dict[str, Any],
        exclude_id: str | None = None,
    ) -> None:
        for index in self._indexes.get(collection, []):
            if not index.unique:
                continue
            key = index_key(record, index.fields)
            if key is None:
                continue
            for other_id, other in self._records(collection).items():
                if other_id != exclude_id and index_key(other, index.fields) == key:
                    raise DuplicateKeyError(collection, index.fields)

    async def find(self, collection: str, query: Query) -> dict[str, Any]:
        records = list(self._collections.get(collection, {}).values())
        result = run_query(records, query)
        result["data"] = copy.deepcopy(result["data"])
        return result

    async def find_one(self, collection: str, id: str) -> dict[str, Any] | None:
        record = self._collections.get(collection, {}).get(id)
        return copy.deepcopy(record) if record is not None else None

    async def insert(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        now = utcnow()
        record = copy.deepcopy(data)
        record["_id"] = new_id()
        record["created_at"] = now
        record["updated_at"] = now

        self._check_unique(collection, record)
        self._records(collection)[record["_id"]] = record
        return copy.deepcopy(record)

    async def update(
        self, collection: str, id: str, patch: dict[str, Any]
    ) -> dict[str, Any] | None:
        existing = self._collections.get(collection, {}).get(id)
        if existing is None:
            return None

        record = {**existing, **copy.deepcopy(patch)}
        record["_id"] = existing["_id"]
        record["created_at"] = existing["created_at"]
        record["updated_at"] = utcnow()

        self._check_unique(collection, record, exclude_id=id)
        self._records(collection)[id] = record
        return copy.deepcopy(record)

    async def remove(self, collection: str, id: str) -> dict[str, Any] | None:
        return self._collections.get(collection, {}).pop(id, None)

    async def sync_indexes(self, collection: str, indexes: list[IndexSpec]) -> None:
        for index in indexes:
            if not index.unique:
                continue
            seen: set[tuple] = set()
            for record in self._records(collection).values():
                key = index_key(record, index.fields)
                if key is None:
                    continue
                if key in seen:
                    raise DuplicateKeyError(collection, index.fields)
                seen.add(key)
        self._indexes[collection] = list(indexes)

    async def rename_collection(self, old: str, new: str) -> bool:
        records = self._collections.pop(old, None)
        indexes = self._indexes.pop(old, None)
        if indexes is not None:
            self._indexes.setdefault(new, indexes)
        if not records:
            return False
        self._records(new).update(records)
        return True

    async def drop_collection(self, collection: str) -> None:
        self._collections.pop(collection, None)
        self._indexes.pop(collection, None)
