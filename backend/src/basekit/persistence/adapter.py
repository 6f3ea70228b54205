"""DataStoreAdapter Protocol: shared interface for all document stores."""

from typing import Any, Protocol, runtime_checkable

from basekit.persistence.query import Query
from basekit.schema.types import IndexSpec


class DuplicateKeyError(Exception):
    """A write violated a unique index.

    Attributes:
        collection: Collection the write targeted
        fields: Fields of the violated index
    """

    def __init__(self, collection: str, fields: list[str]):
        super().__init__(
            f"Duplicate value for unique index ({', '.join(fields)}) in '{collection}'"
        )
        self.collection = collection
        self.fields = fields


@runtime_checkable
class DataStoreAdapter(Protocol):
    """Interface the dispatcher consumes for reads and writes.

    Identifiers are opaque strings. Adapters own the system fields
    ``_id``, ``created_at`` and ``updated_at``: ``insert`` sets all three,
    ``update`` refreshes ``updated_at``.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def find(self, collection: str, query: Query) -> dict[str, Any]:
        """Return ``{"data": [...], "total": N}``; total ignores pagination."""
        ...

    async def find_one(self, collection: str, id: str) -> dict[str, Any] | None: ...

    async def insert(self, collection: str, data: dict[str, Any]) -> dict[str, Any]: ...

    async def update(
        self, collection: str, id: str, patch: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def remove(self, collection: str, id: str) -> dict[str, Any] | None: ...

    async def sync_indexes(self, collection: str, indexes: list[IndexSpec]) -> None: ...

    async def rename_collection(self, old: str, new: str) -> bool:
        """Move stored records; returns False when ``old`` holds nothing."""
        ...

    async def drop_collection(self, collection: str) -> None: ...
