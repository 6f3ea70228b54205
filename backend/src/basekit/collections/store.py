"""Persistence of collection definitions in the ``_collections`` store."""

from dataclasses import dataclass

from basekit.persistence.adapter import DataStoreAdapter
from basekit.persistence.query import Query
from basekit.schema.types import CollectionDefinition

DEFINITIONS_COLLECTION = "_collections"


@dataclass
class StoredDefinition:
    """A definition together with the id of the document holding it."""

    id: str
    definition: CollectionDefinition


def _to_document(definition: CollectionDefinition) -> dict:
    return definition.to_dict()


def _from_document(document: dict) -> StoredDefinition:
    return StoredDefinition(
        id=document["_id"],
        definition=CollectionDefinition.from_dict(document),
    )


class DefinitionStore:
    """Reads and writes definition documents through the data-store adapter."""

    def __init__(self, db: DataStoreAdapter):
        self.db = db

    async def all(self) -> list[StoredDefinition]:
        result = await self.db.find(
            DEFINITIONS_COLLECTION, Query(sort=[("name", 1)])
        )
        return [_from_document(doc) for doc in result["data"]]

    async def get(self, name: str) -> StoredDefinition | None:
        result = await self.db.find(
            DEFINITIONS_COLLECTION, Query(filter={"name": name}, limit=1)
        )
        if not result["data"]:
            return None
        return _from_document(result["data"][0])

    async def insert(self, definition: CollectionDefinition) -> StoredDefinition:
        document = await self.db.insert(DEFINITIONS_COLLECTION, _to_document(definition))
        return _from_document(document)

    async def replace(self, id: str, definition: CollectionDefinition) -> StoredDefinition | None:
        # Unset keys (e.g. emptied hooks) must not survive the merge-style update
        document = _to_document(definition)
        document.setdefault("hooks", {})
        updated = await self.db.update(DEFINITIONS_COLLECTION, id, document)
        return _from_document(updated) if updated else None

    async def delete(self, id: str) -> None:
        await self.db.remove(DEFINITIONS_COLLECTION, id)
