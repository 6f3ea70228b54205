"""Migration step types.

Each step is a declarative operation applied alongside a collection edit to
keep dependent collections consistent. Steps are parsed from their wire form
``{"type": "<kind>", ...}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(frozen=True)
class MigrationStep:
    """Base class for migration steps."""

    type: ClassVar[str] = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationStep:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class RenameCollection(MigrationStep):
    """Point every relation at ``collection`` to ``to`` and move its records."""

    type: ClassVar[str] = "rename-collection"

    collection: str = ""
    to: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenameCollection:
        collection = data.get("collection")
        to = data.get("to")
        if not isinstance(collection, str) or not collection:
            raise ValueError("'collection' must be a non-empty string")
        if not isinstance(to, str) or not to:
            raise ValueError("'to' must be a non-empty string")
        return cls(collection=collection, to=to)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "collection": self.collection, "to": self.to}

    def describe(self) -> str:
        return f"Rename collection '{self.collection}' to '{self.to}'"
