"""Query description and in-process evaluation helpers shared by adapters."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Query:
    """A collection scan.

    Attributes:
        filter: Field -> value equality conditions (all must match)
        sort: Ordered (field, direction) pairs; direction 1 or -1
        limit: Maximum records returned, None for all
        skip: Records to skip before collecting results
    """

    filter: dict[str, Any] = field(default_factory=dict)
    sort: list[tuple[str, int]] = field(default_factory=list)
    limit: int | None = None
    skip: int = 0


def new_id() -> str:
    """Generate an opaque record id (24 hex characters)."""
    return secrets.token_hex(12)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def matches(record: dict[str, Any], conditions: dict[str, Any]) -> bool:
    return all(record.get(k) == v for k, v in conditions.items())


def _sort_key(value: Any) -> tuple:
    # None sorts first; ints and floats share a group, other types group by type name.
    if value is None:
        return (0, "", 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, "number", value)
    return (1, type(value).__name__, value)


def run_query(records: list[dict[str, Any]], query: Query) -> dict[str, Any]:
    """Filter, sort and paginate records in memory."""
    selected = [r for r in records if matches(r, query.filter)]

    for field_name, direction in reversed(query.sort):
        selected.sort(
            key=lambda r: _sort_key(r.get(field_name)),
            reverse=direction < 0,
        )

    total = len(selected)
    end = None if query.limit is None else query.skip + query.limit
    return {"data": selected[query.skip:end], "total": total}


def index_key(record: dict[str, Any], fields: list[str]) -> tuple | None:
    """Key of a record under an index; None when any indexed value is missing."""
    values = tuple(record.get(f) for f in fields)
    if any(v is None for v in values):
        return None
    return values
