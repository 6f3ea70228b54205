"""CRUD service for records of a user-defined collection."""

from typing import TYPE_CHECKING, Any

from basekit.core.context import RequestContext
from basekit.core.errors import Conflict, NotFound, ValidationFailed
from basekit.persistence.adapter import DuplicateKeyError
from basekit.persistence.query import Query
from basekit.schema.engine import (
    CREATE,
    PATCH,
    REJECT,
    STRIP,
    CoercionError,
    coerce_value,
    validate,
)
from basekit.schema.types import CollectionDefinition, FieldSpec

if TYPE_CHECKING:
    from basekit.app import App

# How system fields are compared when used as filters.
SYSTEM_FIELD_SPECS = {
    "_id": FieldSpec(type="id"),
    "created_at": FieldSpec(type="date"),
    "updated_at": FieldSpec(type="date"),
}

QUERY_OPTIONS = ("$limit", "$skip", "$sort")


def _parse_int(name: str, value: Any, errors: dict[str, str]) -> int | None:
    if isinstance(value, bool):
        errors[name] = "expected non-negative integer"
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        errors[name] = "expected non-negative integer"
        return None
    if parsed < 0:
        errors[name] = "expected non-negative integer"
        return None
    return parsed


class CollectionService:
    """Validated CRUD over one collection through the data-store adapter."""

    def __init__(self, app: "App", definition: CollectionDefinition):
        self.app = app
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    def _field_spec(self, field_name: str) -> FieldSpec | None:
        return self.definition.schema.get(field_name) or SYSTEM_FIELD_SPECS.get(field_name)

    def parse_query(self, params: dict[str, Any]) -> Query:
        """Turn ``$limit``/``$skip``/``$sort`` and equality filters into a Query.

        Raises:
            ValidationFailed: If a parameter is malformed or names an unknown field
        """
        config = self.app.config
        errors: dict[str, str] = {}

        limit = config.page_size
        if "$limit" in params:
            limit = _parse_int("$limit", params["$limit"], errors)
        skip = 0
        if "$skip" in params:
            skip = _parse_int("$skip", params["$skip"], errors) or 0

        sort: list[tuple[str, int]] = []
        raw_sort = params.get("$sort") or []
        if isinstance(raw_sort, str):
            raw_sort = [s for s in raw_sort.split(",") if s.strip()]
        for item in raw_sort:
            item = str(item).strip()
            field_name, direction = (item[1:], -1) if item.startswith("-") else (item, 1)
            if self._field_spec(field_name) is None:
                errors["$sort"] = f"unknown field '{field_name}'"
            else:
                sort.append((field_name, direction))

        conditions: dict[str, Any] = {}
        for key, value in params.items():
            if key in QUERY_OPTIONS:
                continue
            if key.startswith("$"):
                errors[key] = "unknown query option"
                continue
            spec = self._field_spec(key)
            if spec is None:
                errors[key] = "unknown field"
                continue
            try:
                conditions[key] = None if value is None else coerce_value(spec, value)
            except CoercionError as e:
                errors[key] = str(e)

        if errors:
            raise ValidationFailed.from_errors(errors)

        if limit is not None:
            limit = min(limit, config.max_page_size)
        return Query(filter=conditions, sort=sort, limit=limit, skip=skip)

    def _validate(self, data: Any, mode: str) -> dict[str, Any]:
        if data is None:
            raise ValidationFailed.missing_data()

        unknown = REJECT if self.app.config.strict_schema else STRIP
        result = validate(self.definition.schema, data, mode, unknown)
        if not result.valid:
            raise ValidationFailed.from_errors(result.errors)
        return result.data

    def _conflict(self, e: DuplicateKeyError) -> Conflict:
        return Conflict(
            f"Duplicate value for unique index ({', '.join(e.fields)}) in '{self.name}'",
            details={"fields": e.fields},
        )

    def _id(self, ctx: RequestContext) -> str:
        return ctx.params["id"]

    async def find(self, ctx: RequestContext) -> dict[str, Any]:
        query = self.parse_query(ctx.query)
        return await self.app.db.find(self.name, query)

    async def get(self, ctx: RequestContext) -> dict[str, Any]:
        record = await self.app.db.find_one(self.name, self._id(ctx))
        if record is None:
            raise NotFound(f"Record '{self._id(ctx)}' not found in '{self.name}'")
        return record

    async def create(self, ctx: RequestContext) -> dict[str, Any]:
        data = self._validate(ctx.data, CREATE)
        try:
            return await self.app.db.insert(self.name, data)
        except DuplicateKeyError as e:
            raise self._conflict(e)

    async def patch(self, ctx: RequestContext) -> dict[str, Any]:
        changes = self._validate(ctx.data, PATCH)
        try:
            record = await self.app.db.update(self.name, self._id(ctx), changes)
        except DuplicateKeyError as e:
            raise self._conflict(e)
        if record is None:
            raise NotFound(f"Record '{self._id(ctx)}' not found in '{self.name}'")
        return record

    async def remove(self, ctx: RequestContext) -> dict[str, Any]:
        record = await self.app.db.remove(self.name, self._id(ctx))
        if record is None:
            raise NotFound(f"Record '{self._id(ctx)}' not found in '{self.name}'")
        return record
