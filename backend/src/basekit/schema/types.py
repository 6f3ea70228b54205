"""Collection definition types and the field type registry."""

import copy
from dataclasses import dataclass, field
from typing import Any

# Fields managed by the data-store adapter; never declared, never client-set.
SYSTEM_FIELDS = ("_id", "created_at", "updated_at")

HOOK_PHASES = ("before", "after")
HOOK_METHODS = ("create", "find", "get", "patch", "remove")


@dataclass(frozen=True)
class FieldType:
    """A field type the schema engine understands.

    Attributes:
        name: Type name used in schemas
        python_types: Accepted Python types after coercion
        description: Human-readable description (for introspection)
    """

    name: str
    python_types: tuple[type, ...]
    description: str = ""


FIELD_TYPES: dict[str, FieldType] = {
    "string": FieldType("string", (str,), "Text value"),
    "number": FieldType("number", (int, float), "Integer or float"),
    "boolean": FieldType("boolean", (bool,), "true / false"),
    "id": FieldType("id", (str,), "Opaque record identifier"),
    "date": FieldType("date", (), "ISO-8601 date-time"),
    "object": FieldType("object", (dict,), "Nested mapping"),
    "array": FieldType("array", (list,), "Ordered list"),
}


def is_field_type(name: Any) -> bool:
    return isinstance(name, str) and name in FIELD_TYPES


@dataclass
class FieldSpec:
    """Schema entry for a single field."""

    type: str
    required: bool = False
    default_value: Any = None
    relation: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldSpec":
        return cls(
            type=data["type"],
            required=bool(data.get("required", False)),
            default_value=copy.deepcopy(data.get("defaultValue")),
            relation=data.get("relation"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.required:
            result["required"] = True
        if self.default_value is not None:
            result["defaultValue"] = copy.deepcopy(self.default_value)
        if self.relation is not None:
            result["relation"] = self.relation
        return result

    @property
    def has_default(self) -> bool:
        return self.default_value is not None


@dataclass
class IndexSpec:
    """Index over one or more fields."""

    fields: list[str]
    unique: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexSpec":
        options = data.get("options") or {}
        return cls(
            fields=list(data["fields"]),
            unique=bool(options.get("unique", data.get("unique", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"fields": list(self.fields), "options": {"unique": self.unique}}


@dataclass
class HookConfig:
    """A hook attached to a collection: registered hook id plus options."""

    id: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HookConfig":
        return cls(id=data["id"], options=dict(data.get("options") or {}))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "options": dict(self.options)}


@dataclass
class CollectionDefinition:
    """A named, schema-governed collection.

    Attributes:
        name: Unique collection name
        schema: Field name -> FieldSpec
        indexes: Ordered index definitions
        exposed: Whether the collection is publicly routable
        template: Template collections cannot be instantiated directly
        hooks: phase -> method -> ordered HookConfig list
    """

    name: str
    schema: dict[str, FieldSpec] = field(default_factory=dict)
    indexes: list[IndexSpec] = field(default_factory=list)
    exposed: bool = True
    template: bool = False
    hooks: dict[str, dict[str, list[HookConfig]]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionDefinition":
        hooks: dict[str, dict[str, list[HookConfig]]] = {}
        for phase, methods in (data.get("hooks") or {}).items():
            hooks[phase] = {
                method: [HookConfig.from_dict(h) for h in configs]
                for method, configs in (methods or {}).items()
            }

        return cls(
            name=data["name"],
            schema={
                name: FieldSpec.from_dict(spec)
                for name, spec in (data.get("schema") or {}).items()
            },
            indexes=[IndexSpec.from_dict(i) for i in data.get("indexes") or []],
            exposed=bool(data.get("exposed", True)),
            template=bool(data.get("template", False)),
            hooks=hooks,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "exposed": self.exposed,
            "indexes": [i.to_dict() for i in self.indexes],
            "name": self.name,
            "schema": {name: spec.to_dict() for name, spec in self.schema.items()},
            "template": self.template,
        }
        hooks = {
            phase: {
                method: [h.to_dict() for h in configs]
                for method, configs in methods.items()
                if configs
            }
            for phase, methods in self.hooks.items()
        }
        hooks = {phase: methods for phase, methods in hooks.items() if methods}
        if hooks:
            result["hooks"] = hooks
        return result

    def hooks_for(self, phase: str, method: str) -> list[HookConfig]:
        return list(self.hooks.get(phase, {}).get(method, []))

    def relations(self) -> dict[str, str]:
        """Field name -> referenced collection, for relation fields."""
        return {
            name: spec.relation
            for name, spec in self.schema.items()
            if spec.relation is not None
        }

    @property
    def unique_indexes(self) -> list[IndexSpec]:
        return [i for i in self.indexes if i.unique]
