"""Validation of collection definitions (the payload of ``collections``)."""

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from basekit.schema.engine import (
    CREATE,
    REJECT,
    CoercionError,
    ValidationResult,
    coerce_value,
    validate,
)
from basekit.schema.types import (
    HOOK_METHODS,
    HOOK_PHASES,
    SYSTEM_FIELDS,
    FieldSpec,
    is_field_type,
)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

# Route names owned by the dispatcher itself.
RESERVED_NAMES = frozenset({"collections", "login"})

DEFINITION_KEYS = ("name", "schema", "indexes", "exposed", "template", "hooks")


def check_name(name: Any) -> str | None:
    """Return an error message if ``name`` is not a valid collection name."""
    if not isinstance(name, str) or not name:
        return "expected non-empty string"
    if name.startswith("_") or name in RESERVED_NAMES:
        return f"'{name}' is reserved"
    if not NAME_PATTERN.match(name):
        return "may only contain letters, digits, '-' and '_'"
    return None


def _check_field(
    field_name: str,
    spec: Any,
    errors: dict[str, str],
    relation_targets: set[str],
) -> dict[str, Any] | None:
    prefix = f"schema.{field_name}"

    if field_name in SYSTEM_FIELDS:
        errors[prefix] = "is a system field"
        return None
    if not isinstance(spec, dict):
        errors[prefix] = "expected object"
        return None

    field_type = spec.get("type")
    if not is_field_type(field_type):
        errors[f"{prefix}.type"] = f"unknown type '{field_type}'"
        return None

    for key in spec:
        if key not in ("type", "required", "defaultValue", "relation"):
            errors[f"{prefix}.{key}"] = "unknown option"

    if "required" in spec and not isinstance(spec["required"], bool):
        errors[f"{prefix}.required"] = "expected boolean"

    relation = spec.get("relation")
    if relation is not None:
        if field_type != "id":
            errors[f"{prefix}.relation"] = "only allowed on fields of type 'id'"
        elif relation not in relation_targets:
            errors[f"{prefix}.relation"] = f"collection '{relation}' does not exist"

    checked = {k: v for k, v in spec.items() if k in ("type", "required", "defaultValue", "relation")}
    if spec.get("defaultValue") is not None:
        try:
            default = coerce_value(FieldSpec(type=field_type), spec["defaultValue"])
        except CoercionError as e:
            errors[f"{prefix}.defaultValue"] = str(e)
        else:
            # Dates stay as written; stored definitions are plain JSON.
            if field_type != "date":
                checked["defaultValue"] = default

    return checked


def _check_indexes(indexes: Any, schema: dict[str, Any], errors: dict[str, str]) -> None:
    if not isinstance(indexes, list):
        errors["indexes"] = "expected array"
        return

    known = set(schema) | set(SYSTEM_FIELDS)
    for i, index in enumerate(indexes):
        if not isinstance(index, dict) or not isinstance(index.get("fields"), list):
            errors[f"indexes.{i}"] = "expected object with 'fields' array"
            continue
        if not index["fields"]:
            errors[f"indexes.{i}.fields"] = "must not be empty"
        for field_name in index["fields"]:
            if field_name not in known:
                errors[f"indexes.{i}.fields"] = f"unknown field '{field_name}'"
        options = index.get("options", {})
        if not isinstance(options, dict):
            errors[f"indexes.{i}.options"] = "expected object"


def _check_hooks(
    hooks: Any,
    hook_options: Mapping[str, Mapping[str, FieldSpec]],
    hook_checks: Mapping[str, Callable[[dict[str, Any]], dict[str, str]]],
    errors: dict[str, str],
) -> None:
    if not isinstance(hooks, dict):
        errors["hooks"] = "expected object"
        return

    for phase, methods in hooks.items():
        if phase not in HOOK_PHASES:
            errors[f"hooks.{phase}"] = "phase must be 'before' or 'after'"
            continue
        if not isinstance(methods, dict):
            errors[f"hooks.{phase}"] = "expected object"
            continue
        for method, configs in methods.items():
            key = f"hooks.{phase}.{method}"
            if method not in HOOK_METHODS:
                errors[key] = f"unknown method '{method}'"
                continue
            if not isinstance(configs, list):
                errors[key] = "expected array"
                continue
            for i, config in enumerate(configs):
                if not isinstance(config, dict) or "id" not in config:
                    errors[f"{key}.{i}"] = "expected object with 'id'"
                elif config["id"] not in hook_options:
                    errors[f"{key}.{i}"] = f"hook '{config['id']}' is not registered"
                elif not isinstance(config.get("options", {}), dict):
                    errors[f"{key}.{i}.options"] = "expected object"
                else:
                    result = validate(
                        dict(hook_options[config["id"]]),
                        config.get("options") or {},
                        CREATE,
                        REJECT,
                    )
                    problems = result.errors
                    if result.valid and config["id"] in hook_checks:
                        problems = hook_checks[config["id"]](result.data)
                    for option, message in problems.items():
                        errors[f"{key}.{i}.options.{option}"] = message


def validate_definition(
    data: Any,
    known_names: Iterable[str],
    hook_options: Mapping[str, Mapping[str, FieldSpec]],
    hook_checks: Mapping[str, Callable[[dict[str, Any]], dict[str, str]]] | None = None,
) -> ValidationResult:
    """Validate a collection definition payload.

    Args:
        data: Definition payload
        known_names: Names of collections that relations may point at
        hook_options: Registered hook id -> option schema
        hook_checks: Hook id -> extra check on a binding's validated options

    Returns:
        ValidationResult whose ``data`` holds the accepted keys
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors={"data": "expected object"})

    errors: dict[str, str] = {}
    accepted: dict[str, Any] = {}

    for key in data:
        if key not in DEFINITION_KEYS:
            errors[key] = "unknown field"

    name_error = check_name(data.get("name"))
    if name_error:
        errors["name"] = "required" if data.get("name") is None else name_error
    else:
        accepted["name"] = data["name"]

    relation_targets = set(known_names)
    if isinstance(data.get("name"), str):
        relation_targets.add(data["name"])

    schema = data.get("schema", {})
    if not isinstance(schema, dict):
        errors["schema"] = "expected object"
    else:
        accepted["schema"] = {}
        for field_name, spec in schema.items():
            checked = _check_field(field_name, spec, errors, relation_targets)
            if checked is not None:
                accepted["schema"][field_name] = checked

    if "indexes" in data:
        _check_indexes(data["indexes"], data.get("schema") or {}, errors)
        accepted["indexes"] = data["indexes"]

    for flag in ("exposed", "template"):
        if flag in data:
            if not isinstance(data[flag], bool):
                errors[flag] = "expected boolean"
            else:
                accepted[flag] = data[flag]

    if "hooks" in data:
        _check_hooks(data["hooks"], hook_options, hook_checks or {}, errors)
        accepted["hooks"] = data["hooks"]

    if errors:
        return ValidationResult(valid=False, errors=errors)

    return ValidationResult(valid=True, data=accepted)
