"""Record validation and normalization against a collection schema.

``validate()`` never raises: every failure is collected into the returned
ValidationResult as a ``field -> message`` entry.

Modes:
- create: required fields are enforced and defaults are filled in
- patch: only supplied fields are checked, absent fields are left alone
"""

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any

from basekit.core.errors import compose_message
from basekit.schema.types import FIELD_TYPES, SYSTEM_FIELDS, FieldSpec

CREATE = "create"
PATCH = "patch"

STRIP = "strip"
REJECT = "reject"


class CoercionError(ValueError):
    """A value could not be converted to its field type."""


@dataclass
class ValidationResult:
    """Outcome of validating a record.

    Attributes:
        valid: True when no field failed
        data: Normalized record (defaults applied, values coerced)
        errors: Field name -> message for every failure
    """

    valid: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return compose_message(self.errors)


def _coerce_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise CoercionError("expected number")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
    raise CoercionError("expected number")


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise CoercionError("expected boolean")


def _as_utc(moment: datetime) -> datetime:
    # Naive values are taken to be UTC so stored dates always compare.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _coerce_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            pass
    raise CoercionError("expected ISO-8601 date")


def _coerce_id(value: Any) -> str:
    # Ids are opaque; referenced records are not looked up here.
    if isinstance(value, bool):
        raise CoercionError("expected id")
    if isinstance(value, int):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise CoercionError("expected id")


def _coerce_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise CoercionError("expected string")


def _coerce_object(value: Any) -> dict:
    if isinstance(value, dict):
        return value
    raise CoercionError("expected object")


def _coerce_array(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise CoercionError("expected array")


COERCERS = {
    "string": _coerce_string,
    "number": _coerce_number,
    "boolean": _coerce_boolean,
    "id": _coerce_id,
    "date": _coerce_date,
    "object": _coerce_object,
    "array": _coerce_array,
}


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Coerce a value to the field's type.

    Raises:
        CoercionError: If the value cannot be represented as the field type
    """
    coercer = COERCERS.get(spec.type)
    if coercer is None:
        raise CoercionError(f"unknown type '{spec.type}'")
    return coercer(value)


def validate(
    schema: dict[str, FieldSpec],
    data: Any,
    mode: str = CREATE,
    unknown: str = STRIP,
) -> ValidationResult:
    """Validate and normalize a record against a schema.

    Args:
        schema: Field name -> FieldSpec
        data: Incoming payload (must be a mapping)
        mode: CREATE or PATCH
        unknown: STRIP drops undeclared fields, REJECT reports them

    Returns:
        ValidationResult with the normalized record or the field errors
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors={"data": "expected object"})

    normalized: dict[str, Any] = {}
    errors: dict[str, str] = {}

    for name, spec in schema.items():
        if spec.type not in FIELD_TYPES:
            errors[name] = f"unknown type '{spec.type}'"
            continue

        if name not in data:
            if mode == PATCH:
                continue
            if spec.has_default:
                try:
                    normalized[name] = coerce_value(spec, copy.deepcopy(spec.default_value))
                except CoercionError as e:
                    errors[name] = f"bad default: {e}"
            elif spec.required:
                errors[name] = "required"
            continue

        value = data[name]
        if value is None:
            if spec.required:
                errors[name] = "required"
            else:
                normalized[name] = None
            continue

        try:
            normalized[name] = coerce_value(spec, value)
        except CoercionError as e:
            errors[name] = str(e)

    for name in data:
        if name in schema or name in SYSTEM_FIELDS:
            continue
        if unknown == REJECT:
            errors[name] = "unknown field"

    if errors:
        return ValidationResult(valid=False, errors=errors)

    return ValidationResult(valid=True, data=normalized)
