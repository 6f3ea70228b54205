"""
collections/file_schema.py: JSON Schema check for YAML collection definitions.

Structural mistakes (a list where a mapping belongs, a misspelled key, an
unknown field type) are reported with their location inside the document
before the semantic checks of ``validate_definition`` run.

Usage:
    from basekit.collections.file_schema import check_structure

    for issue in check_structure(file.definition, file.path):
        print(issue)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from basekit.schema.types import FIELD_TYPES, HOOK_METHODS, HOOK_PHASES

DEFINITION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name"],
    "additionalProperties": False,
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "schema": {
            "type": "object",
            "additionalProperties": {"$ref": "#/$defs/field"},
        },
        "indexes": {"type": "array", "items": {"$ref": "#/$defs/index"}},
        "exposed": {"type": "boolean"},
        "template": {"type": "boolean"},
        "hooks": {
            "type": "object",
            "propertyNames": {"enum": list(HOOK_PHASES)},
            "additionalProperties": {
                "type": "object",
                "propertyNames": {"enum": list(HOOK_METHODS)},
                "additionalProperties": {
                    "type": "array",
                    "items": {"$ref": "#/$defs/binding"},
                },
            },
        },
    },
    "$defs": {
        "field": {
            "type": "object",
            "required": ["type"],
            "additionalProperties": False,
            "properties": {
                "type": {"enum": sorted(FIELD_TYPES)},
                "required": {"type": "boolean"},
                "defaultValue": {},
                "relation": {"type": "string"},
            },
        },
        "index": {
            "type": "object",
            "required": ["fields"],
            "additionalProperties": False,
            "properties": {
                "fields": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                "options": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {"unique": {"type": "boolean"}},
                },
            },
        },
        "binding": {
            "type": "object",
            "required": ["id"],
            "additionalProperties": False,
            "properties": {
                "id": {"type": "string"},
                "options": {"type": "object"},
            },
        },
    },
}

_validator = Draft202012Validator(DEFINITION_SCHEMA)


@dataclass
class StructureIssue:
    """A single structural finding in a definition file."""

    file: Path
    message: str
    location: str = ""  # e.g. "schema/title/type"

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"{self.file}{loc}: {self.message}"


def _location(error: ValidationError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def check_structure(definition: Any, file: Path) -> list[StructureIssue]:
    """Check a definition mapping against DEFINITION_SCHEMA.

    Returns:
        One StructureIssue per violation, ordered by location (empty when valid)
    """
    return [
        StructureIssue(file=file, message=error.message, location=_location(error))
        for error in sorted(_validator.iter_errors(definition), key=lambda e: list(map(str, e.path)))
    ]
