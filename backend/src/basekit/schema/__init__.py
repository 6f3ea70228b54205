"""Schema engine: field types, record validation, definition validation."""

from basekit.schema.definitions import check_name, validate_definition
from basekit.schema.engine import (
    CREATE,
    PATCH,
    REJECT,
    STRIP,
    ValidationResult,
    validate,
)
from basekit.schema.types import (
    FIELD_TYPES,
    SYSTEM_FIELDS,
    CollectionDefinition,
    FieldSpec,
    HookConfig,
    IndexSpec,
)

__all__ = [
    "CREATE",
    "FIELD_TYPES",
    "PATCH",
    "REJECT",
    "STRIP",
    "SYSTEM_FIELDS",
    "CollectionDefinition",
    "FieldSpec",
    "HookConfig",
    "IndexSpec",
    "ValidationResult",
    "check_name",
    "validate",
    "validate_definition",
]
