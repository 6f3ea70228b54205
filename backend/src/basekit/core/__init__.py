"""Core request types, errors and configuration."""

from basekit.core.config import AppConfig
from basekit.core.context import METHOD_ALIASES, Method, RequestContext, context
from basekit.core.errors import (
    Conflict,
    Forbidden,
    InternalError,
    MethodNotAllowed,
    MigrationError,
    NotFound,
    RequestCancelled,
    ServiceError,
    Unauthorized,
    UnsupportedMigration,
    ValidationFailed,
)

__all__ = [
    "AppConfig",
    "Conflict",
    "Forbidden",
    "InternalError",
    "METHOD_ALIASES",
    "Method",
    "MethodNotAllowed",
    "MigrationError",
    "NotFound",
    "RequestCancelled",
    "RequestContext",
    "ServiceError",
    "Unauthorized",
    "UnsupportedMigration",
    "ValidationFailed",
    "context",
]
