"""Error taxonomy for basekit services.

Services raise these; the dispatcher turns them into a status code and an
``{"error": ..., "details": ...}`` body. Hook short-circuits are not errors
and never go through this module.
"""

from typing import Any


class ServiceError(Exception):
    """Base class for errors that map onto a response status."""

    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class ValidationFailed(ServiceError):
    """400: the payload failed schema or definition validation."""

    status_code = 400

    @classmethod
    def from_errors(cls, errors: dict[str, str]) -> "ValidationFailed":
        """Build from a ``field -> message`` map."""
        return cls(compose_message(errors), details=dict(errors))

    @classmethod
    def missing_data(cls) -> "ValidationFailed":
        detail = "`data` is required"
        return cls(compose_message({"data": detail}), details=detail)


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class MethodNotAllowed(ServiceError):
    status_code = 405


class Conflict(ServiceError):
    status_code = 409


class RequestCancelled(ServiceError):
    """499: the transport cancelled the request between two stages."""

    status_code = 499


class InternalError(ServiceError):
    status_code = 500


class MigrationError(ServiceError):
    """A migration step failed; the triggering collection edit is incomplete.

    Attributes:
        index: Position of the failing step in the applied sequence
        step: Serialized form of the failing step
        reason: Why the step failed
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        index: int | None = None,
        step: dict[str, Any] | None = None,
        reason: str | None = None,
        details: Any = None,
    ):
        if details is None:
            details = {"index": index, "step": step, "reason": reason}
        super().__init__(message, details)
        self.index = index
        self.step = step
        self.reason = reason


class UnsupportedMigration(MigrationError):
    """The migration step kind is not registered with the applier."""


def compose_message(errors: dict[str, str]) -> str:
    """Compose ``field -> message`` pairs into one readable line."""
    return "; ".join(f"[{field}]: {message}" for field, message in errors.items())
