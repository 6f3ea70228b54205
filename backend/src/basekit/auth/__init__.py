"""Credential primitives: bearer tokens and password hashes."""

from basekit.auth.jwt_service import (
    InvalidTokenError,
    JWTError,
    JWTService,
    MissingTokenError,
    TokenExpiredError,
)
from basekit.auth.password import PasswordService
from basekit.auth.types import AuthToken, TokenClaims

__all__ = [
    "AuthToken",
    "InvalidTokenError",
    "JWTError",
    "JWTService",
    "MissingTokenError",
    "PasswordService",
    "TokenClaims",
    "TokenExpiredError",
]
