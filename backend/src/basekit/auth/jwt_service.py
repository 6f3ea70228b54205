"""Issue and verify the HS256 bearer tokens handed out by ``login``."""

import time

import jwt

from basekit.auth.types import AuthToken, TokenClaims

BEARER = "bearer"


class JWTError(Exception):
    """A bearer token was rejected. The message is safe to return to clients."""


class MissingTokenError(JWTError):
    pass


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    pass


class JWTService:
    """Signs tokens for logged-in users and checks them on later requests."""

    def __init__(self, secret_key: str, ttl: int = 60 * 60, algorithm: str = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str, role: str | None = None) -> AuthToken:
        """Sign an access token valid for ``ttl`` seconds from now."""
        now = int(time.time())
        claims = TokenClaims(user_id=user_id, role=role, issued_at=now, expires_at=now + self.ttl)
        token = jwt.encode(claims.to_payload(), self._secret_key, algorithm=self._algorithm)
        return AuthToken(token=token, expires_in=self.ttl)

    def verify(self, token: str) -> TokenClaims:
        """Check the signature and expiry of ``token``.

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is malformed, forged or has no subject
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if not payload.get("sub"):
            raise InvalidTokenError("Invalid token: missing subject")
        return TokenClaims.from_payload(payload)

    def verify_header(self, authorization: str | None) -> TokenClaims:
        """Verify the token carried by an ``Authorization: Bearer <token>`` header.

        Raises:
            MissingTokenError: If the header is absent or not a bearer credential
            TokenExpiredError, InvalidTokenError: As for ``verify``
        """
        scheme, _, token = (authorization or "").partition(" ")
        token = token.strip()
        if scheme.lower() != BEARER or not token:
            raise MissingTokenError("Authentication required")
        return self.verify(token)
