"""Bearer token value types."""

from dataclasses import asdict, dataclass
from typing import Any

ACCESS = "access"


@dataclass
class TokenClaims:
    """What a verified token says about its holder.

    The role is informational for clients; hooks re-read the user record
    before trusting it.
    """

    user_id: str
    role: str | None = None
    issued_at: int = 0
    expires_at: int = 0
    type: str = ACCESS

    @property
    def lifetime(self) -> int:
        return self.expires_at - self.issued_at

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        return cls(
            user_id=payload["sub"],
            role=payload.get("role"),
            issued_at=payload.get("iat", 0),
            expires_at=payload.get("exp", 0),
            type=payload.get("type", ACCESS),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sub": self.user_id,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "type": self.type,
        }
        if self.role:
            payload["role"] = self.role
        return payload


@dataclass
class AuthToken:
    """The ``auth`` member of a successful login response."""

    token: str
    expires_in: int
    type: str = "Bearer"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
