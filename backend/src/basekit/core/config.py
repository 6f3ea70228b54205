"""Application configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    return int(value)


@dataclass
class AppConfig:
    """Runtime settings for an App instance.

    Attributes:
        secret_key: Key used to sign bearer tokens
        token_ttl: Access token lifetime in seconds
        bcrypt_rounds: bcrypt work factor for stored credentials
        page_size: Default ``$limit`` for list requests
        max_page_size: Upper bound for ``$limit``
        strict_schema: Reject unknown fields instead of stripping them
        collections_path: Directory of YAML collection definitions to seed
        log_level: Level name for the root logger (CLI and server)
    """

    secret_key: str = DEFAULT_SECRET_KEY
    token_ttl: int = 60 * 60
    bcrypt_rounds: int = 12
    page_size: int = 100
    max_page_size: int = 1000
    strict_schema: bool = False
    collections_path: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> AppConfig:
        """Create config from BASEKIT_* environment variables."""
        collections_path = os.environ.get("BASEKIT_COLLECTIONS_PATH")
        return cls(
            secret_key=os.environ.get("BASEKIT_SECRET_KEY", DEFAULT_SECRET_KEY),
            token_ttl=_env_int("BASEKIT_TOKEN_TTL", 60 * 60),
            bcrypt_rounds=_env_int("BASEKIT_BCRYPT_ROUNDS", 12),
            page_size=_env_int("BASEKIT_PAGE_SIZE", 100),
            max_page_size=_env_int("BASEKIT_MAX_PAGE_SIZE", 1000),
            strict_schema=_env_bool("BASEKIT_STRICT_SCHEMA"),
            collections_path=Path(collections_path) if collections_path else None,
            log_level=os.environ.get("BASEKIT_LOG_LEVEL", "INFO").upper(),
        )
