"""Choose and build the document store named by a database URL."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url

if TYPE_CHECKING:
    from basekit.persistence.adapter import DataStoreAdapter

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"

# URL scheme -> adapter family
SCHEMES = {
    "memory": "memory",
    "sqlite": "sql",
    "postgresql": "sql",
}

# Async driver used when a SQL URL names none
ASYNC_DRIVERS = {
    "sqlite": "aiosqlite",
    "postgresql": "psycopg",
}


@dataclass
class DatabaseConfig:
    """Where records and collection definitions are kept.

    ``memory://`` keeps everything in-process. ``sqlite:///<path>`` and
    ``postgresql://...`` are served by the SQLAlchemy adapter.
    """

    url: str = MEMORY_URL
    echo: bool = False

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        """``DATABASE_URL``, else ``BASEKIT_DB_PATH`` as a sqlite file, else memory.

        ``BASEKIT_DB_ECHO=true`` logs every SQL statement.
        """
        url = os.environ.get("DATABASE_URL")
        if not url and os.environ.get("BASEKIT_DB_PATH"):
            url = f"sqlite:///{os.environ['BASEKIT_DB_PATH']}"
        echo = os.environ.get("BASEKIT_DB_ECHO", "").strip().lower() in ("1", "true", "yes", "on")
        return cls(url=url or MEMORY_URL, echo=echo)

    @property
    def scheme(self) -> str:
        """The URL scheme without a driver suffix (``postgresql+psycopg`` -> ``postgresql``)."""
        return self.url.partition("://")[0].split("+", 1)[0]

    @property
    def sqlalchemy_url(self) -> str:
        """The URL with an async driver filled in (``sqlite:///a.db`` -> ``sqlite+aiosqlite:///a.db``)."""
        prefix, sep, rest = self.url.partition("://")
        driver = ASYNC_DRIVERS.get(prefix)
        if driver is None:
            return self.url
        return f"{prefix}+{driver}{sep}{rest}"

    @property
    def display_url(self) -> str:
        """The URL with any password masked."""
        if SCHEMES.get(self.scheme) != "sql":
            return self.url
        return make_url(self.url).render_as_string(hide_password=True)


def create_adapter(config: DatabaseConfig) -> DataStoreAdapter:
    """Build the (not yet connected) adapter for ``config.url``.

    Raises:
        ValueError: For unsupported URL schemes
    """
    family = SCHEMES.get(config.scheme)
    if family is None:
        raise ValueError(f"Unsupported database URL scheme: {config.url}")

    logger.info("Using %s document store at %s", config.scheme, config.display_url)
    if family == "memory":
        from basekit.persistence.memory import MemoryAdapter

        return MemoryAdapter()

    from basekit.persistence.sql import SQLAdapter

    return SQLAdapter(config.sqlalchemy_url, echo=config.echo)
