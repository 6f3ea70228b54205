"""Helpers shared by CLI commands that need a running App."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from basekit.app import App
from basekit.core.config import AppConfig
from basekit.persistence.config import DatabaseConfig, create_adapter

T = TypeVar("T")


def build_app() -> App:
    """Build an App from DATABASE_URL and BASEKIT_* settings."""
    return App(create_adapter(DatabaseConfig.from_env()), AppConfig.from_env())


def run_with_app(fn: Callable[[App], Awaitable[T]]) -> T:
    """Initialize an App, run ``fn`` against it and close it."""

    async def main() -> T:
        app = build_app()
        await app.initialize()
        try:
            return await fn(app)
        finally:
            await app.close()

    return asyncio.run(main())
