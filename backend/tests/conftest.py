"""Shared fixtures: an initialized App on the in-memory store plus request helpers."""

import pytest
import pytest_asyncio

from basekit.app import App
from basekit.core.config import AppConfig
from basekit.core.context import context
from basekit.persistence.memory import MemoryAdapter


def make_config(**overrides) -> AppConfig:
    """Test settings: fixed secret, cheap bcrypt."""
    values = {"secret_key": "test-secret", "bcrypt_rounds": 4}
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def config():
    return make_config()


@pytest_asyncio.fixture
async def app(config):
    """A fresh, initialized App per test."""
    instance = App(MemoryAdapter(), config)
    await instance.initialize()
    yield instance
    await instance.close()


@pytest.fixture
def call(app):
    """Dispatch a request through ``app.api`` and return the finished context."""

    async def _call(path, method="get", data=None, token=None, **kwargs):
        headers = kwargs.pop("headers", {})
        if token:
            headers["authorization"] = f"Bearer {token}"
        return await app.api(
            context(path=path, method=method, data=data, headers=headers, **kwargs)
        )

    return _call


@pytest.fixture
def signup(call):
    """Create a user through the public ``users`` endpoint."""

    async def _signup(username, password="hello", **fields):
        data = {"username": username, "email": f"{username}@mail.com", "password": password}
        data.update(fields)
        ctx = await call("users", "create", data)
        assert ctx.status_code == 201, ctx.result
        return ctx.result

    return _signup


@pytest.fixture
def login(call):
    """Log in and return the bearer token."""

    async def _login(username, password="hello"):
        ctx = await call("login", "create", {"username": username, "password": password})
        assert ctx.status_code == 201, ctx.result
        return ctx.result["auth"]["token"]

    return _login


@pytest_asyncio.fixture
async def dev_token(signup, login):
    """Token of a user holding the ``dev`` role."""
    await signup("mock", role="dev", fullname="Mock User")
    return await login("mock")


@pytest_asyncio.fixture
async def albums(call, dev_token):
    """An ``albums`` collection: required title, streams defaulting to 0."""
    ctx = await call(
        "collections",
        "create",
        {
            "name": "albums",
            "schema": {
                "streams": {"defaultValue": 0, "type": "number"},
                "title": {"required": True, "type": "string"},
            },
        },
        token=dev_token,
    )
    assert ctx.status_code == 201, ctx.result
    return ctx.result
