"""Hooks the dispatcher injects regardless of collection configuration."""

from basekit.collections.system import COLLECTIONS, DEV_ROLE, HOOKS_REGISTRY, LOGIN, USERS
from basekit.hooks.builtin import (
    AUTH_REQUIRE_PASSWORD,
    CREATE_AUTH_CREDENTIAL,
    LOG_DATA,
    REQUIRE_AUTH,
)
from basekit.hooks.types import FIRST, SystemHook


def default_system_hooks() -> list[SystemHook]:
    """System hooks in chain order.

    ``log-data`` is outermost so it records every outcome, short-circuits
    included, once the rest of the chain has returned.
    """
    dev_only = {"roles": [DEV_ROLE]}
    return [
        SystemHook(LOG_DATA, FIRST, options={"level": "debug", "label": "dispatch"}),
        SystemHook(REQUIRE_AUTH, FIRST, COLLECTIONS, ("create", "find", "patch", "remove"), dev_only),
        SystemHook(CREATE_AUTH_CREDENTIAL, FIRST, USERS, ("create",)),
        SystemHook(REQUIRE_AUTH, FIRST, USERS, ("find", "get")),
        SystemHook(REQUIRE_AUTH, FIRST, USERS, ("patch", "remove"), dev_only),
        SystemHook(AUTH_REQUIRE_PASSWORD, FIRST, LOGIN, ("create",)),
        SystemHook(REQUIRE_AUTH, FIRST, HOOKS_REGISTRY),
    ]
