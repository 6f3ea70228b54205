"""Request context threaded through the hook chain.

A transport maps its native request into a RequestContext, hands it to
``App.api()`` and reads ``status_code`` and ``result`` back.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Method(Enum):
    """Resolved service method.

    ``get`` on a base path resolves to FIND (list semantics).
    """

    CREATE = "create"
    FIND = "find"
    GET = "get"
    PATCH = "patch"
    REMOVE = "remove"


# Requested method names (lowercased) accepted by the dispatcher. "get" is
# resolved to FIND or GET depending on the presence of an id.
METHOD_ALIASES: dict[str, str] = {
    "create": "create",
    "post": "create",
    "get": "get",
    "find": "find",
    "list": "find",
    "patch": "patch",
    "remove": "remove",
    "delete": "remove",
}


@dataclass
class RequestContext:
    """Per-request state.

    Attributes:
        path: Slash-separated target, e.g. ``albums`` or ``albums/<id>``
        method: Requested method (create, get, patch, remove, or an alias)
        data: Payload for create/patch
        query: Query parameters ($limit, $skip, $sort, equality filters)
        params: Values extracted from the path (``id``)
        headers: Lowercase header map
        result: Response body, set once the request is finalized
        status_code: Response status, set once the request is finalized
        user: Identity resolved by auth hooks
        locals: Scratch space shared by hooks of one request
        cancel_event: Set by the transport to abort between stages
    """

    path: str
    method: str = "get"
    data: Any = None
    query: dict[str, Any] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    result: Any = None
    status_code: int | None = None
    user: dict[str, Any] | None = None
    locals: dict[str, Any] = field(default_factory=dict)
    cancel_event: asyncio.Event | None = None

    @property
    def finalized(self) -> bool:
        return self.status_code is not None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def respond(self, status_code: int, result: Any = None) -> "RequestContext":
        """Finalize the context and return it (for short-circuiting hooks)."""
        self.status_code = status_code
        self.result = result
        return self

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


def context(**kwargs: Any) -> RequestContext:
    """Build a RequestContext, normalizing header names and the path."""
    headers = kwargs.pop("headers", None) or {}
    kwargs["headers"] = {str(k).lower(): v for k, v in headers.items()}
    kwargs["path"] = str(kwargs.get("path", "")).strip("/")
    return RequestContext(**kwargs)
