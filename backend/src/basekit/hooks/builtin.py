"""Built-in hook catalog.

Each hook is a factory ``(options, app) -> handler``. Handlers reject a
request by finalizing the context with ``ctx.respond()`` and returning
without calling ``next``.
"""

import importlib
import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from basekit.auth.jwt_service import JWTError
from basekit.collections.system import AUTH_CREDENTIALS, USERS
from basekit.core.context import METHOD_ALIASES, RequestContext
from basekit.core.errors import (
    Forbidden,
    MethodNotAllowed,
    ServiceError,
    Unauthorized,
    ValidationFailed,
)
from basekit.hooks.registry import HookRegistry
from basekit.hooks.types import Handler, Hook
from basekit.persistence.query import Query
from basekit.schema.types import FieldSpec

if TYPE_CHECKING:
    from basekit.app import App

logger = logging.getLogger(__name__)

LOG_DATA = "log-data"
CUSTOM_CODE = "custom-code"
RESTRICT_METHOD = "restrict-method"
AUTH_REQUIRE_PASSWORD = "auth-require-password"
CREATE_AUTH_CREDENTIAL = "create-auth-credential"
REQUIRE_AUTH = "require-auth"
ASSIGN_AUTH_USER = "assign-auth-user"


# =============================================================================
# log-data
# =============================================================================


def log_data(options: dict[str, Any], app: "App") -> Handler:
    level = logging.getLevelName(options["level"].upper())
    if not isinstance(level, int):
        level = logging.INFO
    label = options.get("label") or "request"
    include_data = options["include_data"]

    async def handler(ctx: RequestContext, next) -> RequestContext:
        try:
            await next()
        except Exception as e:
            logger.log(level, "%s %s /%s failed: %s", label, ctx.method, ctx.path, e)
            raise

        if include_data:
            logger.log(
                level,
                "%s %s /%s -> %s data=%r",
                label,
                ctx.method,
                ctx.path,
                ctx.status_code,
                ctx.data,
            )
        else:
            logger.log(level, "%s %s /%s -> %s", label, ctx.method, ctx.path, ctx.status_code)
        return ctx

    return handler


# =============================================================================
# custom-code
# =============================================================================


def import_callable(path: str) -> Callable[..., Any]:
    """Import ``package.module:attr``.

    Raises:
        ValueError: If the path is malformed or does not name a callable
    """
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected 'module:attr', got '{path}'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import '{module_name}': {e}")

    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise ValueError(f"'{path}' not found")

    if not callable(target):
        raise ValueError(f"'{path}' is not callable")
    return target


def check_custom_code(options: dict[str, Any]) -> dict[str, str]:
    try:
        import_callable(options["code"])
    except ValueError as e:
        return {"code": str(e)}
    return {}


def custom_code(options: dict[str, Any], app: "App") -> Handler:
    """Apply an operator-supplied ``fn(data, ctx)`` to the request data.

    The callable may be sync or async; returning None keeps the data as-is.
    """
    transform = import_callable(options["code"])

    async def handler(ctx: RequestContext, next) -> RequestContext:
        if ctx.data is not None:
            result = transform(ctx.data, ctx)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                ctx.data = result
        return await next()

    return handler


# =============================================================================
# restrict-method
# =============================================================================


def restrict_method(options: dict[str, Any], app: "App") -> Handler:
    allowed = {METHOD_ALIASES.get(str(m).lower(), str(m).lower()) for m in options["allow"]}
    # "get" covers both single fetches and lists.
    if "get" in allowed:
        allowed.add("find")

    async def handler(ctx: RequestContext, next) -> RequestContext:
        if ctx.method not in allowed:
            error = MethodNotAllowed(f"`{ctx.method}` method not allowed")
            return ctx.respond(error.status_code, error.to_dict())
        return await next()

    return handler


# =============================================================================
# Authentication
# =============================================================================


def _reject(ctx: RequestContext, error: ServiceError) -> RequestContext:
    return ctx.respond(error.status_code, error.to_dict())


async def find_user(app: "App", username: str) -> dict[str, Any] | None:
    found = await app.db.find(USERS, Query(filter={"username": username}, limit=1))
    return found["data"][0] if found["data"] else None


def auth_require_password(options: dict[str, Any], app: "App") -> Handler:
    username_field = options["username_field"]
    password_field = options["password_field"]

    async def handler(ctx: RequestContext, next) -> RequestContext:
        data = ctx.data if isinstance(ctx.data, dict) else {}
        username = data.get(username_field)
        password = data.get(password_field)

        errors = {}
        if not isinstance(username, str) or not username:
            errors[username_field] = "required"
        if not isinstance(password, str) or not password:
            errors[password_field] = "required"
        if errors:
            return _reject(ctx, ValidationFailed.from_errors(errors))

        invalid = Unauthorized("Invalid username or password")
        user = await find_user(app, username)
        if user is None:
            logger.info("Login failed: unknown user '%s'", username)
            return _reject(ctx, invalid)

        found = await app.db.find(AUTH_CREDENTIALS, Query(filter={"user": user["_id"]}, limit=1))
        credential = found["data"][0] if found["data"] else None
        valid, rehashed = (False, None)
        if credential is not None:
            valid, rehashed = app.passwords.check(password, credential["password"])
        if not valid:
            logger.info("Login failed: bad password for '%s'", username)
            return _reject(ctx, invalid)
        if rehashed:
            await app.db.update(AUTH_CREDENTIALS, credential["_id"], {"password": rehashed})
            logger.info("Upgraded password hash for user %s", user["_id"])

        ctx.user = user
        ctx.data = {k: v for k, v in data.items() if k != password_field}
        return await next()

    return handler


def create_auth_credential(options: dict[str, Any], app: "App") -> Handler:
    password_field = options["password_field"]

    async def handler(ctx: RequestContext, next) -> RequestContext:
        if not isinstance(ctx.data, dict):
            return await next()

        data = dict(ctx.data)
        password = data.pop(password_field, None)
        if not isinstance(password, str) or not password:
            return _reject(ctx, ValidationFailed.from_errors({password_field: "required"}))
        ctx.data = data

        await next()

        record = ctx.result
        if ctx.status_code in (200, 201) and isinstance(record, dict) and "_id" in record:
            await app.db.insert(
                AUTH_CREDENTIALS,
                {"user": record["_id"], "password": app.passwords.hash(password)},
            )
            logger.info("Stored credential for user %s", record["_id"])
        return ctx

    return handler


def require_auth(options: dict[str, Any], app: "App") -> Handler:
    roles = set(options.get("roles") or ())

    async def handler(ctx: RequestContext, next) -> RequestContext:
        try:
            claims = app.jwt.verify_header(ctx.header("authorization"))
        except JWTError as e:
            return _reject(ctx, Unauthorized(str(e)))

        user = await app.db.find_one(USERS, claims.user_id)
        if user is None:
            return _reject(ctx, Unauthorized("User not found"))

        if roles and user.get("role") not in roles:
            return _reject(ctx, Forbidden("Insufficient role"))

        ctx.user = user
        return await next()

    return handler


def assign_auth_user(options: dict[str, Any], app: "App") -> Handler:
    field_name = options["field"]

    async def handler(ctx: RequestContext, next) -> RequestContext:
        if ctx.user is None:
            return _reject(ctx, Unauthorized("Authentication required"))
        if isinstance(ctx.data, dict):
            ctx.data = {**ctx.data, field_name: ctx.user["_id"]}
        return await next()

    return handler


# =============================================================================
# Registration
# =============================================================================

BUILTIN_HOOKS = [
    Hook(
        id=LOG_DATA,
        name="Log data",
        description="Log method, path and status once the request has been handled",
        factory=log_data,
        options={
            "label": FieldSpec(type="string"),
            "level": FieldSpec(type="string", default_value="info"),
            "include_data": FieldSpec(type="boolean", default_value=False),
        },
    ),
    Hook(
        id=CUSTOM_CODE,
        name="Custom code",
        description="Transform request data with an importable 'module:attr' callable",
        factory=custom_code,
        options={"code": FieldSpec(type="string", required=True)},
        check=check_custom_code,
    ),
    Hook(
        id=RESTRICT_METHOD,
        name="Restrict method",
        description="Reject methods outside the allowed set with 405",
        factory=restrict_method,
        options={"allow": FieldSpec(type="array", required=True)},
    ),
    Hook(
        id=AUTH_REQUIRE_PASSWORD,
        name="Require password",
        description="Verify a username and password against stored credentials",
        factory=auth_require_password,
        options={
            "username_field": FieldSpec(type="string", default_value="username"),
            "password_field": FieldSpec(type="string", default_value="password"),
        },
    ),
    Hook(
        id=CREATE_AUTH_CREDENTIAL,
        name="Create credential",
        description="Hash the password of a created user into auth-credentials",
        factory=create_auth_credential,
        options={"password_field": FieldSpec(type="string", default_value="password")},
    ),
    Hook(
        id=REQUIRE_AUTH,
        name="Require auth",
        description="Reject requests without a valid bearer token (401) or role (403)",
        factory=require_auth,
        options={"roles": FieldSpec(type="array")},
    ),
    Hook(
        id=ASSIGN_AUTH_USER,
        name="Assign auth user",
        description="Copy the authenticated user's id onto the request data",
        factory=assign_auth_user,
        options={"field": FieldSpec(type="string", default_value="user")},
    ),
]


def register_builtin_hooks(registry: HookRegistry) -> None:
    """Register every built-in hook. Safe to call more than once."""
    for hook in BUILTIN_HOOKS:
        registry.register(hook)
