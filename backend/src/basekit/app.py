"""The basekit App: bootstrap and the transport-independent ``api`` entry point.

Every request runs the same state machine::

    ResolvePath -> ResolveCollection -> SelectMethod -> EnforceIdPolicy
      -> RunBeforeHooks -> Execute -> RunAfterHooks -> Respond

``api()`` never raises. Service errors become their status code and an
``{"error", "details"}`` body; anything unexpected is logged and answered
with 500.
"""

import logging
from pathlib import Path
from typing import Any

from basekit.auth.jwt_service import JWTService
from basekit.auth.password import PasswordService
from basekit.collections.loader import load_definitions
from basekit.collections.locks import NameLocks
from basekit.collections.registry import CollectionRegistry
from basekit.collections.system import (
    COLLECTIONS,
    DEV_SETUP,
    HOOKS_REGISTRY,
    LOGIN,
    collections_definition,
    stored_system_definitions,
)
from basekit.core.config import DEFAULT_SECRET_KEY, AppConfig
from basekit.core.context import METHOD_ALIASES, Method, RequestContext
from basekit.core.errors import (
    InternalError,
    MethodNotAllowed,
    NotFound,
    RequestCancelled,
    ServiceError,
)
from basekit.hooks.builtin import register_builtin_hooks
from basekit.hooks.pipeline import build_chain, compose
from basekit.hooks.registry import HookRegistry
from basekit.hooks.system import default_system_hooks
from basekit.hooks.types import SystemHook
from basekit.persistence.adapter import DataStoreAdapter
from basekit.persistence.memory import MemoryAdapter
from basekit.schema.types import CollectionDefinition
from basekit.services import (
    CollectionService,
    CollectionsService,
    DevSetupService,
    HooksRegistryService,
    LoginService,
)

logger = logging.getLogger(__name__)


class App:
    """A basekit instance.

    Owns its registries; two App instances share no state.

    Example:
        app = App(MemoryAdapter())
        await app.initialize()
        ctx = await app.api(context(path="albums", method="create", data={...}))
    """

    def __init__(
        self,
        db: DataStoreAdapter | None = None,
        config: AppConfig | None = None,
        hooks: HookRegistry | None = None,
    ):
        """Initialize the app.

        Args:
            db: Data-store adapter (defaults to an in-memory store)
            config: Runtime settings (defaults to AppConfig())
            hooks: Hook registry; built-in hooks are added to it
        """
        self.config = config or AppConfig()
        self.db = db if db is not None else MemoryAdapter()

        self.hooks = hooks or HookRegistry()
        register_builtin_hooks(self.hooks)
        self.system_hooks: list[SystemHook] = default_system_hooks()

        self.jwt = JWTService(self.config.secret_key, ttl=self.config.token_ttl)
        self.passwords = PasswordService(rounds=self.config.bcrypt_rounds)

        self.locks = NameLocks()
        self.collections = CollectionRegistry(
            self.db,
            hook_options=self.hooks.option_schemas,
            locks=self.locks,
            hook_checks=self.hooks.option_checks,
        )

        self.internal_routes: dict[str, Any] = {
            LOGIN: LoginService(self),
            DEV_SETUP: DevSetupService(self),
            HOOKS_REGISTRY: HooksRegistryService(self),
        }
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect the adapter, seed system collections and load YAML definitions.

        Must complete before ``api()`` accepts requests. Calling it again is a no-op.
        """
        if self._initialized:
            return

        if self.config.secret_key == DEFAULT_SECRET_KEY:
            logger.warning("Using the default secret key; set BASEKIT_SECRET_KEY in production")

        await self.db.connect()
        self.collections.add_builtin(collections_definition())
        await self.collections.initialize(stored_system_definitions())

        if self.config.collections_path:
            await self.import_definitions(self.config.collections_path)

        self._initialized = True
        logger.info("basekit initialized")

    async def import_definitions(self, path: Path | str) -> list[CollectionDefinition]:
        """Create the definitions found under ``path`` that do not exist yet.

        Existing collections are left untouched.
        """
        created = []
        for file in load_definitions(path):
            if await self.collections.get(file.name) is not None:
                logger.debug("Collection '%s' already exists, skipping %s", file.name, file.path)
                continue
            created.append(await self.collections.create(file.definition))
            logger.info("Imported collection '%s' from %s", file.name, file.path)
        return created

    async def close(self) -> None:
        await self.db.close()
        self._initialized = False

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def api(self, ctx: RequestContext) -> RequestContext:
        """Dispatch a request. Always returns ``ctx`` with status and result set."""
        try:
            if not self._initialized:
                raise InternalError("App not initialized")
            await self._dispatch(ctx)
        except ServiceError as e:
            if e.status_code >= 500 and not isinstance(e, RequestCancelled):
                logger.error("%s %s /%s: %s", e.status_code, ctx.method, ctx.path, e.message)
            ctx.respond(e.status_code, e.to_dict())
        except Exception:
            logger.exception("Unhandled error dispatching %s /%s", ctx.method, ctx.path)
            ctx.respond(500, InternalError("Internal server error").to_dict())

        if not ctx.finalized:
            logger.error("No response produced for %s /%s", ctx.method, ctx.path)
            ctx.respond(500, InternalError("Request was not handled").to_dict())
        return ctx

    async def _dispatch(self, ctx: RequestContext) -> None:
        if ctx.cancelled:
            raise RequestCancelled("Request cancelled")

        # ResolvePath / ResolveCollection
        definition: CollectionDefinition | None = None
        service = self.internal_routes.get(ctx.path)
        if service is not None:
            target, id = ctx.path, None
        else:
            target, id = self._resolve_path(ctx.path)
            definition = await self.collections.get(target)
            if definition is None or not definition.exposed or definition.template:
                raise NotFound(f"Collection '{target}' not found")
            if target == COLLECTIONS:
                service = CollectionsService(self)
            else:
                service = CollectionService(self, definition)

        # SelectMethod / EnforceIdPolicy
        method = self._select_method(ctx.method, id)
        operation = getattr(service, method.value, None)
        if operation is None:
            raise MethodNotAllowed(f"`{method.value}` method not allowed")

        ctx.method = method.value
        if id is not None:
            ctx.params["id"] = id

        # RunBeforeHooks / Execute / RunAfterHooks
        status = 201 if method is Method.CREATE else 200

        async def execute(ctx: RequestContext) -> None:
            ctx.respond(status, await operation(ctx))

        before, after = build_chain(self, target, method.value, definition)
        await compose(before, execute, after)(ctx)

    @staticmethod
    def _resolve_path(path: str) -> tuple[str, str | None]:
        segments = path.split("/") if path else []
        if not 1 <= len(segments) <= 2 or not all(segments):
            raise NotFound(f"Path '/{path}' not found")
        return segments[0], segments[1] if len(segments) == 2 else None

    @staticmethod
    def _select_method(requested: str | None, id: str | None) -> Method:
        name = METHOD_ALIASES.get(str(requested or "get").lower())
        if name is None:
            raise MethodNotAllowed(f"`{requested}` method not allowed")

        if name in ("get", "find"):
            return Method.GET if id is not None else Method.FIND

        method = Method(name)
        if method is Method.CREATE and id is not None:
            raise MethodNotAllowed("`create` method not allowed on detail path")
        if method in (Method.PATCH, Method.REMOVE) and id is None:
            raise MethodNotAllowed(f"`{method.value}` method not allowed on base path")
        return method
