"""Hook registry for basekit.

Provides registration and lookup of hook factories by stable string id.
Each App owns its own registry; nothing is shared between instances.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from basekit.core.errors import InternalError
from basekit.hooks.pipeline import Operation, Pipeline, compose
from basekit.hooks.types import Handler, Hook, HookFactory, OptionCheck
from basekit.schema.engine import CREATE, validate
from basekit.schema.types import FieldSpec

if TYPE_CHECKING:
    from basekit.app import App

logger = logging.getLogger(__name__)


class HookRegistry:
    """Registry of hook factories.

    Hooks must be registered before a collection definition can bind them.
    Built-ins are registered by ``register_builtin_hooks()``; applications
    add their own with ``register()`` or the ``hook()`` decorator.

    Example:
        @registry.hook("stamp", options={"field": FieldSpec(type="string")})
        def stamp(options, app):
            async def handler(ctx, next):
                ...
                return await next()
            return handler
    """

    def __init__(self) -> None:
        self._hooks: dict[str, Hook] = {}

    def register(self, hook: Hook) -> None:
        """Register a hook.

        Re-registering an id that is already present is a no-op.
        """
        if hook.id in self._hooks:
            return
        self._hooks[hook.id] = hook

    def hook(
        self,
        id: str,
        name: str = "",
        description: str = "",
        options: dict[str, FieldSpec] | None = None,
        check: OptionCheck | None = None,
    ) -> Callable[[HookFactory], HookFactory]:
        """Decorator registering a factory function as a hook."""

        def decorator(factory: HookFactory) -> HookFactory:
            self.register(
                Hook(
                    id=id,
                    factory=factory,
                    name=name,
                    description=description or (factory.__doc__ or "").strip(),
                    options=options or {},
                    check=check,
                )
            )
            return factory

        return decorator

    def resolve(self, id: str) -> Hook | None:
        return self._hooks.get(id)

    def is_registered(self, id: str) -> bool:
        return id in self._hooks

    def ids(self) -> list[str]:
        return sorted(self._hooks)

    def list(self) -> list[dict[str, Any]]:
        """Catalog of registered hooks for introspection, sorted by id."""
        return [self._hooks[id].describe() for id in self.ids()]

    def option_schemas(self) -> dict[str, dict[str, FieldSpec]]:
        """Hook id -> option schema, used to validate collection definitions."""
        return {id: hook.options for id, hook in self._hooks.items()}

    def option_checks(self) -> dict[str, OptionCheck]:
        """Hook id -> extra option check, for hooks that declare one."""
        return {id: hook.check for id, hook in self._hooks.items() if hook.check}

    def instantiate(self, id: str, options: dict[str, Any], app: "App") -> Handler:
        """Build a handler for one binding, filling option defaults.

        Raises:
            InternalError: If the hook is not registered or its options are invalid
        """
        hook = self.resolve(id)
        if hook is None:
            raise InternalError(f"Hook '{id}' is not registered")

        result = validate(hook.options, options or {}, CREATE)
        if not result.valid:
            logger.error("Invalid options for hook '%s': %s", id, result.message)
            raise InternalError(f"Invalid options for hook '{id}'", details=result.errors)

        return hook.factory(result.data, app)

    def compose(
        self,
        handlers: list[Handler],
        operation: Operation,
        after: list[Handler] | None = None,
    ) -> Pipeline:
        return compose(handlers, operation, after)
