"""Middleware composition of hook handlers around a data operation.

A chain is ``[system-first, definition before, EXECUTE, definition after,
system-last]``. Every handler receives the context and a ``next`` callable
running the rest of the chain; a handler that returns without awaiting
``next`` ends the chain there. The cancellation signal is checked before
each stage, never in the middle of one.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from basekit.core.context import RequestContext
from basekit.core.errors import RequestCancelled
from basekit.hooks.types import FIRST, LAST, Handler
from basekit.schema.types import CollectionDefinition

if TYPE_CHECKING:
    from basekit.app import App

# The data operation at the centre of a chain.
Operation = Callable[[RequestContext], Awaitable[None]]

Pipeline = Callable[[RequestContext], Awaitable[RequestContext]]


def _execute(operation: Operation) -> Handler:
    async def handler(ctx: RequestContext, next) -> RequestContext:
        await operation(ctx)
        return await next()

    return handler


def compose(
    handlers: list[Handler],
    operation: Operation,
    after: list[Handler] | None = None,
) -> Pipeline:
    """Compose handlers and the operation into one callable.

    Args:
        handlers: Handlers running before the operation, outermost first
        operation: The data operation
        after: Handlers running once the operation has finished

    Returns:
        Async callable taking the context and returning it
    """
    chain = [*handlers, _execute(operation), *(after or [])]

    async def run(ctx: RequestContext) -> RequestContext:
        async def dispatch(i: int) -> RequestContext:
            if ctx.cancelled:
                raise RequestCancelled("Request cancelled")
            if i == len(chain):
                return ctx

            called = False

            async def next() -> RequestContext:
                nonlocal called
                if called:
                    raise RuntimeError("next() called multiple times")
                called = True
                return await dispatch(i + 1)

            await chain[i](ctx, next)
            return ctx

        return await dispatch(0)

    return run


def build_chain(
    app: "App",
    path: str,
    method: str,
    definition: CollectionDefinition | None = None,
) -> tuple[list[Handler], list[Handler]]:
    """Instantiate the handlers bound to ``(path, method)``.

    Returns:
        (handlers before the operation, handlers after it)
    """
    system = [s for s in app.system_hooks if s.applies(path, method)]

    def build(hook_id, options):
        return app.hooks.instantiate(hook_id, options, app)

    before = [build(s.hook_id, s.options) for s in system if s.position == FIRST]
    after: list[Handler] = []

    if definition is not None:
        before += [build(h.id, h.options) for h in definition.hooks_for("before", method)]
        after += [build(h.id, h.options) for h in definition.hooks_for("after", method)]

    after += [build(s.hook_id, s.options) for s in system if s.position == LAST]
    return before, after
