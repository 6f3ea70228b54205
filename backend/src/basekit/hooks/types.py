"""Hook system types for basekit.

- Hook: a named factory registered under a stable id
- Handler: the ``(ctx, next) -> ctx`` middleware a factory returns
- SystemHook: a hook injected on every matching request, regardless of
  the collection definition
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from basekit.core.context import RequestContext
from basekit.schema.types import FieldSpec

if TYPE_CHECKING:
    from basekit.app import App

# Runs the remainder of the chain.
Next = Callable[[], Awaitable[RequestContext]]

# Hook handler signature: async (ctx, next) -> ctx
Handler = Callable[[RequestContext, Next], Awaitable[RequestContext]]

# Hook factory signature: (options, app) -> handler
HookFactory = Callable[[dict[str, Any], "App"], Handler]

# Definition-time option check: validated options -> option name -> message
OptionCheck = Callable[[dict[str, Any]], dict[str, str]]

FIRST = "first"
LAST = "last"


@dataclass
class Hook:
    """A registered hook template.

    Attributes:
        id: Stable identifier referenced from collection definitions
        factory: Builds a handler from per-binding options
        name: Display name for admin tooling
        description: What the hook does
        options: Option name -> FieldSpec, validated when a definition binds the hook
        check: Further checks on the validated options, run at the same time
    """

    id: str
    factory: HookFactory
    name: str = ""
    description: str = ""
    options: dict[str, FieldSpec] = field(default_factory=dict)
    check: OptionCheck | None = None

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name or self.id,
            "description": self.description,
            "options": {name: spec.to_dict() for name, spec in self.options.items()},
        }


@dataclass
class SystemHook:
    """A hook the dispatcher injects around definition hooks.

    Attributes:
        hook_id: Registered hook id
        position: FIRST (before definition hooks) or LAST (after them)
        path: Collection or internal route the hook applies to, None for all
        methods: Methods the hook applies to, empty for all
        options: Options passed to the hook factory
    """

    hook_id: str
    position: str = FIRST
    path: str | None = None
    methods: tuple[str, ...] = ()
    options: dict[str, Any] = field(default_factory=dict)

    def applies(self, path: str, method: str) -> bool:
        if self.path is not None and self.path != path:
            return False
        return not self.methods or method in self.methods
