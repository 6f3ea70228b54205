"""Hook registry, built-in hook catalog and chain composition."""

from basekit.hooks.builtin import BUILTIN_HOOKS, import_callable, register_builtin_hooks
from basekit.hooks.pipeline import build_chain, compose
from basekit.hooks.registry import HookRegistry
from basekit.hooks.system import default_system_hooks
from basekit.hooks.types import (
    FIRST,
    LAST,
    Handler,
    Hook,
    HookFactory,
    Next,
    OptionCheck,
    SystemHook,
)

__all__ = [
    "BUILTIN_HOOKS",
    "FIRST",
    "LAST",
    "Handler",
    "Hook",
    "HookFactory",
    "HookRegistry",
    "Next",
    "OptionCheck",
    "SystemHook",
    "build_chain",
    "compose",
    "default_system_hooks",
    "import_callable",
    "register_builtin_hooks",
]
