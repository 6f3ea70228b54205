"""basekit: schema-driven backend toolkit.

Declare collections and get a validated, hookable CRUD service for each.
"""

from basekit.app import App
from basekit.core.config import AppConfig
from basekit.core.context import RequestContext, context

__version__ = "0.1.0"

__all__ = ["App", "AppConfig", "RequestContext", "context"]
