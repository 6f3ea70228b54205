"""HTTP transport for basekit."""

from basekit.api.app import create_app

__all__ = ["create_app"]
