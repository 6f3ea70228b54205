"""Services executed at the centre of a hook chain."""

from basekit.services.collections import CollectionsService
from basekit.services.records import CollectionService
from basekit.services.system import DevSetupService, HooksRegistryService, LoginService

__all__ = [
    "CollectionService",
    "CollectionsService",
    "DevSetupService",
    "HooksRegistryService",
    "LoginService",
]
