"""Migration steps applied alongside collection edits."""

from basekit.migrations.applier import MigrationApplier, rename_collection
from basekit.migrations.types import MigrationStep, RenameCollection

__all__ = [
    "MigrationApplier",
    "MigrationStep",
    "RenameCollection",
    "rename_collection",
]
