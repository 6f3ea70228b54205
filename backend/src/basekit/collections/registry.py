"""Collection Registry: source of truth for collection definitions.

Definitions are stored as documents in the ``_collections`` store, except
for built-in definitions (``collections`` itself) which are seeded in
process at bootstrap. Every write holds the per-name locks of the names it
touches; ``get()`` waits on the same lock, so the dispatcher never resolves
a definition that is halfway through an edit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from basekit.collections.locks import NameLocks
from basekit.collections.store import DEFINITIONS_COLLECTION, DefinitionStore
from basekit.collections.system import MIGRATIONS, SYSTEM_COLLECTIONS
from basekit.core.errors import (
    Conflict,
    Forbidden,
    MigrationError,
    NotFound,
    ValidationFailed,
)
from basekit.migrations.applier import MigrationApplier
from basekit.migrations.types import MigrationStep, RenameCollection
from basekit.persistence.adapter import DataStoreAdapter, DuplicateKeyError
from basekit.persistence.query import Query
from basekit.schema.definitions import validate_definition
from basekit.schema.types import CollectionDefinition, FieldSpec, IndexSpec

if TYPE_CHECKING:
    from basekit.hooks.types import OptionCheck

logger = logging.getLogger(__name__)

DEFINITION_INDEXES = [IndexSpec(fields=["name"], unique=True)]


class CollectionRegistry:
    """Create, read, update and remove collection definitions."""

    def __init__(
        self,
        db: DataStoreAdapter,
        hook_options: Callable[[], Mapping[str, Mapping[str, FieldSpec]]] | None = None,
        locks: NameLocks | None = None,
        hook_checks: Callable[[], Mapping[str, OptionCheck]] | None = None,
    ):
        """Initialize the registry.

        Args:
            db: Data-store adapter holding definitions and migration records
            hook_options: Returns registered hook id -> option schema
            locks: Name locks, shared with anything else that writes definitions
            hook_checks: Returns hook id -> extra option check
        """
        self.db = db
        self.store = DefinitionStore(db)
        self.applier = MigrationApplier(db, self.store)
        self.locks = locks or NameLocks()
        self._builtin: dict[str, CollectionDefinition] = {}
        self._hook_options = hook_options or (lambda: {})
        self._hook_checks = hook_checks or (lambda: {})

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def add_builtin(self, definition: CollectionDefinition) -> None:
        """Register an in-process definition that is never stored."""
        self._builtin[definition.name] = definition

    async def initialize(self, system: Iterable[CollectionDefinition] = ()) -> None:
        """Prepare the definition store and seed missing system definitions.

        Indexes of every stored definition are re-synced, since adapters are
        not required to persist them.
        """
        await self.db.sync_indexes(DEFINITIONS_COLLECTION, DEFINITION_INDEXES)

        for definition in system:
            if await self.store.get(definition.name) is None:
                await self.store.insert(definition)
                logger.info("Seeded system collection '%s'", definition.name)

        for stored in await self.store.all():
            await self.db.sync_indexes(stored.definition.name, stored.definition.indexes)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_system(self, name: str) -> bool:
        return name in SYSTEM_COLLECTIONS or name in self._builtin

    async def names(self) -> list[str]:
        return [s.definition.name for s in await self.store.all()]

    async def get(self, name: str) -> CollectionDefinition | None:
        """Look up a definition, waiting for any in-flight write on ``name``."""
        await self.locks.wait(name)
        if name in self._builtin:
            return self._builtin[name]
        stored = await self.store.get(name)
        return stored.definition if stored else None

    async def list(self) -> list[CollectionDefinition]:
        """Stored definitions sorted by name (built-ins are not listed)."""
        return [s.definition for s in await self.store.all()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _validate(self, data: Any, known_names: Iterable[str]) -> CollectionDefinition:
        result = validate_definition(data, known_names, self._hook_options(), self._hook_checks())
        if not result.valid:
            raise ValidationFailed.from_errors(result.errors)
        return CollectionDefinition.from_dict(result.data)

    async def _sync_indexes(self, name: str, indexes: list[IndexSpec]) -> None:
        try:
            await self.db.sync_indexes(name, indexes)
        except DuplicateKeyError as e:
            raise Conflict(
                f"Existing records in '{name}' violate a unique index",
                details={"fields": e.fields},
            )

    async def create(self, data: Any) -> CollectionDefinition:
        """Create a definition.

        Raises:
            ValidationFailed: If the definition is invalid
            Conflict: If the name is taken
        """
        definition = self._validate(data, await self.names())

        async with self.locks.hold(definition.name):
            if definition.name in self._builtin or await self.store.get(definition.name):
                raise Conflict(f"Collection '{definition.name}' already exists")

            await self._sync_indexes(definition.name, definition.indexes)
            try:
                await self.store.insert(definition)
            except DuplicateKeyError:
                raise Conflict(f"Collection '{definition.name}' already exists")

        logger.info("Created collection '%s'", definition.name)
        return definition

    async def update(
        self,
        name: str,
        patch: Any,
        migration_steps: Any = None,
    ) -> CollectionDefinition:
        """Apply a partial edit to a definition, migrating dependents on rename.

        Args:
            name: Current collection name
            patch: Definition keys to replace
            migration_steps: Wire-form steps to apply after the edit

        Raises:
            NotFound: If no definition is stored under ``name``
            Conflict: If a rename collides with another definition
            Forbidden: If ``name`` is a system collection
            MigrationError: If a step fails (the edit is stored, dependents may not be)
        """
        if not isinstance(patch, dict):
            raise ValidationFailed.from_errors({"data": "expected object"})
        if self.is_system(name):
            raise Forbidden(f"System collection '{name}' cannot be modified")

        steps = self.applier.parse(migration_steps)
        new_name = patch.get("name", name)

        async with self.locks.hold(name, new_name if isinstance(new_name, str) else name):
            stored = await self.store.get(name)
            if stored is None:
                raise NotFound(f"Collection '{name}' not found")

            merged = {**stored.definition.to_dict(), **patch}
            definition = self._validate(merged, await self.names())

            renamed = definition.name != name
            if renamed and (
                definition.name in self._builtin or await self.store.get(definition.name)
            ):
                raise Conflict(f"Collection '{definition.name}' already exists")
            await self._check_renames(steps, name, definition.name)

            await self._sync_indexes(name, definition.indexes)
            await self.store.replace(stored.id, definition)
            logger.info("Updated collection '%s'", name)

            if renamed:
                implicit = RenameCollection(collection=name, to=definition.name)
                steps = [implicit] + [s for s in steps if s != implicit]

            if steps:
                await self._migrate(definition.name, steps)

        return definition

    async def _check_renames(self, steps: list[MigrationStep], old: str, new: str) -> None:
        """Reject rename steps that would move a live collection's records.

        Names are taken as they will be once the edit is stored.

        Raises:
            ValidationFailed: Keyed by the step's position in ``migrationSteps``
        """
        names = set(await self.names()) | set(self._builtin)
        names.discard(old)
        names.add(new)

        errors = {}
        for i, step in enumerate(steps):
            if not isinstance(step, RenameCollection):
                continue
            if step.collection in names:
                errors[f"migrationSteps.{i}"] = f"collection '{step.collection}' is still defined"
            elif step.to not in names:
                errors[f"migrationSteps.{i}"] = f"collection '{step.to}' is not defined"
        if errors:
            raise ValidationFailed.from_errors(errors)

    async def _migrate(self, collection: str, steps: list[MigrationStep]) -> None:
        record = await self.db.insert(
            MIGRATIONS,
            {
                "collection": collection,
                "steps": [s.to_dict() for s in steps],
                "status": "pending",
            },
        )

        try:
            await self.applier.apply(steps)
        except MigrationError as e:
            await self.db.update(
                MIGRATIONS,
                record["_id"],
                {"status": "failed", "failedStep": e.index, "error": e.reason},
            )
            e.details = {**(e.details or {}), "migration": record["_id"]}
            logger.error(
                "Migration %s for '%s' failed; the edit is incomplete and can be re-applied",
                record["_id"],
                collection,
            )
            raise

        await self.db.update(MIGRATIONS, record["_id"], {"status": "complete"})

    async def remove(self, name: str) -> CollectionDefinition:
        """Remove a definition and drop its records.

        Relations in other collections that point at ``name`` are left as-is.

        Raises:
            Forbidden: If ``name`` is a system collection
            NotFound: If no definition is stored under ``name``
        """
        if self.is_system(name):
            raise Forbidden(f"System collection '{name}' cannot be removed")

        async with self.locks.hold(name):
            stored = await self.store.get(name)
            if stored is None:
                raise NotFound(f"Collection '{name}' not found")

            await self.store.delete(stored.id)
            await self.db.drop_collection(name)

        logger.info("Removed collection '%s'", name)
        return stored.definition

    async def migrations(self, collection: str | None = None) -> list[dict[str, Any]]:
        """Migration records, newest first."""
        query = Query(
            filter={"collection": collection} if collection else {},
            sort=[("created_at", -1)],
        )
        return (await self.db.find(MIGRATIONS, query))["data"]
