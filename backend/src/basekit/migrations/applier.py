"""Ordered application of migration steps.

Steps run strictly in declared order. The first failure aborts the rest and
is reported as a MigrationError naming the step. Work already done by earlier
steps is not rolled back: every handler writes only what differs from the
stored state, so re-applying the same steps after a partial failure is safe.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from basekit.collections.store import DefinitionStore
from basekit.core.errors import MigrationError, UnsupportedMigration, ValidationFailed
from basekit.migrations.types import MigrationStep, RenameCollection
from basekit.persistence.adapter import DataStoreAdapter

logger = logging.getLogger(__name__)

StepHandler = Callable[["MigrationApplier", Any], Awaitable[None]]


async def rename_collection(applier: "MigrationApplier", step: RenameCollection) -> None:
    """Move stored records and rewrite relation fields pointing at the old name.

    Runs after the definition edit is stored: the old name must no longer be
    defined and the new one must be, otherwise a live collection's records
    would be moved out from under it.
    """
    if await applier.store.get(step.collection) is not None:
        raise ValueError(f"collection '{step.collection}' is still defined")
    if await applier.store.get(step.to) is None:
        raise ValueError(f"collection '{step.to}' is not defined")

    moved = await applier.db.rename_collection(step.collection, step.to)
    if moved:
        logger.info("Moved records of '%s' to '%s'", step.collection, step.to)

    for stored in await applier.store.all():
        definition = stored.definition
        touched = False
        for field_name, spec in definition.schema.items():
            if spec.relation == step.collection:
                spec.relation = step.to
                touched = True
                logger.info(
                    "Rewrote relation %s.%s: '%s' -> '%s'",
                    definition.name,
                    field_name,
                    step.collection,
                    step.to,
                )
        if touched:
            await applier.store.replace(stored.id, definition)


class MigrationApplier:
    """Dispatches migration steps to their handlers by step type.

    New step kinds are added with ``register()``; unknown kinds are rejected
    with UnsupportedMigration before any step runs.
    """

    def __init__(self, db: DataStoreAdapter, store: DefinitionStore):
        self.db = db
        self.store = store
        self._kinds: dict[str, tuple[type[MigrationStep], StepHandler]] = {}
        self.register(RenameCollection, rename_collection)

    def register(self, step_class: type[MigrationStep], handler: StepHandler) -> None:
        """Register a step kind. Re-registering a type is a no-op."""
        if step_class.type in self._kinds:
            return
        self._kinds[step_class.type] = (step_class, handler)

    @property
    def kinds(self) -> list[str]:
        return sorted(self._kinds)

    def parse(self, raw_steps: Any) -> list[MigrationStep]:
        """Parse wire-form steps.

        Raises:
            ValidationFailed: If the payload is not a list of step objects
            UnsupportedMigration: If a step type is not registered
        """
        if raw_steps is None:
            return []
        if not isinstance(raw_steps, list):
            raise ValidationFailed.from_errors({"migrationSteps": "expected array"})

        steps: list[MigrationStep] = []
        for i, raw in enumerate(raw_steps):
            if not isinstance(raw, dict):
                raise ValidationFailed.from_errors({f"migrationSteps.{i}": "expected object"})

            kind = self._kinds.get(raw.get("type"))
            if kind is None:
                raise UnsupportedMigration(
                    f"Unsupported migration step '{raw.get('type')}'",
                    index=i,
                    step=raw,
                    reason=f"supported steps: {', '.join(self.kinds)}",
                )

            try:
                steps.append(kind[0].from_dict(raw))
            except ValueError as e:
                raise ValidationFailed.from_errors({f"migrationSteps.{i}": str(e)})
        return steps

    async def apply(self, steps: list[MigrationStep]) -> None:
        """Apply steps in order.

        Raises:
            UnsupportedMigration: If a step kind is not registered
            MigrationError: If a step fails; earlier steps stay applied
        """
        for i, step in enumerate(steps):
            kind = self._kinds.get(step.type)
            if kind is None:
                raise UnsupportedMigration(
                    f"Unsupported migration step '{step.type}'",
                    index=i,
                    step=step.to_dict(),
                    reason=f"supported steps: {', '.join(self.kinds)}",
                )

            logger.info("Applying migration step %d: %s", i, step.describe())
            try:
                await kind[1](self, step)
            except MigrationError:
                raise
            except Exception as e:
                logger.error("Migration step %d (%s) failed: %s", i, step.type, e)
                raise MigrationError(
                    f"Migration step {i} ({step.type}) failed",
                    index=i,
                    step=step.to_dict(),
                    reason=str(e),
                ) from e
