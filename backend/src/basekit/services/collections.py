"""The self-hosting ``collections`` service, backed by the Collection Registry."""

from typing import TYPE_CHECKING, Any

from basekit.core.context import RequestContext
from basekit.core.errors import NotFound, ValidationFailed

if TYPE_CHECKING:
    from basekit.app import App

# Key of a patch payload carrying migration steps rather than definition keys.
MIGRATION_STEPS = "migrationSteps"


class CollectionsService:
    """CRUD over collection definitions; the record id is the collection name."""

    def __init__(self, app: "App"):
        self.app = app

    @property
    def registry(self):
        return self.app.collections

    async def find(self, ctx: RequestContext) -> list[dict[str, Any]]:
        return [d.to_dict() for d in await self.registry.list()]

    async def get(self, ctx: RequestContext) -> dict[str, Any]:
        name = ctx.params["id"]
        definition = await self.registry.get(name)
        if definition is None:
            raise NotFound(f"Collection '{name}' not found")
        return definition.to_dict()

    async def create(self, ctx: RequestContext) -> dict[str, Any]:
        if ctx.data is None:
            raise ValidationFailed.missing_data()
        return (await self.registry.create(ctx.data)).to_dict()

    async def patch(self, ctx: RequestContext) -> dict[str, Any]:
        if ctx.data is None:
            raise ValidationFailed.missing_data()
        if not isinstance(ctx.data, dict):
            raise ValidationFailed.from_errors({"data": "expected object"})

        patch = dict(ctx.data)
        steps = patch.pop(MIGRATION_STEPS, None)
        definition = await self.registry.update(ctx.params["id"], patch, steps)
        return definition.to_dict()

    async def remove(self, ctx: RequestContext) -> dict[str, Any]:
        return (await self.registry.remove(ctx.params["id"])).to_dict()
