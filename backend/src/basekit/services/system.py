"""Internal routes: login and the ``_dev`` endpoints used by setup tooling."""

from typing import TYPE_CHECKING, Any

from basekit.collections.system import DEV_ROLE, USERS
from basekit.core.context import RequestContext
from basekit.core.errors import Unauthorized, ValidationFailed
from basekit.persistence.query import Query

if TYPE_CHECKING:
    from basekit.app import App


class LoginService:
    """Issues a bearer token for the user verified by ``auth-require-password``."""

    def __init__(self, app: "App"):
        self.app = app

    async def create(self, ctx: RequestContext) -> dict[str, Any]:
        if ctx.data is None:
            raise ValidationFailed.missing_data()
        if ctx.user is None:
            raise Unauthorized("Invalid username or password")

        token = self.app.jwt.issue(ctx.user["_id"], ctx.user.get("role"))
        return {"auth": token.to_dict(), "user": ctx.user}


class DevSetupService:
    """Reports whether any user holds the ``dev`` role yet."""

    def __init__(self, app: "App"):
        self.app = app

    async def find(self, ctx: RequestContext) -> bool:
        found = await self.app.db.find(USERS, Query(filter={"role": DEV_ROLE}, limit=1))
        return found["total"] > 0


class HooksRegistryService:
    """The catalog of registered hooks, for admin tooling."""

    def __init__(self, app: "App"):
        self.app = app

    async def find(self, ctx: RequestContext) -> list[dict[str, Any]]:
        return self.app.hooks.list()
