"""FastAPI transport: maps ``/api/{path}`` onto ``App.api()``."""

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from basekit.app import App
from basekit.core.config import AppConfig
from basekit.core.context import context
from basekit.persistence.config import DatabaseConfig, create_adapter

logger = logging.getLogger(__name__)

# HTTP verb -> dispatcher method
HTTP_METHODS = {
    "GET": "get",
    "POST": "create",
    "PATCH": "patch",
    "DELETE": "remove",
}


class ErrorResponse(BaseModel):
    error: str
    details: Any = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def create_app(basekit: App | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        basekit: App to serve; built from the environment when omitted
    """
    if basekit is None:
        basekit = App(create_adapter(DatabaseConfig.from_env()), AppConfig.from_env())

    @asynccontextmanager
    async def lifespan(api: FastAPI):
        """Initialize on startup, cleanup on shutdown."""
        await basekit.initialize()
        yield
        await basekit.close()

    api = FastAPI(title="basekit API", lifespan=lifespan)
    api.state.basekit = basekit

    origins = os.environ.get("BASEKIT_CORS_ORIGINS", "http://localhost:5173")
    api.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @api.api_route(
        "/api/{path:path}",
        methods=list(HTTP_METHODS),
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    )
    async def dispatch(path: str, request: Request):
        """Dispatch any collection or internal route."""
        data = None
        if request.method in ("POST", "PATCH"):
            body = await request.body()
            if body:
                try:
                    data = json.loads(body)
                except ValueError:
                    return _error(400, "Invalid JSON body")

        ctx = await basekit.api(
            context(
                path=path,
                method=HTTP_METHODS[request.method],
                data=data,
                query=dict(request.query_params),
                headers=dict(request.headers),
            )
        )
        return JSONResponse(status_code=ctx.status_code, content=jsonable_encoder(ctx.result))

    return api
