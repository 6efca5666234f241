"""FastAPI application answering every request with a fixed greeting."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from hello_deploy import __version__
from hello_deploy.config import ServiceSettings

GREETING = "Hello World!"

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def create_app(settings: ServiceSettings) -> FastAPI:
    """Build the service app.

    A single handler is mounted for every method on ``/{path:path}``,
    which also matches ``/``. The interactive docs routes are disabled
    so that ``/docs`` gets the greeting like any other path.
    """
    app = FastAPI(
        title="hello-deploy",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    async def greet() -> PlainTextResponse:
        return PlainTextResponse(GREETING, status_code=200)

    app.add_api_route("/{path:path}", greet, methods=ALL_METHODS, include_in_schema=False)

    return app
