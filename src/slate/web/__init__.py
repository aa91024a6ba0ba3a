"""Slate HTTP API for issue dependencies."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from slate.constants import STORAGE_FILENAME
from slate.errors import CorruptStorage, SlateError, StorageUnavailable

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


def create_app(
    slate_dir: str = ".slate",
    default_actor: str | None = None,
) -> FastAPI:
    """Create a FastAPI app serving the dependency endpoints.

    Args:
        slate_dir: Path to the .slate directory.
        default_actor: Actor for requests without an actor header
            (read from config.toml if None).

    Returns:
        Configured FastAPI application.
    """
    from slate.config import get_default_actor

    app = FastAPI(
        title="slate",
        docs_url=None,
        redoc_url=None,
    )

    app.state.slate_dir = slate_dir
    app.state.storage_path = str(Path(slate_dir) / STORAGE_FILENAME)
    app.state.default_actor = default_actor or get_default_actor(slate_dir)

    from starlette.middleware.base import BaseHTTPMiddleware

    class SecurityHeadersMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next: Any) -> Response:
            response = await call_next(request)
            response.headers["X-Content-Type-Options"] = "nosniff"
            return response

    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(SlateError)
    async def slate_error_handler(_request: Request, exc: SlateError) -> JSONResponse:
        if isinstance(exc, StorageUnavailable):
            logger.warning("Storage unavailable: %s", exc)
        elif isinstance(exc, CorruptStorage):
            logger.error("Storage corrupt: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    from slate.web.routes import router

    app.include_router(router)

    return app


__all__ = ["create_app"]
