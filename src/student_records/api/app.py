"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import Scope

from student_records.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from student_records.api.models import FieldErrorDetail, error_response
from student_records.api.routes import health, students
from student_records.config import AppConfig
from student_records.store.database import Database

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger("student_records.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Opens the database at startup and closes it at shutdown.
    """
    config: AppConfig = app.state.config
    database = Database(config.database_url)
    database.create_tables()
    app.state.database = database
    logger.info("Database ready (%s)", config.database_url)

    yield

    database.close()
    app.state.database = None
    logger.info("Database closed")


def _field_name(loc: tuple[int | str, ...]) -> str:
    """Turn a pydantic error location into a field path, without its source."""
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install handlers that render every error as the standard envelope."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            FieldErrorDetail(
                field=_field_name(tuple(err.get("loc", ()))),
                message=str(err.get("msg", "Invalid value")),
                value=None if err.get("type") == "missing" else err.get("input"),
            )
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_response("Validation failed", errors=errors).to_content(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail)).to_content(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s", exc, exc_info=exc)
        message = str(exc) if debug else "An unexpected error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response(message).to_content(),
        )


class ClientFiles(StaticFiles):
    """Static files for the built client, with index.html for client-side routes.

    Unknown paths outside the API prefix get index.html so deep links such as
    ``/students`` reach the client router. Unknown API paths still 404.
    """

    def __init__(self, *, directory: str, api_prefix: str) -> None:
        super().__init__(directory=directory, html=True)
        self.api_prefix = api_prefix.rstrip("/")

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            response = await super().get_response(path, scope)
        except StarletteHTTPException as exc:
            if exc.status_code != 404 or self._is_api_path(path):
                raise
        else:
            if response.status_code != 404 or self._is_api_path(path):
                return response
        return await super().get_response("index.html", scope)

    def _is_api_path(self, path: str) -> bool:
        request_path = "/" + path.lstrip("/")
        return request_path == self.api_prefix or request_path.startswith(f"{self.api_prefix}/")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or AppConfig()

    app = FastAPI(
        title="Student Records API",
        description="REST API for managing student records",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager and dependencies
    app.state.config = config

    # Middleware (the last one added runs first)
    app.add_middleware(RequestLoggingMiddleware)
    if config.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            max_requests=config.rate_limit_requests,
            window_seconds=config.rate_limit_window_seconds,
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials="*" not in config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, debug=config.debug)

    # Include routers
    app.include_router(students.router, prefix=config.api_prefix)
    app.include_router(health.router, prefix=config.api_prefix)

    # Serve the built client, if present, for every other path
    if config.static_dir and Path(config.static_dir).is_dir():
        app.mount(
            "/",
            ClientFiles(directory=config.static_dir, api_prefix=config.api_prefix),
            name="client",
        )
        logger.info("Serving client from %s", config.static_dir)

    return app
