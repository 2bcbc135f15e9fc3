"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from pack_manager import __version__
from pack_manager.core.background import OperationRunner
from pack_manager.core.config import get_settings
from pack_manager.core.database import create_all_tables, dispose_engine, get_session_factory, init_engine
from pack_manager.core.logging import setup_logging
from pack_manager.lib.fetcher import create_fetcher
from pack_manager.schemas.common import ErrorResponse
from pack_manager.services.manifest_store import ManifestFetchError, ManifestParseError, ManifestStore
from pack_manager.services.operation_registry import (
    InvalidProgressError,
    InvalidTransitionError,
    OperationNotFoundError,
    OperationRegistry,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: build services on startup, dispose engine on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)
    if settings.database_url.startswith("sqlite"):
        await create_all_tables()

    fetcher = create_fetcher(
        settings.fetcher_backend,
        worktree_root=settings.worktree_root,
        manifest_filename=settings.manifest_filename,
        timeout=settings.fetch_timeout,
    )
    registry = OperationRegistry(get_session_factory())
    runner = OperationRunner(registry)
    app.state.manifest_store = ManifestStore(fetcher)
    app.state.operation_registry = registry
    app.state.operation_runner = runner

    yield

    await runner.wait_all()
    await dispose_engine()


def _error(status_code: int, detail: str, code: str, errors: list[dict] | None = None) -> JSONResponse:
    body = ErrorResponse(detail=detail, code=code, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to HTTP responses.

    Args:
        app: The FastAPI application.
    """

    @app.exception_handler(ManifestParseError)
    async def manifest_parse_error_handler(request: Request, exc: ManifestParseError) -> JSONResponse:
        return _error(
            422,
            str(exc),
            "manifest_parse_error",
            [{"kind": str(exc.cause.kind), "detail": exc.cause.detail}],
        )

    @app.exception_handler(ManifestFetchError)
    async def manifest_fetch_error_handler(request: Request, exc: ManifestFetchError) -> JSONResponse:
        return _error(
            status.HTTP_502_BAD_GATEWAY,
            str(exc),
            "manifest_fetch_error",
            [{"kind": str(exc.kind), "status_code": exc.status_code}],
        )

    @app.exception_handler(OperationNotFoundError)
    async def operation_not_found_handler(request: Request, exc: OperationNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "operation_not_found")

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "invalid_transition")

    @app.exception_handler(InvalidProgressError)
    async def invalid_progress_handler(request: Request, exc: InvalidProgressError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc), "invalid_progress")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Pack Manager API",
        description="Content pack manifests as graphs and hierarchies, with background operation tracking",
        version=__version__,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Register middleware and routers
    from pack_manager.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
