"""EduTrack FastAPI application — entry point for the API server."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import DEFAULT_JWT_SECRET, Settings, get_settings
from edutrack import __version__
from edutrack.api.errors import register_exception_handlers
from edutrack.core.logging import get_logger, setup_logging
from edutrack.data.db import close_engine, get_engine
from edutrack.saas.tokens import TokenManager

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup/shutdown lifecycle: open the DB engine, close it on exit.

    An engine handed to ``create_app`` belongs to the caller and is left open.
    """
    log.info("api_starting", environment=app.state.settings.edutrack_env)
    owns_engine = app.state.engine is None
    if owns_engine:
        app.state.engine = await get_engine()
    yield
    if owns_engine:
        await close_engine()
        app.state.engine = None
    log.info("api_shutdown")


def warn_if_insecure_secret(settings: Settings) -> None:
    if settings.uses_insecure_jwt_secret:
        log.warning(
            "jwt_secret_insecure_default",
            environment=settings.edutrack_env,
            hint="set EDUTRACK_JWT_SECRET before deploying",
        )


def create_app(settings: Settings | None = None, engine: AsyncEngine | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    warn_if_insecure_secret(settings)

    app = FastAPI(
        title="EduTrack API",
        description="Multi-tenant school back office REST API",
        version=__version__,
        lifespan=lifespan,
    )

    secret = settings.edutrack_jwt_secret.get_secret_value() or DEFAULT_JWT_SECRET
    app.state.settings = settings
    app.state.engine = engine
    app.state.token_manager = TokenManager(secret)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    from edutrack.api.routes.accounts import router as accounts_router
    from edutrack.api.routes.auth import router as auth_router
    from edutrack.api.routes.careers import router as careers_router
    from edutrack.api.routes.health import router as health_router
    from edutrack.api.routes.students import router as students_router
    from edutrack.api.routes.tenant import router as tenant_router

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(tenant_router)
    app.include_router(accounts_router)
    app.include_router(careers_router)
    app.include_router(students_router)

    return app


app = create_app()
