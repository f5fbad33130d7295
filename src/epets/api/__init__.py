"""Petitions moderation web application.

FastAPI application providing:
- The archived petitions area (listing, search, detail, CSV export)
- Moderator login, logout and password change
- Jinja2 template rendering for HTML pages
- Static file serving

This module provides the app factory; tests build their own application
with explicit settings and a session factory.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from epets.api.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    SessionAuthMiddleware,
)
from epets.api.routers import archived_petitions_router, auth_router, dashboard_router
from epets.api.templates import get_templates
from epets.db import close_engine, get_async_session, init_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from epets.core.config import Settings

# Static files directory (src/epets/static/)
STATIC_DIR = Path(__file__).parent.parent / "static"

logger = logging.getLogger(__name__)

API_TITLE = "Petitions moderation"
API_DESCRIPTION = """
Moderation site for the petitions service.

- **/admin** - Dashboard (moderators)
- **/admin/archived/petitions** - Archived petitions, search and CSV export
- **/admin/login**, **/admin/logout** - Moderator sign-in
- **/health** - Health check
"""


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Settings to run with. Defaults to the cached settings
            loaded from the environment.
        session_factory: Returns an async context manager yielding a
            database session. Defaults to the engine-backed factory, which
            is initialized on startup.

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        # Production
        app = create_app()

        # Tests
        app = create_app(Settings(moderate_url="https://moderate.example.test"))
    """
    if settings is None:
        from epets.core.settings import get_settings

        settings = get_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if session_factory is None:
            init_engine(settings)
        yield
        if session_factory is None:
            await close_engine()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=settings.app_version,
        debug=settings.debug,
        docs_url="/api/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory or get_async_session
    app.state.templates = get_templates()

    _mount_static_files(app)
    _add_middleware(app, settings)
    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for the load balancer."""
        return {"status": "healthy"}

    logger.info(
        "Application created (version=%s)",
        settings.app_version,
        extra={"config": settings.get_config_summary()},
    )

    return app


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    """Add middleware to the application.

    The last middleware added is the outermost, so requests pass through
    request ID, flash session, error handling and then authentication.
    """
    app.add_middleware(
        SessionAuthMiddleware,
        session_factory=app.state.session_factory,
        cookie_name=settings.auth.session_cookie_name,
    )

    # Converts guard exceptions to redirects and errors to JSON responses
    app.add_middleware(ErrorHandlerMiddleware)

    # Signed cookie carrying flash messages
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.auth.secret_key.get_secret_value(),
        session_cookie=settings.auth.flash_cookie_name,
        max_age=None,
        same_site="lax",
        https_only=settings.auth.cookie_secure,
    )

    app.add_middleware(RequestIDMiddleware)


def _mount_static_files(app: FastAPI) -> None:
    if not STATIC_DIR.exists():
        logger.warning("Static files directory not found: %s", STATIC_DIR)
        return

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


def _include_routers(app: FastAPI) -> None:
    app.include_router(dashboard_router)
    app.include_router(auth_router)
    app.include_router(archived_petitions_router)
