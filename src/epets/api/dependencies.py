"""Shared FastAPI dependencies.

Everything here reads from app.state, which create_app() populates, so a
test can build an app with its own settings and session factory.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from epets.core.config import Settings
from epets.services.accounts import AccountService
from epets.services.archive import ArchivedPetitionService
from epets.services.csv_export import ArchiveExporter


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the duration of the request."""
    async with request.app.state.session_factory() as session:
        yield session


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Templates = Annotated[Jinja2Templates, Depends(get_templates)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_archive_service(db: DbSession, settings: AppSettings) -> ArchivedPetitionService:
    return ArchivedPetitionService(db, per_page=settings.archive.per_page)


def get_archive_exporter(request: Request, settings: AppSettings) -> ArchiveExporter:
    """Exporter with its own session source, independent of the request session."""
    return ArchiveExporter(
        request.app.state.session_factory,
        tz=settings.tzinfo,
        batch_size=settings.archive.export_batch_size,
        chunk_rows=settings.archive.export_chunk_rows,
    )


async def get_account_service(db: DbSession, settings: AppSettings) -> AccountService:
    return AccountService(db, settings.auth)
