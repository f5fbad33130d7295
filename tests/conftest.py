"""Pytest configuration and shared fixtures.

No database is needed: each test builds an application with explicit
settings and a stub session factory, then overrides the dependencies it
exercises (the signed-in user, the archive service, the exporter).
"""

from collections.abc import AsyncGenerator, AsyncIterator, Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from epets.api import create_app
from epets.api.dependencies import get_archive_exporter, get_archive_service
from epets.api.middleware.auth import AuthenticatedUser, optional_authenticated_user
from epets.core.config import Settings
from epets.core.settings import clear_settings_cache
from epets.services.archive import ArchivedPetitionService, Page
from epets.services.csv_export import ArchiveExporter
from tests.factories import create_archived_petition, create_authenticated_user

MODERATE_URL = "https://moderate.petition.parliament.uk"


# ---------------------------------------------------------------------------
# Database stand-ins
# ---------------------------------------------------------------------------
async def _iterate(rows):
    for row in rows:
        yield row


class StreamingSessionStub:
    """Minimal AsyncSession stand-in for server-side cursor reads."""

    def __init__(self, rows=()) -> None:
        self.rows = list(rows)
        self.statements = []

    async def stream_scalars(self, statement):
        self.statements.append(statement)
        return _iterate(self.rows)


def session_factory_for(session):
    """Wrap a session object in an async context manager factory."""

    @asynccontextmanager
    async def factory() -> AsyncIterator:
        yield session

    return factory


def make_db_session() -> AsyncMock:
    """AsyncMock database session; add() is synchronous on AsyncSession."""
    db = AsyncMock()
    db.add = MagicMock()
    return db


# ---------------------------------------------------------------------------
# Settings and application
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Clear the cached settings before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Explicit settings for one test run."""
    return Settings(moderate_url=MODERATE_URL, time_zone="Europe/London")


@pytest.fixture
def db_session() -> AsyncMock:
    return make_db_session()


@pytest.fixture
def test_app(
    settings: Settings,
    db_session: AsyncMock,
    archive_service: AsyncMock,
    exporter: ArchiveExporter,
) -> Generator[FastAPI, None, None]:
    """Create a test application that never touches a real database.

    The archive dependencies are routed to the in-memory stubs.
    """
    app = create_app(settings, session_factory=session_factory_for(db_session))
    app.dependency_overrides[get_archive_service] = lambda: archive_service
    app.dependency_overrides[get_archive_exporter] = lambda: exporter
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def api_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client on the moderation host, redirects not followed."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url=MODERATE_URL) as client:
        yield client


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """Synchronous client; responses expose the rendered template."""
    return TestClient(test_app, base_url=MODERATE_URL, follow_redirects=False)


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------
def sign_in(app: FastAPI, user: AuthenticatedUser | None) -> None:
    """Make every request on app resolve to user."""
    app.dependency_overrides[optional_authenticated_user] = lambda: user


@pytest.fixture
def moderator() -> AuthenticatedUser:
    return create_authenticated_user(principal_id=7)


@pytest.fixture
def password_reset_user() -> AuthenticatedUser:
    return create_authenticated_user(principal_id=42, force_password_reset=True)


@pytest.fixture
def signed_in_app(test_app: FastAPI, moderator: AuthenticatedUser) -> FastAPI:
    sign_in(test_app, moderator)
    return test_app


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------
@pytest.fixture
def petitions() -> list:
    return [
        create_archived_petition(100002, "Hold a referendum on the voting age"),
        create_archived_petition(100001, "Ban the sale of fireworks to the public"),
        create_archived_petition(100000),
    ]


@pytest.fixture
def archive_service(petitions) -> AsyncMock:
    """Archive service stub: knows petitions, resolves nothing by default."""
    service = AsyncMock(spec=ArchivedPetitionService)
    service.per_page = 50
    service.resolve_id.return_value = None
    service.search.return_value = Page(items=petitions, page=1, per_page=50, total=len(petitions))
    by_id = {str(p.id): p for p in petitions}
    service.find.side_effect = lambda petition_id: by_id.get(str(petition_id))
    return service


@pytest.fixture
def exporter(settings: Settings, petitions) -> ArchiveExporter:
    """Exporter reading rows from an in-memory session."""
    rows = sorted(petitions, key=lambda p: p.id)
    return ArchiveExporter(
        session_factory_for(StreamingSessionStub(rows)),
        tz=settings.tzinfo,
        batch_size=settings.archive.export_batch_size,
        chunk_rows=settings.archive.export_chunk_rows,
    )

