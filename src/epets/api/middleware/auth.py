"""Authentication middleware and the moderator guard.

This module provides:
- SessionAuthMiddleware: resolves the session cookie to a signed-in user
- optional_authenticated_user: FastAPI dependency returning that user
- classify_caller: sorts a caller into one of the guard outcomes
- require_signed_in / require_moderator: route guards that raise
  GuardRedirect exceptions, turned into redirects by ErrorHandlerMiddleware
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request
from starlette.middleware.base import BaseHTTPMiddleware

from epets.api.middleware.errors import AuthenticationRequired, PasswordResetRequired
from epets.db.models.base import AdminRole
from epets.services.session import SessionService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from contextlib import AbstractAsyncContextManager
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession
    from starlette.responses import Response

    from epets.db.models.session import AdminSession

logger = logging.getLogger(__name__)

MODERATOR_ROLES = frozenset({AdminRole.MODERATOR.value, AdminRole.SYSADMIN.value})

# Paths that never need the signed-in user
UNAUTHENTICATED_PREFIXES = ("/static/", "/health")


@dataclass(frozen=True)
class AuthenticatedUser:
    """The signed-in admin user for the current request.

    Attributes:
        principal_id: Admin user id
        email: Email address
        name: Display name
        role: Role name (moderator, sysadmin), None if unknown
        force_password_reset: Whether the user must change their password
        session_id: ID of the session the request authenticated with
        is_active: Whether the account is active
        ip_address: Request IP address
        user_agent: Request user agent
    """

    principal_id: int
    email: str = ""
    name: str = ""
    role: str | None = None
    force_password_reset: bool = False
    session_id: UUID | None = None
    is_active: bool = True
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_moderator(self) -> bool:
        return self.role in MODERATOR_ROLES


class CallerStatus(str, Enum):
    """Outcome of classifying a caller for a moderator page."""

    UNAUTHENTICATED = "unauthenticated"
    PASSWORD_RESET_REQUIRED = "password_reset_required"
    MODERATOR = "moderator"


def classify_caller(user: AuthenticatedUser | None) -> CallerStatus:
    """Classify a caller for a moderator page.

    Inactive users and users without a moderator-capable role count as
    unauthenticated.
    """
    if user is None or not user.is_active or not user.is_moderator:
        return CallerStatus.UNAUTHENTICATED
    if user.force_password_reset:
        return CallerStatus.PASSWORD_RESET_REQUIRED
    return CallerStatus.MODERATOR


def get_client_ip(request: Request) -> str | None:
    """Client IP address, honouring X-Forwarded-For from the proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Resolves the session cookie and sets request.state.user.

    The middleware does NOT block unauthenticated requests; that is handled
    by route-level guard dependencies, so the login page and health check
    work without modification.
    """

    def __init__(
        self,
        app: Any,
        *,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        cookie_name: str,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            session_factory: Returns an async context manager yielding a
                database session.
            cookie_name: Name of the session cookie.
        """
        super().__init__(app)
        self._session_factory = session_factory
        self._cookie_name = cookie_name

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request.state.user = None

        token = request.cookies.get(self._cookie_name)
        if token and not request.url.path.startswith(UNAUTHENTICATED_PREFIXES):
            try:
                request.state.user = await self._load_user(token, request)
            except Exception:
                # Treated as signed out; the guard decides what happens next
                logger.exception("Error validating session token")

        return await call_next(request)

    async def _load_user(self, token: str, request: Request) -> AuthenticatedUser | None:
        async with self._session_factory() as db:
            session = await SessionService(db).validate_session(token, update_activity=True)
            if session is None or not session.admin_user.is_active:
                return None
            user = build_authenticated_user(session, request)
            await db.commit()
        return user


def build_authenticated_user(session: AdminSession, request: Request) -> AuthenticatedUser:
    """Build the request user from a validated session."""
    admin_user = session.admin_user
    return AuthenticatedUser(
        principal_id=admin_user.id,
        email=admin_user.email,
        name=admin_user.pretty_name,
        role=admin_user.role.value if admin_user.role is not None else None,
        force_password_reset=admin_user.force_password_reset,
        session_id=session.session_id,
        is_active=admin_user.is_active,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


# ---------------------------------------------------------------------------
# FastAPI dependencies for route-level auth
# ---------------------------------------------------------------------------


async def optional_authenticated_user(request: Request) -> AuthenticatedUser | None:
    """Dependency that returns the signed-in user, or None."""
    return getattr(request.state, "user", None)


async def require_signed_in(
    request: Request,
    user: Annotated[AuthenticatedUser | None, Depends(optional_authenticated_user)],
) -> AuthenticatedUser:
    """Guard for pages any signed-in moderator may see, even mid password reset.

    Raises:
        AuthenticationRequired: If there is no signed-in moderator.
    """
    if classify_caller(user) is CallerStatus.UNAUTHENTICATED:
        raise AuthenticationRequired(request.app.state.settings.admin_url("login"))
    return user


async def require_moderator(
    request: Request,
    user: Annotated[AuthenticatedUser | None, Depends(optional_authenticated_user)],
) -> AuthenticatedUser:
    """Guard for moderator pages.

    Usage:
        router = APIRouter(dependencies=[Depends(require_moderator)])

    Raises:
        AuthenticationRequired: If there is no signed-in moderator.
        PasswordResetRequired: If the moderator must change their password.
    """
    settings = request.app.state.settings
    status = classify_caller(user)

    if status is CallerStatus.UNAUTHENTICATED:
        raise AuthenticationRequired(settings.admin_url("login"))
    if status is CallerStatus.PASSWORD_RESET_REQUIRED:
        raise PasswordResetRequired(settings.admin_url(f"profile/{user.principal_id}/edit"))
    return user
