"""Admin session management service.

This module provides session management for signed-in moderators:
- Secure session token generation
- Database-backed session storage (only token hashes are stored)
- Session validation and expiration
- Session revocation (logout, password change)
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update

from epets.db.models.session import AdminSession

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_DURATION_HOURS = 12
SESSION_TOKEN_BYTES = 32  # 256 bits of entropy


@dataclass(frozen=True, slots=True)
class SessionToken:
    """A newly issued session token.

    Attributes:
        session_id: UUID of the session record
        access_token: The token to place in the session cookie
        expires_at: When the session expires
    """

    session_id: UUID
    access_token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    """Information about the client creating a session."""

    ip_address: str | None = None
    user_agent: str | None = None


class SessionService:
    """Service for managing admin sessions.

    Example:
        service = SessionService(db)

        token = await service.create_session(
            admin_user_id=user.id,
            device_info=DeviceInfo(ip_address="192.168.1.1"),
        )

        session = await service.validate_session(token.access_token)
        if session:
            print(f"Signed in as {session.admin_user.email}")

        await service.revoke_session(session.session_id, reason="logout")
    """

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        session_duration_hours: int = DEFAULT_SESSION_DURATION_HOURS,
    ) -> None:
        """Initialize the session service.

        Args:
            db_session: SQLAlchemy async session for database operations.
            session_duration_hours: How long a session stays valid.
        """
        self._db = db_session
        self._session_duration = timedelta(hours=session_duration_hours)

    async def create_session(
        self,
        *,
        admin_user_id: int,
        device_info: DeviceInfo | None = None,
    ) -> SessionToken:
        """Create a new session for an admin user.

        Args:
            admin_user_id: ID of the admin user signing in.
            device_info: Optional device information for security tracking.

        Returns:
            SessionToken with the plain token for the cookie.
        """
        access_token = self._generate_token()
        now = datetime.now(UTC)
        expires_at = now + self._session_duration
        device = device_info or DeviceInfo()

        session = AdminSession(
            token_hash=self.hash_token(access_token),
            admin_user_id=admin_user_id,
            is_active=True,
            expires_at=expires_at,
            last_activity_at=now,
            ip_address=device.ip_address,
            user_agent=device.user_agent,
        )

        self._db.add(session)
        await self._db.flush()

        logger.info(
            "Session created: session_id=%s, admin_user_id=%s",
            session.session_id,
            admin_user_id,
        )

        return SessionToken(
            session_id=session.session_id,
            access_token=access_token,
            expires_at=expires_at,
        )

    async def validate_session(
        self,
        token: str,
        *,
        update_activity: bool = True,
    ) -> AdminSession | None:
        """Validate a session token and return the session if valid.

        The token is looked up by its hash, so the comparison never touches
        the plain token.

        Args:
            token: The token from the session cookie.
            update_activity: Whether to update the last_activity_at timestamp.

        Returns:
            The AdminSession (with admin_user loaded) if valid, None otherwise.
        """
        result = await self._db.execute(
            select(AdminSession).where(AdminSession.token_hash == self.hash_token(token))
        )
        session = result.scalar_one_or_none()

        if session is None:
            logger.debug("Session validation failed: token not found")
            return None

        if not session.is_valid:
            logger.debug(
                "Session validation failed: active=%s expired=%s revoked=%s",
                session.is_active,
                session.is_expired,
                session.is_revoked,
            )
            return None

        if update_activity:
            now = datetime.now(UTC)
            await self._db.execute(
                update(AdminSession)
                .where(AdminSession.session_id == session.session_id)
                .values(last_activity_at=now, updated_at=now)
            )

        return session

    async def revoke_session(self, session_id: UUID, *, reason: str | None = None) -> bool:
        """Revoke a specific session.

        Args:
            session_id: ID of the session to revoke.
            reason: Reason for revocation (for audit).

        Returns:
            True if the session was revoked, False if not found or already revoked.
        """
        now = datetime.now(UTC)
        result = await self._db.execute(
            update(AdminSession)
            .where(AdminSession.session_id == session_id)
            .where(AdminSession.revoked_at.is_(None))
            .values(
                is_active=False,
                revoked_at=now,
                revocation_reason=reason,
                updated_at=now,
            )
        )

        if result.rowcount > 0:
            logger.info("Session revoked: session_id=%s, reason=%s", session_id, reason)
            return True

        return False

    async def revoke_all_user_sessions(
        self,
        admin_user_id: int,
        *,
        except_session_id: UUID | None = None,
        reason: str | None = None,
    ) -> int:
        """Revoke every active session of a user.

        Args:
            admin_user_id: The user whose sessions to revoke.
            except_session_id: A session to keep (usually the current one).
            reason: Reason for revocation (for audit).

        Returns:
            Number of sessions revoked.
        """
        now = datetime.now(UTC)
        stmt = (
            update(AdminSession)
            .where(AdminSession.admin_user_id == admin_user_id)
            .where(AdminSession.revoked_at.is_(None))
        )
        if except_session_id is not None:
            stmt = stmt.where(AdminSession.session_id != except_session_id)

        result = await self._db.execute(
            stmt.values(is_active=False, revoked_at=now, revocation_reason=reason, updated_at=now)
        )

        count = result.rowcount
        if count > 0:
            logger.info(
                "Revoked %d sessions for admin_user_id=%s, reason=%s",
                count,
                admin_user_id,
                reason,
            )
        return count

    async def cleanup_expired_sessions(self, *, older_than_days: int = 7) -> int:
        """Delete sessions that expired more than older_than_days ago.

        Returns:
            Number of sessions deleted.
        """
        cutoff = datetime.now(UTC) - timedelta(days=older_than_days)
        result = await self._db.execute(delete(AdminSession).where(AdminSession.expires_at < cutoff))

        count = result.rowcount
        if count > 0:
            logger.info("Cleaned up %d expired sessions older than %d days", count, older_than_days)

        return count

    def _generate_token(self) -> str:
        """Generate a URL-safe random token."""
        return secrets.token_urlsafe(SESSION_TOKEN_BYTES)

    @staticmethod
    def hash_token(token: str) -> str:
        """Hex-encoded SHA-256 of a token, as stored in the database."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
