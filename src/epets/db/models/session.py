"""Admin session model.

Sessions are database-backed for:
- Multi-device support (a moderator can be signed in on several devices)
- Session revocation (logout, password change)
- Session expiration
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import INET
from sqlalchemy.orm import Mapped, mapped_column, relationship

from epets.db.models.auth import AdminUser
from epets.db.models.base import (
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
)


class AdminSession(Base):
    """Signed-in session for an admin user.

    Session tokens are cryptographically random and stored as hashes
    to prevent exposure even if the database is compromised.
    """

    __tablename__ = "admin_sessions"

    session_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    # SHA-256 of the token handed to the browser
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    admin_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("admin_users.id", ondelete="CASCADE"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[TimestampTZ]
    last_activity_at: Mapped[TimestampTZ]

    ip_address: Mapped[str | None] = mapped_column(INET, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    revoked_at: Mapped[OptionalTimestampTZ]
    revocation_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    admin_user: Mapped[AdminUser] = relationship(
        AdminUser,
        foreign_keys=[admin_user_id],
        lazy="joined",
    )

    __table_args__ = (
        Index("ix_admin_sessions_admin_user_id", "admin_user_id"),
        Index("ix_admin_sessions_expires_at", "expires_at"),
    )

    @property
    def is_expired(self) -> bool:
        """Check if the session has expired."""
        return datetime.now(UTC) > self.expires_at

    @property
    def is_revoked(self) -> bool:
        """Check if the session has been revoked."""
        return self.revoked_at is not None

    @property
    def is_valid(self) -> bool:
        """Check if the session is still valid for use."""
        return self.is_active and not self.is_expired and not self.is_revoked
