"""Admin user accounts.

Moderators and sysadmins sign in to the moderation host with an email
address and password.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from epets.db.models.base import (
    AdminRole,
    Base,
    OptionalTimestampTZ,
    TimestampTZ,
)


class AdminUser(Base):
    """Administrative user account.

    The integer id is public: it appears in profile URLs such as
    /admin/profile/42/edit.
    """

    __tablename__ = "admin_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    role: Mapped[AdminRole] = mapped_column(
        Enum(AdminRole, name="admin_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AdminRole.MODERATOR,
    )

    # PBKDF2 hash, see epets.services.passwords
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Set for new accounts and after an admin reset; cleared by a password change
    force_password_reset: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[OptionalTimestampTZ]
    password_changed_at: Mapped[OptionalTimestampTZ]

    # Account lockout
    failed_login_count: Mapped[int] = mapped_column(default=0, nullable=False)
    locked_until: Mapped[OptionalTimestampTZ]

    @property
    def pretty_name(self) -> str:
        """Name as shown in the admin header."""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_locked(self) -> bool:
        """Whether the account is currently locked out."""
        return self.locked_until is not None and datetime.now(UTC) < self.locked_until

    @property
    def can_moderate(self) -> bool:
        """Whether the user may use the moderation pages."""
        return self.role in (AdminRole.MODERATOR, AdminRole.SYSADMIN)
