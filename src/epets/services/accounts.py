"""Admin account service: sign-in checks and password changes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from epets.db.models.auth import AdminUser
from epets.services.passwords import hash_password, verify_password

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from epets.core.config import AuthSettings

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Base exception for account operations."""


class AuthenticationFailedError(AccountError):
    """Raised when an email/password pair does not identify an active user."""


class AccountLockedError(AuthenticationFailedError):
    """Raised when the account is locked after too many failed logins."""


class PasswordChangeError(AccountError):
    """Raised when a password change is rejected.

    Attributes:
        code: Machine-readable reason, also the i18n key suffix.
    """

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(code)


class AccountService:
    """Sign-in and password management for admin users."""

    def __init__(self, db_session: AsyncSession, auth_settings: AuthSettings) -> None:
        self._db = db_session
        self._settings = auth_settings

    async def get_user(self, user_id: int) -> AdminUser | None:
        """Load an admin user by id."""
        return await self._db.get(AdminUser, user_id)

    async def find_by_email(self, email: str) -> AdminUser | None:
        """Load an admin user by email address (case-insensitive)."""
        result = await self._db.execute(
            select(AdminUser).where(func.lower(AdminUser.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def authenticate(self, email: str, password: str) -> AdminUser:
        """Check credentials and record the outcome on the account.

        Args:
            email: Email address entered on the login form.
            password: Password entered on the login form.

        Returns:
            The signed-in user.

        Raises:
            AccountLockedError: If the account is locked.
            AuthenticationFailedError: If the credentials are wrong or the
                account is inactive.
        """
        user = await self.find_by_email(email)
        if user is None or not user.is_active:
            logger.info("Login failed: unknown or inactive account")
            raise AuthenticationFailedError("invalid_credentials")

        if user.is_locked:
            logger.warning("Login refused for locked account: admin_user_id=%s", user.id)
            raise AccountLockedError("account_locked")

        now = datetime.now(UTC)
        if not verify_password(password, user.password_hash):
            user.failed_login_count += 1
            if user.failed_login_count >= self._settings.max_failed_logins:
                user.locked_until = now + timedelta(minutes=self._settings.lockout_minutes)
                logger.warning(
                    "Account locked after %d failed logins: admin_user_id=%s",
                    user.failed_login_count,
                    user.id,
                )
            await self._db.flush()
            raise AuthenticationFailedError("invalid_credentials")

        user.failed_login_count = 0
        user.locked_until = None
        user.last_login_at = now
        await self._db.flush()

        logger.info(
            "Login succeeded",
            extra={"admin_user_id": user.id, "force_password_reset": user.force_password_reset},
        )
        return user

    async def change_password(
        self,
        user: AdminUser,
        *,
        current_password: str,
        password: str,
        password_confirmation: str,
    ) -> AdminUser:
        """Change a user's password and clear any forced reset.

        Raises:
            PasswordChangeError: With code current_password_invalid,
                password_too_short, password_mismatch or password_unchanged.
        """
        if not verify_password(current_password, user.password_hash):
            raise PasswordChangeError("current_password_invalid")
        if len(password) < self._settings.min_password_length:
            raise PasswordChangeError("password_too_short")
        if password != password_confirmation:
            raise PasswordChangeError("password_mismatch")
        if password == current_password:
            raise PasswordChangeError("password_unchanged")

        user.password_hash = hash_password(password)
        user.force_password_reset = False
        user.password_changed_at = datetime.now(UTC)
        await self._db.flush()

        logger.info("Password changed: admin_user_id=%s", user.id)
        return user
