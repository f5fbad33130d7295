"""Tests for admin sign-in checks and password changes."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from epets.core.config import AuthSettings
from epets.services.accounts import (
    AccountLockedError,
    AccountService,
    AuthenticationFailedError,
    PasswordChangeError,
)
from epets.services.passwords import verify_password
from tests.conftest import make_db_session
from tests.factories import TEST_PASSWORD, create_admin_user

NEW_PASSWORD = "a much better password"


def _service_finding(user, **auth):
    db = make_db_session()
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db.execute.return_value = result
    return AccountService(db, AuthSettings(**auth)), db


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        user = create_admin_user(failed_login_count=3)
        service, db = _service_finding(user)

        assert await service.authenticate("Moderator@Petition.Parliament.uk ", TEST_PASSWORD) is user

        assert user.failed_login_count == 0
        assert user.last_login_at is not None
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_email(self):
        service, _ = _service_finding(None)

        with pytest.raises(AuthenticationFailedError):
            await service.authenticate("nobody@example.com", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_inactive_account(self):
        service, _ = _service_finding(create_admin_user(is_active=False))

        with pytest.raises(AuthenticationFailedError) as exc_info:
            await service.authenticate("moderator@petition.parliament.uk", TEST_PASSWORD)
        assert not isinstance(exc_info.value, AccountLockedError)

    @pytest.mark.asyncio
    async def test_wrong_password_counts_failure(self):
        user = create_admin_user()
        service, db = _service_finding(user)

        with pytest.raises(AuthenticationFailedError):
            await service.authenticate("moderator@petition.parliament.uk", "wrong")

        assert user.failed_login_count == 1
        assert user.locked_until is None
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_locks_after_max_failures(self):
        user = create_admin_user(failed_login_count=4)
        service, _ = _service_finding(user, max_failed_logins=5, lockout_minutes=30)

        with pytest.raises(AuthenticationFailedError):
            await service.authenticate("moderator@petition.parliament.uk", "wrong")

        assert user.is_locked
        assert user.locked_until > datetime.now(UTC) + timedelta(minutes=29)

    @pytest.mark.asyncio
    async def test_locked_account_refuses_correct_password(self):
        user = create_admin_user(locked_until=datetime.now(UTC) + timedelta(minutes=5))
        service, _ = _service_finding(user)

        with pytest.raises(AccountLockedError):
            await service.authenticate("moderator@petition.parliament.uk", TEST_PASSWORD)

    @pytest.mark.asyncio
    async def test_expired_lock_allows_sign_in(self):
        user = create_admin_user(locked_until=datetime.now(UTC) - timedelta(minutes=1))
        service, _ = _service_finding(user)

        assert await service.authenticate("moderator@petition.parliament.uk", TEST_PASSWORD) is user
        assert user.locked_until is None


class TestChangePassword:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("current", "new", "confirmation", "code"),
        [
            ("wrong", NEW_PASSWORD, NEW_PASSWORD, "current_password_invalid"),
            (TEST_PASSWORD, "short", "short", "password_too_short"),
            (TEST_PASSWORD, NEW_PASSWORD, NEW_PASSWORD + "!", "password_mismatch"),
            (TEST_PASSWORD, TEST_PASSWORD, TEST_PASSWORD, "password_unchanged"),
        ],
    )
    async def test_rejections(self, current, new, confirmation, code):
        user = create_admin_user(force_password_reset=True)
        service, db = _service_finding(user)

        with pytest.raises(PasswordChangeError) as exc_info:
            await service.change_password(
                user, current_password=current, password=new, password_confirmation=confirmation
            )

        assert exc_info.value.code == code
        assert user.force_password_reset
        db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_clears_forced_reset(self):
        user = create_admin_user(force_password_reset=True)
        service, db = _service_finding(user)

        await service.change_password(
            user,
            current_password=TEST_PASSWORD,
            password=NEW_PASSWORD,
            password_confirmation=NEW_PASSWORD,
        )

        assert not user.force_password_reset
        assert user.password_changed_at is not None
        assert verify_password(NEW_PASSWORD, user.password_hash)
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_user(self):
        db = make_db_session()
        user = create_admin_user(user_id=9)
        db.get.return_value = user

        assert await AccountService(db, AuthSettings()).get_user(9) is user
