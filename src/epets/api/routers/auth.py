"""Sign-in, sign-out and password change pages.

- GET /admin/login - login form
- POST /admin/login - check credentials, create a session, set the cookie
- GET /admin/logout - revoke the session and clear the cookie
- GET /admin/profile/{user_id}/edit - change password form
- POST /admin/profile/{user_id} - change password
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from epets.api.dependencies import (
    AppSettings,
    DbSession,
    Templates,
    get_account_service,
)
from epets.api.flash import ALERT, NOTICE, flash
from epets.api.i18n import get_language, translate
from epets.api.middleware.auth import (
    AuthenticatedUser,
    CallerStatus,
    classify_caller,
    get_client_ip,
    optional_authenticated_user,
    require_signed_in,
)
from epets.api.templates import build_template_context
from epets.core.config import Settings
from epets.services.accounts import (
    AccountLockedError,
    AccountService,
    AuthenticationFailedError,
    PasswordChangeError,
)
from epets.services.session import DeviceInfo, SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["auth"])

CurrentUser = Annotated[AuthenticatedUser | None, Depends(optional_authenticated_user)]
SignedInUser = Annotated[AuthenticatedUser, Depends(require_signed_in)]
Accounts = Annotated[AccountService, Depends(get_account_service)]


def _landing_url(settings: Settings, user_id: int, force_password_reset: bool) -> str:
    if force_password_reset:
        return settings.admin_url(f"profile/{user_id}/edit")
    return settings.admin_url()


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    """Set the session cookie.

    - httponly: not readable from JavaScript
    - samesite=lax: not sent on cross-site POSTs
    - secure: HTTPS only, from settings
    """
    response.set_cookie(
        key=settings.auth.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.auth.cookie_secure,
        max_age=settings.auth.session_duration_hours * 3600,
        path="/",
    )


@router.get("/login", response_class=HTMLResponse)
async def login_form(
    request: Request,
    user: CurrentUser,
    settings: AppSettings,
    templates: Templates,
) -> Response:
    """Render the login page; signed-in moderators go to the dashboard."""
    if classify_caller(user) is not CallerStatus.UNAUTHENTICATED:
        return RedirectResponse(url=settings.admin_url(), status_code=302)

    context = build_template_context(request, active_page="login", email="")
    return templates.TemplateResponse(request, "admin/login.html", context)


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    settings: AppSettings,
    templates: Templates,
    db: DbSession,
    accounts: Accounts,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
) -> Response:
    """Check credentials and start a session.

    A failed attempt re-renders the form with an alert; the failure count
    is committed so repeated attempts lock the account.
    """
    lang = get_language(request)

    try:
        admin_user = await accounts.authenticate(email, password)
    except AuthenticationFailedError as exc:
        await db.commit()
        key = "auth.invalid_credentials"
        if isinstance(exc, AccountLockedError):
            key = "auth.account_locked"
        context = build_template_context(
            request,
            active_page="login",
            email=email,
            login_error=translate(key, lang),
        )
        return templates.TemplateResponse(request, "admin/login.html", context)

    sessions = SessionService(db, session_duration_hours=settings.auth.session_duration_hours)
    token = await sessions.create_session(
        admin_user_id=admin_user.id,
        device_info=DeviceInfo(
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        ),
    )
    await db.commit()

    response = RedirectResponse(
        url=_landing_url(settings, admin_user.id, admin_user.force_password_reset),
        status_code=302,
    )
    _set_session_cookie(response, settings, token.access_token)
    return response


@router.get("/logout")
async def logout(
    request: Request,
    user: CurrentUser,
    settings: AppSettings,
    db: DbSession,
) -> RedirectResponse:
    """Revoke the current session and clear the cookie."""
    if user is not None and user.session_id is not None:
        await SessionService(db).revoke_session(user.session_id, reason="logout")
        await db.commit()
        flash(request, NOTICE, translate("auth.signed_out", get_language(request)))

    response = RedirectResponse(url=settings.admin_url("login"), status_code=302)
    response.delete_cookie(settings.auth.session_cookie_name, path="/")
    return response


def _render_profile(
    request: Request,
    templates: Templates,
    user: AuthenticatedUser,
    settings: Settings,
    error: str | None = None,
) -> Response:
    context = build_template_context(
        request,
        active_page="profile",
        user=user,
        profile_error=error,
        min_password_length=settings.auth.min_password_length,
    )
    return templates.TemplateResponse(request, "admin/profile/edit.html", context)


@router.get("/profile/{user_id}/edit", response_class=HTMLResponse)
async def edit_profile(
    request: Request,
    user_id: int,
    user: SignedInUser,
    settings: AppSettings,
    templates: Templates,
) -> Response:
    """Render the change password form for the signed-in user."""
    if user_id != user.principal_id:
        return RedirectResponse(url=settings.admin_url(), status_code=302)

    return _render_profile(request, templates, user, settings)


@router.post("/profile/{user_id}", response_class=HTMLResponse)
async def update_profile(
    request: Request,
    user_id: int,
    user: SignedInUser,
    settings: AppSettings,
    templates: Templates,
    db: DbSession,
    accounts: Accounts,
    current_password: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    password_confirmation: Annotated[str, Form()] = "",
) -> Response:
    """Change the signed-in user's password.

    On success the forced reset is cleared, every other session of the
    user is revoked and the user lands on the dashboard with a notice.
    """
    if user_id != user.principal_id:
        return RedirectResponse(url=settings.admin_url(), status_code=302)

    lang = get_language(request)
    admin_user = await accounts.get_user(user.principal_id)
    if admin_user is None:
        flash(request, ALERT, translate("auth.invalid_credentials", lang))
        return RedirectResponse(url=settings.admin_url("login"), status_code=302)

    try:
        await accounts.change_password(
            admin_user,
            current_password=current_password,
            password=password,
            password_confirmation=password_confirmation,
        )
    except PasswordChangeError as exc:
        error = translate(
            f"profile.errors.{exc.code}",
            lang,
            length=settings.auth.min_password_length,
        )
        return _render_profile(request, templates, user, settings, error=error)

    await SessionService(db).revoke_all_user_sessions(
        admin_user.id,
        except_session_id=user.session_id,
        reason="password_changed",
    )
    await db.commit()

    flash(request, NOTICE, translate("profile.updated", lang))
    return RedirectResponse(url=settings.admin_url(), status_code=302)
