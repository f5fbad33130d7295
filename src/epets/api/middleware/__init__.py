"""API middleware components."""

from epets.api.middleware.auth import (
    AuthenticatedUser,
    CallerStatus,
    SessionAuthMiddleware,
    classify_caller,
    optional_authenticated_user,
    require_moderator,
    require_signed_in,
)
from epets.api.middleware.errors import (
    APIError,
    AuthenticationRequired,
    ErrorHandlerMiddleware,
    GuardRedirect,
    PasswordResetRequired,
)
from epets.api.middleware.request_id import RequestIDMiddleware, get_request_id

__all__ = [
    "APIError",
    "AuthenticatedUser",
    "AuthenticationRequired",
    "CallerStatus",
    "ErrorHandlerMiddleware",
    "GuardRedirect",
    "PasswordResetRequired",
    "RequestIDMiddleware",
    "SessionAuthMiddleware",
    "classify_caller",
    "get_request_id",
    "optional_authenticated_user",
    "require_moderator",
    "require_signed_in",
]
