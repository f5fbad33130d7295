"""Error handling middleware.

Two kinds of failure leave a request here:

- Guard outcomes (GuardRedirect): the caller is not allowed on the page and
  is sent somewhere else with a 302 to an absolute URL on the moderation host.
- Errors: converted to a consistent JSON structure with
  error, message, optional detail and the request_id for correlation.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from epets.api.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


class GuardRedirect(Exception):
    """Base class for guard outcomes that end the request with a redirect.

    Attributes:
        location: Absolute URL to redirect to.
    """

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(location)


class AuthenticationRequired(GuardRedirect):
    """No signed-in moderator: go to the login page."""


class PasswordResetRequired(GuardRedirect):
    """Signed in but must change password first: go to the profile edit page."""


class APIError(Exception):
    """Base exception for errors with structured details."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 400,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            error: Machine-readable error code (e.g., "validation_error").
            message: Human-readable error description.
            status_code: HTTP status code to return.
            detail: Optional additional details for debugging.
        """
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error: Machine-readable error code.
        message: Human-readable description.
        status_code: HTTP status code.
        detail: Optional additional details.

    Returns:
        JSONResponse with consistent error structure.
    """
    body: dict[str, Any] = {
        "error": error,
        "message": message,
    }

    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    if detail:
        body["detail"] = detail

    return JSONResponse(status_code=status_code, content=body)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catches exceptions raised while handling a request.

    Handles:
    - GuardRedirect: 302 to the exception's location
    - APIError and subclasses: custom application errors
    - HTTPException: FastAPI's built-in HTTP errors
    - ValidationError: Pydantic validation failures
    - Generic exceptions: unexpected errors (logged, returns 500)

    Errors raised after a streamed response has started are not caught
    here; they abort the connection instead.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except GuardRedirect as exc:
            logger.debug(
                "Guard redirect for %s %s -> %s",
                request.method,
                request.url.path,
                exc.location,
            )
            return RedirectResponse(url=exc.location, status_code=302)
        except APIError as exc:
            return build_error_response(
                error=exc.error,
                message=exc.message,
                status_code=exc.status_code,
                detail=exc.detail,
            )
        except HTTPException as exc:
            return build_error_response(
                error="http_error",
                message=str(exc.detail),
                status_code=exc.status_code,
            )
        except ValidationError as exc:
            return build_error_response(
                error="validation_error",
                message="Request validation failed",
                status_code=422,
                detail={"errors": exc.errors()},
            )
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_error_response(
                error="internal_error",
                message="An internal error occurred",
                status_code=500,
            )
