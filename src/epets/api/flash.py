"""One-shot flash messages carried across a redirect.

Messages live in the signed cookie session provided by Starlette's
SessionMiddleware, keyed by category ("notice" or "alert"). Reading them
removes them, so a message is shown on exactly one page.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.requests import Request

FLASH_SESSION_KEY = "flash"

NOTICE = "notice"
ALERT = "alert"


def flash(request: Request, category: str, message: str) -> None:
    """Queue a message for the next rendered page."""
    messages = dict(request.session.get(FLASH_SESSION_KEY, {}))
    messages[category] = message
    request.session[FLASH_SESSION_KEY] = messages


def pop_flashes(request: Request) -> dict[str, str]:
    """Return and clear queued messages.

    Returns an empty dict when the request has no cookie session.
    """
    if "session" not in request.scope:
        return {}
    return request.session.pop(FLASH_SESSION_KEY, {})
