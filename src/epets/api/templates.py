"""Jinja2 template configuration for the moderation pages.

This module provides:
- Jinja2 environment configuration (filters and globals)
- The common template context: signed-in user, flash messages, language
  and a per-request translator
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from epets.api.flash import pop_flashes
from epets.api.i18n import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    create_translator,
    get_available_languages,
    get_language,
    get_language_context,
    get_state_label,
)

if TYPE_CHECKING:
    from starlette.requests import Request

logger = logging.getLogger(__name__)

# Templates are in src/epets/templates/
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

DISPLAY_TIME_ZONE = "Europe/London"


def get_templates() -> Jinja2Templates:
    """Create and configure the Jinja2 templates instance.

    Raises:
        RuntimeError: If the templates directory does not exist.
    """
    if not TEMPLATES_DIR.exists():
        msg = f"Templates directory not found: {TEMPLATES_DIR}"
        raise RuntimeError(msg)

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    _configure_jinja_environment(templates)

    logger.info("Jinja2 templates configured from %s", TEMPLATES_DIR)
    return templates


def _configure_jinja_environment(templates: Jinja2Templates) -> None:
    env = templates.env

    env.filters["format_date"] = format_date
    env.filters["format_datetime"] = format_datetime
    env.filters["format_number"] = format_number

    env.globals["supported_languages"] = list(SUPPORTED_LANGUAGES)
    env.globals["default_language"] = DEFAULT_LANGUAGE
    env.globals["get_available_languages"] = get_available_languages
    env.globals["get_state_label"] = get_state_label


def _localize(value: datetime, time_zone: str) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(ZoneInfo(time_zone))


def format_date(
    value: datetime | None,
    time_zone: str = DISPLAY_TIME_ZONE,
    format_str: str = "%d %B %Y",
) -> str:
    """Format a timestamp as a date in the display time zone."""
    if value is None:
        return ""
    return _localize(value, time_zone).strftime(format_str)


def format_datetime(
    value: datetime | None,
    time_zone: str = DISPLAY_TIME_ZONE,
    format_str: str = "%d %B %Y %H:%M",
) -> str:
    """Format a timestamp in the display time zone.

    Args:
        value: Timestamp, naive values are taken to be UTC.
        time_zone: IANA time zone name.
        format_str: The strftime format string.

    Returns:
        Formatted string, or empty string if value is None.
    """
    if value is None:
        return ""
    return _localize(value, time_zone).strftime(format_str)


def format_number(value: int | None) -> str:
    """Format a count with thousands separators (e.g. 1,234,567)."""
    if value is None:
        return ""
    return f"{value:,}"


def build_template_context(request: Request, **extra_context: Any) -> dict[str, Any]:
    """Build the template context with common data.

    The base context includes:
    - request: The Starlette request object (required by Jinja2Templates)
    - user: The signed-in user, if any (set by the auth middleware)
    - flashes: Flash messages queued by the previous request, now consumed
    - lang, lang_context, available_languages and the _ translator
    - time_zone: Display time zone from settings
    - active_page: For navigation highlighting

    Args:
        request: The Starlette request object.
        **extra_context: Additional context variables to include.

    Returns:
        Dictionary suitable for passing to TemplateResponse.
    """
    user = getattr(request.state, "user", None)
    settings = getattr(request.app.state, "settings", None)

    lang = get_language(request)

    context: dict[str, Any] = {
        "request": request,
        "user": user,
        "flashes": pop_flashes(request),
        "app_name": settings.app_name if settings is not None else "",
        "time_zone": settings.time_zone if settings is not None else DISPLAY_TIME_ZONE,
        "current_year": datetime.now(UTC).year,
        "lang": lang,
        "lang_context": get_language_context(lang),
        "available_languages": get_available_languages(),
        "_": create_translator(lang),
        "active_page": extra_context.pop("active_page", None),
    }

    context.update(extra_context)

    return context
