"""Core module.

Shared components used across the service:
- Configuration management
- Cached settings accessor
"""

from epets.core.config import (
    ArchiveSettings,
    AuthSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    Settings,
    validate_settings,
)
from epets.core.settings import clear_settings_cache, get_settings

__all__ = [
    "ArchiveSettings",
    "AuthSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "Settings",
    "clear_settings_cache",
    "get_settings",
    "validate_settings",
]
