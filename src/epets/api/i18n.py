"""Internationalization (i18n) for the moderation pages.

English is the working language of the moderation team; Welsh is carried
because petitions are published bilingually and moderators can switch the
interface to check wording.

Features:
- Language detection from ?lang=xx, the lang cookie and Accept-Language
- JSON-based translations loaded from the locales/ directory
- Nested key access (e.g., "archive.not_found")
- Fallback to English, then to the key name, if a translation is missing
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.requests import Request

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "cy")
DEFAULT_LANGUAGE = "en"

LOCALES_DIR = Path(__file__).parent.parent / "locales"

_translations_cache: dict[str, dict[str, Any]] = {}


def _load_translations(lang: str) -> dict[str, Any]:
    """Load translations from the JSON file for a language.

    Args:
        lang: Two-letter language code.

    Returns:
        Translation dictionary with nested structure.
    """
    if lang in _translations_cache:
        return _translations_cache[lang]

    locale_file = LOCALES_DIR / f"{lang}.json"
    if not locale_file.exists():
        logger.warning("Locale file not found: %s", locale_file)
        return {}

    try:
        with locale_file.open("r", encoding="utf-8") as f:
            translations = json.load(f)
            _translations_cache[lang] = translations
            return translations
    except (json.JSONDecodeError, OSError) as e:
        logger.error("Failed to load locale file %s: %s", locale_file, e)
        return {}


def _get_nested_value(data: dict[str, Any], key: str) -> str | None:
    parts = key.split(".")
    current = data
    for part in parts:
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current if isinstance(current, str) else None


def _flatten_translations(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    result: dict[str, str] = {}
    for key, value in data.items():
        if key.startswith("_"):
            continue
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            result.update(_flatten_translations(value, full_key))
        elif isinstance(value, str):
            result[full_key] = value
    return result


def reload_translations() -> None:
    """Clear the translation cache, forcing a reload on next access."""
    _translations_cache.clear()


def get_all_translation_keys(lang: str = DEFAULT_LANGUAGE) -> set[str]:
    """Get all available translation keys for a language, in dot notation."""
    return set(_flatten_translations(_load_translations(lang)).keys())


@dataclass
class LanguageContext:
    """Language metadata for template rendering.

    Attributes:
        code: Two-letter language code (en, cy).
        name: Display name in the language itself.
        name_english: Display name in English.
    """

    code: str
    name: str
    name_english: str


LANGUAGE_INFO: dict[str, LanguageContext] = {
    "en": LanguageContext(code="en", name="English", name_english="English"),
    "cy": LanguageContext(code="cy", name="Cymraeg", name_english="Welsh"),
}


def get_language(request: Request) -> str:
    """Determine the preferred language from the request.

    Priority order:
    1. Query parameter: ?lang=xx
    2. Cookie: lang=xx
    3. Accept-Language header
    4. Default language (English)

    Args:
        request: The Starlette request object.

    Returns:
        Two-letter language code.
    """
    lang = request.query_params.get("lang")
    if lang in SUPPORTED_LANGUAGES:
        return lang

    lang = request.cookies.get("lang")
    if lang in SUPPORTED_LANGUAGES:
        return lang

    accept_lang = request.headers.get("Accept-Language", "")
    for lang_part in accept_lang.split(","):
        # "cy-GB;q=0.9" -> "cy"
        lang_code = lang_part.split(";")[0].strip()
        lang_code = lang_code.split("-")[0].lower()
        if lang_code in SUPPORTED_LANGUAGES:
            return lang_code

    return DEFAULT_LANGUAGE


def get_language_context(lang: str) -> LanguageContext:
    return LANGUAGE_INFO.get(lang, LANGUAGE_INFO[DEFAULT_LANGUAGE])


def get_available_languages() -> list[LanguageContext]:
    return [LANGUAGE_INFO[lang] for lang in SUPPORTED_LANGUAGES]


def translate(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs: Any) -> str:
    """Translate a key to the specified language.

    Args:
        key: Translation key in dot notation (e.g., "archive.not_found").
        lang: Target language code.
        **kwargs: Variables to interpolate into the translation.

    Returns:
        Translated string, or the key itself if not found.

    Example:
        >>> translate("archive.not_found", "en", id="999999")
        "Sorry, we couldn't find petition 999999"
    """
    translations = _load_translations(lang)
    value = _get_nested_value(translations, key)

    if value is None and lang != DEFAULT_LANGUAGE:
        translations = _load_translations(DEFAULT_LANGUAGE)
        value = _get_nested_value(translations, key)

    if value is None:
        logger.debug("Missing translation for key '%s' in language '%s'", key, lang)
        return key

    if kwargs:
        try:
            return value.format(**kwargs)
        except KeyError as e:
            logger.warning("Missing interpolation variable %s for key '%s'", e, key)
            return value

    return value


def create_translator(lang: str) -> Callable[..., str]:
    """Create a translation function bound to a specific language.

    Templates receive this as ``_`` in their context.

    Example:
        >>> _ = create_translator("cy")
        >>> _("nav.sign_out")
        "Allgofnodi"
    """

    def _translate(key: str, **kwargs: Any) -> str:
        return translate(key, lang, **kwargs)

    return _translate


def get_state_label(state: str, lang: str = DEFAULT_LANGUAGE) -> str:
    """Translated label for an archived petition state."""
    return translate(f"states.{state}", lang)


def _preload_translations() -> None:
    for lang in SUPPORTED_LANGUAGES:
        _load_translations(lang)


_preload_translations()
