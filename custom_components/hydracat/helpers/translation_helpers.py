# File: helpers/translation_helpers.py
"""Translation helper functions for HydraCat notifications.

Loads and caches the notification text files in `translations_custom/`
(`{language}_notifications.json`), falling back to English when a language
is missing or unreadable. All functions here require a `hass` object for
async file I/O.
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


# ==============================================================================
# Module-Level Cache
# ==============================================================================

# Key format: f"{language}_notification"
_translation_cache: dict[str, dict[str, Any]] = {}


# ==============================================================================
# Internal Helpers
# ==============================================================================


def _read_json_file(file_path: str) -> dict:
    """Read and parse a JSON file. Synchronous helper for executor."""
    with open(file_path, encoding="utf-8") as f:
        return json.load(f)


def _get_translations_path() -> str:
    """Get the absolute path to the translations_custom directory.

    Returns path relative to the component root (helpers/../translations_custom).
    """
    return os.path.join(
        os.path.dirname(os.path.dirname(__file__)), const.CUSTOM_TRANSLATIONS_DIR
    )


def _language_file(translations_path: str, language: str) -> str:
    return os.path.join(
        translations_path, f"{language}{const.NOTIFICATION_TRANSLATIONS_SUFFIX}.json"
    )


async def _async_load_cached(
    hass: HomeAssistant, translations_path: str, language: str
) -> dict[str, Any] | None:
    """Load one language file through the cache. None if missing or unreadable."""
    cache_key = f"{language}_notification"
    if cache_key in _translation_cache:
        const.LOGGER.debug(
            "DEBUG: Notification translations for '%s' loaded from cache", language
        )
        return _translation_cache[cache_key]

    lang_path = _language_file(translations_path, language)
    if not await hass.async_add_executor_job(os.path.exists, lang_path):
        return None

    try:
        data = await hass.async_add_executor_job(_read_json_file, lang_path)
    except (OSError, json.JSONDecodeError) as err:
        const.LOGGER.error(
            "ERROR: Error loading %s notification translations: %s", language, err
        )
        return None

    const.LOGGER.debug("DEBUG: Loaded %s notification translations", language)
    _translation_cache[cache_key] = data
    return data


# ==============================================================================
# Notification Translation Helpers
# ==============================================================================


async def load_notification_translation(
    hass: HomeAssistant,
    language: str = const.DEFAULT_LANGUAGE,
) -> dict[str, dict[str, str]]:
    """Load notification translations for a language with English fallback.

    Args:
        hass: Home Assistant instance
        language: Language code to load (e.g., 'en', 'es', 'de')

    Returns:
        A dict with notification keys mapping to {title, message} dicts.
        If the requested language is not found, returns English translations.
        Returns {} if neither can be read.
    """
    if not language:
        language = const.DEFAULT_LANGUAGE

    translations_path = _get_translations_path()
    if not await hass.async_add_executor_job(os.path.exists, translations_path):
        const.LOGGER.error(
            "ERROR: Custom translations directory not found: %s", translations_path
        )
        return {}

    data = await _async_load_cached(hass, translations_path, language)
    if data is not None:
        return data

    if language != const.DEFAULT_LANGUAGE:
        const.LOGGER.warning(
            "WARNING: Notification language '%s' not found, falling back to English",
            language,
        )
        data = await _async_load_cached(
            hass, translations_path, const.DEFAULT_LANGUAGE
        )
        if data is not None:
            return data

    const.LOGGER.error(
        "ERROR: English notification translations not found at: %s",
        _language_file(translations_path, const.DEFAULT_LANGUAGE),
    )
    return {}


def clear_translation_cache() -> None:
    """Clear the translation cache.

    Call this when reloading the integration or during test teardown.
    """
    _translation_cache.clear()
    const.LOGGER.debug("DEBUG: Translation cache cleared")
