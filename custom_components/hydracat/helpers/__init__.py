# File: helpers/__init__.py
"""Home Assistant-bound helper functions for HydraCat.

This module contains functions that REQUIRE Home Assistant dependencies.

NOTE: Functions that need `hass` object belong here, NOT in utils/.

Submodules:
    - translation_helpers: Notification translation file loading and caching

Usage:
    from .helpers import translation_helpers as th
"""

from . import translation_helpers

__all__ = ["translation_helpers"]
