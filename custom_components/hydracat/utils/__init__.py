# File: utils/__init__.py
"""Pure Python utilities for HydraCat.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed in this module.

Submodules:
    - dt_utils: Time-slot parsing, grace-period and followup calculations
    - notification_id: Deterministic notification id generation (FNV-1a)

Usage:
    from . import dt_utils
    from .notification_id import generate_time_slot_notification_id
"""

from . import dt_utils, notification_id

__all__ = ["dt_utils", "notification_id"]
