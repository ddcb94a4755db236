# File: utils/notification_id.py
"""Deterministic notification id generation for HydraCat.

Pure Python hashing with ZERO Home Assistant dependencies.

The same logical notification (user, pet, date, time slot, kind) always maps
to the same platform id, so scheduling is idempotent and a cancel can be
issued without remembering what was scheduled. The date is part of the hash,
so the same slot on different days never collides.

Functions:
    - fnv1a_32: 32-bit FNV-1a hash over UTF-8 bytes
    - generate_time_slot_notification_id: Id for a bundled treatment reminder
    - generate_weekly_summary_notification_id: Id for the weekly summary
    - generate_group_id: Group/thread id shared by one pet's reminders
"""

from __future__ import annotations

from datetime import date

# ==============================================================================
# Constants
# ==============================================================================

FNV_OFFSET_BASIS_32 = 0x811C9DC5  # 2166136261
FNV_PRIME_32 = 0x01000193  # 16777619
MASK_32 = 0xFFFFFFFF

# Platform ids are signed 32-bit; keep the result non-negative.
MASK_31 = 0x7FFFFFFF

COMPOSITE_SEPARATOR = "|"
WEEKLY_SUMMARY_PREFIX = "weekly_summary"
GROUP_ID_PREFIX = "pet_"


# ==============================================================================
# Hashing
# ==============================================================================


def fnv1a_32(value: str) -> int:
    """Return the 32-bit FNV-1a hash of a string's UTF-8 bytes."""
    hash_value = FNV_OFFSET_BASIS_32
    for byte in value.encode("utf-8"):
        hash_value ^= byte
        hash_value = (hash_value * FNV_PRIME_32) & MASK_32
    return hash_value


def fnv1a_hex(value: str) -> str:
    """Return the FNV-1a hash as an 8-character lowercase hex string."""
    return f"{fnv1a_32(value):08x}"


# ==============================================================================
# Notification Ids
# ==============================================================================


def generate_time_slot_notification_id(
    user_id: str,
    pet_id: str,
    time_slot: str,
    kind: str,
    target_date: date,
) -> int:
    """Generate the platform id for one bundled reminder.

    Args:
        user_id: Owner of the pet
        pet_id: Pet the reminder is for
        time_slot: "HH:mm" slot (validated by the caller)
        kind: "initial" or "followup"
        target_date: Calendar day of the slot

    Returns:
        Non-negative integer in the signed 32-bit range.

    Example:
        >>> generate_time_slot_notification_id("u1", "p1", "08:00", "initial", date(2025, 1, 15))
        ...  # same value on every call
    """
    composite = COMPOSITE_SEPARATOR.join(
        (user_id, pet_id, target_date.isoformat(), time_slot, kind)
    )
    return fnv1a_32(composite) & MASK_31


def generate_weekly_summary_notification_id(
    user_id: str, pet_id: str, week_start: date
) -> int:
    """Generate the platform id for the weekly summary of a given week."""
    composite = COMPOSITE_SEPARATOR.join(
        (WEEKLY_SUMMARY_PREFIX, user_id, pet_id, week_start.isoformat())
    )
    return fnv1a_32(composite) & MASK_31


def generate_group_id(pet_id: str) -> str:
    """Return the notification group/thread id for a pet."""
    return f"{GROUP_ID_PREFIX}{pet_id}"
