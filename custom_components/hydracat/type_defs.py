# File: type_defs.py
"""Type definitions for HydraCat persisted data structures.

TypedDict is used for the STATIC structures written to Home Assistant
storage (keys known at design time). Bucket maps keyed by
`notif_index_v2_{user}_{pet}_{date}` are dynamic and stay `dict[str, ...]`.

IMPORTANT: This file must NOT import from coordinator.py or any helper that
imports the coordinator. Only typing machinery is used here.
"""

from __future__ import annotations

from typing import TypedDict


class IndexEntryData(TypedDict):
    """Persisted ScheduledNotificationEntry."""

    notificationId: int
    scheduleId: str
    treatmentType: str
    timeSlotISO: str
    kind: str


class IndexBucketData(TypedDict):
    """One (user, pet, date) bucket of the notification index."""

    checksum: str
    entries: list[IndexEntryData]


class ScheduleData(TypedDict, total=False):
    """Persisted TreatmentSchedule."""

    id: str
    name: str | None
    treatment_type: str
    frequency: str
    reminder_times: list[str]
    is_active: bool
    created_at: str


class NotificationPayloadData(TypedDict):
    """Wire shape of a treatment reminder payload."""

    type: str
    userId: str
    petId: str
    scheduleIds: str
    timeSlot: str
    kind: str
    treatmentTypes: str
    scheduledFor: str
    date: str


# Top-level storage documents
IndexStoreData = dict[str, IndexBucketData]
ScheduleStoreData = dict[str, dict[str, ScheduleData]]
