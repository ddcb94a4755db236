# File: models.py
"""Typed domain objects for HydraCat notification scheduling.

Enumerations, the persisted index entry, the consumed treatment schedule,
the notification payload record, and the result types returned by every
public coordinator operation. Results are plain dataclasses so service
handlers can return them with `as_dict()`.

IMPORTANT: This file must NOT import from coordinator.py or any module that
imports the coordinator, to avoid circular dependencies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from enum import StrEnum
import json
from typing import Any

from . import const
from .type_defs import IndexEntryData, NotificationPayloadData, ScheduleData
from .utils import dt_utils

# =============================================================================
# Enumerations
# =============================================================================


class TreatmentType(StrEnum):
    """Kind of treatment a schedule reminds about."""

    MEDICATION = const.TREATMENT_TYPE_MEDICATION
    FLUID = const.TREATMENT_TYPE_FLUID


class NotificationKind(StrEnum):
    """Whether a notification is the first reminder or the followup."""

    INITIAL = const.NOTIFICATION_KIND_INITIAL
    FOLLOWUP = const.NOTIFICATION_KIND_FOLLOWUP


class TreatmentFrequency(StrEnum):
    """Recurrence of a treatment schedule."""

    ONCE_DAILY = const.FREQUENCY_ONCE_DAILY
    TWICE_DAILY = const.FREQUENCY_TWICE_DAILY
    THRICE_DAILY = const.FREQUENCY_THRICE_DAILY
    EVERY_OTHER_DAY = const.FREQUENCY_EVERY_OTHER_DAY
    EVERY_3_DAYS = const.FREQUENCY_EVERY_3_DAYS

    @property
    def interval_days(self) -> int:
        """Days between treatment days (1 for the daily frequencies)."""
        if self is TreatmentFrequency.EVERY_OTHER_DAY:
            return 2
        if self is TreatmentFrequency.EVERY_3_DAYS:
            return 3
        return 1


def is_valid_treatment_type(value: object) -> bool:
    """Return True if value is a known treatment type string."""
    return value in {member.value for member in TreatmentType}


def is_valid_kind(value: object) -> bool:
    """Return True if value is a known notification kind string."""
    return value in {member.value for member in NotificationKind}


# =============================================================================
# Index Entry
# =============================================================================


@dataclass(frozen=True)
class ScheduledNotificationEntry:
    """One notification the coordinator believes is scheduled on the platform.

    Attributes:
        notification_id: Deterministic platform id
        schedule_id: Representative schedule of the bundle
        treatment_type: Treatment type of that schedule
        time_slot: "HH:mm" slot
        kind: initial or followup
    """

    notification_id: int
    schedule_id: str
    treatment_type: TreatmentType
    time_slot: str
    kind: NotificationKind

    def __post_init__(self) -> None:
        """Reject values a writer should never produce."""
        if not dt_utils.is_valid_time_slot(self.time_slot):
            raise ValueError(const.ERROR_INVALID_TIME_SLOT_FMT.format(self.time_slot))
        if not is_valid_treatment_type(self.treatment_type):
            raise ValueError(f"Invalid treatment type '{self.treatment_type}'")
        if not is_valid_kind(self.kind):
            raise ValueError(f"Invalid notification kind '{self.kind}'")

    def to_dict(self) -> IndexEntryData:
        """Serialize to the persisted JSON shape."""
        return {
            const.ENTRY_NOTIFICATION_ID: self.notification_id,
            const.ENTRY_SCHEDULE_ID: self.schedule_id,
            const.ENTRY_TREATMENT_TYPE: str(self.treatment_type),
            const.ENTRY_TIME_SLOT: self.time_slot,
            const.ENTRY_KIND: str(self.kind),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScheduledNotificationEntry:
        """Deserialize a persisted entry.

        Fails closed: any missing or invalid field raises ValueError.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Index entry must be an object, got {type(data).__name__}")

        notification_id = data.get(const.ENTRY_NOTIFICATION_ID)
        # bool is an int subclass; a stored true/false is never a valid id
        if not isinstance(notification_id, int) or isinstance(notification_id, bool):
            raise ValueError(f"Invalid notificationId: {notification_id!r}")

        schedule_id = data.get(const.ENTRY_SCHEDULE_ID)
        if not isinstance(schedule_id, str) or not schedule_id:
            raise ValueError(f"Invalid scheduleId: {schedule_id!r}")

        treatment_type = data.get(const.ENTRY_TREATMENT_TYPE)
        if not is_valid_treatment_type(treatment_type):
            raise ValueError(f"Invalid treatmentType: {treatment_type!r}")

        time_slot = data.get(const.ENTRY_TIME_SLOT)
        if not dt_utils.is_valid_time_slot(time_slot):
            raise ValueError(f"Invalid timeSlotISO: {time_slot!r}")

        kind = data.get(const.ENTRY_KIND)
        if not is_valid_kind(kind):
            raise ValueError(f"Invalid kind: {kind!r}")

        return cls(
            notification_id=notification_id,
            schedule_id=schedule_id,
            treatment_type=TreatmentType(treatment_type),
            time_slot=time_slot,
            kind=NotificationKind(kind),
        )


# =============================================================================
# Treatment Schedule (consumed, read-only to the coordinator)
# =============================================================================


@dataclass(frozen=True)
class TreatmentSchedule:
    """A recurring treatment definition.

    Only the time-of-day of each reminder time is meaningful; the date part
    comes from the day being scheduled.
    """

    id: str
    treatment_type: TreatmentType
    frequency: TreatmentFrequency
    reminder_times: tuple[time, ...]
    created_at: date
    is_active: bool = True
    name: str | None = None

    def reminder_times_on_date(
        self, day: date, tz: Any | None = None
    ) -> list[datetime]:
        """Return this schedule's reminder instants on a given day.

        Daily frequencies yield every reminder time. Interval frequencies
        yield them only on days that are a whole multiple of the interval
        after the creation date.
        """
        if not self.is_active:
            return []

        interval = self.frequency.interval_days
        if interval > 1:
            days_since_created = dt_utils.days_between(self.created_at, day)
            if days_since_created < 0 or days_since_created % interval != 0:
                return []

        return sorted(
            dt_utils.slot_datetime(day, slot, tz) for slot in self.time_slots
        )

    def has_reminder_on_date(self, day: date) -> bool:
        """Return True if the schedule has at least one reminder on the day."""
        return bool(self.reminder_times_on_date(day))

    @property
    def time_slots(self) -> list[str]:
        """Distinct "HH:mm" slots of this schedule, sorted."""
        return sorted({dt_utils.format_time_slot(value) for value in self.reminder_times})

    def to_dict(self) -> ScheduleData:
        """Serialize for the schedule store."""
        return {
            const.SCHEDULE_ID: self.id,
            const.SCHEDULE_NAME: self.name,
            const.SCHEDULE_TREATMENT_TYPE: str(self.treatment_type),
            const.SCHEDULE_FREQUENCY: str(self.frequency),
            const.SCHEDULE_REMINDER_TIMES: self.time_slots,
            const.SCHEDULE_IS_ACTIVE: self.is_active,
            const.SCHEDULE_CREATED_AT: self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreatmentSchedule:
        """Deserialize a stored schedule.

        Raises:
            ValueError: If any field is missing or invalid.
        """
        try:
            schedule_id = data[const.SCHEDULE_ID]
            treatment_type = TreatmentType(data[const.SCHEDULE_TREATMENT_TYPE])
            frequency = TreatmentFrequency(data[const.SCHEDULE_FREQUENCY])
            reminder_times = tuple(
                dt_utils.parse_time_slot(slot)
                for slot in data[const.SCHEDULE_REMINDER_TIMES]
            )
            created_at = date.fromisoformat(str(data[const.SCHEDULE_CREATED_AT])[:10])
        except (KeyError, TypeError) as err:
            raise ValueError(const.ERROR_INVALID_SCHEDULE_FMT.format(err)) from err

        if not isinstance(schedule_id, str) or not schedule_id:
            raise ValueError(const.ERROR_INVALID_SCHEDULE_FMT.format("missing id"))

        return cls(
            id=schedule_id,
            treatment_type=treatment_type,
            frequency=frequency,
            reminder_times=reminder_times,
            created_at=created_at,
            is_active=bool(data.get(const.SCHEDULE_IS_ACTIVE, True)),
            name=data.get(const.SCHEDULE_NAME),
        )


# =============================================================================
# Context Records
# =============================================================================


@dataclass(frozen=True)
class PetProfile:
    """The active pet."""

    id: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        """Name used in notification text."""
        return self.name or const.DEFAULT_PET_NAME


@dataclass(frozen=True)
class NotificationSettings:
    """User toggles that gate optional notifications."""

    enable_notifications: bool = const.DEFAULT_ENABLE_NOTIFICATIONS
    weekly_summary_enabled: bool = const.DEFAULT_WEEKLY_SUMMARY_ENABLED


@dataclass(frozen=True)
class NotificationContent:
    """Localized title/body plus the channel a notification is posted on."""

    title: str
    body: str
    channel_id: str


@dataclass(frozen=True)
class PendingNotificationRequest:
    """A notification the gateway still has queued."""

    id: int
    payload: str | None = None


# =============================================================================
# Notification Payloads
# =============================================================================


@dataclass(frozen=True)
class NotificationPayload:
    """Payload attached to a bundled treatment reminder.

    Read back by the tap handler and by reconciliation, which only compares
    payloads of type "treatment_reminder" for today's date.
    """

    user_id: str
    pet_id: str
    schedule_ids: tuple[str, ...]
    time_slot: str
    kind: NotificationKind
    treatment_types: tuple[TreatmentType, ...]
    scheduled_for: datetime
    date: date
    type: str = const.PAYLOAD_TYPE_TREATMENT_REMINDER

    def to_dict(self) -> NotificationPayloadData:
        """Serialize to the wire shape (list fields comma-joined)."""
        return {
            const.PAYLOAD_TYPE: self.type,
            const.PAYLOAD_USER_ID: self.user_id,
            const.PAYLOAD_PET_ID: self.pet_id,
            const.PAYLOAD_SCHEDULE_IDS: ",".join(self.schedule_ids),
            const.PAYLOAD_TIME_SLOT: self.time_slot,
            const.PAYLOAD_KIND: str(self.kind),
            const.PAYLOAD_TREATMENT_TYPES: ",".join(
                str(treatment_type) for treatment_type in self.treatment_types
            ),
            const.PAYLOAD_SCHEDULED_FOR: self.scheduled_for.isoformat(),
            const.PAYLOAD_DATE: self.date.isoformat(),
        }

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class WeeklySummaryPayload:
    """Payload attached to the weekly summary notification."""

    type: str = const.PAYLOAD_TYPE_WEEKLY_SUMMARY
    route: str = const.WEEKLY_SUMMARY_ROUTE

    def to_json(self) -> str:
        """Serialize to a JSON string."""
        return json.dumps({const.PAYLOAD_TYPE: self.type, const.PAYLOAD_ROUTE: self.route})


def parse_payload(payload: str | None) -> dict[str, Any] | None:
    """Parse a pending request's payload, returning None if it is not a JSON object."""
    if not payload:
        return None
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


# =============================================================================
# Results
# =============================================================================


@dataclass
class SchedulingResult:
    """Counts of a scheduling pass.

    Attributes:
        scheduled: Notifications queued for their target time
        immediate: Late slots inside the grace window fired at now + 1s
        missed: Slots too far in the past to be scheduled
        errors: One message per failed gateway call
        reason: Short-circuit reason code, if the pass did not run
        cache_empty: True when there were no schedules at all
    """

    scheduled: int = 0
    immediate: int = 0
    missed: int = 0
    errors: list[str] = field(default_factory=list)
    reason: str | None = None
    cache_empty: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        return asdict(self)


@dataclass
class WeeklySummaryResult:
    """Outcome of scheduling the weekly summary."""

    success: bool
    reason: str | None = None
    notification_id: int | None = None
    scheduled_for: datetime | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        data = asdict(self)
        if self.scheduled_for is not None:
            data["scheduled_for"] = self.scheduled_for.isoformat()
        return data


@dataclass
class CancellationResult:
    """Outcome of a cancel operation."""

    canceled: int = 0
    errors: list[str] = field(default_factory=list)
    reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        return asdict(self)


@dataclass
class ReconciliationResult:
    """Outcome of a reconciliation pass."""

    orphans_canceled: int = 0
    missing_count: int = 0
    schedule_result: SchedulingResult | None = None
    weekly_summary_result: WeeklySummaryResult | None = None
    errors: list[str] = field(default_factory=list)
    reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        return {
            "orphans_canceled": self.orphans_canceled,
            "missing_count": self.missing_count,
            "schedule_result": (
                self.schedule_result.as_dict() if self.schedule_result else None
            ),
            "weekly_summary_result": (
                self.weekly_summary_result.as_dict()
                if self.weekly_summary_result
                else None
            ),
            "errors": list(self.errors),
            "reason": self.reason,
        }
