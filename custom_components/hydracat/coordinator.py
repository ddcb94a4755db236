# File: coordinator.py
"""Notification scheduling coordinator for HydraCat.

The coordinator is the only component that decides what gets scheduled with
the notification gateway, and the only reader/writer of the notification
index. Every dependency comes in through `CoordinatorContext`; nothing is
looked up from ambient state.

Scheduling (`async_schedule_all_for_today`):
    - Window of today + next 2 days, processed in that order.
    - Reminders landing on the same HH:mm slot are bundled into ONE
      notification whose id is derived from (user, pet, date, slot, kind).
    - Grace period: a slot up to 30 minutes late (inclusive) fires at
      now + 1s; anything later is counted as missed.
    - Today only: a followup 2 hours after the initial.
    - Only today's notifications are recorded in the index.
    - A failing slot is recorded in `errors` and the pass continues.

Updates use refresh-all (cancel everything, reschedule everything) rather
than incremental edits. Ids embed the slot time, so when a reminder time
changes the old id can no longer be derived from the schedule; recomputing
the whole window is the only way to avoid duplicates and orphans.

Reconciliation (`async_reschedule_all`) compares the gateway's pending
treatment reminders for today with the index: orphans are canceled, missing
entries are counted, then the day is cleared and fully rescheduled.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from homeassistant.util import dt as dt_util

from . import const
from .models import (
    CancellationResult,
    NotificationKind,
    NotificationPayload,
    NotificationSettings,
    PendingNotificationRequest,
    PetProfile,
    ReconciliationResult,
    ScheduledNotificationEntry,
    SchedulingResult,
    TreatmentSchedule,
    WeeklySummaryPayload,
    WeeklySummaryResult,
    parse_payload,
)
from .utils import dt_utils
from .utils.dt_utils import SchedulingDecision
from .utils.notification_id import (
    generate_group_id,
    generate_time_slot_notification_id,
    generate_weekly_summary_notification_id,
)

if TYPE_CHECKING:
    from .gateway import NotificationGateway
    from .localization import NotificationLocalizer
    from .schedule_cache import ScheduleCache
    from .store import NotificationIndexStore


# =============================================================================
# Context
# =============================================================================


@dataclass
class CoordinatorContext:
    """Everything the coordinator reads or writes.

    Attributes:
        user_id: Signed-in user, or None
        pet: Active pet, or None
        schedule_cache: Read-only provider of treatment schedules
        gateway: Platform notification gateway
        index_store: Persisted notification index
        localizer: Notification text provider
        settings: User notification toggles
        clock: Source of the current (timezone-aware) time
    """

    user_id: str | None
    pet: PetProfile | None
    schedule_cache: ScheduleCache
    gateway: NotificationGateway
    index_store: NotificationIndexStore
    localizer: NotificationLocalizer
    settings: NotificationSettings = field(default_factory=NotificationSettings)
    clock: Callable[[], datetime] = dt_util.now


@dataclass(frozen=True)
class _SlotBundle:
    """Schedules whose reminders coincide on one (date, slot)."""

    day: date
    time_slot: str
    schedules: tuple[TreatmentSchedule, ...]


# =============================================================================
# Coordinator
# =============================================================================


class NotificationSchedulingCoordinator:
    """Schedules, cancels and reconciles HydraCat treatment notifications."""

    def __init__(self, context: CoordinatorContext) -> None:
        """Initialize the coordinator with its explicit dependencies."""
        self.context = context

    def _identity(self) -> tuple[str, PetProfile] | None:
        """Return (user_id, pet) or None when either is missing."""
        if not self.context.user_id or self.context.pet is None:
            const.LOGGER.debug("DEBUG: No user or pet in context; skipping operation")
            return None
        return self.context.user_id, self.context.pet

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def async_schedule_all_for_today(self) -> SchedulingResult:
        """Schedule every reminder in the rolling window."""
        identity = self._identity()
        if identity is None:
            return SchedulingResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity
        return await self._async_schedule_window(user_id, pet)

    async def _async_schedule_window(
        self, user_id: str, pet: PetProfile
    ) -> SchedulingResult:
        if not self.context.settings.enable_notifications:
            return SchedulingResult(reason=const.REASON_DISABLED_IN_SETTINGS)

        if self.context.schedule_cache.is_empty:
            const.LOGGER.debug("DEBUG: Schedule cache is empty; nothing to schedule")
            return SchedulingResult(cache_empty=True)

        result = SchedulingResult()
        now = self.context.clock()
        today = now.date()

        try:
            for day in dt_utils.window_dates(today, const.SCHEDULING_WINDOW_DAYS):
                for bundle in self._build_bundles(day, now):
                    await self._async_schedule_bundle(
                        user_id, pet, bundle, now, day == today, result
                    )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error("ERROR: Scheduling pass aborted: %s", err)
            result.errors.append(str(err))

        await self._async_update_group_summary(user_id, pet, today)

        const.LOGGER.info(
            "INFO: Scheduled notifications for pet '%s': scheduled=%s immediate=%s "
            "missed=%s errors=%s",
            pet.id,
            result.scheduled,
            result.immediate,
            result.missed,
            len(result.errors),
        )
        return result

    def _build_bundles(self, day: date, now: datetime) -> list[_SlotBundle]:
        """Group the active schedules' reminders on a day by HH:mm slot."""
        grouped: dict[str, dict[str, TreatmentSchedule]] = {}
        for schedule in self.context.schedule_cache.get_active_schedules():
            if not schedule.has_reminder_on_date(day):
                continue
            for reminder in schedule.reminder_times_on_date(day, now.tzinfo):
                slot = dt_utils.format_time_slot(reminder)
                grouped.setdefault(slot, {})[schedule.id] = schedule

        return [
            _SlotBundle(day=day, time_slot=slot, schedules=tuple(schedules.values()))
            for slot, schedules in sorted(grouped.items())
        ]

    async def _async_schedule_bundle(
        self,
        user_id: str,
        pet: PetProfile,
        bundle: _SlotBundle,
        now: datetime,
        is_today: bool,
        result: SchedulingResult,
    ) -> None:
        """Schedule one slot's initial reminder and, for today, its followup."""
        target = dt_utils.slot_datetime(bundle.day, bundle.time_slot, now.tzinfo)
        decision = dt_utils.evaluate_grace_period(target, now, const.GRACE_PERIOD)

        if decision is SchedulingDecision.MISSED:
            const.LOGGER.debug(
                "DEBUG: Slot %s %s is past the grace period; marked missed",
                bundle.day.isoformat(),
                bundle.time_slot,
            )
            result.missed += 1
            return

        fire_at = (
            target
            if decision is SchedulingDecision.SCHEDULED
            else dt_utils.immediate_fire_time(now, const.IMMEDIATE_FIRE_DELAY)
        )
        if not await self._async_schedule_notification(
            user_id, pet, bundle, NotificationKind.INITIAL, fire_at, is_today, result
        ):
            return

        if decision is SchedulingDecision.SCHEDULED:
            result.scheduled += 1
        else:
            result.immediate += 1

        if not is_today:
            return

        followup_at = dt_utils.calculate_followup_time(target, const.FOLLOWUP_OFFSET)
        if await self._async_schedule_notification(
            user_id, pet, bundle, NotificationKind.FOLLOWUP, followup_at, is_today, result
        ):
            result.scheduled += 1

    async def _async_schedule_notification(
        self,
        user_id: str,
        pet: PetProfile,
        bundle: _SlotBundle,
        kind: NotificationKind,
        fire_at: datetime,
        is_today: bool,
        result: SchedulingResult,
    ) -> bool:
        """Hand one notification to the gateway and index it if it is today's.

        Returns:
            True if the gateway accepted the notification.
        """
        notification_id = generate_time_slot_notification_id(
            user_id, pet.id, bundle.time_slot, kind, bundle.day
        )
        treatment_types = tuple(schedule.treatment_type for schedule in bundle.schedules)
        content = self.context.localizer.treatment_content(
            pet.display_name, treatment_types, kind
        )
        payload = NotificationPayload(
            user_id=user_id,
            pet_id=pet.id,
            schedule_ids=tuple(schedule.id for schedule in bundle.schedules),
            time_slot=bundle.time_slot,
            kind=kind,
            treatment_types=treatment_types,
            scheduled_for=fire_at,
            date=bundle.day,
        )
        group_id = generate_group_id(pet.id)

        try:
            await self.context.gateway.async_schedule_at(
                notification_id,
                content.title,
                content.body,
                fire_at,
                content.channel_id,
                payload.to_json(),
                group_id=group_id,
                thread_id=group_id,
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            message = const.ERROR_SCHEDULING_SLOT_FMT.format(
                kind, bundle.day.isoformat(), bundle.time_slot, err
            )
            const.LOGGER.error("ERROR: %s", message)
            result.errors.append(message)
            return False

        if is_today:
            representative = bundle.schedules[0]
            await self.context.index_store.async_put_entry(
                user_id,
                pet.id,
                ScheduledNotificationEntry(
                    notification_id=notification_id,
                    schedule_id=representative.id,
                    treatment_type=representative.treatment_type,
                    time_slot=bundle.time_slot,
                    kind=kind,
                ),
                day=bundle.day,
            )
        return True

    async def async_schedule_for_schedule(self, schedule_id: str) -> SchedulingResult:
        """Reschedule after a schedule was created or edited (refresh-all)."""
        identity = self._identity()
        if identity is None:
            return SchedulingResult(reason=const.REASON_NO_USER_OR_PET)

        schedule = self.context.schedule_cache.get_schedule(schedule_id)
        if schedule is None:
            return SchedulingResult(reason=const.REASON_SCHEDULE_NOT_FOUND)
        if not schedule.is_active:
            const.LOGGER.debug(
                "DEBUG: Schedule '%s' is inactive; skipping scheduling", schedule_id
            )
            return SchedulingResult(reason=const.REASON_SCHEDULE_INACTIVE)

        return await self.async_refresh_all()

    async def async_refresh_all(self) -> SchedulingResult:
        """Cancel everything for today and schedule the whole window again."""
        identity = self._identity()
        if identity is None:
            return SchedulingResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity

        await self._async_cancel_all_for_today(user_id, pet)
        result = await self._async_schedule_window(user_id, pet)
        await self._async_schedule_weekly_summary(user_id, pet)
        return result

    # =========================================================================
    # Cancellation
    # =========================================================================

    async def _async_cancel_id(self, notification_id: int, errors: list[str]) -> bool:
        """Cancel one id, recording (not raising) failures."""
        try:
            await self.context.gateway.async_cancel(notification_id)
        except Exception as err:  # pylint: disable=broad-exception-caught
            message = const.ERROR_CANCEL_FMT.format(notification_id, err)
            const.LOGGER.warning("WARNING: %s", message)
            errors.append(message)
            return False
        return True

    async def async_cancel_for_schedule(self, schedule_id: str) -> CancellationResult:
        """Cancel a schedule's notifications across the whole window.

        Ids embed the date, so every (day, kind) combination of each of the
        schedule's slots is canceled explicitly: day 0 initial and followup,
        then the initial of each later day. Other schedules bundled into the
        same slots lose those notifications too; follow with a refresh.
        """
        identity = self._identity()
        if identity is None:
            return CancellationResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity

        result = CancellationResult()
        today = self.context.clock().date()

        schedule = self.context.schedule_cache.get_schedule(schedule_id)
        if schedule is not None:
            time_slots = schedule.time_slots
        else:
            # Already deleted from the cache: fall back to what today's index knows
            entries = await self.context.index_store.async_get_for_date(
                user_id, pet.id, today
            )
            time_slots = sorted(
                {entry.time_slot for entry in entries if entry.schedule_id == schedule_id}
            )

        for time_slot in time_slots:
            for day in dt_utils.window_dates(today, const.SCHEDULING_WINDOW_DAYS):
                kinds = (
                    (NotificationKind.INITIAL, NotificationKind.FOLLOWUP)
                    if day == today
                    else (NotificationKind.INITIAL,)
                )
                for kind in kinds:
                    notification_id = generate_time_slot_notification_id(
                        user_id, pet.id, time_slot, kind, day
                    )
                    if await self._async_cancel_id(notification_id, result.errors):
                        result.canceled += 1

        await self.context.index_store.async_remove_all_for_schedule(
            user_id, pet.id, schedule_id, day=today
        )
        await self._async_update_group_summary(user_id, pet, today)

        const.LOGGER.info(
            "INFO: Canceled %s notification(s) for schedule '%s'",
            result.canceled,
            schedule_id,
        )
        return result

    async def async_cancel_slot(self, time_slot: str) -> CancellationResult:
        """Cancel today's initial and followup for a slot (treatment was logged)."""
        identity = self._identity()
        if identity is None:
            return CancellationResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity

        if not dt_utils.is_valid_time_slot(time_slot):
            return CancellationResult(
                errors=[const.ERROR_INVALID_TIME_SLOT_FMT.format(time_slot)]
            )

        result = CancellationResult()
        today = self.context.clock().date()
        for kind in (NotificationKind.INITIAL, NotificationKind.FOLLOWUP):
            notification_id = generate_time_slot_notification_id(
                user_id, pet.id, time_slot, kind, today
            )
            if await self._async_cancel_id(notification_id, result.errors):
                result.canceled += 1

        index_store = self.context.index_store
        for entry in await index_store.async_get_for_date(user_id, pet.id, today):
            if entry.time_slot == time_slot:
                await index_store.async_remove_entry_by(
                    user_id, pet.id, entry.schedule_id, time_slot, entry.kind, day=today
                )

        await self._async_update_group_summary(user_id, pet, today)
        return result

    async def async_cancel_all_for_today(self) -> CancellationResult:
        """Cancel today's indexed notifications and the weekly summary."""
        identity = self._identity()
        if identity is None:
            return CancellationResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity
        return await self._async_cancel_all_for_today(user_id, pet)

    async def _async_cancel_all_for_today(
        self, user_id: str, pet: PetProfile
    ) -> CancellationResult:
        result = CancellationResult()
        today = self.context.clock().date()

        try:
            notification_ids = {
                entry.notification_id
                for entry in await self.context.index_store.async_get_for_date(
                    user_id, pet.id, today
                )
            }
            # Pending reminders of this pet inside the window that the index
            # no longer knows about, e.g. future-day initials or ids of a
            # changed reminder time. Earlier days keep their pending followups.
            window = dt_utils.window_dates(today, const.SCHEDULING_WINDOW_DAYS)
            notification_ids.update(
                request.id
                for request in await self.context.gateway.async_pending_notification_requests()
                if self._is_treatment_reminder_for(request, user_id, pet.id, window)
            )
            for notification_id in sorted(notification_ids):
                if await self._async_cancel_id(notification_id, result.errors):
                    result.canceled += 1

            await self.context.index_store.async_clear_for_date(user_id, pet.id, today)
            weekly = await self._async_cancel_weekly_summary(user_id, pet)
            result.errors.extend(weekly.errors)
            await self.context.gateway.async_cancel_group_summary(
                generate_group_id(pet.id)
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error("ERROR: Cancel-all for today failed: %s", err)
            result.errors.append(str(err))

        return result

    # =========================================================================
    # Reconciliation
    # =========================================================================

    @staticmethod
    def _is_treatment_reminder_for(
        request: PendingNotificationRequest,
        user_id: str,
        pet_id: str,
        days: Iterable[date],
    ) -> bool:
        """Return True if a pending request is this pet's reminder for one of `days`."""
        payload = parse_payload(request.payload)
        if payload is None:
            return False
        return (
            payload.get(const.PAYLOAD_TYPE) == const.PAYLOAD_TYPE_TREATMENT_REMINDER
            and payload.get(const.PAYLOAD_USER_ID) == user_id
            and payload.get(const.PAYLOAD_PET_ID) == pet_id
            and payload.get(const.PAYLOAD_DATE) in {day.isoformat() for day in days}
        )

    async def async_reschedule_all(self) -> ReconciliationResult:
        """Reconcile the index with the gateway and reschedule the window.

        1. Pending treatment reminders for today (other types and dates are
           ignored) are compared with today's index.
        2. Orphans (pending but not indexed) are canceled.
        3. Missing entries (indexed but not pending) are counted.
        4. Today's index is cleared and the whole window rescheduled.
        5. The weekly summary is re-established.

        Never raises; failures are collected in `errors`.
        """
        identity = self._identity()
        if identity is None:
            return ReconciliationResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity

        result = ReconciliationResult()
        try:
            today = self.context.clock().date()

            pending = await self.context.gateway.async_pending_notification_requests()
            pending_ids = {
                request.id
                for request in pending
                if self._is_treatment_reminder_for(request, user_id, pet.id, (today,))
            }
            indexed = await self.context.index_store.async_get_for_date(
                user_id, pet.id, today
            )
            indexed_ids = {entry.notification_id for entry in indexed}

            for notification_id in sorted(pending_ids - indexed_ids):
                if await self._async_cancel_id(notification_id, result.errors):
                    result.orphans_canceled += 1

            result.missing_count = len(indexed_ids - pending_ids)
            if result.missing_count:
                const.LOGGER.warning(
                    "WARNING: %s indexed notification(s) missing from the gateway "
                    "for pet '%s'; rescheduling the day",
                    result.missing_count,
                    pet.id,
                )

            # TODO: reschedule only the missing entries once product confirms
            # a full-day reschedule is not intended
            await self.context.index_store.async_clear_for_date(user_id, pet.id, today)
            result.schedule_result = await self._async_schedule_window(user_id, pet)

            await self._async_cancel_weekly_summary(user_id, pet)
            result.weekly_summary_result = await self._async_schedule_weekly_summary(
                user_id, pet
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error("ERROR: Reconciliation failed: %s", err)
            result.errors.append(str(err))

        const.LOGGER.info(
            "INFO: Reconciliation for pet '%s': orphans_canceled=%s missing=%s",
            pet.id,
            result.orphans_canceled,
            result.missing_count,
        )
        return result

    # =========================================================================
    # Weekly Summary
    # =========================================================================

    async def async_schedule_weekly_summary(self) -> WeeklySummaryResult:
        """Schedule next Monday's 09:00 summary unless already pending."""
        identity = self._identity()
        if identity is None:
            return WeeklySummaryResult(
                success=False, reason=const.REASON_NO_USER_OR_PET
            )
        user_id, pet = identity
        return await self._async_schedule_weekly_summary(user_id, pet)

    async def _async_schedule_weekly_summary(
        self, user_id: str, pet: PetProfile
    ) -> WeeklySummaryResult:
        settings = self.context.settings
        if not settings.enable_notifications or not settings.weekly_summary_enabled:
            return WeeklySummaryResult(
                success=False, reason=const.REASON_DISABLED_IN_SETTINGS
            )

        fire_at = dt_utils.next_weekly_summary_time(
            self.context.clock(), const.WEEKLY_SUMMARY_HOUR
        )
        notification_id = generate_weekly_summary_notification_id(
            user_id, pet.id, fire_at.date()
        )

        try:
            pending = await self.context.gateway.async_pending_notification_requests()
            if any(request.id == notification_id for request in pending):
                return WeeklySummaryResult(
                    success=False,
                    reason=const.REASON_ALREADY_SCHEDULED,
                    notification_id=notification_id,
                    scheduled_for=fire_at,
                )

            content = self.context.localizer.weekly_summary_content()
            await self.context.gateway.async_schedule_at(
                notification_id,
                content.title,
                content.body,
                fire_at,
                content.channel_id,
                WeeklySummaryPayload().to_json(),
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error("ERROR: Failed to schedule weekly summary: %s", err)
            return WeeklySummaryResult(
                success=False, reason=const.REASON_SCHEDULING_FAILED, error=str(err)
            )

        const.LOGGER.debug(
            "DEBUG: Weekly summary %s scheduled for %s",
            notification_id,
            fire_at.isoformat(),
        )
        return WeeklySummaryResult(
            success=True, notification_id=notification_id, scheduled_for=fire_at
        )

    async def async_cancel_weekly_summary(self) -> CancellationResult:
        """Cancel the weekly summary for each of the next candidate weeks."""
        identity = self._identity()
        if identity is None:
            return CancellationResult(reason=const.REASON_NO_USER_OR_PET)
        user_id, pet = identity
        return await self._async_cancel_weekly_summary(user_id, pet)

    async def _async_cancel_weekly_summary(
        self, user_id: str, pet: PetProfile
    ) -> CancellationResult:
        result = CancellationResult()
        for week_start in dt_utils.weekly_summary_week_starts(
            self.context.clock(), const.WEEKLY_SUMMARY_CANCEL_SWEEP_WEEKS
        ):
            notification_id = generate_weekly_summary_notification_id(
                user_id, pet.id, week_start
            )
            if await self._async_cancel_id(notification_id, result.errors):
                result.canceled += 1
        return result

    # =========================================================================
    # Group Summary
    # =========================================================================

    async def _async_update_group_summary(
        self, user_id: str, pet: PetProfile, today: date
    ) -> None:
        """Show or remove the pet's group summary based on today's index."""
        group_id = generate_group_id(pet.id)
        index_store = self.context.index_store
        try:
            entries = await index_store.async_get_for_date(user_id, pet.id, today)
            if not entries:
                await self.context.gateway.async_cancel_group_summary(group_id)
                return

            counts = index_store.categorize_by_type(entries)
            title, body = self.context.localizer.group_summary_content(
                pet.display_name,
                counts[const.TREATMENT_TYPE_MEDICATION],
                counts[const.TREATMENT_TYPE_FLUID],
            )
            await self.context.gateway.async_show_group_summary(group_id, title, body)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Failed to update group summary for pet '%s': %s", pet.id, err
            )
