# File: services.py
"""Defines custom services for the HydraCat integration.

These services expose the scheduling coordinator to scripts and automations:
scheduling and reconciliation, cancellation after a treatment is logged, the
weekly summary, and edits to the cached treatment schedules. Each handler
returns the operation's result as a service response.
"""

from __future__ import annotations

from datetime import time
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.util import dt as dt_util

from . import const
from .coordinator import NotificationSchedulingCoordinator
from .models import TreatmentFrequency, TreatmentSchedule, TreatmentType
from .utils import dt_utils


def _time_slot(value: Any) -> str:
    """Validate an HH:mm slot. HH:mm:ss from time selectors is truncated."""
    value = cv.string(value).strip()
    if len(value) == 8 and value.count(":") == 2:
        value = value[:5]
    if not dt_utils.is_valid_time_slot(value):
        raise vol.Invalid(const.ERROR_INVALID_TIME_SLOT_FMT.format(value))
    return value


# --- Service Schemas ---
EMPTY_SCHEMA = vol.Schema({})

SCHEDULE_ID_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SCHEDULE_ID): cv.string,
    }
)

CANCEL_SLOT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_TIME_SLOT): _time_slot,
    }
)

UPSERT_SCHEDULE_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_SCHEDULE_ID): cv.string,
        vol.Optional(const.FIELD_SCHEDULE_NAME): cv.string,
        vol.Required(const.FIELD_TREATMENT_TYPE): vol.In(
            [treatment.value for treatment in TreatmentType]
        ),
        vol.Required(const.FIELD_FREQUENCY): vol.In(
            [frequency.value for frequency in TreatmentFrequency]
        ),
        vol.Required(const.FIELD_REMINDER_TIMES): vol.All(
            cv.ensure_list, [_time_slot], vol.Length(min=1)
        ),
        vol.Optional(const.FIELD_IS_ACTIVE, default=True): cv.boolean,
        vol.Optional(const.FIELD_CREATED_AT): cv.date,
    }
)

SERVICES = (
    const.SERVICE_SCHEDULE_ALL,
    const.SERVICE_REFRESH_ALL,
    const.SERVICE_RESCHEDULE_ALL,
    const.SERVICE_SCHEDULE_FOR_SCHEDULE,
    const.SERVICE_CANCEL_FOR_SCHEDULE,
    const.SERVICE_CANCEL_SLOT,
    const.SERVICE_CANCEL_ALL_FOR_TODAY,
    const.SERVICE_SCHEDULE_WEEKLY_SUMMARY,
    const.SERVICE_CANCEL_WEEKLY_SUMMARY,
    const.SERVICE_UPSERT_SCHEDULE,
    const.SERVICE_REMOVE_SCHEDULE,
    const.SERVICE_CLEAR_ALL_DATA,
)


def get_first_hydracat_entry(hass: HomeAssistant) -> str | None:
    """Retrieve the first HydraCat config entry ID."""
    domain_entries = hass.data.get(const.DOMAIN)
    if not domain_entries:
        return None
    return next(iter(domain_entries.keys()), None)


def _get_entry_data(hass: HomeAssistant) -> dict[str, Any]:
    entry_id = get_first_hydracat_entry(hass)
    if not entry_id:
        raise HomeAssistantError(const.MSG_NO_ENTRY_FOUND)
    return hass.data[const.DOMAIN][entry_id]


def _get_coordinator(hass: HomeAssistant) -> NotificationSchedulingCoordinator:
    return _get_entry_data(hass)[const.COORDINATOR]


# --- Setup Services ---
def async_setup_services(hass: HomeAssistant):
    """Register HydraCat services."""

    if hass.services.has_service(const.DOMAIN, const.SERVICE_SCHEDULE_ALL):
        return

    # --- Scheduling ---
    async def handle_schedule_all(_call: ServiceCall) -> dict[str, Any]:
        """Schedule every reminder in the window."""
        result = await _get_coordinator(hass).async_schedule_all_for_today()
        return result.as_dict()

    async def handle_refresh_all(_call: ServiceCall) -> dict[str, Any]:
        """Cancel and reschedule everything."""
        result = await _get_coordinator(hass).async_refresh_all()
        return result.as_dict()

    async def handle_reschedule_all(_call: ServiceCall) -> dict[str, Any]:
        """Reconcile the index with pending notifications."""
        result = await _get_coordinator(hass).async_reschedule_all()
        return result.as_dict()

    async def handle_schedule_for_schedule(call: ServiceCall) -> dict[str, Any]:
        """Reschedule after one schedule changed."""
        schedule_id = call.data[const.FIELD_SCHEDULE_ID]
        result = await _get_coordinator(hass).async_schedule_for_schedule(schedule_id)
        if result.reason == const.REASON_SCHEDULE_NOT_FOUND:
            raise HomeAssistantError(
                const.ERROR_SCHEDULE_NOT_FOUND_FMT.format(schedule_id)
            )
        return result.as_dict()

    # --- Cancellation ---
    async def handle_cancel_for_schedule(call: ServiceCall) -> dict[str, Any]:
        """Cancel one schedule's notifications across the window."""
        schedule_id = call.data[const.FIELD_SCHEDULE_ID]
        result = await _get_coordinator(hass).async_cancel_for_schedule(schedule_id)
        return result.as_dict()

    async def handle_cancel_slot(call: ServiceCall) -> dict[str, Any]:
        """Cancel today's reminders for a slot once the treatment is logged."""
        time_slot = call.data[const.FIELD_TIME_SLOT]
        result = await _get_coordinator(hass).async_cancel_slot(time_slot)
        return result.as_dict()

    async def handle_cancel_all_for_today(_call: ServiceCall) -> dict[str, Any]:
        """Cancel everything scheduled for today."""
        result = await _get_coordinator(hass).async_cancel_all_for_today()
        return result.as_dict()

    # --- Weekly Summary ---
    async def handle_schedule_weekly_summary(_call: ServiceCall) -> dict[str, Any]:
        """Schedule the next weekly summary."""
        result = await _get_coordinator(hass).async_schedule_weekly_summary()
        return result.as_dict()

    async def handle_cancel_weekly_summary(_call: ServiceCall) -> dict[str, Any]:
        """Cancel pending weekly summaries."""
        result = await _get_coordinator(hass).async_cancel_weekly_summary()
        return result.as_dict()

    # --- Schedule Edits ---
    async def handle_upsert_schedule(call: ServiceCall) -> dict[str, Any]:
        """Create or replace a treatment schedule, then reschedule."""
        entry_data = _get_entry_data(hass)
        coordinator: NotificationSchedulingCoordinator = entry_data[const.COORDINATOR]
        schedule_cache = entry_data[const.SCHEDULE_CACHE]

        schedule_id = call.data[const.FIELD_SCHEDULE_ID]
        existing = schedule_cache.get_schedule(schedule_id)
        created_at = call.data.get(const.FIELD_CREATED_AT)
        if created_at is None:
            created_at = (
                existing.created_at if existing else dt_util.now().date()
            )

        try:
            schedule = TreatmentSchedule(
                id=schedule_id,
                name=call.data.get(const.FIELD_SCHEDULE_NAME),
                treatment_type=TreatmentType(call.data[const.FIELD_TREATMENT_TYPE]),
                frequency=TreatmentFrequency(call.data[const.FIELD_FREQUENCY]),
                reminder_times=tuple(
                    time.fromisoformat(slot)
                    for slot in sorted(set(call.data[const.FIELD_REMINDER_TIMES]))
                ),
                created_at=created_at,
                is_active=call.data[const.FIELD_IS_ACTIVE],
            )
        except ValueError as err:
            raise HomeAssistantError(
                const.ERROR_INVALID_SCHEDULE_FMT.format(err)
            ) from err

        await schedule_cache.async_upsert(schedule)
        const.LOGGER.info("INFO: Schedule '%s' saved", schedule_id)

        if schedule.is_active:
            result = await coordinator.async_schedule_for_schedule(schedule_id)
        else:
            # Deactivated: drop whatever it still had pending
            result = await coordinator.async_refresh_all()
        return result.as_dict()

    async def handle_remove_schedule(call: ServiceCall) -> dict[str, Any]:
        """Delete a treatment schedule and its notifications."""
        entry_data = _get_entry_data(hass)
        coordinator: NotificationSchedulingCoordinator = entry_data[const.COORDINATOR]
        schedule_cache = entry_data[const.SCHEDULE_CACHE]

        schedule_id = call.data[const.FIELD_SCHEDULE_ID]
        if schedule_cache.get_schedule(schedule_id) is None:
            raise HomeAssistantError(
                const.ERROR_SCHEDULE_NOT_FOUND_FMT.format(schedule_id)
            )

        canceled = await coordinator.async_cancel_for_schedule(schedule_id)
        await schedule_cache.async_remove(schedule_id)
        result = await coordinator.async_refresh_all()

        const.LOGGER.info(
            "INFO: Schedule '%s' removed; %s notification(s) canceled",
            schedule_id,
            canceled.canceled,
        )
        return {**result.as_dict(), "canceled": canceled.canceled}

    async def handle_clear_all_data(_call: ServiceCall) -> None:
        """Cancel every notification and wipe the index and schedules."""
        entry_data = _get_entry_data(hass)
        await entry_data[const.GATEWAY].async_cancel_all()
        await entry_data[const.INDEX_STORE].async_clear_all()
        await entry_data[const.SCHEDULE_CACHE].async_clear()
        const.LOGGER.info("INFO: All HydraCat notification data cleared")

    # --- Register Services ---
    handlers = {
        const.SERVICE_SCHEDULE_ALL: (handle_schedule_all, EMPTY_SCHEMA),
        const.SERVICE_REFRESH_ALL: (handle_refresh_all, EMPTY_SCHEMA),
        const.SERVICE_RESCHEDULE_ALL: (handle_reschedule_all, EMPTY_SCHEMA),
        const.SERVICE_SCHEDULE_FOR_SCHEDULE: (
            handle_schedule_for_schedule,
            SCHEDULE_ID_SCHEMA,
        ),
        const.SERVICE_CANCEL_FOR_SCHEDULE: (
            handle_cancel_for_schedule,
            SCHEDULE_ID_SCHEMA,
        ),
        const.SERVICE_CANCEL_SLOT: (handle_cancel_slot, CANCEL_SLOT_SCHEMA),
        const.SERVICE_CANCEL_ALL_FOR_TODAY: (handle_cancel_all_for_today, EMPTY_SCHEMA),
        const.SERVICE_SCHEDULE_WEEKLY_SUMMARY: (
            handle_schedule_weekly_summary,
            EMPTY_SCHEMA,
        ),
        const.SERVICE_CANCEL_WEEKLY_SUMMARY: (
            handle_cancel_weekly_summary,
            EMPTY_SCHEMA,
        ),
        const.SERVICE_UPSERT_SCHEDULE: (handle_upsert_schedule, UPSERT_SCHEDULE_SCHEMA),
        const.SERVICE_REMOVE_SCHEDULE: (handle_remove_schedule, SCHEDULE_ID_SCHEMA),
    }
    for service, (handler, schema) in handlers.items():
        hass.services.async_register(
            const.DOMAIN,
            service,
            handler,
            schema=schema,
            supports_response=SupportsResponse.OPTIONAL,
        )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLEAR_ALL_DATA,
        handle_clear_all_data,
        schema=EMPTY_SCHEMA,
    )

    const.LOGGER.info("INFO: HydraCat services have been registered successfully")


async def async_unload_services(hass: HomeAssistant):
    """Unregister HydraCat services when unloading the integration."""
    for service in SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: HydraCat services have been unregistered")
