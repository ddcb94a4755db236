# File: __init__.py
"""Initialization file for the HydraCat notifications integration.

Handles setting up the integration from its config entry: loading the
notification index and treatment schedules from storage, building the
notification gateway and the scheduling coordinator, and wiring the
lifecycle triggers.

Key Features:
- Reconciliation (`reschedule_all`) once Home Assistant has started.
- Midnight rollover: drop stale index buckets, then reconcile again.
- Services for scheduling, cancellation and schedule edits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.event import async_track_time_change
from homeassistant.helpers.start import async_at_started
from homeassistant.util import dt as dt_util

from . import const
from .coordinator import CoordinatorContext, NotificationSchedulingCoordinator
from .gateway import HomeAssistantNotificationGateway
from .helpers import translation_helpers as th
from .localization import NotificationLocalizer
from .models import NotificationSettings, PetProfile
from .schedule_cache import ScheduleCache
from .services import async_setup_services, async_unload_services
from .store import NotificationIndexStore
from .utils import dt_utils


def get_entry_config(entry: ConfigEntry) -> dict[str, Any]:
    """Return the entry's data with options layered on top."""
    return {**entry.data, **entry.options}


def build_settings(config: dict[str, Any]) -> NotificationSettings:
    """Build notification settings from an entry config."""
    return NotificationSettings(
        enable_notifications=config.get(
            const.CONF_ENABLE_NOTIFICATIONS, const.DEFAULT_ENABLE_NOTIFICATIONS
        ),
        weekly_summary_enabled=config.get(
            const.CONF_WEEKLY_SUMMARY_ENABLED, const.DEFAULT_WEEKLY_SUMMARY_ENABLED
        ),
    )


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for HydraCat entry: %s", entry.entry_id)

    # Must be done early before any components that use datetime helpers
    dt_utils.set_default_timezone(dt_util.get_default_time_zone())

    config = get_entry_config(entry)

    index_store = NotificationIndexStore(hass)
    await index_store.async_initialize()

    schedule_cache = ScheduleCache(hass)
    await schedule_cache.async_initialize()

    gateway = HomeAssistantNotificationGateway(hass, config[const.CONF_NOTIFY_SERVICE])
    localizer = await NotificationLocalizer.async_create(
        hass, config.get(const.CONF_LANGUAGE, const.DEFAULT_LANGUAGE)
    )

    coordinator = NotificationSchedulingCoordinator(
        CoordinatorContext(
            user_id=config.get(const.CONF_USER_ID),
            pet=(
                PetProfile(
                    id=config[const.CONF_PET_ID], name=config.get(const.CONF_PET_NAME)
                )
                if config.get(const.CONF_PET_ID)
                else None
            ),
            schedule_cache=schedule_cache,
            gateway=gateway,
            index_store=index_store,
            localizer=localizer,
            settings=build_settings(config),
        )
    )

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.INDEX_STORE: index_store,
        const.SCHEDULE_CACHE: schedule_cache,
        const.GATEWAY: gateway,
    }

    # Set up services required by the integration.
    async_setup_services(hass)

    async def _async_startup_reconcile(_hass: HomeAssistant) -> None:
        """Reconcile once Home Assistant is running."""
        await coordinator.async_reschedule_all()

    async def _async_midnight_rollover(_now: datetime) -> None:
        """Drop yesterday's index buckets and reconcile the new day."""
        await index_store.async_clear_all_for_yesterday()
        await coordinator.async_reschedule_all()

    entry.async_on_unload(gateway.async_shutdown)
    entry.async_on_unload(async_at_started(hass, _async_startup_reconcile))
    entry.async_on_unload(
        async_track_time_change(
            hass,
            _async_midnight_rollover,
            hour=const.MIDNIGHT_ROLLOVER_HOUR,
            minute=const.MIDNIGHT_ROLLOVER_MINUTE,
            second=const.MIDNIGHT_ROLLOVER_SECOND,
        )
    )
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("INFO: HydraCat setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when options change (pet name, settings, language)."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading HydraCat entry: %s", entry.entry_id)

    # Reminder timers are disarmed by the gateway.async_shutdown unload callback
    hass.data[const.DOMAIN].pop(entry.entry_id, None)

    if not hass.data[const.DOMAIN]:
        await async_unload_services(hass)

    th.clear_translation_cache()
    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("INFO: Removing HydraCat entry: %s", entry.entry_id)

    await NotificationIndexStore(hass).async_delete_storage()
    await ScheduleCache(hass).async_delete_storage()

    const.LOGGER.info("INFO: HydraCat entry data cleared: %s", entry.entry_id)
