"""Diagnostics support for the HydraCat integration.

Exports the raw notification index and schedule storage together with the
gateway's pending reminders so a missing or duplicated reminder can be traced
back to its index bucket.
"""

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .gateway import HomeAssistantNotificationGateway
from .schedule_cache import ScheduleCache
from .store import NotificationIndexStore


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    entry_data = hass.data[const.DOMAIN][entry.entry_id]
    index_store: NotificationIndexStore = entry_data[const.INDEX_STORE]
    schedule_cache: ScheduleCache = entry_data[const.SCHEDULE_CACHE]
    gateway: HomeAssistantNotificationGateway = entry_data[const.GATEWAY]

    pending = await gateway.async_pending_notification_requests()

    return {
        "config": {**entry.data, **entry.options},
        "notification_index": index_store.data,
        "schedules": schedule_cache.as_dict(),
        "pending_notifications": [
            {"id": request.id, "payload": request.payload} for request in pending
        ],
        "group_summaries": {
            group_id: {"title": title, "body": body}
            for group_id, (title, body) in gateway.group_summaries.items()
        },
    }
