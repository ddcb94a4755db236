# File: notification_helper.py
"""Sends notifications using Home Assistant's notify services.

This module implements the delivery side of the HydraCat notification
gateway. Reminders are posted through a notify service (typically the HA
Companion app's `notify.mobile_app_*`), with the reminder id as the tag so a
later cancel can clear it from the device.
"""

from __future__ import annotations

from typing import Any, Optional

from homeassistant.core import HomeAssistant

from . import const


def _split_service(notify_service: str) -> tuple[str, str]:
    """Parse a service name into domain and service components."""
    if const.DISPLAY_DOT not in notify_service:
        return const.NOTIFY_DOMAIN, notify_service
    domain, service = notify_service.split(".", 1)
    return domain, service


async def async_send_notification(
    hass: HomeAssistant,
    notify_service: str,
    title: str,
    message: str,
    extra_data: Optional[dict[str, Any]] = None,
) -> bool:
    """Send a notification using the specified notify service.

    Gracefully handles missing notification services (common when the mobile
    app isn't configured yet). If the service doesn't exist, logs a warning
    and returns False without raising.

    Returns:
        True if the notify service was called successfully.
    """
    domain, service = _split_service(notify_service)

    # Validate service exists before attempting to send
    if not hass.services.has_service(domain, service):
        const.LOGGER.warning(
            "WARNING: Notification service '%s.%s' not available - skipping "
            "notification. Configure the '%s' integration to receive reminders.",
            domain,
            service,
            domain,
        )
        return False

    payload: dict[str, Any] = {const.NOTIFY_TITLE: title, const.NOTIFY_MESSAGE: message}
    if extra_data:
        payload[const.NOTIFY_DATA] = dict(extra_data)

    try:
        await hass.services.async_call(domain, service, payload, blocking=True)
    except Exception as err:  # pylint: disable=broad-exception-caught
        # Runs from timer callbacks; an exception here would only surface as
        # "Task exception was never retrieved".
        const.LOGGER.error(
            "ERROR: Unexpected error sending notification via '%s.%s': %s. Payload: %s",
            domain,
            service,
            err,
            payload,
        )
        return False

    const.LOGGER.debug("DEBUG: Notification sent via '%s.%s'", domain, service)
    return True


async def async_clear_notification(
    hass: HomeAssistant, notify_service: str, tag: str
) -> bool:
    """Clear a delivered notification by tag (Companion app convention)."""
    domain, service = _split_service(notify_service)
    if not hass.services.has_service(domain, service):
        return False

    service_data = {
        const.NOTIFY_MESSAGE: const.NOTIFY_CLEAR_NOTIFICATION,
        const.NOTIFY_DATA: {const.NOTIFY_TAG: tag},
    }
    try:
        await hass.services.async_call(domain, service, service_data, blocking=True)
    except Exception as err:  # pylint: disable=broad-exception-caught
        const.LOGGER.warning(
            "WARNING: Failed to clear notification with tag '%s': %s", tag, err
        )
        return False
    return True
