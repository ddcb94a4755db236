# File: gateway.py
"""Platform notification gateway for HydraCat.

The coordinator only talks to the abstract `NotificationGateway`: schedule at
a time, cancel by id, list pending, and manage the per-pet group summary.

`HomeAssistantNotificationGateway` implements it on top of Home Assistant:
each scheduled reminder arms an `async_track_point_in_time` timer and, when it
fires, is delivered through the configured notify service. Pending requests
live in memory only, so after a restart the index reports them as missing and
reconciliation reschedules the day.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from homeassistant.core import callback
from homeassistant.helpers.event import async_track_point_in_time

from . import const
from .models import PendingNotificationRequest
from .notification_helper import async_clear_notification, async_send_notification

if TYPE_CHECKING:
    from homeassistant.core import CALLBACK_TYPE, HomeAssistant


class NotificationGateway(ABC):
    """Opaque boundary to the platform's local notification API."""

    @abstractmethod
    async def async_schedule_at(
        self,
        notification_id: int,
        title: str,
        body: str,
        when: datetime,
        channel_id: str,
        payload: str,
        group_id: str | None = None,
        thread_id: str | None = None,
    ) -> None:
        """Schedule (or replace) a notification for a point in time."""

    @abstractmethod
    async def async_cancel(self, notification_id: int) -> None:
        """Cancel a notification. Unknown ids are ignored."""

    @abstractmethod
    async def async_cancel_all(self) -> None:
        """Cancel every notification this gateway owns."""

    @abstractmethod
    async def async_pending_notification_requests(
        self,
    ) -> list[PendingNotificationRequest]:
        """Return the notifications still waiting to fire."""

    @abstractmethod
    async def async_show_group_summary(
        self, group_id: str, title: str, body: str
    ) -> None:
        """Show (or update) the summary notification of a group."""

    @abstractmethod
    async def async_cancel_group_summary(self, group_id: str) -> None:
        """Remove the summary notification of a group."""


@dataclass
class _ScheduledReminder:
    """A reminder armed on the event loop."""

    request: PendingNotificationRequest
    title: str
    body: str
    when: datetime
    channel_id: str
    group_id: str | None
    thread_id: str | None
    unsub: CALLBACK_TYPE | None = None


class HomeAssistantNotificationGateway(NotificationGateway):
    """Gateway that fires reminders through a Home Assistant notify service."""

    def __init__(self, hass: HomeAssistant, notify_service: str) -> None:
        """Initialize the gateway."""
        self.hass = hass
        self.notify_service = notify_service
        self._scheduled: dict[int, _ScheduledReminder] = {}
        # Ids that have been posted to the device and may still be visible
        self._delivered: set[int] = set()
        self.group_summaries: dict[str, tuple[str, str]] = {}

    async def async_schedule_at(
        self,
        notification_id: int,
        title: str,
        body: str,
        when: datetime,
        channel_id: str,
        payload: str,
        group_id: str | None = None,
        thread_id: str | None = None,
    ) -> None:
        """Arm a timer that delivers the notification at `when`."""
        self._disarm(notification_id)

        reminder = _ScheduledReminder(
            request=PendingNotificationRequest(id=notification_id, payload=payload),
            title=title,
            body=body,
            when=when,
            channel_id=channel_id,
            group_id=group_id,
            thread_id=thread_id,
        )

        async def _async_fire(_now: datetime) -> None:
            await self._async_deliver(notification_id)

        reminder.unsub = async_track_point_in_time(self.hass, _async_fire, when)
        self._scheduled[notification_id] = reminder
        const.LOGGER.debug(
            "DEBUG: Scheduled notification %s for %s on channel '%s'",
            notification_id,
            when.isoformat(),
            channel_id,
        )

    async def _async_deliver(self, notification_id: int) -> None:
        """Post a due reminder through the notify service."""
        reminder = self._scheduled.pop(notification_id, None)
        if reminder is None:
            return

        extra_data: dict[str, str] = {
            const.NOTIFY_TAG: str(notification_id),
            const.NOTIFY_CHANNEL: reminder.channel_id,
        }
        if reminder.group_id:
            extra_data[const.NOTIFY_GROUP] = reminder.group_id
        if reminder.request.payload:
            extra_data[const.NOTIFY_PAYLOAD] = reminder.request.payload

        if await async_send_notification(
            self.hass, self.notify_service, reminder.title, reminder.body, extra_data
        ):
            self._delivered.add(notification_id)

    def _disarm(self, notification_id: int) -> bool:
        """Stop a pending timer. Returns True if one was armed."""
        reminder = self._scheduled.pop(notification_id, None)
        if reminder is None:
            return False
        if reminder.unsub is not None:
            reminder.unsub()
        return True

    async def async_cancel(self, notification_id: int) -> None:
        """Cancel a pending reminder and clear it from the device if delivered."""
        self._disarm(notification_id)
        if notification_id in self._delivered:
            self._delivered.discard(notification_id)
            await async_clear_notification(
                self.hass, self.notify_service, str(notification_id)
            )

    async def async_cancel_all(self) -> None:
        """Cancel all pending reminders and clear delivered ones."""
        for notification_id in list(self._scheduled):
            self._disarm(notification_id)
        for notification_id in list(self._delivered):
            await self.async_cancel(notification_id)

    async def async_pending_notification_requests(
        self,
    ) -> list[PendingNotificationRequest]:
        """Return the reminders whose timers have not fired yet."""
        return [reminder.request for reminder in self._scheduled.values()]

    async def async_show_group_summary(
        self, group_id: str, title: str, body: str
    ) -> None:
        """Record the group summary.

        The Companion app builds the visible summary itself from reminders
        sharing `data.group`, so nothing is pushed here; the text is kept for
        diagnostics.
        """
        self.group_summaries[group_id] = (title, body)

    async def async_cancel_group_summary(self, group_id: str) -> None:
        """Forget the group summary."""
        self.group_summaries.pop(group_id, None)

    @callback
    def async_shutdown(self) -> None:
        """Disarm every timer without touching the device (used on unload)."""
        for notification_id in list(self._scheduled):
            self._disarm(notification_id)
