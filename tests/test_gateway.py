"""Tests for the Home Assistant notification gateway.

Reminders are timers on the event loop that post through a notify service;
`async_fire_time_changed` moves time forward to fire them.
"""

# pylint: disable=redefined-outer-name  # Pytest fixtures redefine names

from datetime import timedelta

import pytest
from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util
from pytest_homeassistant_custom_component.common import async_fire_time_changed

from custom_components.hydracat.gateway import HomeAssistantNotificationGateway
from tests.helpers import NOTIFY_SERVICE

PAYLOAD = '{"type": "treatment_reminder"}'


@pytest.fixture
def ha_gateway(hass: HomeAssistant) -> HomeAssistantNotificationGateway:
    """Return a gateway bound to the test notify service."""
    return HomeAssistantNotificationGateway(hass, NOTIFY_SERVICE)


async def schedule_in(
    gateway: HomeAssistantNotificationGateway,
    notification_id: int,
    minutes: int = 5,
) -> None:
    """Schedule a reminder a few minutes ahead."""
    await gateway.async_schedule_at(
        notification_id,
        "Treatment reminder for Whiskers",
        "It's time to give Whiskers their medication.",
        dt_util.utcnow() + timedelta(minutes=minutes),
        "medication_reminders",
        PAYLOAD,
        group_id="pet_pet-1",
        thread_id="pet_pet-1",
    )


async def fire_after(hass: HomeAssistant, minutes: int) -> None:
    """Move time forward and let timers run."""
    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(minutes=minutes))
    await hass.async_block_till_done()


class TestDelivery:
    """Tests for timed delivery through the notify service."""

    async def test_delivers_when_due(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """The reminder is posted with tag, channel, group and payload."""
        await schedule_in(ha_gateway, 101)

        await fire_after(hass, 1)
        assert notify_calls == []
        pending = await ha_gateway.async_pending_notification_requests()
        assert [request.id for request in pending] == [101]

        await fire_after(hass, 6)
        assert len(notify_calls) == 1
        call = notify_calls[0]
        assert call.data["title"] == "Treatment reminder for Whiskers"
        assert call.data["data"] == {
            "tag": "101",
            "channel": "medication_reminders",
            "group": "pet_pet-1",
            "payload": PAYLOAD,
        }
        assert await ha_gateway.async_pending_notification_requests() == []

    async def test_rescheduling_same_id_replaces(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """Scheduling an id twice leaves one timer."""
        await schedule_in(ha_gateway, 101, minutes=5)
        await schedule_in(ha_gateway, 101, minutes=10)

        assert len(await ha_gateway.async_pending_notification_requests()) == 1
        await fire_after(hass, 6)
        assert notify_calls == []
        await fire_after(hass, 11)
        assert len(notify_calls) == 1

    async def test_missing_notify_service_is_skipped(
        self, hass: HomeAssistant
    ) -> None:
        """Without the notify service the reminder is dropped with a warning."""
        gateway = HomeAssistantNotificationGateway(hass, "notify.missing_phone")
        await schedule_in(gateway, 101)

        await fire_after(hass, 6)

        assert await gateway.async_pending_notification_requests() == []


class TestCancellation:
    """Tests for cancel and cancel_all."""

    async def test_cancel_before_firing(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """A canceled reminder never reaches the notify service."""
        await schedule_in(ha_gateway, 101)

        await ha_gateway.async_cancel(101)
        await fire_after(hass, 6)

        assert notify_calls == []
        assert await ha_gateway.async_pending_notification_requests() == []

    async def test_cancel_unknown_id_is_ignored(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """Unknown ids are a no-op."""
        await ha_gateway.async_cancel(999)

        assert notify_calls == []

    async def test_cancel_after_delivery_clears_device(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """A delivered reminder is cleared by tag."""
        await schedule_in(ha_gateway, 101)
        await fire_after(hass, 6)

        await ha_gateway.async_cancel(101)

        assert len(notify_calls) == 2
        assert notify_calls[1].data == {
            "message": "clear_notification",
            "data": {"tag": "101"},
        }

    async def test_cancel_all(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """Pending timers are disarmed and delivered reminders cleared."""
        await schedule_in(ha_gateway, 101, minutes=5)
        await schedule_in(ha_gateway, 102, minutes=30)
        await fire_after(hass, 6)

        await ha_gateway.async_cancel_all()
        await fire_after(hass, 31)

        assert [call.data["message"] for call in notify_calls] == [
            "It's time to give Whiskers their medication.",
            "clear_notification",
        ]
        assert await ha_gateway.async_pending_notification_requests() == []

    async def test_shutdown_disarms_without_clearing(
        self, hass: HomeAssistant, ha_gateway, notify_calls
    ) -> None:
        """Unload stops timers and sends nothing."""
        await schedule_in(ha_gateway, 101)

        ha_gateway.async_shutdown()
        await fire_after(hass, 6)

        assert notify_calls == []


async def test_group_summary_is_recorded(ha_gateway) -> None:
    """Group summaries are kept for diagnostics and removed on cancel."""
    await ha_gateway.async_show_group_summary("pet_pet-1", "Title", "Body")
    assert ha_gateway.group_summaries == {"pet_pet-1": ("Title", "Body")}

    await ha_gateway.async_cancel_group_summary("pet_pet-1")
    assert ha_gateway.group_summaries == {}
