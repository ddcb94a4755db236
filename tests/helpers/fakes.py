"""In-memory stand-ins for the platform notification gateway and the clock."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from custom_components.hydracat.gateway import NotificationGateway
from custom_components.hydracat.models import PendingNotificationRequest, parse_payload


@dataclass
class ScheduledCall:
    """One `async_schedule_at` call as the gateway received it."""

    notification_id: int
    title: str
    body: str
    when: datetime
    channel_id: str
    payload: str
    group_id: str | None = None
    thread_id: str | None = None

    @property
    def payload_data(self) -> dict:
        """The decoded payload."""
        return parse_payload(self.payload) or {}


@dataclass
class FakeNotificationGateway(NotificationGateway):
    """Gateway that records calls and keeps pending requests in a dict.

    Ids in `fail_schedule_ids` / `fail_cancel_ids` raise RuntimeError after the
    call is recorded. `fail_pending` makes the pending query raise.
    """

    pending: dict[int, PendingNotificationRequest] = field(default_factory=dict)
    schedule_calls: list[ScheduledCall] = field(default_factory=list)
    cancel_calls: list[int] = field(default_factory=list)
    cancel_all_calls: int = 0
    group_summaries: dict[str, tuple[str, str]] = field(default_factory=dict)
    fail_schedule_ids: set[int] = field(default_factory=set)
    fail_cancel_ids: set[int] = field(default_factory=set)
    fail_all_schedules: bool = False
    fail_pending: bool = False

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
        self.schedule_calls.append(
            ScheduledCall(
                notification_id,
                title,
                body,
                when,
                channel_id,
                payload,
                group_id,
                thread_id,
            )
        )
        if self.fail_all_schedules or notification_id in self.fail_schedule_ids:
            raise RuntimeError(f"platform rejected {notification_id}")
        self.pending[notification_id] = PendingNotificationRequest(
            id=notification_id, payload=payload
        )

    async def async_cancel(self, notification_id: int) -> None:
        self.cancel_calls.append(notification_id)
        if notification_id in self.fail_cancel_ids:
            raise RuntimeError(f"cancel failed for {notification_id}")
        self.pending.pop(notification_id, None)

    async def async_cancel_all(self) -> None:
        self.cancel_all_calls += 1
        self.pending.clear()

    async def async_pending_notification_requests(
        self,
    ) -> list[PendingNotificationRequest]:
        if self.fail_pending:
            raise RuntimeError("pending query failed")
        return list(self.pending.values())

    async def async_show_group_summary(
        self, group_id: str, title: str, body: str
    ) -> None:
        self.group_summaries[group_id] = (title, body)

    async def async_cancel_group_summary(self, group_id: str) -> None:
        self.group_summaries.pop(group_id, None)

    def calls_for(self, notification_id: int) -> list[ScheduledCall]:
        """Schedule calls made for one id."""
        return [
            call for call in self.schedule_calls if call.notification_id == notification_id
        ]

    def treatment_calls(self) -> list[ScheduledCall]:
        """Schedule calls carrying a treatment reminder payload."""
        return [
            call
            for call in self.schedule_calls
            if call.payload_data.get("type") == "treatment_reminder"
        ]


class MutableClock:
    """Callable clock that tests can move."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward."""
        self.now = self.now + delta

    def set(self, hour: int, minute: int = 0, second: int = 0) -> None:
        """Move to a time of the current day."""
        self.now = self.now.replace(hour=hour, minute=minute, second=second)
