"""Direct unit tests for NotificationIndexStore.

Covers per-day bucket storage, checksum validation, fail-open recovery,
self-healing against the gateway and the midnight cleanup.
"""

# pylint: disable=protected-access  # Accessing _data and _store for testing
# pylint: disable=redefined-outer-name  # Pytest fixtures redefine names
# pylint: disable=unused-argument  # Test fixtures may be unused in simple tests

from datetime import date, timedelta
from unittest.mock import patch

from homeassistant.core import HomeAssistant

from custom_components.hydracat import const
from custom_components.hydracat.models import (
    NotificationKind,
    PendingNotificationRequest,
    TreatmentType,
)
from custom_components.hydracat.store import NotificationIndexStore, parse_bucket_date
from tests.helpers import (
    PET_ID,
    TODAY,
    USER_ID,
    FakeNotificationGateway,
    MutableClock,
    make_entry,
    make_treatment_request,
)


def bucket(store: NotificationIndexStore, day: date = TODAY) -> dict:
    """Raw stored bucket of the test pet for a day."""
    return store.data[NotificationIndexStore.bucket_key(USER_ID, PET_ID, day)]


class TestKeysAndChecksums:
    """Tests for bucket keys, checksums and type counts."""

    def test_bucket_key_format(self) -> None:
        """Key is prefix + user + pet + ISO date."""
        assert (
            NotificationIndexStore.bucket_key("u1", "p1", TODAY)
            == "notif_index_v2_u1_p1_2025-01-15"
        )

    def test_checksum_is_order_independent(self) -> None:
        """Entries are sorted by id before hashing."""
        first = make_entry(notification_id=1)
        second = make_entry(notification_id=2, time_slot="12:00")
        assert NotificationIndexStore.compute_checksum(
            [first, second]
        ) == NotificationIndexStore.compute_checksum([second, first])

    def test_checksum_changes_with_content(self) -> None:
        """Any field change changes the checksum."""
        assert NotificationIndexStore.compute_checksum(
            [make_entry(kind="initial")]
        ) != NotificationIndexStore.compute_checksum([make_entry(kind="followup")])

    def test_categorize_by_type(self) -> None:
        """Counts per treatment type, zero-filled."""
        entries = [
            make_entry(notification_id=1),
            make_entry(notification_id=2, treatment_type="fluid"),
            make_entry(notification_id=3),
        ]
        assert NotificationIndexStore.categorize_by_type(entries) == {
            "medication": 2,
            "fluid": 1,
        }
        assert NotificationIndexStore.categorize_by_type([]) == {
            "medication": 0,
            "fluid": 0,
        }

    def test_parse_bucket_date(self) -> None:
        """Trailing date is parsed; malformed keys return None."""
        assert parse_bucket_date("notif_index_v2_u_p_2025-01-14") == date(2025, 1, 14)
        assert parse_bucket_date("notif_index_v2_u_p_garbage") is None
        assert parse_bucket_date("something_else_2025-01-14") is None


class TestEntryOperations:
    """Tests for put/get/remove."""

    async def test_initialize_empty(self, index_store: NotificationIndexStore) -> None:
        """A fresh store has no data."""
        assert index_store.data == {}
        assert await index_store.async_get_for_today(USER_ID, PET_ID) == []

    async def test_initialize_ignores_non_object_storage(
        self, hass: HomeAssistant, clock: MutableClock
    ) -> None:
        """A storage document that is not an object starts empty."""
        store = NotificationIndexStore(hass, clock=clock)
        with patch.object(store._store, "async_load", return_value=["bad"]):
            await store.async_initialize()
        assert store.data == {}

    async def test_put_then_get(self, index_store: NotificationIndexStore) -> None:
        """Stored entries read back with a valid checksum."""
        entry = make_entry()
        await index_store.async_put_entry(USER_ID, PET_ID, entry)

        assert await index_store.async_get_for_today(USER_ID, PET_ID) == [entry]
        assert bucket(index_store)[const.INDEX_CHECKSUM] == (
            NotificationIndexStore.compute_checksum([entry])
        )

    async def test_put_replaces_same_notification_id(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Entries are unique by notification id."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(schedule_id="a"))
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(schedule_id="b"))

        entries = await index_store.async_get_for_today(USER_ID, PET_ID)
        assert [entry.schedule_id for entry in entries] == ["b"]

    async def test_buckets_are_per_date_and_pet(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Other days and pets do not leak into today's bucket."""
        tomorrow = TODAY + timedelta(days=1)
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1), day=tomorrow)
        await index_store.async_put_entry(USER_ID, "pet-2", make_entry(2))

        assert await index_store.async_get_for_today(USER_ID, PET_ID) == []
        assert await index_store.async_get_for_date(USER_ID, PET_ID, tomorrow) == [
            make_entry(1)
        ]
        assert await index_store.async_get_count_for_pet(USER_ID, "pet-2") == 1

    async def test_remove_entry_by(self, index_store: NotificationIndexStore) -> None:
        """Removes the entry matching schedule, slot and kind."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_put_entry(
            USER_ID, PET_ID, make_entry(2, kind="followup")
        )

        removed = await index_store.async_remove_entry_by(
            USER_ID, PET_ID, "sched-a", "08:00", NotificationKind.FOLLOWUP
        )

        assert removed == 1
        assert await index_store.async_get_for_today(USER_ID, PET_ID) == [make_entry(1)]

    async def test_remove_entry_by_no_match(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Returns 0 when nothing matches."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        assert (
            await index_store.async_remove_entry_by(
                USER_ID, PET_ID, "sched-a", "09:00", NotificationKind.INITIAL
            )
            == 0
        )

    async def test_remove_entry_by_returns_zero_when_save_fails(
        self, index_store: NotificationIndexStore
    ) -> None:
        """A failed write reports nothing removed."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))

        with patch.object(
            index_store._store, "async_save", side_effect=OSError("disk full")
        ):
            removed = await index_store.async_remove_entry_by(
                USER_ID, PET_ID, "sched-a", "08:00", NotificationKind.INITIAL
            )

        assert removed == 0

    async def test_remove_all_for_schedule(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Removes every entry of a schedule and returns the count."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_put_entry(
            USER_ID, PET_ID, make_entry(2, kind="followup")
        )
        await index_store.async_put_entry(
            USER_ID, PET_ID, make_entry(3, schedule_id="sched-b", time_slot="20:00")
        )

        assert (
            await index_store.async_remove_all_for_schedule(USER_ID, PET_ID, "sched-a")
            == 2
        )
        remaining = await index_store.async_get_for_today(USER_ID, PET_ID)
        assert [entry.notification_id for entry in remaining] == [3]

    async def test_clear_for_date(self, index_store: NotificationIndexStore) -> None:
        """The bucket is dropped."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_clear_for_date(USER_ID, PET_ID, TODAY)
        assert index_store.data == {}

    async def test_save_errors_are_not_raised(
        self, index_store: NotificationIndexStore
    ) -> None:
        """async_save() logs and returns False on invalid data."""
        with patch.object(
            index_store._store, "async_save", side_effect=TypeError("not serializable")
        ):
            assert await index_store.async_save() is False


class TestCorruptionRecovery:
    """Tests for fail-open reads of damaged buckets."""

    async def test_checksum_mismatch_reads_empty_and_drops_bucket(
        self, index_store: NotificationIndexStore
    ) -> None:
        """A tampered bucket is treated as nothing scheduled."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        bucket(index_store)[const.INDEX_CHECKSUM] = "00000000"

        assert await index_store.async_get_for_today(USER_ID, PET_ID) == []
        assert NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY) not in (
            index_store.data
        )

    async def test_invalid_entry_reads_empty(
        self, index_store: NotificationIndexStore
    ) -> None:
        """A bool notification id fails the whole bucket closed."""
        key = NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY)
        raw_entry = make_entry(1).to_dict()
        raw_entry["notificationId"] = True
        index_store.data[key] = {"checksum": "x", "entries": [raw_entry]}

        assert await index_store.async_get_for_today(USER_ID, PET_ID) == []

    async def test_non_object_bucket_reads_empty(
        self, index_store: NotificationIndexStore
    ) -> None:
        """A bucket that is not an object reads as empty."""
        key = NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY)
        index_store.data[key] = "garbage"
        assert await index_store.async_get_for_today(USER_ID, PET_ID) == []

    async def test_corrupt_bucket_rebuilt_from_gateway(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """With a gateway, today's pending reminders rebuild the bucket."""
        key = NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY)
        index_store.data[key] = {"checksum": "x", "entries": "broken"}
        for request in (
            make_treatment_request(11),
            make_treatment_request(12, kind="followup"),
            make_treatment_request(13, day=TODAY + timedelta(days=1)),
            make_treatment_request(14, pet_id="pet-2"),
            PendingNotificationRequest(id=15, payload='{"type": "weekly_summary"}'),
        ):
            gateway.pending[request.id] = request

        entries = await index_store.async_get_for_today(USER_ID, PET_ID, gateway)

        assert sorted(entry.notification_id for entry in entries) == [11, 12]
        assert entries[0].schedule_id == "sched-a"
        assert entries[0].treatment_type is TreatmentType.FLUID
        assert await index_store.async_get_count_for_pet(USER_ID, PET_ID) == 2

    async def test_rebuild_failure_reads_empty(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """A gateway error during rebuild still fails open."""
        key = NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY)
        index_store.data[key] = {"checksum": "x", "entries": []}
        gateway.fail_pending = True

        assert await index_store.async_get_for_today(USER_ID, PET_ID, gateway) == []


class TestSelfHealing:
    """Tests for validating today's entries against the gateway."""

    async def test_drops_entries_no_longer_pending(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """Entries the gateway no longer has are removed and re-persisted."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_put_entry(
            USER_ID, PET_ID, make_entry(2, kind="followup")
        )
        gateway.pending[2] = PendingNotificationRequest(id=2)

        entries = await index_store.async_get_for_today(USER_ID, PET_ID, gateway)

        assert [entry.notification_id for entry in entries] == [2]
        assert await index_store.async_get_count_for_pet(USER_ID, PET_ID) == 1

    async def test_gateway_error_keeps_entries(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """If the pending list cannot be read, entries are returned as stored."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        gateway.fail_pending = True

        assert await index_store.async_get_for_today(USER_ID, PET_ID, gateway) == [
            make_entry(1)
        ]


class TestReconcile:
    """Tests for repairing a bucket from the gateway's pending list."""

    async def test_adds_pending_and_removes_stale(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """Pending reminders are indexed and entries no longer pending dropped."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_put_entry(
            USER_ID, PET_ID, make_entry(2, kind="followup")
        )
        gateway.pending[2] = make_treatment_request(2, kind="followup")
        gateway.pending[21] = make_treatment_request(21, time_slot="12:00")
        gateway.pending[22] = make_treatment_request(
            22, day=TODAY + timedelta(days=1)
        )

        report = await index_store.async_reconcile(USER_ID, PET_ID, gateway)

        assert report == {"added": 1, "removed": 1}
        entries = await index_store.async_get_for_date(USER_ID, PET_ID, TODAY)
        assert sorted(entry.notification_id for entry in entries) == [2, 21]
        assert bucket(index_store)["checksum"] == (
            NotificationIndexStore.compute_checksum(entries)
        )

    async def test_in_sync_bucket_is_untouched(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """Nothing to repair reports zeros and does not save."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        gateway.pending[1] = make_treatment_request(1)

        with patch.object(index_store._store, "async_save") as mock_save:
            report = await index_store.async_reconcile(USER_ID, PET_ID, gateway)

        assert report == {"added": 0, "removed": 0}
        mock_save.assert_not_called()

    async def test_gateway_error_reports_zeros(
        self, index_store: NotificationIndexStore, gateway: FakeNotificationGateway
    ) -> None:
        """A failing pending query leaves the index alone."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        gateway.fail_pending = True

        report = await index_store.async_reconcile(USER_ID, PET_ID, gateway)

        assert report == {"added": 0, "removed": 0}
        assert await index_store.async_get_count_for_pet(USER_ID, PET_ID) == 1


class TestCleanup:
    """Tests for midnight cleanup and full clears."""

    async def test_clear_all_for_yesterday(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Buckets before today and malformed keys are removed for all pets."""
        yesterday = TODAY - timedelta(days=1)
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1), day=yesterday)
        await index_store.async_put_entry("user-2", "pet-9", make_entry(2), day=yesterday)
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(3))
        index_store.data["notif_index_v2_u_p_not-a-date"] = {}

        removed = await index_store.async_clear_all_for_yesterday()

        assert removed == 3
        assert list(index_store.data) == [
            NotificationIndexStore.bucket_key(USER_ID, PET_ID, TODAY)
        ]

    async def test_clear_all_for_yesterday_nothing_stale(
        self, index_store: NotificationIndexStore
    ) -> None:
        """Returns 0 when only today's buckets exist."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        assert await index_store.async_clear_all_for_yesterday() == 0

    async def test_clear_all(self, index_store: NotificationIndexStore) -> None:
        """The whole index is emptied."""
        await index_store.async_put_entry(USER_ID, PET_ID, make_entry(1))
        await index_store.async_clear_all()
        assert index_store.data == {}

    async def test_persists_across_instances(
        self, hass: HomeAssistant, clock: MutableClock
    ) -> None:
        """A second store instance loads what the first saved."""
        first = NotificationIndexStore(hass, clock=clock)
        await first.async_initialize()
        await first.async_put_entry(USER_ID, PET_ID, make_entry(1))

        second = NotificationIndexStore(hass, clock=clock)
        await second.async_initialize()

        assert await second.async_get_for_today(USER_ID, PET_ID) == [make_entry(1)]
