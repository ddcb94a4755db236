# File: store.py
"""Persisted notification index for the HydraCat integration.

Uses Home Assistant's Storage helper to keep a per-(user, pet, date) record of
the notifications the coordinator believes are scheduled. The index backs
idempotent scheduling and reconciliation against the gateway's pending list.

Storage layout (one document for the whole integration):

    {
        "notif_index_v2_{userId}_{petId}_{YYYY-MM-DD}": {
            "checksum": "<fnv1a hex of the sorted entries>",
            "entries": [{"notificationId": ..., "scheduleId": ..., ...}],
        },
    }

Reads fail open: a corrupt bucket or a checksum mismatch reads as "nothing is
scheduled" (or is rebuilt from the gateway when one is supplied) so a bad
file can never crash-loop the scheduler.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
import json
from typing import TYPE_CHECKING

from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util

from . import const
from .models import (
    NotificationKind,
    PendingNotificationRequest,
    ScheduledNotificationEntry,
    TreatmentType,
    is_valid_kind,
    is_valid_treatment_type,
    parse_payload,
)
from .type_defs import IndexStoreData
from .utils import dt_utils
from .utils.notification_id import fnv1a_hex

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .gateway import NotificationGateway


class NotificationIndexStore:
    """Handles persistent storage of the notification index.

    Thin wrapper around Home Assistant's Store API. Only today's bucket is
    written by the coordinator; earlier buckets are dropped by the midnight
    rollover.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        storage_key: str = const.STORAGE_KEY_INDEX,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location.
            clock: Source of "now" (defaults to Home Assistant's local time).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: IndexStoreData = {}
        self._clock = clock or dt_util.now

    async def async_initialize(self) -> None:
        """Load the index from storage during startup."""
        const.LOGGER.debug("DEBUG: NotificationIndexStore: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No notification index found. Starting empty")
            self._data = {}
        elif not isinstance(existing_data, dict):
            const.LOGGER.warning(
                "WARNING: Notification index storage is not an object (%s). "
                "Starting empty",
                type(existing_data).__name__,
            )
            self._data = {}
        else:
            self._data = existing_data
            const.LOGGER.debug(
                "DEBUG: Loaded notification index with %s bucket(s)", len(self._data)
            )

    @property
    def data(self) -> IndexStoreData:
        """Retrieve the in-memory index."""
        return self._data

    async def async_save(self) -> bool:
        """Save the index to storage.

        Returns:
            True on success. Errors are logged, never raised.
        """
        try:
            await self._store.async_save(self._data)
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save notification index due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
            return False
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "ERROR: Failed to save notification index due to invalid data: %s",
                err,
            )
            return False
        const.LOGGER.debug("DEBUG: Notification index saved successfully")
        return True

    # =========================================================================
    # Keys and Checksums
    # =========================================================================

    @staticmethod
    def bucket_key(user_id: str, pet_id: str, day: date) -> str:
        """Return the storage key of a (user, pet, date) bucket."""
        return f"{const.INDEX_KEY_PREFIX}{user_id}_{pet_id}_{day.isoformat()}"

    @staticmethod
    def compute_checksum(entries: list[ScheduledNotificationEntry]) -> str:
        """Return the FNV-1a hex checksum of entries, independent of their order."""
        ordered = sorted(entries, key=lambda entry: entry.notification_id)
        serialized = "".join(
            json.dumps(entry.to_dict(), sort_keys=True) for entry in ordered
        )
        return fnv1a_hex(serialized)

    @staticmethod
    def categorize_by_type(
        entries: list[ScheduledNotificationEntry],
    ) -> dict[str, int]:
        """Count entries per treatment type."""
        counts = {str(treatment_type): 0 for treatment_type in TreatmentType}
        for entry in entries:
            counts[str(entry.treatment_type)] += 1
        return counts

    def _today(self) -> date:
        return self._clock().date()

    # =========================================================================
    # Bucket Load / Save
    # =========================================================================

    async def _async_load_bucket(
        self,
        user_id: str,
        pet_id: str,
        day: date,
        gateway: NotificationGateway | None = None,
    ) -> list[ScheduledNotificationEntry]:
        """Load one bucket, failing open on corruption."""
        key = self.bucket_key(user_id, pet_id, day)
        raw = self._data.get(key)
        if raw is None:
            return []

        try:
            if not isinstance(raw, dict):
                raise ValueError(f"bucket is {type(raw).__name__}, expected object")
            raw_entries = raw.get(const.INDEX_ENTRIES)
            if not isinstance(raw_entries, list):
                raise ValueError("entries is not a list")
            entries = [ScheduledNotificationEntry.from_dict(item) for item in raw_entries]
        except ValueError as err:
            const.LOGGER.warning(
                "WARNING: Corrupt notification index bucket '%s': %s", key, err
            )
            return await self._async_recover_bucket(user_id, pet_id, day, gateway)

        if raw.get(const.INDEX_CHECKSUM) != self.compute_checksum(entries):
            const.LOGGER.warning(
                "WARNING: Checksum mismatch in notification index bucket '%s'", key
            )
            return await self._async_recover_bucket(user_id, pet_id, day, gateway)

        return entries

    async def _async_save_bucket(
        self,
        user_id: str,
        pet_id: str,
        day: date,
        entries: list[ScheduledNotificationEntry],
    ) -> bool:
        """Replace one bucket and persist. Empty buckets are dropped."""
        key = self.bucket_key(user_id, pet_id, day)
        if entries:
            self._data[key] = {
                const.INDEX_CHECKSUM: self.compute_checksum(entries),
                const.INDEX_ENTRIES: [entry.to_dict() for entry in entries],
            }
        else:
            self._data.pop(key, None)
        return await self.async_save()

    async def _async_recover_bucket(
        self,
        user_id: str,
        pet_id: str,
        day: date,
        gateway: NotificationGateway | None,
    ) -> list[ScheduledNotificationEntry]:
        """Drop a corrupt bucket, rebuilding it from the gateway if possible."""
        if gateway is None:
            self._data.pop(self.bucket_key(user_id, pet_id, day), None)
            await self.async_save()
            return []

        try:
            entries = await self._async_rebuild_from_gateway(
                user_id, pet_id, day, gateway
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ERROR: Failed to rebuild notification index from gateway: %s", err
            )
            entries = []

        await self._async_save_bucket(user_id, pet_id, day, entries)
        const.LOGGER.info(
            "INFO: Rebuilt notification index for %s/%s on %s with %s entries",
            user_id,
            pet_id,
            day.isoformat(),
            len(entries),
        )
        return entries

    @classmethod
    async def _async_rebuild_from_gateway(
        cls,
        user_id: str,
        pet_id: str,
        day: date,
        gateway: NotificationGateway,
    ) -> list[ScheduledNotificationEntry]:
        """Reconstruct entries from the payloads of pending treatment reminders."""
        return cls._entries_from_pending(
            await gateway.async_pending_notification_requests(), user_id, pet_id, day
        )

    @staticmethod
    def _entries_from_pending(
        pending: list[PendingNotificationRequest],
        user_id: str,
        pet_id: str,
        day: date,
    ) -> list[ScheduledNotificationEntry]:
        """Build index entries for the pet's treatment reminders dated `day`."""
        entries: dict[int, ScheduledNotificationEntry] = {}
        for request in pending:
            payload = parse_payload(request.payload)
            if (
                payload is None
                or payload.get(const.PAYLOAD_TYPE)
                != const.PAYLOAD_TYPE_TREATMENT_REMINDER
                or payload.get(const.PAYLOAD_USER_ID) != user_id
                or payload.get(const.PAYLOAD_PET_ID) != pet_id
                or payload.get(const.PAYLOAD_DATE) != day.isoformat()
            ):
                continue

            schedule_ids = str(payload.get(const.PAYLOAD_SCHEDULE_IDS, "")).split(",")
            treatment_types = str(
                payload.get(const.PAYLOAD_TREATMENT_TYPES, "")
            ).split(",")
            time_slot = payload.get(const.PAYLOAD_TIME_SLOT)
            kind = payload.get(const.PAYLOAD_KIND)
            if (
                not schedule_ids[0]
                or not is_valid_treatment_type(treatment_types[0])
                or not dt_utils.is_valid_time_slot(time_slot)
                or not is_valid_kind(kind)
            ):
                continue

            entries[request.id] = ScheduledNotificationEntry(
                notification_id=request.id,
                schedule_id=schedule_ids[0],
                treatment_type=TreatmentType(treatment_types[0]),
                time_slot=time_slot,
                kind=NotificationKind(kind),
            )
        return list(entries.values())

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def async_put_entry(
        self,
        user_id: str,
        pet_id: str,
        entry: ScheduledNotificationEntry,
        day: date | None = None,
    ) -> None:
        """Insert or replace an entry (matched by notification id)."""
        target_day = day or self._today()
        entries = await self._async_load_bucket(user_id, pet_id, target_day)
        entries = [
            existing
            for existing in entries
            if existing.notification_id != entry.notification_id
        ]
        entries.append(entry)
        await self._async_save_bucket(user_id, pet_id, target_day, entries)

    async def async_get_for_today(
        self,
        user_id: str,
        pet_id: str,
        gateway: NotificationGateway | None = None,
    ) -> list[ScheduledNotificationEntry]:
        """Return today's entries.

        When a gateway is supplied, entries that are no longer pending are
        dropped and the bucket is re-persisted.
        """
        today = self._today()
        entries = await self._async_load_bucket(user_id, pet_id, today, gateway)
        if gateway is None or not entries:
            return entries

        try:
            pending_ids = {
                request.id
                for request in await gateway.async_pending_notification_requests()
            }
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Could not validate notification index against gateway: %s",
                err,
            )
            return entries

        valid = [entry for entry in entries if entry.notification_id in pending_ids]
        if len(valid) != len(entries):
            const.LOGGER.info(
                "INFO: Dropped %s stale notification index entries for %s/%s",
                len(entries) - len(valid),
                user_id,
                pet_id,
            )
            await self._async_save_bucket(user_id, pet_id, today, valid)
        return valid

    async def async_get_for_date(
        self, user_id: str, pet_id: str, day: date
    ) -> list[ScheduledNotificationEntry]:
        """Return the entries recorded for a given date."""
        return await self._async_load_bucket(user_id, pet_id, day)

    async def async_reconcile(
        self,
        user_id: str,
        pet_id: str,
        gateway: NotificationGateway,
        day: date | None = None,
    ) -> dict[str, int]:
        """Repair a bucket so it matches the gateway's pending reminders.

        The gateway is the source of truth: pending reminders of the pet that
        are missing from the index are added (rebuilt from their payload) and
        indexed entries that are no longer pending are removed.

        Returns:
            Report with the number of entries `added` and `removed`. Both
            are 0 when reconciliation fails.
        """
        target_day = day or self._today()
        try:
            entries = await self._async_load_bucket(
                user_id, pet_id, target_day, gateway
            )
            pending = await gateway.async_pending_notification_requests()
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.error(
                "ERROR: Index reconciliation failed for %s/%s: %s", user_id, pet_id, err
            )
            return {const.RECONCILE_ADDED: 0, const.RECONCILE_REMOVED: 0}

        pending_ids = {request.id for request in pending}
        indexed_ids = {entry.notification_id for entry in entries}
        kept = [entry for entry in entries if entry.notification_id in pending_ids]
        added = [
            entry
            for entry in self._entries_from_pending(pending, user_id, pet_id, target_day)
            if entry.notification_id not in indexed_ids
        ]
        removed = len(entries) - len(kept)

        if added or removed:
            await self._async_save_bucket(user_id, pet_id, target_day, kept + added)

        const.LOGGER.debug(
            "DEBUG: Index reconciliation for %s/%s on %s: added=%s removed=%s",
            user_id,
            pet_id,
            target_day.isoformat(),
            len(added),
            removed,
        )
        return {const.RECONCILE_ADDED: len(added), const.RECONCILE_REMOVED: removed}

    async def async_remove_entry_by(
        self,
        user_id: str,
        pet_id: str,
        schedule_id: str,
        time_slot: str,
        kind: NotificationKind,
        day: date | None = None,
    ) -> int:
        """Remove the entry matching schedule, slot and kind.

        Returns:
            Number of entries removed (0 or 1). 0 if persisting failed.
        """
        target_day = day or self._today()
        entries = await self._async_load_bucket(user_id, pet_id, target_day)
        remaining: list[ScheduledNotificationEntry] = []
        removed = 0
        for entry in entries:
            if (
                not removed
                and entry.schedule_id == schedule_id
                and entry.time_slot == time_slot
                and entry.kind == kind
            ):
                removed = 1
                continue
            remaining.append(entry)

        if not removed:
            return 0
        if not await self._async_save_bucket(user_id, pet_id, target_day, remaining):
            return 0
        return removed

    async def async_remove_all_for_schedule(
        self,
        user_id: str,
        pet_id: str,
        schedule_id: str,
        day: date | None = None,
    ) -> int:
        """Remove every entry for a schedule.

        Returns:
            Number of entries removed. 0 if persisting failed.
        """
        target_day = day or self._today()
        entries = await self._async_load_bucket(user_id, pet_id, target_day)
        remaining = [entry for entry in entries if entry.schedule_id != schedule_id]
        removed = len(entries) - len(remaining)
        if not removed:
            return 0
        if not await self._async_save_bucket(user_id, pet_id, target_day, remaining):
            return 0
        return removed

    async def async_clear_for_date(self, user_id: str, pet_id: str, day: date) -> None:
        """Wipe all entries for a date."""
        key = self.bucket_key(user_id, pet_id, day)
        if self._data.pop(key, None) is not None:
            await self.async_save()
        const.LOGGER.debug("DEBUG: Cleared notification index bucket '%s'", key)

    async def async_clear_all_for_yesterday(self) -> int:
        """Remove every bucket dated before today, for all users and pets.

        Returns:
            Number of buckets removed.
        """
        today = self._today()
        stale_keys = []
        for key in self._data:
            bucket_date = parse_bucket_date(key)
            if bucket_date is None or bucket_date < today:
                stale_keys.append(key)

        for key in stale_keys:
            self._data.pop(key, None)

        if stale_keys:
            await self.async_save()
            const.LOGGER.info(
                "INFO: Removed %s notification index bucket(s) older than %s",
                len(stale_keys),
                today.isoformat(),
            )
        return len(stale_keys)

    async def async_get_count_for_pet(
        self, user_id: str, pet_id: str, day: date | None = None
    ) -> int:
        """Return how many notifications are indexed for a pet on a date."""
        target_day = day or self._today()
        return len(await self._async_load_bucket(user_id, pet_id, target_day))

    async def async_clear_all(self) -> None:
        """Drop the whole index and persist the empty document."""
        const.LOGGER.warning("WARNING: Clearing all HydraCat notification index data")
        self._data.clear()
        await self.async_save()

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk."""
        self._data.clear()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Notification index file removed: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove notification index file %s: %s",
                self._store.path,
                err,
            )


def parse_bucket_date(key: str) -> date | None:
    """Extract the trailing YYYY-MM-DD of a bucket key, or None if malformed."""
    if not key.startswith(const.INDEX_KEY_PREFIX):
        return None
    try:
        return date.fromisoformat(key[-10:])
    except ValueError:
        return None
