# File: schedule_cache.py
"""Treatment schedule cache for the HydraCat integration.

Holds the pet's treatment schedules in memory and persists them with Home
Assistant's Storage helper. The coordinator only reads from it; the
`upsert_schedule` / `remove_schedule` services are the writers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.storage import Store

from . import const
from .models import TreatmentSchedule
from .type_defs import ScheduleStoreData

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class ScheduleCache:
    """In-memory treatment schedules backed by a storage file."""

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY_SCHEDULES
    ) -> None:
        """Initialize the cache."""
        self.hass = hass
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._schedules: dict[str, TreatmentSchedule] = {}

    async def async_initialize(self) -> None:
        """Load schedules from storage, skipping any that fail validation."""
        existing_data = await self._store.async_load()
        self._schedules = {}

        if not existing_data:
            const.LOGGER.info("INFO: No treatment schedules stored yet")
            return

        raw_schedules = existing_data.get(const.DATA_SCHEDULES, {})
        for schedule_id, raw in raw_schedules.items():
            try:
                self._schedules[schedule_id] = TreatmentSchedule.from_dict(raw)
            except ValueError as err:
                const.LOGGER.warning(
                    "WARNING: Skipping invalid stored schedule '%s': %s",
                    schedule_id,
                    err,
                )

        const.LOGGER.debug(
            "DEBUG: Loaded %s treatment schedule(s)", len(self._schedules)
        )

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def is_empty(self) -> bool:
        """Return True when no schedules exist."""
        return not self._schedules

    def get_schedules(self) -> list[TreatmentSchedule]:
        """Return all schedules, ordered by id."""
        return [self._schedules[key] for key in sorted(self._schedules)]

    def get_active_schedules(self) -> list[TreatmentSchedule]:
        """Return the active schedules, ordered by id."""
        return [schedule for schedule in self.get_schedules() if schedule.is_active]

    def get_schedule(self, schedule_id: str) -> TreatmentSchedule | None:
        """Return a schedule by id."""
        return self._schedules.get(schedule_id)

    def as_dict(self) -> ScheduleStoreData:
        """Return the storage representation."""
        return {
            const.DATA_SCHEDULES: {
                schedule_id: schedule.to_dict()
                for schedule_id, schedule in self._schedules.items()
            }
        }

    # =========================================================================
    # Writes
    # =========================================================================

    async def async_save(self) -> None:
        """Persist schedules. Errors are logged, never raised."""
        try:
            await self._store.async_save(self.as_dict())
        except (OSError, TypeError, ValueError) as err:
            const.LOGGER.error("ERROR: Failed to save treatment schedules: %s", err)

    async def async_upsert(self, schedule: TreatmentSchedule) -> None:
        """Insert or replace a schedule."""
        self._schedules[schedule.id] = schedule
        await self.async_save()
        const.LOGGER.debug("DEBUG: Stored treatment schedule '%s'", schedule.id)

    async def async_remove(self, schedule_id: str) -> TreatmentSchedule | None:
        """Remove a schedule and return it, or None if it did not exist."""
        removed = self._schedules.pop(schedule_id, None)
        if removed is not None:
            await self.async_save()
            const.LOGGER.debug("DEBUG: Removed treatment schedule '%s'", schedule_id)
        return removed

    async def async_clear(self) -> None:
        """Remove every schedule."""
        self._schedules.clear()
        await self.async_save()

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk."""
        self._schedules.clear()
        try:
            await self._store.async_remove()
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove schedule storage %s: %s", self._store.path, err
            )
