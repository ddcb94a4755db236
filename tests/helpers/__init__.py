"""Test helpers for HydraCat integration tests.

This module re-exports all helpers for convenient imports:

    from tests.helpers import (
        # Constants and builders
        USER_ID, PET_ID, TODAY, make_schedule, make_entry, slot_id,

        # Fakes
        FakeNotificationGateway, MutableClock,

        # Scenarios
        seed_schedules,
    )

See individual modules for full documentation:
- builders.py: Test identities and domain object builders
- fakes.py: In-memory notification gateway and movable clock
- scenarios.py: YAML scenario loading (tests/scenarios/*.yaml)
"""

from tests.helpers.builders import (
    NOTIFY_SERVICE,
    PET_ID,
    PET_NAME,
    TEST_TZ,
    TODAY,
    USER_ID,
    local_datetime,
    make_entry,
    make_schedule,
    make_treatment_request,
    slot_id,
)
from tests.helpers.fakes import FakeNotificationGateway, MutableClock, ScheduledCall
from tests.helpers.scenarios import (
    load_scenario,
    schedules_from_scenario,
    seed_schedules,
)

__all__ = [
    "NOTIFY_SERVICE",
    "PET_ID",
    "PET_NAME",
    "TEST_TZ",
    "TODAY",
    "USER_ID",
    "FakeNotificationGateway",
    "MutableClock",
    "ScheduledCall",
    "load_scenario",
    "local_datetime",
    "make_entry",
    "make_schedule",
    "make_treatment_request",
    "schedules_from_scenario",
    "seed_schedules",
    "slot_id",
]
