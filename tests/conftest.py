"""Shared fixtures for HydraCat tests."""

# pylint: disable=redefined-outer-name  # Pytest fixtures redefine names

from datetime import datetime
from typing import Any

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import (
    MockConfigEntry,
    async_mock_service,
)

from custom_components.hydracat.const import (
    CONF_ENABLE_NOTIFICATIONS,
    CONF_LANGUAGE,
    CONF_NOTIFY_SERVICE,
    CONF_PET_ID,
    CONF_PET_NAME,
    CONF_USER_ID,
    CONF_WEEKLY_SUMMARY_ENABLED,
    DOMAIN,
)
from custom_components.hydracat.coordinator import (
    CoordinatorContext,
    NotificationSchedulingCoordinator,
)
from custom_components.hydracat.helpers import translation_helpers as th
from custom_components.hydracat.localization import NotificationLocalizer
from custom_components.hydracat.models import NotificationSettings, PetProfile
from custom_components.hydracat.schedule_cache import ScheduleCache
from custom_components.hydracat.store import NotificationIndexStore
from tests.helpers import (
    NOTIFY_SERVICE,
    PET_ID,
    PET_NAME,
    TEST_TZ,
    TODAY,
    USER_ID,
    FakeNotificationGateway,
    MutableClock,
    local_datetime,
)

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def reset_translation_cache() -> Any:
    """Keep the module-level translation cache from leaking between tests."""
    yield
    th.clear_translation_cache()


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title="HydraCat (Whiskers)",
        data={
            CONF_USER_ID: USER_ID,
            CONF_PET_ID: PET_ID,
            CONF_PET_NAME: PET_NAME,
            CONF_NOTIFY_SERVICE: NOTIFY_SERVICE,
            CONF_LANGUAGE: "en",
            CONF_ENABLE_NOTIFICATIONS: True,
            CONF_WEEKLY_SUMMARY_ENABLED: True,
        },
        entry_id="test_entry_id",
    )


@pytest.fixture
def clock() -> MutableClock:
    """Return a clock frozen at Wednesday 2025-01-15 07:00."""
    return MutableClock(datetime(2025, 1, 15, 7, 0, tzinfo=TEST_TZ))


@pytest.fixture
def gateway() -> FakeNotificationGateway:
    """Return an in-memory notification gateway."""
    return FakeNotificationGateway()


@pytest.fixture
async def schedule_cache(hass: HomeAssistant) -> ScheduleCache:
    """Return an empty, initialized schedule cache."""
    cache = ScheduleCache(hass)
    await cache.async_initialize()
    return cache


@pytest.fixture
async def index_store(hass: HomeAssistant, clock: MutableClock) -> NotificationIndexStore:
    """Return an empty, initialized notification index driven by the test clock."""
    store = NotificationIndexStore(hass, clock=clock)
    await store.async_initialize()
    return store


@pytest.fixture
async def localizer(hass: HomeAssistant) -> NotificationLocalizer:
    """Return an English localizer loaded from the bundled strings."""
    return await NotificationLocalizer.async_create(hass, "en")


@pytest.fixture
async def coordinator_context(
    clock: MutableClock,
    gateway: FakeNotificationGateway,
    schedule_cache: ScheduleCache,
    index_store: NotificationIndexStore,
    localizer: NotificationLocalizer,
) -> CoordinatorContext:
    """Return a coordinator context for the test user and pet."""
    return CoordinatorContext(
        user_id=USER_ID,
        pet=PetProfile(id=PET_ID, name=PET_NAME),
        schedule_cache=schedule_cache,
        gateway=gateway,
        index_store=index_store,
        localizer=localizer,
        settings=NotificationSettings(),
        clock=clock,
    )


@pytest.fixture
def coordinator(
    coordinator_context: CoordinatorContext,
) -> NotificationSchedulingCoordinator:
    """Return a coordinator wired to the fake gateway."""
    return NotificationSchedulingCoordinator(coordinator_context)


# =============================================================================
# Integration Fixtures
# =============================================================================


@pytest.fixture
def notify_calls(hass: HomeAssistant) -> list:
    """Capture calls to the configured notify service."""
    return async_mock_service(hass, "notify", "mobile_app_phone")


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    notify_calls: list,
    freezer: Any,
) -> MockConfigEntry:
    """Set up the integration at 07:00 local time on Wednesday 2025-01-15."""
    freezer.move_to(local_datetime(TODAY, 7))
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry
