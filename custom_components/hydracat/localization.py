# File: localization.py
"""Notification text provider for HydraCat.

Resolves the title/body/channel of each notification from the loaded
`translations_custom/{language}_notifications.json` strings. Bundles of one
treatment get specific text ("give medication"), bundles of several get the
generic "N treatments" text.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from . import const
from .helpers import translation_helpers as th
from .models import NotificationContent, NotificationKind, TreatmentType

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class NotificationLocalizer:
    """Builds localized notification content from loaded translations."""

    def __init__(
        self,
        translations: dict[str, dict[str, str]],
        language: str = const.DEFAULT_LANGUAGE,
    ) -> None:
        """Initialize with an already-loaded translation mapping."""
        self.language = language
        self._translations = translations

    @classmethod
    async def async_create(
        cls, hass: HomeAssistant, language: str = const.DEFAULT_LANGUAGE
    ) -> NotificationLocalizer:
        """Load translations for a language (English fallback) and build a localizer."""
        translations = await th.load_notification_translation(hass, language)
        return cls(translations, language)

    def _format(self, key: str, **placeholders: Any) -> tuple[str, str]:
        """Return (title, message) for a key, formatted with placeholders.

        Missing keys fall back to the key itself; a missing placeholder leaves
        the template unformatted.
        """
        notification = self._translations.get(key, {})
        title = notification.get(const.TRANS_FIELD_TITLE, key)
        message = notification.get(const.TRANS_FIELD_MESSAGE, key)
        try:
            return title.format(**placeholders), message.format(**placeholders)
        except KeyError as err:
            const.LOGGER.warning(
                "WARNING: Missing placeholder %s for notification '%s'", err, key
            )
            return title, message

    def treatment_content(
        self,
        pet_name: str,
        treatment_types: Sequence[TreatmentType],
        kind: NotificationKind,
    ) -> NotificationContent:
        """Content for a bundled treatment reminder."""
        count = len(treatment_types)

        if count == 1:
            if kind == NotificationKind.FOLLOWUP:
                key = const.TRANS_KEY_SINGLE_FOLLOWUP
                channel_id = self.channel_for(treatment_types[0])
            elif treatment_types[0] == TreatmentType.FLUID:
                key = const.TRANS_KEY_SINGLE_FLUID
                channel_id = const.CHANNEL_FLUID_REMINDERS
            else:
                key = const.TRANS_KEY_SINGLE_MEDICATION
                channel_id = const.CHANNEL_MEDICATION_REMINDERS
        else:
            channel_id = const.CHANNEL_MEDICATION_REMINDERS
            if kind == NotificationKind.FOLLOWUP:
                key = const.TRANS_KEY_MULTI_FOLLOWUP
            elif len(set(treatment_types)) > 1:
                key = const.TRANS_KEY_MULTI_INITIAL_MIXED
            else:
                key = const.TRANS_KEY_MULTI_INITIAL

        title, body = self._format(key, pet_name=pet_name, count=count)
        return NotificationContent(title=title, body=body, channel_id=channel_id)

    def weekly_summary_content(self) -> NotificationContent:
        """Content for the weekly summary."""
        title, body = self._format(const.TRANS_KEY_WEEKLY_SUMMARY)
        return NotificationContent(
            title=title, body=body, channel_id=const.CHANNEL_WEEKLY_SUMMARIES
        )

    def group_summary_content(
        self, pet_name: str, medication_count: int, fluid_count: int
    ) -> tuple[str, str]:
        """Title and body of a pet's group summary."""
        return self._format(
            const.TRANS_KEY_GROUP_SUMMARY,
            pet_name=pet_name,
            medication_count=medication_count,
            fluid_count=fluid_count,
        )

    @staticmethod
    def channel_for(treatment_type: TreatmentType) -> str:
        """Notification channel of a single treatment type."""
        if treatment_type == TreatmentType.FLUID:
            return const.CHANNEL_FLUID_REMINDERS
        return const.CHANNEL_MEDICATION_REMINDERS
