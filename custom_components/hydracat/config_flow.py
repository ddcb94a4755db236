# File: config_flow.py
"""Config flow for the HydraCat integration.

A single user step collects the signed-in user, the active pet and the notify
service reminders are delivered through. The options flow edits everything
except the user and pet identity, and the entry reloads on save.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv

from . import const


def _is_valid_notify_service(value: str) -> bool:
    """Return True for a `notify.<service>` name."""
    domain, _, service = value.partition(".")
    return domain == const.NOTIFY_DOMAIN and bool(service) and "." not in service


def _settings_schema(defaults: dict[str, Any]) -> dict[Any, Any]:
    """Fields shared by the user step and the options flow."""
    return {
        vol.Required(
            const.CONF_PET_NAME,
            default=defaults.get(const.CONF_PET_NAME, const.DEFAULT_PET_NAME),
        ): cv.string,
        vol.Required(
            const.CONF_NOTIFY_SERVICE,
            default=defaults.get(const.CONF_NOTIFY_SERVICE, ""),
        ): cv.string,
        vol.Required(
            const.CONF_LANGUAGE,
            default=defaults.get(const.CONF_LANGUAGE, const.DEFAULT_LANGUAGE),
        ): cv.string,
        vol.Required(
            const.CONF_ENABLE_NOTIFICATIONS,
            default=defaults.get(
                const.CONF_ENABLE_NOTIFICATIONS, const.DEFAULT_ENABLE_NOTIFICATIONS
            ),
        ): cv.boolean,
        vol.Required(
            const.CONF_WEEKLY_SUMMARY_ENABLED,
            default=defaults.get(
                const.CONF_WEEKLY_SUMMARY_ENABLED,
                const.DEFAULT_WEEKLY_SUMMARY_ENABLED,
            ),
        ): cv.boolean,
    }


def _strip_strings(user_input: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.strip() if isinstance(value, str) else value
        for key, value in user_input.items()
    }


def _validate_settings(user_input: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not _is_valid_notify_service(user_input.get(const.CONF_NOTIFY_SERVICE, "")):
        errors[const.CONF_NOTIFY_SERVICE] = const.CFOP_ERROR_NOTIFY_SERVICE
    return errors


class HydraCatConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config flow for HydraCat."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Collect the user, pet and delivery settings."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            user_input = _strip_strings(user_input)
            if not user_input.get(const.CONF_USER_ID):
                errors[const.CONF_USER_ID] = const.CFOP_ERROR_USER_ID
            if not user_input.get(const.CONF_PET_ID):
                errors[const.CONF_PET_ID] = const.CFOP_ERROR_PET_ID
            errors.update(_validate_settings(user_input))

            if not errors:
                const.LOGGER.info(
                    "INFO: Creating HydraCat entry for pet '%s'",
                    user_input[const.CONF_PET_ID],
                )
                return self.async_create_entry(
                    title=f"{const.HYDRACAT_TITLE} ({user_input[const.CONF_PET_NAME]})",
                    data=user_input,
                )

        defaults = user_input or {}
        data_schema = vol.Schema(
            {
                vol.Required(
                    const.CONF_USER_ID, default=defaults.get(const.CONF_USER_ID, "")
                ): cv.string,
                vol.Required(
                    const.CONF_PET_ID, default=defaults.get(const.CONF_PET_ID, "")
                ): cv.string,
                **_settings_schema(defaults),
            }
        )
        return self.async_show_form(
            step_id="user", data_schema=data_schema, errors=errors
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return HydraCatOptionsFlowHandler()


class HydraCatOptionsFlowHandler(config_entries.OptionsFlow):
    """Options flow for pet name, notify service, language and toggles."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Edit the delivery settings."""
        errors: dict[str, str] = {}
        if user_input is not None:
            user_input = _strip_strings(user_input)
            errors = _validate_settings(user_input)
            if not errors:
                const.LOGGER.debug("DEBUG: HydraCat options updated: %s", user_input)
                return self.async_create_entry(title="", data=user_input)

        defaults = {
            **self.config_entry.data,
            **self.config_entry.options,
            **(user_input or {}),
        }
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(_settings_schema(defaults)),
            errors=errors,
        )
