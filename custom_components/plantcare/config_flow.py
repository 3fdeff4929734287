from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntry, ConfigFlowResult
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_BASE_URL,
    CONF_REQUEST_TIMEOUT,
    CONF_UPDATE_INTERVAL,
    DEFAULT_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_UPDATE_MINUTES,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)


def _settings_schema(defaults: dict[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_BASE_URL, default=defaults.get(CONF_BASE_URL, DEFAULT_BASE_URL)): cv.string,
            vol.Required(
                CONF_REQUEST_TIMEOUT,
                default=defaults.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=300)),
            vol.Required(
                CONF_UPDATE_INTERVAL,
                default=defaults.get(CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_MINUTES),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=1440)),
        }
    )


def _clean(user_input: dict[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Normalise the base URL and report form errors."""

    data = dict(user_input)
    base_url = str(data.get(CONF_BASE_URL, "")).strip().rstrip("/")
    errors: dict[str, str] = {}
    try:
        cv.url(base_url)
    except vol.Invalid:
        errors[CONF_BASE_URL] = "invalid_url"
    data[CONF_BASE_URL] = base_url
    return data, errors


class PlantCareConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Collect the plant store location.

    The store is not contacted here: the integration works from its local
    cache when the store is down, so an unreachable URL is not an error.
    """

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        if self._async_current_entries():
            return self.async_abort(reason="single_instance_allowed")

        errors: dict[str, str] = {}
        if user_input is not None:
            data, errors = _clean(user_input)
            if not errors:
                _LOGGER.debug("Creating PlantCare entry for %s", data[CONF_BASE_URL])
                return self.async_create_entry(title="PlantCare", data=data)
            user_input = data

        return self.async_show_form(
            step_id="user",
            data_schema=_settings_schema(user_input or {}),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> PlantCareOptionsFlow:
        return PlantCareOptionsFlow()


class PlantCareOptionsFlow(config_entries.OptionsFlow):
    """Edit the store location, timeout and re-evaluation interval."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> ConfigFlowResult:
        errors: dict[str, str] = {}
        if user_input is not None:
            data, errors = _clean(user_input)
            if not errors:
                return self.async_create_entry(title="", data=data)
            defaults = data
        else:
            defaults = {**self.config_entry.data, **self.config_entry.options}

        return self.async_show_form(
            step_id="init",
            data_schema=_settings_schema(defaults),
            errors=errors,
        )
