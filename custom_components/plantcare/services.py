"""Service handlers for PlantCare.

The services are thin wrappers around :class:`PlantSyncEngine`. They accept a
stable ``plant_id`` or, for compatibility with list based front ends, a
``position`` in the current plant order.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .const import (
    ATTR_INTERVAL_DAYS,
    ATTR_NAME,
    ATTR_PLANT_ID,
    ATTR_POSITION,
    DOMAIN,
    MAX_INTERVAL_DAYS,
    SERVICE_ADD_PLANT,
    SERVICE_REFRESH_PLANTS,
    SERVICE_REMOVE_PLANT,
    SERVICE_WATER_PLANT,
)
from .engine import PlantSyncEngine
from .models import InvalidPlantError, Plant
from .storage import LocalPersistError, PlantNotFoundError

_LOGGER = logging.getLogger(__name__)

ADD_PLANT_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_NAME): vol.All(cv.string, vol.Length(min=1)),
        vol.Required(ATTR_INTERVAL_DAYS): vol.All(vol.Coerce(int), vol.Range(min=1, max=MAX_INTERVAL_DAYS)),
    }
)

TARGET_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Exclusive(ATTR_PLANT_ID, "target"): cv.string,
            vol.Exclusive(ATTR_POSITION, "target"): vol.All(vol.Coerce(int), vol.Range(min=0)),
        }
    ),
    cv.has_at_least_one_key(ATTR_PLANT_ID, ATTR_POSITION),
)

_SERVICES = (SERVICE_ADD_PLANT, SERVICE_WATER_PLANT, SERVICE_REMOVE_PLANT, SERVICE_REFRESH_PLANTS)


def _get_engine(hass: HomeAssistant) -> PlantSyncEngine:
    for entry_data in hass.data.get(DOMAIN, {}).values():
        engine = entry_data.get("engine") if isinstance(entry_data, dict) else None
        if engine is not None:
            return engine
    raise ServiceValidationError("PlantCare is not set up")


async def _run(coro: Awaitable[Plant]) -> Plant:
    try:
        return await coro
    except PlantNotFoundError as err:
        raise ServiceValidationError(str(err)) from err
    except InvalidPlantError as err:
        raise ServiceValidationError(str(err)) from err
    except LocalPersistError as err:
        raise HomeAssistantError(str(err)) from err


async def async_register_services(hass: HomeAssistant) -> None:
    """Register the plant services once per Home Assistant instance."""

    if hass.services.has_service(DOMAIN, SERVICE_ADD_PLANT):
        return

    async def _srv_add_plant(call: ServiceCall) -> ServiceResponse:
        engine = _get_engine(hass)
        plant = await _run(engine.async_create(call.data[ATTR_NAME], call.data[ATTR_INTERVAL_DAYS]))
        _LOGGER.debug("Added plant %s (%s)", plant.name, plant.plant_id)
        if not call.return_response:
            return None
        return plant.to_dict()

    async def _srv_water_plant(call: ServiceCall) -> None:
        engine = _get_engine(hass)
        if ATTR_PLANT_ID in call.data:
            await _run(engine.async_water_plant(call.data[ATTR_PLANT_ID]))
        else:
            await _run(engine.async_water(call.data[ATTR_POSITION]))

    async def _srv_remove_plant(call: ServiceCall) -> None:
        engine = _get_engine(hass)
        if ATTR_PLANT_ID in call.data:
            await _run(engine.async_delete_plant(call.data[ATTR_PLANT_ID]))
        else:
            await _run(engine.async_delete(call.data[ATTR_POSITION]))

    async def _srv_refresh_plants(call: ServiceCall) -> ServiceResponse:
        engine = _get_engine(hass)
        try:
            synced = await engine.async_initialize()
        except LocalPersistError as err:
            raise HomeAssistantError(str(err)) from err
        if not call.return_response:
            return None
        result: dict[str, Any] = {"synced": synced, "plant_count": len(engine.plants)}
        return result

    hass.services.async_register(
        DOMAIN,
        SERVICE_ADD_PLANT,
        _srv_add_plant,
        schema=ADD_PLANT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(DOMAIN, SERVICE_WATER_PLANT, _srv_water_plant, schema=TARGET_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_REMOVE_PLANT, _srv_remove_plant, schema=TARGET_SCHEMA)
    hass.services.async_register(
        DOMAIN,
        SERVICE_REFRESH_PLANTS,
        _srv_refresh_plants,
        schema=vol.Schema({}),
        supports_response=SupportsResponse.OPTIONAL,
    )


def async_unregister_services(hass: HomeAssistant) -> None:
    for service in _SERVICES:
        hass.services.async_remove(DOMAIN, service)
