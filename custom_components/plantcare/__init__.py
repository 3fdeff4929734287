"""PlantCare: houseplant watering tracker with an offline tolerant plant cache."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import PlantStoreClient
from .const import (
    CONF_BASE_URL,
    CONF_REQUEST_TIMEOUT,
    DEFAULT_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DOMAIN,
    PLATFORMS,
    normalise_request_timeout,
)
from .coordinator import PlantCareCoordinator
from .engine import PlantSyncEngine
from .models import Plant
from .services import async_register_services, async_unregister_services
from .storage import LocalPersistError, PlantCache

_LOGGER = logging.getLogger(__name__)


def _entry_config(entry: ConfigEntry) -> dict[str, Any]:
    """Options override data."""

    return {**entry.data, **entry.options}


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Load the cached plants, try a full refresh and set up the platforms."""
    hass.data.setdefault(DOMAIN, {})
    config = _entry_config(entry)

    client = PlantStoreClient(
        async_get_clientsession(hass),
        config.get(CONF_BASE_URL) or DEFAULT_BASE_URL,
        timeout=normalise_request_timeout(config.get(CONF_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT)),
    )
    cache = PlantCache(hass)
    engine = PlantSyncEngine(cache, client)

    try:
        synced = await engine.async_initialize()
    except LocalPersistError as err:
        raise ConfigEntryNotReady(str(err)) from err
    if synced:
        _LOGGER.debug("Plant cache refreshed from %s", client.base_url)
    else:
        _LOGGER.debug("Using %d locally cached plants", len(engine.plants))

    coordinator = PlantCareCoordinator(hass, entry, engine)
    hass.data[DOMAIN][entry.entry_id] = {
        "engine": engine,
        "cache": cache,
        "client": client,
        "coordinator": coordinator,
    }
    entry.async_on_unload(coordinator.async_detach)

    @callback
    def _prune_devices(plants: tuple[Plant, ...]) -> None:
        _async_remove_stale_devices(hass, entry, plants)

    entry.async_on_unload(engine.async_add_listener(_prune_devices))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _async_remove_stale_devices(hass, entry, engine.plants)
    await async_register_services(hass)

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        if not hass.data[DOMAIN]:
            async_unregister_services(hass)
    return unloaded


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload so a new base URL, timeout or interval takes effect."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_remove_config_entry_device(
    hass: HomeAssistant, entry: ConfigEntry, device_entry: dr.DeviceEntry
) -> bool:
    """Only devices of plants that are no longer cached may be deleted from the UI."""

    entry_data = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if not entry_data:
        return True
    engine: PlantSyncEngine = entry_data["engine"]
    return not any(
        domain == DOMAIN and (identifier == entry.entry_id or engine.get(identifier) is not None)
        for domain, identifier in device_entry.identifiers
    )


@callback
def _async_remove_stale_devices(hass: HomeAssistant, entry: ConfigEntry, plants: tuple[Plant, ...]) -> None:
    """Drop devices (and their entities) of plants that left the cache."""

    registry = dr.async_get(hass)
    keep = {plant.plant_id for plant in plants}
    keep.add(entry.entry_id)
    for device in dr.async_entries_for_config_entry(registry, entry.entry_id):
        identifiers = {identifier for domain, identifier in device.identifiers if domain == DOMAIN}
        if identifiers and not identifiers & keep:
            _LOGGER.debug("Removing device %s for deleted plant", device.name)
            registry.async_remove_device(device.id)
