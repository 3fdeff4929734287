"""Sensor platform for PlantCare."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import dt as dt_util

from .const import (
    ATTR_DAYS_UNTIL_DUE,
    ATTR_INTERVAL_DAYS,
    ATTR_LAST_WATERED,
    ATTR_PLANT_ID,
    ATTR_REMOTE_ID,
    ATTR_SYNC_ERROR,
    ATTR_SYNC_STATE,
    DOMAIN,
)
from .coordinator import PlantCareCoordinator
from .entity import PlantCareEntity
from .models import Plant
from .watering import days_until_due

_LOGGER = logging.getLogger(__name__)


def async_track_new_plants(
    coordinator: PlantCareCoordinator,
    build: Callable[[Plant], list],
    async_add_entities: AddEntitiesCallback,
) -> Callable[[], None]:
    """Add entities for every plant now and for plants created later."""

    known: set[str] = set()

    @callback
    def _add_new() -> None:
        entities = []
        for plant in coordinator.data or ():
            if plant.plant_id in known:
                continue
            known.add(plant.plant_id)
            entities.extend(build(plant))
        if entities:
            async_add_entities(entities)

    _add_new()
    return coordinator.async_add_listener(_add_new)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up next watering sensors from a config entry."""
    coordinator: PlantCareCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    _LOGGER.debug("Setting up plantcare sensors for %d plants", len(coordinator.data or ()))
    entry.async_on_unload(
        async_track_new_plants(
            coordinator,
            lambda plant: [NextWateringSensor(coordinator, plant)],
            async_add_entities,
        )
    )


class NextWateringSensor(PlantCareEntity, SensorEntity):
    """When the plant is next due for water."""

    _attr_device_class = SensorDeviceClass.TIMESTAMP
    _attr_icon = "mdi:watering-can"

    def __init__(self, coordinator: PlantCareCoordinator, plant: Plant) -> None:
        super().__init__(coordinator, plant, "next_watering")

    @property
    def native_value(self) -> datetime | None:
        plant = self.plant
        if plant is None:
            return None
        return self.coordinator.engine.compute_next_due(plant)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        plant = self.plant
        if plant is None:
            return {}
        return {
            ATTR_PLANT_ID: plant.plant_id,
            ATTR_REMOTE_ID: plant.remote_id,
            ATTR_INTERVAL_DAYS: plant.interval_days,
            ATTR_LAST_WATERED: plant.last_watered_at.isoformat(),
            ATTR_DAYS_UNTIL_DUE: days_until_due(plant.last_watered_at, plant.interval_days, dt_util.now()),
            ATTR_SYNC_STATE: plant.sync_state.value,
            ATTR_SYNC_ERROR: plant.sync_error,
        }
