"""Binary sensor platform for PlantCare."""

from __future__ import annotations

from typing import Any

from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.util import dt as dt_util

from .const import CATEGORY_DIAGNOSTIC, DOMAIN, MANUFACTURER
from .coordinator import PlantCareCoordinator
from .entity import PlantCareEntity
from .models import Plant
from .sensor import async_track_new_plants
from .watering import is_due


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    coordinator: PlantCareCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([RemoteStoreBinarySensor(coordinator, entry.title)])
    entry.async_on_unload(
        async_track_new_plants(
            coordinator,
            lambda plant: [NeedsWaterBinarySensor(coordinator, plant)],
            async_add_entities,
        )
    )


class NeedsWaterBinarySensor(PlantCareEntity, BinarySensorEntity):
    """On once the plant's watering interval has elapsed."""

    _attr_icon = "mdi:water-alert"

    def __init__(self, coordinator: PlantCareCoordinator, plant: Plant) -> None:
        super().__init__(coordinator, plant, "needs_water")

    @property
    def is_on(self) -> bool | None:
        plant = self.plant
        if plant is None:
            return None
        return is_due(plant.last_watered_at, plant.interval_days, dt_util.now())


class RemoteStoreBinarySensor(CoordinatorEntity[PlantCareCoordinator], BinarySensorEntity):
    """Whether the last call to the remote plant store went through."""

    _attr_has_entity_name = True
    _attr_translation_key = "remote_store"
    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_entity_category = CATEGORY_DIAGNOSTIC

    def __init__(self, coordinator: PlantCareCoordinator, title: str) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.entry_id}_remote_store"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, coordinator.entry_id)},
            name=title or "PlantCare",
            manufacturer=MANUFACTURER,
            model="Plant store",
        )

    @property
    def available(self) -> bool:
        return True

    @property
    def is_on(self) -> bool | None:
        return self.coordinator.engine.remote_available

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        engine = self.coordinator.engine
        return {
            "last_synced_at": engine.last_synced_at.isoformat() if engine.last_synced_at else None,
            "last_remote_error": engine.last_remote_error,
        }
