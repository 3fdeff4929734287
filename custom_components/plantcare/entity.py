from __future__ import annotations

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MANUFACTURER
from .coordinator import PlantCareCoordinator
from .models import Plant


def plant_device_info(plant: Plant) -> DeviceInfo:
    return DeviceInfo(
        identifiers={(DOMAIN, plant.plant_id)},
        name=plant.name,
        manufacturer=MANUFACTURER,
        model="Houseplant",
    )


class PlantCareEntity(CoordinatorEntity[PlantCareCoordinator]):
    """Entity tied to one cached plant."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: PlantCareCoordinator, plant: Plant, key: str) -> None:
        super().__init__(coordinator)
        self._plant_id = plant.plant_id
        self._attr_unique_id = f"{coordinator.entry_id}_{plant.plant_id}_{key}"
        self._attr_translation_key = key
        self._attr_device_info = plant_device_info(plant)

    @property
    def plant(self) -> Plant | None:
        return self.coordinator.plant(self._plant_id)

    @property
    def available(self) -> bool:
        """Plants are local first, so availability only tracks cache membership."""

        return self.plant is not None
