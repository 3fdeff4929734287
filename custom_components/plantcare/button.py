from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import PlantCareCoordinator
from .entity import PlantCareEntity
from .models import Plant
from .sensor import async_track_new_plants
from .storage import LocalPersistError, PlantNotFoundError


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    coordinator: PlantCareCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    entry.async_on_unload(
        async_track_new_plants(
            coordinator,
            lambda plant: [WaterPlantButton(coordinator, plant)],
            async_add_entities,
        )
    )


class WaterPlantButton(PlantCareEntity, ButtonEntity):
    """Mark the plant as watered today."""

    _attr_icon = "mdi:watering-can-outline"

    def __init__(self, coordinator: PlantCareCoordinator, plant: Plant) -> None:
        super().__init__(coordinator, plant, "water")

    async def async_press(self) -> None:
        try:
            await self.coordinator.engine.async_water_plant(self._plant_id)
        except PlantNotFoundError as err:
            raise HomeAssistantError(f"Plant {self._plant_id} no longer exists") from err
        except LocalPersistError as err:
            raise HomeAssistantError(str(err)) from err
