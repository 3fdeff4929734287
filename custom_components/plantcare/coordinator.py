from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import CONF_UPDATE_INTERVAL, DEFAULT_UPDATE_MINUTES, DOMAIN, normalise_update_minutes
from .engine import PlantSyncEngine
from .models import Plant

_LOGGER = logging.getLogger(__name__)


class PlantCareCoordinator(DataUpdateCoordinator[tuple[Plant, ...]]):
    """Fan engine snapshots out to entities.

    Engine mutations push data immediately. The periodic refresh only re-reads
    the local snapshot so due states follow the clock; it never calls the
    remote store.
    """

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry, engine: PlantSyncEngine) -> None:
        self.engine = engine
        self._entry_id = entry.entry_id
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}-{entry.entry_id}",
            update_interval=timedelta(minutes=self._resolve_interval(entry)),
        )
        self.data = engine.plants
        self._unsub_engine = engine.async_add_listener(self._handle_engine_update)

    @staticmethod
    def _resolve_interval(entry: ConfigEntry) -> int:
        candidate = entry.options.get(CONF_UPDATE_INTERVAL) or entry.data.get(CONF_UPDATE_INTERVAL)
        return normalise_update_minutes(candidate or DEFAULT_UPDATE_MINUTES)

    @property
    def entry_id(self) -> str:
        return self._entry_id

    def plant(self, plant_id: str) -> Plant | None:
        for plant in self.data or ():
            if plant.plant_id == plant_id:
                return plant
        return None

    @callback
    def _handle_engine_update(self, plants: tuple[Plant, ...]) -> None:
        self.async_set_updated_data(plants)

    async def _async_update_data(self) -> tuple[Plant, ...]:
        return self.engine.plants

    @callback
    def async_detach(self) -> None:
        """Stop listening to the engine."""

        self._unsub_engine()
