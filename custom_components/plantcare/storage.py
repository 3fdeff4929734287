"""Locally persisted plant cache."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.json import save_json
from homeassistant.helpers.storage import Store

from .const import STORAGE_KEY, STORAGE_VERSION
from .models import InvalidPlantError, Plant

_LOGGER = logging.getLogger(__name__)


class LocalPersistError(RuntimeError):
    """Raised when the plant snapshot cannot be written to storage."""


class PlantNotFoundError(LookupError):
    """Raised when a position or plant id does not resolve to a cached plant."""


class PlantCache:
    """Ordered plant snapshot backed by a single Home Assistant store key.

    Every mutation rewrites the whole snapshot. There is no delta persistence,
    so a failed write leaves the previous file in place while the in-memory
    sequence already reflects the change.

    Loading goes through :class:`Store`. Saving writes the same versioned
    file directly so that write errors reach the caller.
    """

    def __init__(self, hass: HomeAssistant) -> None:
        self._hass = hass
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, STORAGE_KEY)
        self._plants: list[Plant] = []
        self._lock = asyncio.Lock()
        self.loaded = False

    @property
    def plants(self) -> tuple[Plant, ...]:
        return tuple(self._plants)

    def get(self, plant_id: str) -> Plant | None:
        for plant in self._plants:
            if plant.plant_id == plant_id:
                return plant
        return None

    def index_of(self, plant_id: str) -> int:
        for index, plant in enumerate(self._plants):
            if plant.plant_id == plant_id:
                return index
        raise PlantNotFoundError(f"unknown plant {plant_id!r}")

    def at(self, position: int) -> Plant:
        return self._plants[self._check_position(position)]

    async def async_load(self) -> tuple[Plant, ...]:
        """Return the last persisted snapshot, empty when nothing was stored."""

        data = await self._store.async_load()
        self._plants = _decode(data)
        self.loaded = True
        return self.plants

    async def async_replace_all(self, plants: Iterable[Plant]) -> None:
        self._plants = list(plants)
        await self._async_persist()

    async def async_append(self, plant: Plant) -> None:
        self._plants.append(plant)
        await self._async_persist()

    async def async_update_at(self, position: int, mutator: Callable[[Plant], Plant]) -> Plant:
        index = self._check_position(position)
        updated = mutator(self._plants[index])
        self._plants[index] = updated
        await self._async_persist()
        return updated

    async def async_remove_at(self, position: int) -> Plant:
        removed = self._plants.pop(self._check_position(position))
        await self._async_persist()
        return removed

    def _check_position(self, position: int) -> int:
        if isinstance(position, bool) or not isinstance(position, int):
            raise PlantNotFoundError(f"invalid position {position!r}")
        if position < 0 or position >= len(self._plants):
            raise PlantNotFoundError(f"no plant at position {position}")
        return position

    async def _async_persist(self) -> None:
        payload = {
            "version": STORAGE_VERSION,
            "minor_version": 1,
            "key": STORAGE_KEY,
            "data": {"plants": [plant.to_dict() for plant in self._plants]},
        }
        async with self._lock:
            try:
                await self._hass.async_add_executor_job(_write_snapshot, self._store.path, payload)
            except (OSError, HomeAssistantError) as err:
                raise LocalPersistError(f"unable to persist plant cache: {err}") from err


def _write_snapshot(path: str, payload: dict[str, Any]) -> None:
    """Write ``payload`` atomically, raising on any failure."""

    os.makedirs(os.path.dirname(path), exist_ok=True)
    save_json(path, payload, atomic_writes=True)


def _decode(data: Any) -> list[Plant]:
    """Return the valid plants contained in a stored payload."""

    if not isinstance(data, Mapping):
        return []
    records = data.get("plants")
    if not isinstance(records, Sequence) or isinstance(records, str | bytes | bytearray):
        return []

    plants: list[Plant] = []
    seen: set[str] = set()
    for record in records:
        try:
            plant = Plant.from_dict(record)
        except InvalidPlantError as err:
            _LOGGER.warning("Skipping invalid cached plant %s: %s", record, err)
            continue
        if plant.plant_id in seen:
            _LOGGER.warning("Skipping duplicate cached plant id %s", plant.plant_id)
            continue
        seen.add(plant.plant_id)
        plants.append(plant)
    return plants
