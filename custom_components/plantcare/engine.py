"""Offline tolerant reconciliation between the plant cache and the remote store."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from homeassistant.util import dt as dt_util

from .api import RemotePlant, RemoteStore, RemoteStoreError, TransportFailure
from .models import Plant, SyncState
from .storage import PlantCache
from .utils.logging import clear_warning, warn_once
from .watering import compute_next_due

_LOGGER = logging.getLogger(__name__)

_UNREACHABLE = "remote_store_unreachable"

PlantListener = Callable[[tuple[Plant, ...]], None]


class PlantSyncEngine:
    """Sole writer of the plant cache.

    Local changes are applied, persisted and announced before the remote store
    is contacted. The remote outcome is recorded on the plant as its
    :class:`SyncState` and never raised to the caller. Only local persist
    failures propagate.
    """

    def __init__(
        self,
        cache: PlantCache,
        remote: RemoteStore,
        *,
        now: Callable[[], datetime] = dt_util.now,
    ) -> None:
        self._cache = cache
        self._remote = remote
        self._now = now
        self._listeners: list[PlantListener] = []
        self.remote_available: bool | None = None
        self.last_synced_at: datetime | None = None
        self.last_remote_error: str | None = None
        # plant ids whose create call is still in flight and not deleted since
        self._creating: set[str] = set()

    @property
    def plants(self) -> tuple[Plant, ...]:
        return self._cache.plants

    def get(self, plant_id: str) -> Plant | None:
        return self._cache.get(plant_id)

    def compute_next_due(self, plant: Plant) -> datetime:
        return compute_next_due(plant.last_watered_at, plant.interval_days)

    # ---- change notification ----
    def async_add_listener(self, listener: PlantListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot after every mutation."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        snapshot = self._cache.plants
        for listener in list(self._listeners):
            listener(snapshot)

    # ---- operations ----
    async def async_initialize(self) -> bool:
        """Replace the cache with the remote listing when it has plants.

        Returns ``True`` when the cache was replaced. A failed call or an
        empty listing leaves the persisted cache as it is, so an unseeded
        store cannot wipe plants that only exist locally.
        """

        if not self._cache.loaded:
            await self._cache.async_load()

        try:
            remote_plants = await self._remote.list_plants()
        except RemoteStoreError as err:
            self._record_failure("list", err)
            return False
        self._record_success()

        if not remote_plants:
            _LOGGER.info("Remote store has no plants, keeping %d cached plants", len(self._cache.plants))
            return False

        await self._cache.async_replace_all(self._merge_listing(remote_plants))
        self.last_synced_at = self._now()
        _LOGGER.info("Loaded %d plants from the remote store", len(remote_plants))
        self._notify()
        return True

    async def async_create(self, name: str, interval_days: Any) -> Plant:
        """Add a plant locally, then try to register it with the remote store."""

        candidate = Plant.new(name, interval_days, last_watered_at=self._now())
        await self._cache.async_append(candidate)
        self._notify()

        self._creating.add(candidate.plant_id)
        try:
            echoed = await self._remote.create_plant(
                candidate.name, candidate.interval_days, candidate.last_watered_at
            )
        except RemoteStoreError as err:
            self._record_failure("create", err)
            error = err.describe()
            if candidate.plant_id not in self._creating:
                return candidate.with_sync(SyncState.SYNC_FAILED, error)
            return await self._async_settle(candidate, lambda plant: plant.with_sync(SyncState.SYNC_FAILED, error))
        finally:
            deleted = candidate.plant_id not in self._creating
            self._creating.discard(candidate.plant_id)
        self._record_success()

        if deleted:
            if echoed.remote_id is not None:
                await self._async_remote_delete(echoed.remote_id)
            return candidate

        # a full refresh during the create may already list the echoed record
        listed = self._find_remote(echoed.remote_id)
        if listed is not None and self._cache.get(candidate.plant_id) is None:
            return listed
        return await self._async_settle(candidate, lambda plant: _adopt(plant, echoed))

    async def async_water(self, position: int) -> Plant:
        return await self.async_water_plant(self._cache.at(position).plant_id)

    async def async_water_plant(self, plant_id: str) -> Plant:
        """Stamp the plant as watered now and tell the remote store."""

        index = self._cache.index_of(plant_id)
        plant = await self._cache.async_update_at(index, lambda current: current.watered(self._now()))
        self._notify()

        if plant.remote_id is None:
            return plant

        try:
            await self._remote.mark_watered(plant.remote_id)
        except RemoteStoreError as err:
            self._record_failure("water", err)
            state, error = SyncState.SYNC_FAILED, err.describe()
        else:
            self._record_success()
            state, error = SyncState.SYNCED, None

        updated = await self._async_apply(plant_id, lambda current: current.with_sync(state, error))
        return updated or plant

    async def async_delete(self, position: int) -> Plant:
        return await self.async_delete_plant(self._cache.at(position).plant_id)

    async def async_delete_plant(self, plant_id: str) -> Plant:
        """Remove the plant locally and, when it has a remote id, remotely."""

        removed = await self._cache.async_remove_at(self._cache.index_of(plant_id))
        self._creating.discard(plant_id)
        self._notify()
        if removed.remote_id is not None:
            await self._async_remote_delete(removed.remote_id)
        return removed

    # ---- helpers ----
    def _find_remote(self, remote_id: str | None) -> Plant | None:
        if remote_id is None:
            return None
        for plant in self._cache.plants:
            if plant.remote_id == remote_id:
                return plant
        return None

    def _merge_listing(self, remote_plants: list[RemotePlant]) -> list[Plant]:
        """Build the new snapshot, keeping local ids of plants already known."""

        known = {plant.remote_id: plant.plant_id for plant in self._cache.plants if plant.remote_id}
        used: set[str] = set()
        merged: list[Plant] = []
        for remote in remote_plants:
            plant_id = known.get(remote.remote_id) if remote.remote_id else None
            if plant_id is None or plant_id in used:
                plant_id = uuid.uuid4().hex
            used.add(plant_id)
            merged.append(
                Plant(
                    plant_id=plant_id,
                    name=remote.name,
                    interval_days=remote.interval_days,
                    last_watered_at=remote.last_watered_at,
                    remote_id=remote.remote_id,
                    sync_state=SyncState.SYNCED if remote.remote_id else SyncState.LOCAL_ONLY,
                )
            )
        return merged

    async def _async_apply(self, plant_id: str, mutator: Callable[[Plant], Plant]) -> Plant | None:
        """Mutate the plant if it is still cached, returning the new version."""

        if self._cache.get(plant_id) is None:
            _LOGGER.debug("Plant %s disappeared before its sync result arrived", plant_id)
            return None
        updated = await self._cache.async_update_at(self._cache.index_of(plant_id), mutator)
        self._notify()
        return updated

    async def _async_settle(self, candidate: Plant, mutator: Callable[[Plant], Plant]) -> Plant:
        """Record the create outcome on the cached plant.

        The plant is appended again when a full refresh dropped it from the
        cache while its create call was in flight.
        """

        if self._cache.get(candidate.plant_id) is None:
            settled = mutator(candidate)
            await self._cache.async_append(settled)
        else:
            settled = await self._cache.async_update_at(self._cache.index_of(candidate.plant_id), mutator)
        self._notify()
        return settled

    async def _async_remote_delete(self, remote_id: str) -> None:
        try:
            await self._remote.delete_plant(remote_id)
        except RemoteStoreError as err:
            self._record_failure("delete", err)
        else:
            self._record_success()

    def _record_failure(self, operation: str, err: RemoteStoreError) -> None:
        self.remote_available = False
        self.last_remote_error = f"{operation}: {err.describe()}"
        if isinstance(err, TransportFailure):
            warn_once(_LOGGER, _UNREACHABLE, f"{operation} kept local only ({err})")
        else:
            _LOGGER.warning("Remote store %s failed, kept local only: %s", operation, err.describe())

    def _record_success(self) -> None:
        if self.remote_available is False:
            _LOGGER.info("Remote store reachable again")
        self.remote_available = True
        self.last_remote_error = None
        clear_warning(_UNREACHABLE)

    def status(self) -> dict[str, Any]:
        """Return sync status for diagnostics."""

        counts = {state.value: 0 for state in SyncState}
        for plant in self._cache.plants:
            counts[plant.sync_state.value] += 1
        return {
            "remote_available": self.remote_available,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
            "last_remote_error": self.last_remote_error,
            "plant_count": len(self._cache.plants),
            "sync_states": counts,
        }


def _adopt(plant: Plant, echoed: RemotePlant) -> Plant:
    """Take the fields the remote store echoed back for a created plant.

    The store is authoritative for every field it returns, including the
    watering timestamp.
    """

    return replace(
        plant,
        remote_id=echoed.remote_id,
        name=echoed.name,
        interval_days=echoed.interval_days,
        last_watered_at=echoed.last_watered_at,
        sync_state=SyncState.SYNCED if echoed.remote_id else SyncState.LOCAL_ONLY,
        sync_error=None,
    )
