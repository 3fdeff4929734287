from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import DOMAIN


async def async_get_config_entry_diagnostics(hass: HomeAssistant, entry: ConfigEntry) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    entry_data = hass.data.get(DOMAIN, {}).get(entry.entry_id) or {}
    payload: dict[str, Any] = {
        "entry": {
            "title": entry.title,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
        "plant_count": 0,
        "plants": [],
    }

    engine = entry_data.get("engine")
    if engine is not None:
        plants = [plant.to_dict() for plant in engine.plants]
        for record, plant in zip(plants, engine.plants, strict=True):
            record["next_due"] = engine.compute_next_due(plant).isoformat()
        payload["plants"] = plants
        payload["plant_count"] = len(plants)
        payload["sync"] = engine.status()

    coordinator = entry_data.get("coordinator")
    if coordinator is not None:
        payload["coordinator"] = {
            "last_update_success": coordinator.last_update_success,
            "update_interval_seconds": (
                coordinator.update_interval.total_seconds() if coordinator.update_interval else None
            ),
        }
    return payload
