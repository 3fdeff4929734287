from __future__ import annotations

from homeassistant.const import Platform
from homeassistant.helpers.entity import EntityCategory

DOMAIN = "plantcare"
# Every plant gets one device carrying an entity on each platform
PLATFORMS: list[Platform] = [
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.BUTTON,
]

CONF_BASE_URL = "base_url"
CONF_REQUEST_TIMEOUT = "request_timeout"
CONF_UPDATE_INTERVAL = "update_interval"

DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_REQUEST_TIMEOUT = 10
DEFAULT_UPDATE_MINUTES = 30

# Longest watering interval accepted, keeps due dates inside the datetime range
MAX_INTERVAL_DAYS = 3650

# Local cache persisted through homeassistant.helpers.storage
STORAGE_KEY = "plantcare.plants"
STORAGE_VERSION = 1

# Wire format of the remote plant store
REMOTE_ID_FIELD = "_id"
REMOTE_ID_ALIASES: tuple[str, ...] = ("id",)
REMOTE_LIST_WRAPPER = "plants"

# Service names
SERVICE_ADD_PLANT = "add_plant"
SERVICE_WATER_PLANT = "water_plant"
SERVICE_REMOVE_PLANT = "remove_plant"
SERVICE_REFRESH_PLANTS = "refresh_plants"

ATTR_PLANT_ID = "plant_id"
ATTR_POSITION = "position"
ATTR_NAME = "name"
ATTR_INTERVAL_DAYS = "interval_days"
ATTR_REMOTE_ID = "remote_id"
ATTR_LAST_WATERED = "last_watered"
ATTR_DAYS_UNTIL_DUE = "days_until_due"
ATTR_SYNC_STATE = "sync_state"
ATTR_SYNC_ERROR = "sync_error"

MANUFACTURER = "PlantCare"

CATEGORY_DIAGNOSTIC = EntityCategory.DIAGNOSTIC


def normalise_update_minutes(value) -> int:
    """Return a safe re-evaluation interval in minutes."""

    try:
        minutes = int(value)
    except (TypeError, ValueError):
        return DEFAULT_UPDATE_MINUTES
    return max(minutes, 1)


def normalise_request_timeout(value) -> float | None:
    """Return the request timeout in seconds, ``None`` when disabled."""

    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return float(DEFAULT_REQUEST_TIMEOUT)
    if seconds <= 0:
        return None
    return seconds
