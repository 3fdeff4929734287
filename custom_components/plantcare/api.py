from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import quote

from aiohttp import ClientError, ClientSession
from homeassistant.util import dt as dt_util

from .const import DEFAULT_REQUEST_TIMEOUT, REMOTE_ID_ALIASES, REMOTE_ID_FIELD, REMOTE_LIST_WRAPPER
from .models import InvalidPlantError, coerce_interval, coerce_timestamp

_LOGGER = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Base class for failures talking to the remote plant store."""

    reason = "remote"

    def describe(self) -> str:
        return f"{self.reason}: {self}"


class TransportFailure(RemoteStoreError):
    """The store could not be reached."""

    reason = "transport"


class RejectedByStore(RemoteStoreError):
    """The store answered with an error status."""

    reason = "rejected"

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(f"{status} {message}".strip())
        self.status = status


class InvalidResponse(RemoteStoreError):
    """The store answered with a body that is not a plant payload."""

    reason = "invalid response"


@dataclass(frozen=True, slots=True)
class RemotePlant:
    """A plant record as echoed by the remote store."""

    remote_id: str | None
    name: str
    interval_days: int
    last_watered_at: datetime


class RemoteStore(Protocol):
    """Operations the sync engine expects from the authoritative store."""

    async def list_plants(self) -> list[RemotePlant]: ...

    async def create_plant(self, name: str, interval_days: int, last_watered_at: datetime) -> RemotePlant: ...

    async def mark_watered(self, remote_id: str) -> None: ...

    async def delete_plant(self, remote_id: str) -> None: ...


def parse_remote_plant(payload: Any, *, now: datetime) -> RemotePlant:
    """Return the plant described by a wire record.

    ``_id`` is the canonical identifier field; ``id`` is read as an alias so
    listings and create confirmations are interpreted identically.
    """

    if not isinstance(payload, Mapping):
        raise InvalidResponse(f"expected a plant object, got {type(payload).__name__}")

    raw_id = payload.get(REMOTE_ID_FIELD)
    if raw_id in (None, ""):
        raw_id = next((payload[key] for key in REMOTE_ID_ALIASES if payload.get(key) not in (None, "")), None)

    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidResponse(f"plant record has no name: {payload!r}")
    try:
        interval = coerce_interval(payload.get("interval"))
    except InvalidPlantError as err:
        raise InvalidResponse(str(err)) from err

    last_watered = coerce_timestamp(payload.get("lastWatered")) or now
    return RemotePlant(
        remote_id=str(raw_id) if raw_id is not None else None,
        name=name.strip(),
        interval_days=interval,
        last_watered_at=last_watered,
    )


def unwrap_listing(data: Any) -> list[Any]:
    """Accept either a bare array or an object exposing it under ``plants``."""

    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        records = data.get(REMOTE_LIST_WRAPPER)
        if records is None:
            return []
        if isinstance(records, list):
            return records
    raise InvalidResponse(f"unexpected plant listing shape: {type(data).__name__}")


class PlantStoreClient:
    """HTTP client for the plant store REST API."""

    def __init__(
        self,
        session: ClientSession,
        base_url: str,
        *,
        timeout: float | None = DEFAULT_REQUEST_TIMEOUT,
        now: Callable[[], datetime] = dt_util.now,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._now = now

    @property
    def base_url(self) -> str:
        return self._base_url

    async def list_plants(self) -> list[RemotePlant]:
        data = await self._request("GET", "/plants")
        now = self._now()
        plants: list[RemotePlant] = []
        for record in unwrap_listing(data):
            try:
                plants.append(parse_remote_plant(record, now=now))
            except InvalidResponse as err:
                _LOGGER.warning("Ignoring invalid plant from %s: %s", self._base_url, err)
        return plants

    async def create_plant(self, name: str, interval_days: int, last_watered_at: datetime) -> RemotePlant:
        payload = {
            "name": name,
            "interval": interval_days,
            "lastWatered": last_watered_at.isoformat(),
        }
        data = await self._request("POST", "/plants", json=payload)
        return parse_remote_plant(data, now=self._now())

    async def mark_watered(self, remote_id: str) -> None:
        await self._request("PUT", f"/plants/{quote(remote_id, safe='')}/water", expect_body=False)

    async def delete_plant(self, remote_id: str) -> None:
        await self._request("DELETE", f"/plants/{quote(remote_id, safe='')}", expect_body=False)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        expect_body: bool = True,
    ) -> Any:
        url = f"{self._base_url}{path}"
        _LOGGER.debug("%s %s", method, url)
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session.request(method, url, json=json) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        raise RejectedByStore(resp.status, text[:200])
                    if not expect_body:
                        return None
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as err:
                        raise InvalidResponse(f"{method} {path} returned malformed JSON") from err
        except TimeoutError as err:
            raise TransportFailure(f"{method} {path} timed out after {self._timeout}s") from err
        except ClientError as err:
            raise TransportFailure(f"{method} {path} failed: {err}") from err
