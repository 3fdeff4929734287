from __future__ import annotations

import types
from datetime import datetime, timedelta

import pytest
from homeassistant.util.file import WriteError

from custom_components.plantcare import storage
from custom_components.plantcare.api import RemotePlant, TransportFailure
from custom_components.plantcare.utils import logging as plantcare_logging

BASE_TIME = datetime.fromisoformat("2024-05-01T09:00:00+00:00")


class DummyStore:
    """In-memory stand in for ``homeassistant.helpers.storage.Store``."""

    saved: dict[str, object] = {}
    fail_next_save = False

    def __init__(self, hass, version, key) -> None:  # noqa: D401 - signature mirrors Store
        self.key = key
        self.path = f"/config/.storage/{key}"

    async def async_load(self):
        return DummyStore.saved.get(self.key)

    @staticmethod
    def write_snapshot(path, payload):
        if DummyStore.fail_next_save:
            DummyStore.fail_next_save = False
            raise WriteError("disk full")
        DummyStore.saved[payload["key"]] = payload["data"]


class Clock:
    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeRemoteStore:
    """Scriptable remote store recording every call."""

    base_url = "http://plants.test/api"

    def __init__(self, plants=None) -> None:
        self.plants: list[RemotePlant] = list(plants or [])
        self.calls: list[tuple] = []
        self.error: Exception | None = None
        self.next_id = 1
        self.echo_id = True
        self.on_create = None

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def list_plants(self):
        self.calls.append(("list",))
        self._check()
        return list(self.plants)

    async def create_plant(self, name, interval_days, last_watered_at):
        self.calls.append(("create", name, interval_days, last_watered_at))
        if self.on_create is not None:
            await self.on_create()
        self._check()
        remote_id = None
        if self.echo_id:
            remote_id = f"r{self.next_id}"
            self.next_id += 1
        record = RemotePlant(remote_id, name, interval_days, last_watered_at)
        self.plants.append(record)
        return record

    async def mark_watered(self, remote_id):
        self.calls.append(("water", remote_id))
        self._check()

    async def delete_plant(self, remote_id):
        self.calls.append(("delete", remote_id))
        self._check()

    def go_offline(self) -> None:
        self.error = TransportFailure("connection refused")


@pytest.fixture
def dummy_store(monkeypatch):
    DummyStore.saved = {}
    DummyStore.fail_next_save = False
    monkeypatch.setattr(storage, "Store", DummyStore)
    monkeypatch.setattr(storage, "_write_snapshot", DummyStore.write_snapshot)
    return DummyStore


@pytest.fixture
def stub_hass():
    async def _run_job(func, *args):
        return func(*args)

    return types.SimpleNamespace(async_add_executor_job=_run_job)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture(autouse=True)
def reset_warnings():
    plantcare_logging._LAST.clear()
    yield
    plantcare_logging._LAST.clear()
