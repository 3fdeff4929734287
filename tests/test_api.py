import asyncio
import json as jsonlib
from datetime import datetime, timezone

import pytest
from aiohttp import ClientError

from custom_components.plantcare.api import (
    InvalidResponse,
    PlantStoreClient,
    RejectedByStore,
    RemotePlant,
    TransportFailure,
    parse_remote_plant,
    unwrap_listing,
)

NOW = datetime(2024, 5, 1, 9, tzinfo=timezone.utc)
BASE = "http://plants.test/api"


class DummyResp:
    def __init__(self, status=200, data=None, text=None, delay=0):
        self.status = status
        self._data = data
        self._text = text
        self._delay = delay

    async def __aenter__(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def text(self):
        if self._text is not None:
            return self._text
        return jsonlib.dumps(self._data)

    async def json(self, content_type="application/json"):
        if self._text is not None:
            return jsonlib.loads(self._text)
        return self._data


class Session:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, json=None):
        self.calls.append((method, url, json))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(session, **kwargs):
    return PlantStoreClient(session, BASE + "/", now=lambda: NOW, **kwargs)


def test_parse_prefers_canonical_id_and_reads_alias():
    record = {"_id": "abc", "id": "other", "name": "Fern", "interval": 3, "lastWatered": "2024-04-30T09:00:00Z"}
    assert parse_remote_plant(record, now=NOW) == RemotePlant(
        "abc", "Fern", 3, datetime(2024, 4, 30, 9, tzinfo=timezone.utc)
    )

    aliased = parse_remote_plant({"id": 17, "name": "Ivy", "interval": "5"}, now=NOW)
    assert aliased.remote_id == "17"
    assert aliased.interval_days == 5


def test_parse_defaults_missing_last_watered_to_now():
    plant = parse_remote_plant({"_id": "a", "name": "Fern", "interval": 2}, now=NOW)
    assert plant.last_watered_at == NOW

    unparsable = parse_remote_plant({"_id": "a", "name": "Fern", "interval": 2, "lastWatered": "soon"}, now=NOW)
    assert unparsable.last_watered_at == NOW


def test_parse_without_any_id():
    assert parse_remote_plant({"name": "Fern", "interval": 2}, now=NOW).remote_id is None


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {"_id": "a", "interval": 2},
        {"_id": "a", "name": " ", "interval": 2},
        {"name": "Fern", "interval": 0},
        {"name": "Fern", "interval": 5_000_000},
    ],
)
def test_parse_rejects_bad_records(payload):
    with pytest.raises(InvalidResponse):
        parse_remote_plant(payload, now=NOW)


def test_unwrap_listing_shapes():
    assert unwrap_listing([{"a": 1}]) == [{"a": 1}]
    assert unwrap_listing({"plants": [{"a": 1}]}) == [{"a": 1}]
    assert unwrap_listing({"status": "ok"}) == []
    with pytest.raises(InvalidResponse):
        unwrap_listing({"plants": "none"})
    with pytest.raises(InvalidResponse):
        unwrap_listing("plants")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        [{"_id": "a", "name": "Fern", "interval": 2}],
        {"plants": [{"_id": "a", "name": "Fern", "interval": 2}]},
    ],
)
async def test_list_plants_accepts_bare_and_wrapped(body):
    session = Session(DummyResp(200, body))
    plants = await _client(session).list_plants()

    assert plants == [RemotePlant("a", "Fern", 2, NOW)]
    assert session.calls == [("GET", f"{BASE}/plants", None)]


@pytest.mark.asyncio
async def test_list_plants_skips_invalid_records():
    body = [{"_id": "a", "name": "Fern", "interval": 2}, {"_id": "b", "name": "Broken", "interval": "x"}, 7]
    plants = await _client(Session(DummyResp(200, body))).list_plants()

    assert [plant.remote_id for plant in plants] == ["a"]


@pytest.mark.asyncio
async def test_create_plant_posts_wire_fields():
    echo = {"_id": "new", "name": "Fern", "interval": 2, "lastWatered": NOW.isoformat()}
    session = Session(DummyResp(201, echo))

    created = await _client(session).create_plant("Fern", 2, NOW)

    assert created == RemotePlant("new", "Fern", 2, NOW)
    method, url, body = session.calls[0]
    assert (method, url) == ("POST", f"{BASE}/plants")
    assert body == {"name": "Fern", "interval": 2, "lastWatered": NOW.isoformat()}


@pytest.mark.asyncio
async def test_water_and_delete_routes_quote_ids():
    session = Session(DummyResp(200, None), DummyResp(204, None))
    client = _client(session)

    await client.mark_watered("a/b")
    await client.delete_plant("abc")

    assert session.calls == [
        ("PUT", f"{BASE}/plants/a%2Fb/water", None),
        ("DELETE", f"{BASE}/plants/abc", None),
    ]


@pytest.mark.asyncio
async def test_error_status_is_rejected():
    session = Session(DummyResp(500, text="boom"))

    with pytest.raises(RejectedByStore) as err:
        await _client(session).mark_watered("abc")

    assert err.value.status == 500
    assert err.value.describe() == "rejected: 500 boom"


@pytest.mark.asyncio
async def test_client_error_is_transport_failure():
    session = Session(ClientError("refused"))

    with pytest.raises(TransportFailure):
        await _client(session).list_plants()


@pytest.mark.asyncio
async def test_timeout_is_transport_failure():
    session = Session(DummyResp(200, [], delay=1))

    with pytest.raises(TransportFailure, match="timed out"):
        await _client(session, timeout=0.01).list_plants()


@pytest.mark.asyncio
async def test_malformed_json_is_invalid_response():
    session = Session(DummyResp(200, text="<html>"))

    with pytest.raises(InvalidResponse):
        await _client(session).list_plants()


@pytest.mark.asyncio
async def test_non_plant_create_echo_is_invalid_response():
    session = Session(DummyResp(201, {"ok": True}))

    with pytest.raises(InvalidResponse):
        await _client(session).create_plant("Fern", 2, NOW)
