from __future__ import annotations

import json

import httpx
import pytest

from config import settings
from services.exceptions import VehicleSyncError
from services.swm_client import SwmClient

VIN = "1HGCM82633A004352"
BASE_URL = "http://swm.test"
LOGIN = ("POST", "/api/v1/login")
VEHICLES = ("GET", "/api/v1/vehicles")
CREATE = ("POST", "/api/v1/vehicles/create")
UPDATE = ("PUT", "/api/v1/vehicles/update")
DELETE = ("PUT", "/api/v1/vehicles/delete")


class FakeSwm:
    """
    httpx.MockTransport handler answering the SWM endpoints.

    `overrides` maps (method, path) to (status, body); a bytes body is sent
    raw, anything else as JSON.
    """

    def __init__(self, overrides=None) -> None:
        self.requests: list[httpx.Request] = []
        self.responses = {
            LOGIN: (200, {"sessionId": "sess-1"}),
            VEHICLES: (200, {"representationObjects": [
                {"id": "other", "vin": "X"}, {"id": "veh-1", "vin": VIN}]}),
            CREATE: (200, {"actionResult": [{"code": 0}]}),
            UPDATE: (200, {}),
            DELETE: (200, {}),
        }
        self.responses.update(overrides or {})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses[(request.method, request.url.path)]
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def calls(self, key) -> list[httpx.Request]:
        method, path = key
        return [r for r in self.requests if r.method == method and r.url.path == path]


def _client(handler, **kwargs) -> SwmClient:
    return SwmClient(BASE_URL, username="svc", password="secret", domain="factory",
                     domain_id="dom-1", vehicle_model_id="model-1",
                     transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_login_session_is_cached() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        assert await client.find_vehicle_id(VIN) == "veh-1"
        assert await client.find_vehicle_id(VIN) == "veh-1"

    logins = swm.calls(LOGIN)
    assert len(logins) == 1
    assert json.loads(logins[0].content) == {"userName": "svc", "password": "secret", "domain": "factory"}
    lookup = swm.calls(VEHICLES)[0]
    assert lookup.headers["sessionId"] == "sess-1"
    assert lookup.url.params["vin"] == VIN


@pytest.mark.asyncio
async def test_expired_session_logs_in_again() -> None:
    swm = FakeSwm()
    async with _client(swm, session_ttl=0) as client:
        await client.find_vehicle_id(VIN)
        await client.find_vehicle_id(VIN)
    assert len(swm.calls(LOGIN)) == 2


@pytest.mark.asyncio
async def test_login_failures() -> None:
    rejected = FakeSwm({LOGIN: (401, {})})
    async with _client(rejected) as client:
        with pytest.raises(VehicleSyncError) as exc_info:
            await client.login()
    assert exc_info.value.status == 401

    no_session = FakeSwm({LOGIN: (200, {})})
    async with _client(no_session) as client:
        with pytest.raises(VehicleSyncError) as exc_info:
            await client.login()
    assert exc_info.value.code == "dfd-051"


@pytest.mark.asyncio
async def test_unknown_vin_has_no_vehicle_id() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        assert await client.find_vehicle_id("UNKNOWNVIN0000000") is None


@pytest.mark.asyncio
async def test_create_vehicle_payload() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        created = await client.create_vehicle(
            VIN, chassis_number="CH1", production_week="202610", plant="P1",
            model_year="2026", model="MX1")

    assert created is True
    body = json.loads(swm.calls(CREATE)[0].content)
    assert body == {"vehiclePost": [{
        "vin": VIN, "vehicleModelId": "model-1", "domainId": "dom-1",
        "chassisNumber": "CH1", "productionWeek": "202610", "plant": "P1",
        "model": "MX1", "specificAttributes": {"vehicleModelYear": "2026"},
    }]}


@pytest.mark.asyncio
async def test_create_vehicle_already_exists_counts_as_success() -> None:
    swm = FakeSwm({CREATE: (
        200, {"actionResult": [{"code": 1, "reasonMessage": "Vehicle already exists"}]})})
    async with _client(swm) as client:
        assert await client.create_vehicle(VIN) is True


@pytest.mark.asyncio
async def test_create_vehicle_rejections() -> None:
    refused = FakeSwm({CREATE: (
        200, {"actionResult": [{"code": 7, "resultMessage": "Invalid model"}]})})
    async with _client(refused) as client:
        with pytest.raises(VehicleSyncError, match="Invalid model") as exc_info:
            await client.create_vehicle(VIN)
    assert exc_info.value.code == "dfd-052"

    server_error = FakeSwm({CREATE: (500, {})})
    async with _client(server_error) as client:
        assert await client.create_vehicle(VIN) is False


@pytest.mark.asyncio
async def test_update_vehicle_sends_vehicle_id() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        assert await client.update_vehicle("CH2", "202611", "P2", VIN, "2027") is True

    body = json.loads(swm.calls(UPDATE)[0].content)
    assert body["id"] == "veh-1"
    assert body["chassisNumber"] == "CH2"
    assert body["specificAttributes"] == {"vehicleModelYear": "2027"}


@pytest.mark.asyncio
async def test_update_vehicle_non_200_is_false() -> None:
    swm = FakeSwm({UPDATE: (500, {})})
    async with _client(swm) as client:
        assert await client.update_vehicle("CH2", "202611", "P2", VIN, "2027") is False


@pytest.mark.asyncio
async def test_delete_vehicle() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        assert await client.delete_vehicle(VIN) is True
    body = json.loads(swm.calls(DELETE)[0].content)
    assert body == {"vehicleIds": ["veh-1"]}


@pytest.mark.asyncio
async def test_delete_vehicle_without_id_or_with_error_status() -> None:
    swm = FakeSwm()
    async with _client(swm) as client:
        assert await client.delete_vehicle("UNKNOWNVIN0000000") is False
    assert swm.calls(DELETE) == []

    failing = FakeSwm({DELETE: (500, {})})
    async with _client(failing) as client:
        assert await client.delete_vehicle(VIN) is False


@pytest.mark.asyncio
async def test_transport_error_is_vehicle_sync_error() -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(unreachable) as client:
        with pytest.raises(VehicleSyncError) as exc_info:
            await client.delete_vehicle(VIN)
    assert exc_info.value.endpoint == "/api/v1/login"


@pytest.mark.asyncio
async def test_unparseable_response() -> None:
    swm = FakeSwm({VEHICLES: (200, b"<html>")})
    async with _client(swm) as client:
        with pytest.raises(VehicleSyncError) as exc_info:
            await client.find_vehicle_id(VIN)
    assert exc_info.value.code == "dfd-053"


@pytest.mark.asyncio
async def test_from_settings_uses_configuration() -> None:
    config = settings.model_copy(update={
        "SWM_BASE_URL": BASE_URL, "SWM_SESSION_TTL": 60, "SWM_VEHICLE_MODEL_ID": "model-9"})
    async with SwmClient.from_settings(config) as client:
        assert client.session_ttl == 60
        assert client.vehicle_model_id == "model-9"
        assert client.create_api == settings.SWM_CREATE_API
