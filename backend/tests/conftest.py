from __future__ import annotations

import pytest
import pytest_asyncio

from config import settings, DEVICE_CREATION_TYPE_SWM
from database import get_db
from models import init_db
from models.device import DeviceCreateRequest, DeviceData
from services.lifecycle_service import DeviceLifecycleService

ACTOR = "factory-admin"
IMEI = "9900008624711007"
SERIAL = "1007"

DEVICE_FIELDS = {
    "manufacturing_date": "2019/01/01",
    "record_date": "2019/01/01",
    "model": "MX1",
    "serial_number": SERIAL,
    "imei": IMEI,
    "platform_version": "1.0",
    "iccid": "8991101200003204510",
    "ssid": "ssid1",
    "bssid": "bssid1",
    "msisdn": "15550001",
    "imsi": "310150123456789",
}


class FakeVehicleClient:
    """Records calls; answers with the configured result or raises `error`."""

    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple] = []

    async def _answer(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.result

    async def create_vehicle(self, vin, **kwargs):
        return await self._answer("create", vin, kwargs)

    async def update_vehicle(self, chassis_number, production_week, plant, vin, model_year):
        return await self._answer("update", chassis_number, production_week, plant, vin, model_year)

    async def delete_vehicle(self, vin):
        return await self._answer("delete", vin)

    async def aclose(self):
        pass


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "device_factory.db"
    monkeypatch.setattr(settings, "SQLITE_DB_PATH", str(path))
    return path


@pytest_asyncio.fixture
async def db(db_path):
    await init_db()
    return db_path


@pytest.fixture
def device_request():
    def _make(**overrides) -> DeviceCreateRequest:
        return DeviceCreateRequest(**{**DEVICE_FIELDS, **overrides})
    return _make


@pytest.fixture
def device_data():
    def _make(**overrides) -> DeviceData:
        return DeviceData(**{**DEVICE_FIELDS, "factory_admin": ACTOR, **overrides})
    return _make


@pytest.fixture
def vin_settings():
    return settings.model_copy(update={"DEVICE_CREATION_TYPE": DEVICE_CREATION_TYPE_SWM})


@pytest.fixture
def sync_settings():
    return settings.model_copy(update={
        "DEVICE_CREATION_TYPE": DEVICE_CREATION_TYPE_SWM,
        "SWM_INTEGRATION_ENABLED": True,
    })


@pytest.fixture
def service():
    return DeviceLifecycleService()


@pytest.fixture
def associate():
    async def _associate(factory_id: int, harman_id: str | None = "HU12345") -> None:
        async with get_db() as conn:
            await conn.execute(
                "INSERT INTO device_association (factory_id, harman_id) VALUES (?, ?)",
                (factory_id, harman_id))
            await conn.commit()
    return _associate


@pytest.fixture
def fetch_rows():
    async def _fetch(sql: str, params=()) -> list[dict]:
        async with get_db() as conn:
            cursor = await conn.execute(sql, params)
            return [dict(row) for row in await cursor.fetchall()]
    return _fetch
