"""
Device Factory Management - Device Data Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): DeviceData carries the vehicle-sync attributes (chassis
                      number, plant, production week, model year, VIN);
                      DeviceFilter and DeviceAttributesUpdate payloads
v1.0.0 (2026-02-27): Initial device models
"""

from pydantic import BaseModel, Field
from enum import Enum
from typing import Optional, List


class DeviceState(str, Enum):
    """Device lifecycle states"""
    PROVISIONED = "PROVISIONED"
    READY_TO_ACTIVATE = "READY_TO_ACTIVATE"
    ACTIVE = "ACTIVE"
    STOLEN = "STOLEN"
    FAULTY = "FAULTY"
    DEACTIVATED = "DEACTIVATED"
    PROVISIONED_ALIVE = "PROVISIONED_ALIVE"


class HistoryAction(str, Enum):
    """Action tag written with every history snapshot"""
    PROVISIONED = "PROVISIONED"
    UPDATED = "UPDATED"
    DEACTIVATED = "DEACTIVATED"


class DeviceFactoryRecord(BaseModel):
    """
    One row of device_factory_data.

    `state` is kept as the raw stored string; the effective state used for
    transitions is derived from it together with the stolen/faulty flags.
    """
    id: int
    manufacturing_date: Optional[str] = None
    model: Optional[str] = None
    imei: Optional[str] = None
    serial_number: Optional[str] = None
    platform_version: Optional[str] = None
    iccid: Optional[str] = None
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    msisdn: Optional[str] = None
    imsi: Optional[str] = None
    record_date: Optional[str] = None
    factory_admin: Optional[str] = None
    created_date: Optional[str] = None
    state: str = DeviceState.PROVISIONED.value
    stolen: bool = False
    faulty: bool = False
    package_serial_number: Optional[str] = None
    device_type: Optional[str] = None
    vin: Optional[str] = None
    device_id: Optional[str] = Field(None, description="External (harman) id from device_association")

    @classmethod
    def from_row(cls, row: dict) -> "DeviceFactoryRecord":
        data = dict(row)
        data["stolen"] = bool(data.pop("is_stolen", 0))
        data["faulty"] = bool(data.pop("is_faulty", 0))
        if "harman_id" in data:
            data["device_id"] = data.pop("harman_id")
        return cls(**data)


class DeviceHistoryEntry(BaseModel):
    """Append-only snapshot of a factory record"""
    id: int
    factory_id: int
    manufacturing_date: Optional[str] = None
    model: Optional[str] = None
    imei: Optional[str] = None
    serial_number: Optional[str] = None
    platform_version: Optional[str] = None
    iccid: Optional[str] = None
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    msisdn: Optional[str] = None
    imsi: Optional[str] = None
    record_date: Optional[str] = None
    factory_admin: Optional[str] = None
    created_date: Optional[str] = None
    state: Optional[str] = None
    stolen: bool = False
    faulty: bool = False
    package_serial_number: Optional[str] = None
    device_type: Optional[str] = None
    action: HistoryAction
    created_timestamp: str

    @classmethod
    def from_row(cls, row: dict) -> "DeviceHistoryEntry":
        data = dict(row)
        data["stolen"] = bool(data.pop("is_stolen", 0) or 0)
        data["faulty"] = bool(data.pop("is_faulty", 0) or 0)
        return cls(**data)


class DeviceCreateRequest(BaseModel):
    """
    Factory data for one new device.

    Dates use the factory format yyyy/MM/dd. The vehicle attributes are only
    consumed in the swmIntegration creation type.
    """
    manufacturing_date: Optional[str] = None
    record_date: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    imei: Optional[str] = None
    platform_version: Optional[str] = None
    iccid: Optional[str] = None
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    msisdn: Optional[str] = None
    imsi: Optional[str] = None
    package_serial_number: Optional[str] = None
    device_type: Optional[str] = None
    vin: Optional[str] = None
    chassis_number: Optional[str] = None
    plant: Optional[str] = None
    production_week: Optional[str] = None
    vehicle_model_year: Optional[str] = None


class DeviceData(BaseModel):
    """Full device payload used on both sides of an update"""
    manufacturing_date: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    record_date: Optional[str] = None
    factory_admin: Optional[str] = None
    imei: Optional[str] = None
    iccid: Optional[str] = None
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    msisdn: Optional[str] = None
    imsi: Optional[str] = None
    platform_version: Optional[str] = None
    package_serial_number: Optional[str] = None
    chassis_number: Optional[str] = None
    plant: Optional[str] = None
    production_week: Optional[str] = None
    vehicle_model_year: Optional[str] = None
    vin: Optional[str] = None
    friendly_name: Optional[str] = None


class DeviceUpdateRequest(BaseModel):
    current_value: Optional[DeviceData] = None
    replace_with: Optional[DeviceData] = None


class StateChange(BaseModel):
    """Requested state for a device referenced by factory id and/or imei"""
    factory_id: Optional[int] = None
    imei: Optional[str] = None
    state: Optional[DeviceState] = None


class DeviceFilter(BaseModel):
    """Exact-match filter; every non-empty list becomes an IN clause"""
    imei: Optional[List[str]] = None
    serial_number: Optional[List[str]] = None
    model: Optional[List[str]] = None
    iccid: Optional[List[str]] = None
    ssid: Optional[List[str]] = None
    msisdn: Optional[List[str]] = None
    imsi: Optional[List[str]] = None
    state: Optional[List[str]] = None


class DeviceAttributesUpdate(BaseModel):
    """Partial update of a record by id; None means leave unchanged"""
    id: int
    manufacturing_date: Optional[str] = None
    model: Optional[str] = None
    imei: Optional[str] = None
    serial_number: Optional[str] = None
    platform_version: Optional[str] = None
    iccid: Optional[str] = None
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    msisdn: Optional[str] = None
    imsi: Optional[str] = None
    record_date: Optional[str] = None
    factory_admin: Optional[str] = None
    state: Optional[str] = None
    package_serial_number: Optional[str] = None
    device_type: Optional[str] = None


class StateCount(BaseModel):
    """Per-state aggregate over the filtered records"""
    provisioned: int = 0
    active: int = 0
    stolen: int = 0
    faulty: int = 0


class DeviceInfoPage(BaseModel):
    items: List[DeviceFactoryRecord] = []
    total: int = 0
    page: int = 1
    size: int = 20
    state_count: StateCount = StateCount()
    count: Optional[int] = None


class DeviceStatePage(BaseModel):
    items: List[DeviceHistoryEntry] = []
    total: int = 0
    page: int = 1
    size: int = 20


class CreateResult(BaseModel):
    created: List[DeviceFactoryRecord] = []
    failed_vins: List[str] = []
