"""
Device Factory Management - Field to Column Mappings
Version: 1.0.0

Changelog:
v1.0.0 (2026-02-27): Initial request-field to column tables

Request fields use the API's camelCase names; SQL only ever sees the
column names on the right-hand side. All tables are read-only after import.
"""

from types import MappingProxyType


# Every writable column of device_factory_data, keyed by model attribute
RECORD_COLUMNS = (
    "manufacturing_date", "model", "imei", "serial_number", "platform_version",
    "iccid", "ssid", "bssid", "msisdn", "imsi", "record_date", "factory_admin",
    "created_date", "state", "is_stolen", "is_faulty", "package_serial_number",
    "device_type",
)

CONTAINS_LIKE_COLUMNS = MappingProxyType({
    "model": "model",
    "imei": "imei",
    "serialNumber": "serial_number",
    "iccid": "iccid",
    "ssid": "ssid",
    "bssid": "bssid",
    "msisdn": "msisdn",
    "imsi": "imsi",
    "factoryAdmin": "factory_admin",
    "state": "state",
    "isStolen": "is_stolen",
    "isFaulty": "is_faulty",
    "packageSerialNumber": "package_serial_number",
})

BOOLEAN_FILTER_FIELDS = frozenset({"isStolen", "isFaulty"})

RANGE_COLUMNS = MappingProxyType({
    "manufacturingDate": "manufacturing_date",
    "recordDate": "record_date",
    "createdDate": "created_date",
})

DEVICE_DETAILS_SORT_COLUMNS = MappingProxyType({
    "id": "id",
    "imei": "imei",
    "serialNumber": "serial_number",
    "model": "model",
    "iccid": "iccid",
    "ssid": "ssid",
    "bssid": "bssid",
    "msisdn": "msisdn",
    "imsi": "imsi",
    "factoryAdmin": "factory_admin",
    "state": "state",
    "packageSerialNumber": "package_serial_number",
    "manufacturingDate": "manufacturing_date",
    "recordDate": "record_date",
    "createdDate": "created_date",
})

DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID = MappingProxyType({
    **DEVICE_DETAILS_SORT_COLUMNS,
    "deviceId": "harman_id",
})

DEVICE_STATE_SORT_COLUMNS = MappingProxyType({
    "state": "state",
    "stateTimestamp": "created_timestamp",
    "manufacturingDate": "manufacturing_date",
    "imei": "imei",
    "serialNumber": "serial_number",
    "iccid": "iccid",
    "ssid": "ssid",
    "bssid": "bssid",
    "msisdn": "msisdn",
    "imsi": "imsi",
    "factoryAdmin": "factory_admin",
    "packageSerialNumber": "package_serial_number",
    "recordDate": "record_date",
})

# Exact-match filter payload attribute -> column
DEVICE_FILTER_COLUMNS = MappingProxyType({
    "imei": "imei",
    "serial_number": "serial_number",
    "model": "model",
    "iccid": "iccid",
    "ssid": "ssid",
    "msisdn": "msisdn",
    "imsi": "imsi",
    "state": "state",
})


def lookup_field(mapping, field: str):
    """Case-insensitive key lookup; returns the canonical key or None"""
    if field in mapping:
        return field
    lowered = field.lower()
    for key in mapping:
        if key.lower() == lowered:
            return key
    return None
