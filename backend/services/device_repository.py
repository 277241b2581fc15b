"""
Device Factory Management - Device Record Repository
Version: 1.2.0

Changelog:
v1.2.0 (2026-03-09): Dropped unused serial-number lookup and history count
v1.1.0 (2026-03-04): VIN upsert, VIN lookup by serial/imei, association
                      lookup for the ACTIVE guard
v1.0.0 (2026-02-27): Initial factory data, history and VIN statements

Every method takes an open connection from database.get_db(); none of them
commit. The lifecycle service groups calls into one transaction.
"""

import logging
from typing import Optional, Dict, Any

from database import execute_one, execute_all, execute_scalar, execute_insert, execute_update
from models.device import DeviceFactoryRecord, DeviceState, HistoryAction
from services.column_mappings import RECORD_COLUMNS
from services.state_machine import state_change_columns
from services.validators import now_stored

logger = logging.getLogger(__name__)

# Snapshot columns copied into every history row
HISTORY_COLUMNS = RECORD_COLUMNS

DELETE_PROVISIONED_SQL = """
    DELETE FROM device_factory_data
    WHERE id = ? AND state = 'PROVISIONED' AND is_stolen = 0 AND is_faulty = 0
"""


def _record_to_columns(record: DeviceFactoryRecord) -> Dict[str, Any]:
    data = record.model_dump()
    data["is_stolen"] = 1 if data.pop("stolen") else 0
    data["is_faulty"] = 1 if data.pop("faulty") else 0
    return {column: data.get(column) for column in HISTORY_COLUMNS}


class DeviceRepository:
    """Parameterized statements over device_factory_data and its side tables."""

    # -- device_factory_data --

    async def insert_record(self, db, fields: Dict[str, Any]) -> int:
        """Insert a new record in PROVISIONED state and return its id"""
        values = {column: fields.get(column) for column in RECORD_COLUMNS}
        values["state"] = DeviceState.PROVISIONED.value
        values["is_stolen"] = 0
        values["is_faulty"] = 0
        values["created_date"] = values.get("created_date") or now_stored()
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        return await execute_insert(
            db, f"INSERT INTO device_factory_data ({columns}) VALUES ({placeholders})",
            tuple(values.values()))

    async def _find_one(self, db, where: str, params) -> Optional[DeviceFactoryRecord]:
        row = await execute_one(
            db, f"SELECT * FROM device_factory_data WHERE {where} ORDER BY id ASC LIMIT 1",
            params)
        return DeviceFactoryRecord.from_row(row) if row else None

    async def find_by_id(self, db, factory_id: int) -> Optional[DeviceFactoryRecord]:
        return await self._find_one(db, "id = ?", (factory_id,))

    async def find_by_imei(self, db, imei: str) -> Optional[DeviceFactoryRecord]:
        return await self._find_one(db, "imei = ?", (imei,))

    async def find_by_id_and_imei(self, db, factory_id: int, imei: str) -> Optional[DeviceFactoryRecord]:
        return await self._find_one(db, "id = ? AND imei = ?", (factory_id, imei))

    async def find_by_identifiers(self, db, imei: Optional[str],
                                  serial_number: Optional[str]) -> Optional[DeviceFactoryRecord]:
        """Record matching every identifier that was supplied"""
        conditions, params = [], []
        if imei:
            conditions.append("imei = ?")
            params.append(imei)
        if serial_number:
            conditions.append("serial_number = ?")
            params.append(serial_number)
        if not conditions:
            return None
        return await self._find_one(db, " AND ".join(conditions), params)

    async def find_matching(self, db, fields: Dict[str, Any]) -> Optional[DeviceFactoryRecord]:
        """Record whose columns equal every non-None value in `fields`"""
        conditions, params = [], []
        for column, value in fields.items():
            if column not in RECORD_COLUMNS or value is None:
                continue
            conditions.append(f"{column} = ?")
            params.append(value)
        if not conditions:
            return None
        return await self._find_one(db, " AND ".join(conditions), params)

    async def serial_number_exists(self, db, serial_number: str) -> bool:
        count = await execute_scalar(
            db, "SELECT COUNT(*) FROM device_factory_data WHERE serial_number = ?",
            (serial_number,))
        return bool(count)

    async def update_fields(self, db, factory_id: int, fields: Dict[str, Any]) -> int:
        """UPDATE the given columns by id; returns rows affected"""
        updates = {c: v for c, v in fields.items() if c in RECORD_COLUMNS}
        if not updates:
            return 0
        assignments = ", ".join(f"{column} = ?" for column in updates)
        return await execute_update(
            db, f"UPDATE device_factory_data SET {assignments} WHERE id = ?",
            (*updates.values(), factory_id))

    async def set_state(self, db, factory_id: int, target: DeviceState) -> int:
        return await self.update_fields(db, factory_id, state_change_columns(target))

    async def delete_provisioned(self, db, factory_id: int) -> int:
        """Delete only while PROVISIONED with no overlay flags; 0 rows = precondition failed"""
        return await execute_update(db, DELETE_PROVISIONED_SQL, (factory_id,))

    # -- device_factory_data_history --

    async def insert_history(self, db, record: DeviceFactoryRecord, action: HistoryAction) -> int:
        values = _record_to_columns(record)
        values["factory_id"] = record.id
        values["action"] = action.value
        values["created_timestamp"] = now_stored()
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        history_id = await execute_insert(
            db, f"INSERT INTO device_factory_data_history ({columns}) VALUES ({placeholders})",
            tuple(values.values()))
        logger.debug(f"History {action.value} written for factory id {record.id}")
        return history_id

    # -- vin_details --

    async def insert_vin(self, db, factory_id: int, vin: str) -> int:
        return await execute_insert(
            db, "INSERT INTO vin_details (vin, reference_id) VALUES (?, ?)", (vin, factory_id))

    async def update_vin(self, db, factory_id: int, vin: str) -> int:
        return await execute_update(
            db,
            """INSERT INTO vin_details (vin, reference_id) VALUES (?, ?)
               ON CONFLICT(reference_id) DO UPDATE SET vin = excluded.vin""",
            (vin, factory_id))

    async def find_vin(self, db, factory_id: int) -> Optional[str]:
        return await execute_scalar(
            db, "SELECT vin FROM vin_details WHERE reference_id = ?", (factory_id,))

    async def vin_exists(self, db, vin: str) -> bool:
        count = await execute_scalar(
            db, "SELECT COUNT(*) FROM vin_details WHERE vin = ?", (vin,))
        return bool(count)

    async def vin_matches(self, db, factory_id: int, vin: Optional[str]) -> bool:
        count = await execute_scalar(
            db, "SELECT COUNT(*) FROM vin_details WHERE reference_id = ? AND vin = ?",
            (factory_id, vin))
        return bool(count)

    async def find_record_ids_by_vin(self, db, vin: str) -> list[int]:
        rows = await execute_all(
            db, "SELECT reference_id FROM vin_details WHERE vin = ?", (vin,))
        return [row["reference_id"] for row in rows]

    async def find_vin_by_identifiers(self, db, imei: Optional[str],
                                      serial_number: Optional[str]) -> Optional[str]:
        """VIN for the record with this serial number, else this imei"""
        base = """
            SELECT v.vin FROM vin_details v
            JOIN device_factory_data d ON d.id = v.reference_id
            WHERE {} LIMIT 1
        """
        if serial_number:
            return await execute_scalar(db, base.format("d.serial_number = ?"), (serial_number,))
        if imei:
            return await execute_scalar(db, base.format("d.imei = ?"), (imei,))
        return None

    # -- device_association --

    async def find_association(self, db, factory_id: int) -> Optional[dict]:
        return await execute_one(
            db,
            "SELECT * FROM device_association WHERE factory_id = ? ORDER BY id DESC LIMIT 1",
            (factory_id,))
