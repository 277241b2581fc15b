"""
Device Factory Management - Device Lifecycle Service
Version: 1.3.0

Changelog:
v1.3.0 (2026-03-09): Delete resolves the VIN by factory id
v1.2.0 (2026-03-06): Generic attribute update by factory id
v1.1.0 (2026-03-04): SWM vehicle sync on create/update/delete; VIN checks for
                      the swmIntegration creation type
v1.0.0 (2026-02-27): Initial change-state, create, update and delete flows

Orchestrates the write side: validates input, consults the state machine,
writes record + history in one transaction and finally calls the SWM
vehicle service when sync is enabled. A failed SWM call after a committed
local write is reported but not compensated.
"""

import logging
from datetime import date
from typing import List, Optional, Dict, Any

import aiosqlite

from config import settings
from database import get_db
from models.device import (
    DeviceState, HistoryAction, DeviceFactoryRecord, DeviceCreateRequest,
    DeviceData, DeviceUpdateRequest, StateChange, DeviceAttributesUpdate,
    CreateResult,
)
from services.device_repository import DeviceRepository
from services.swm_client import SwmClient
from services import state_machine
from services import validators
from services.validators import clean_log_value
from services.exceptions import (
    ValidationError, MissingAttributeError, ApiValidationFailedError,
    DeviceNotFoundError, InvalidDeviceStateError, DeleteDeviceError,
    UpdateDeviceError, VehicleSyncError, VehicleSyncDeleteError,
    VehicleSyncUpdateError,
)

logger = logging.getLogger(__name__)

UPDATE_MANDATORY_FIELDS = (
    "manufacturing_date", "model", "serial_number", "record_date",
    "factory_admin", "imei", "iccid", "ssid", "bssid", "msisdn", "imsi",
    "platform_version",
)
UPDATE_COLUMNS = UPDATE_MANDATORY_FIELDS + ("package_serial_number",)
CREATE_MANDATORY_FIELDS = ("manufacturing_date", "record_date", "model", "serial_number")
CREATE_COLUMNS = (
    "model", "serial_number", "imei", "platform_version", "iccid", "ssid",
    "bssid", "msisdn", "imsi", "package_serial_number", "device_type",
)

MISSING_UPDATE_INPUT = (
    "One or more than one required attribute(s) value is missing either in "
    "\"currentValue\" or \"replaceWith\" input json"
)
DEFAULT_PLANT = "Plant"


def default_production_week(today: Optional[date] = None) -> str:
    """Current year followed by the two-digit week number, e.g. 202609"""
    today = today or date.today()
    return f"{today.year}{today.isocalendar()[1]:02d}"


class DeviceLifecycleService:
    """Create, update, delete and state-change use cases for factory records."""

    def __init__(self, repository: DeviceRepository = None,
                 vehicle_client: SwmClient = None, config=None):
        self.repository = repository or DeviceRepository()
        self.config = config or settings
        self._vehicle_client = vehicle_client

    @property
    def vehicle_client(self) -> SwmClient:
        if self._vehicle_client is None:
            self._vehicle_client = SwmClient.from_settings(self.config)
        return self._vehicle_client

    async def aclose(self):
        if self._vehicle_client is not None:
            await self._vehicle_client.aclose()

    # ------------------------------------------------------------------
    # Change state
    # ------------------------------------------------------------------

    async def _resolve(self, db, factory_id: Optional[int], imei: Optional[str]) -> DeviceFactoryRecord:
        if factory_id is not None and imei:
            record = await self.repository.find_by_id_and_imei(db, factory_id, imei)
            message = (f"DeviceInfo Factory Data not found for factory id :{factory_id} "
                       f"and imei :{imei}")
        elif factory_id is not None:
            record = await self.repository.find_by_id(db, factory_id)
            message = f"DeviceInfo Factory Data not found for factory id :{factory_id}"
        else:
            record = await self.repository.find_by_imei(db, imei)
            message = f"DeviceInfo Factory Data not found for imei :{imei}"
        if record is None:
            raise DeviceNotFoundError(message)
        return record

    async def change_state(self, request: StateChange) -> DeviceFactoryRecord:
        """
        Move a device to `request.state`.

        Lookup precedence is factory id + imei, then factory id, then imei.
        The transition is checked against the effective state (faulty and
        stolen flags first); ACTIVE also needs a non-blank association id.

        Returns:
            The record as stored after the change

        Raises:
            MissingAttributeError: neither identifier, or no target state
            DeviceNotFoundError: no record for the supplied identifiers
            InvalidDeviceStateError: stored state is not a known state
            InvalidStateTransitionError: transition or ACTIVE guard rejected
        """
        if request.factory_id is None and not request.imei:
            raise MissingAttributeError("Either of factory id or imei is mandatory", code="dfd-038")
        if request.state is None:
            raise MissingAttributeError("State is mandatory", code="dfd-039")
        validators.validate_imei_complete(request.imei)
        target = DeviceState(request.state)

        async with get_db() as db:
            record = await self._resolve(db, request.factory_id, request.imei)
            current = state_machine.effective_state(record)
            state_machine.validate_transition(record.id, current, target)
            if target == DeviceState.ACTIVE:
                association = await self.repository.find_association(db, record.id)
                state_machine.check_active_guard(record.id, current, target, association)

            rows = await self.repository.set_state(db, record.id, target)
            if rows == 0:
                raise DeviceNotFoundError(
                    f"DeviceInfo Factory Data not found for factory id :{record.id}")
            updated = await self.repository.find_by_id(db, record.id)
            await self.repository.insert_history(db, updated, HistoryAction.UPDATED)
            await db.commit()

        logger.info(f"Factory id {record.id} moved from {current.value} to {target.value}")
        return updated

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _create_columns(self, request: DeviceCreateRequest, actor: str) -> Dict[str, Any]:
        missing = [f for f in CREATE_MANDATORY_FIELDS if not getattr(request, f)]
        if missing:
            raise MissingAttributeError(
                "Invalid payload data. Contains null values for fields.", code="dfd-062")
        validators.validate_imei_complete(request.imei)
        validators.validate_serial_number(request.serial_number)
        validators.validate_vin(request.vin)

        columns = {c: getattr(request, c) for c in CREATE_COLUMNS}
        columns["manufacturing_date"] = validators.parse_factory_date(
            request.manufacturing_date, "manufacturingDate")
        columns["record_date"] = validators.parse_factory_date(request.record_date, "recordDate")
        columns["factory_admin"] = actor
        return columns

    async def _check_duplicates(self, request: DeviceCreateRequest):
        async with get_db() as db:
            if request.serial_number and await self.repository.serial_number_exists(
                    db, request.serial_number):
                raise ApiValidationFailedError(
                    "Device already exists for serial number.", code="dfd-049",
                    general_message="PreCondition failed")
            if request.vin and await self.repository.vin_exists(db, request.vin):
                raise ApiValidationFailedError(
                    "Device already exists for VIN.", code="dfd-047",
                    general_message="PreCondition failed")

    async def _create_vehicle(self, request: DeviceCreateRequest) -> bool:
        try:
            return await self.vehicle_client.create_vehicle(
                request.vin,
                chassis_number=request.chassis_number or request.vin,
                production_week=request.production_week or default_production_week(),
                plant=request.plant or DEFAULT_PLANT,
                model_year=request.vehicle_model_year or str(date.today().year),
                model=request.model,
            )
        except VehicleSyncError as e:
            logger.error(f"SWM vehicle creation failed for VIN {clean_log_value(request.vin)}, "
                         f"serial {clean_log_value(request.serial_number)}: {e}")
            return False

    async def _insert(self, columns: Dict[str, Any], vin: Optional[str]) -> DeviceFactoryRecord:
        async with get_db() as db:
            try:
                factory_id = await self.repository.insert_record(db, columns)
                if vin:
                    await self.repository.insert_vin(db, factory_id, vin)
                record = await self.repository.find_by_id(db, factory_id)
                await self.repository.insert_history(db, record, HistoryAction.PROVISIONED)
                await db.commit()
            except aiosqlite.IntegrityError as e:
                raise ValidationError(
                    "One or more of the input factory data is already present in the DB. "
                    "Duplicate entry.", code="dfd-061") from e
        record.vin = vin
        return record

    async def create(self, records: List[DeviceCreateRequest], actor: str) -> CreateResult:
        """
        Insert each record in PROVISIONED state with its VIN and history row.

        Every record is validated before the first insert. Each insert is its
        own transaction; a record whose SWM vehicle could not be created is
        skipped and its VIN reported in `failed_vins`.
        """
        if not actor:
            raise MissingAttributeError("Missing 'user-id' in http request header", code="dfd-059")
        if not records:
            raise ValidationError("Invalid payload data", code="dfd-060")

        prepared = [(request, self._create_columns(request, actor)) for request in records]
        result = CreateResult()
        for request, columns in prepared:
            if self.config.vin_integration_enabled():
                await self._check_duplicates(request)
            if self.config.vehicle_sync_enabled() and request.vin:
                if not await self._create_vehicle(request):
                    result.failed_vins.append(request.vin)
                    continue
            result.created.append(await self._insert(columns, request.vin))

        if result.failed_vins:
            logger.warning(f"Device creation failed for these vins: {', '.join(result.failed_vins)}")
        logger.info(f"Created {len(result.created)} factory record(s) for {clean_log_value(actor)}")
        return result

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @staticmethod
    def _update_columns(data: DeviceData) -> Dict[str, Any]:
        columns = {c: getattr(data, c) for c in UPDATE_COLUMNS}
        columns["manufacturing_date"] = validators.parse_factory_date(
            data.manufacturing_date, "manufacturingDate")
        columns["record_date"] = validators.parse_factory_date(data.record_date, "recordDate")
        return columns

    async def update(self, request: DeviceUpdateRequest) -> DeviceFactoryRecord:
        """
        Replace the full field set of a PROVISIONED record.

        The record is located by every field of `current_value`. VIN checks
        run before any write so a VIN mismatch leaves the record untouched.
        The local update commits before the SWM call; an SWM failure raises
        VehicleSyncUpdateError with the local change kept.
        """
        current, replacement = request.current_value, request.replace_with
        if current is None or replacement is None:
            raise ValidationError("Request object (deviceUpdateRequest) is null", code="dfd-041")
        for payload in (current, replacement):
            if any(getattr(payload, f) is None for f in UPDATE_MANDATORY_FIELDS):
                raise MissingAttributeError(MISSING_UPDATE_INPUT)

        sync = self.config.vehicle_sync_enabled()
        if sync:
            for payload in (current, replacement):
                if not payload.chassis_number or not payload.production_week:
                    raise MissingAttributeError("Chassis number and production week is mandatory")

        validators.validate_imei_complete(replacement.imei)
        validators.validate_serial_number_complete(replacement.serial_number)
        validators.validate_vin(replacement.vin)
        match = self._update_columns(current)
        changes = self._update_columns(replacement)
        if current.package_serial_number is None:
            match.pop("package_serial_number")

        async with get_db() as db:
            record = await self.repository.find_matching(db, match)
            if record is None:
                raise DeviceNotFoundError(
                    "No data is found in inventory for the passed current value", code="dfd-043")
            if state_machine.effective_state(record) != DeviceState.PROVISIONED:
                raise InvalidDeviceStateError("Device is not in valid state to perform the action")

            vin_changed = False
            if self.config.vin_integration_enabled():
                if not await self.repository.vin_matches(db, record.id, current.vin):
                    raise ApiValidationFailedError(
                        "No data found for the given input", code="dfd-048",
                        general_message="Resource not found")
                if replacement.vin != current.vin:
                    owners = await self.repository.find_record_ids_by_vin(db, replacement.vin)
                    if any(owner != record.id for owner in owners):
                        raise ApiValidationFailedError(
                            "Device already exists for VIN.", code="dfd-047",
                            general_message="PreCondition failed")
                    vin_changed = replacement.vin is not None

            try:
                await self.repository.update_fields(db, record.id, changes)
                if vin_changed:
                    await self.repository.update_vin(db, record.id, replacement.vin)
                await db.commit()
            except aiosqlite.IntegrityError as e:
                raise UpdateDeviceError("Failed to update device, please contact admin.") from e

            updated = await self.repository.find_by_id(db, record.id)
            updated.vin = await self.repository.find_vin(db, record.id)
            sync_vin = None
            if sync:
                sync_vin = await self.repository.find_vin_by_identifiers(
                    db, replacement.imei, replacement.serial_number)

        logger.info(f"Factory id {record.id} updated")
        if sync:
            await self._sync_update(replacement, sync_vin)
        return updated

    async def _sync_update(self, replacement: DeviceData, vin: Optional[str]):
        if not vin:
            raise UpdateDeviceError("Cannot update device due vin does not exist in db!")
        try:
            updated = await self.vehicle_client.update_vehicle(
                replacement.chassis_number, replacement.production_week,
                replacement.plant, vin, replacement.vehicle_model_year)
        except VehicleSyncError as e:
            raise VehicleSyncUpdateError(
                "Cannot update device due to swm internal server error") from e
        if not updated:
            raise VehicleSyncUpdateError("Cannot update device due to swm internal server error")

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, imei: Optional[str], serial_number: Optional[str]) -> DeviceFactoryRecord:
        """
        Delete a PROVISIONED record and leave a DEACTIVATED history row.

        Returns the pre-delete snapshot. When SWM sync is enabled the VIN
        must resolve first; the SWM delete runs after the local commit and
        its failure does not restore the row.
        """
        if not imei and not serial_number:
            raise MissingAttributeError("Either Serial number or IMEI is mandatory", code="dfd-001")
        validators.validate_imei_complete(imei)
        validators.validate_serial_number_complete(serial_number)
        sync = self.config.vehicle_sync_enabled()

        async with get_db() as db:
            record = await self.repository.find_by_identifiers(db, imei, serial_number)
            if record is None:
                raise DeviceNotFoundError(
                    "No data is found in inventory for the requested inputs", code="dfd-002")

            vin = None
            if sync:
                vin = await self.repository.find_vin(db, record.id)
                if not vin:
                    raise DeleteDeviceError("Cannot delete device due to vin does not exist in db")

            try:
                rows = await self.repository.delete_provisioned(db, record.id)
                if rows == 0:
                    raise InvalidDeviceStateError(
                        "factory data can't be deleted as the device is not in : "
                        f"{DeviceState.PROVISIONED.value} state")
                await self.repository.insert_history(db, record, HistoryAction.DEACTIVATED)
                await db.commit()
            except aiosqlite.IntegrityError as e:
                raise DeleteDeviceError("Cannot delete the device. Device has historical data.") from e

        logger.info(f"Factory id {record.id} deleted")
        if sync:
            try:
                deleted = await self.vehicle_client.delete_vehicle(vin)
            except VehicleSyncError as e:
                raise VehicleSyncDeleteError(
                    "Cannot delete device due to swm internal server error") from e
            if not deleted:
                raise VehicleSyncDeleteError("Cannot delete device due to swm internal server error")
        return record

    # ------------------------------------------------------------------
    # Generic attribute update
    # ------------------------------------------------------------------

    async def update_device(self, request: DeviceAttributesUpdate) -> int:
        """Update the non-null attributes of a record by id; returns rows affected"""
        validators.validate_imei(request.imei)
        validators.validate_serial_number(request.serial_number)
        validators.validate_state_value(request.state)

        fields = request.model_dump(exclude={"id"}, exclude_none=True)
        if not fields:
            raise ValidationError("Invalid payload data", code="dfd-060")
        for column, name in (("manufacturing_date", "manufacturingDate"),
                             ("record_date", "recordDate")):
            if column in fields:
                fields[column] = validators.parse_factory_date(fields[column], name)

        async with get_db() as db:
            try:
                rows = await self.repository.update_fields(db, request.id, fields)
                await db.commit()
            except aiosqlite.IntegrityError as e:
                raise UpdateDeviceError("Failed to update device, please contact admin.") from e
        if rows == 0:
            raise DeviceNotFoundError("Factory data not found for given filter", code="dfd-00067")
        return rows
