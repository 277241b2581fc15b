"""
Device Factory Management - Device API Endpoints
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): State history, details lookup, filter and attribute
                      update endpoints
v1.0.0 (2026-02-27): Initial create/list/update/delete/state endpoints
"""

from fastapi import APIRouter, Header, Request
from typing import Optional, List
import logging

from models.device import (
    DeviceCreateRequest, DeviceUpdateRequest, StateChange, DeviceFilter,
    DeviceAttributesUpdate,
)
from services.lifecycle_service import DeviceLifecycleService
from services.device_query_service import DeviceQueryService

router = APIRouter(prefix="/devices", tags=["devices"])
logger = logging.getLogger(__name__)

lifecycle_service = DeviceLifecycleService()
query_service = DeviceQueryService()


@router.post("/")
async def create_devices(records: List[DeviceCreateRequest],
                         user_id: Optional[str] = Header(None, alias="user-id")):
    """Create factory records in PROVISIONED state"""
    result = await lifecycle_service.create(records, user_id)
    return {"message": "Device factory data created successfully.", "data": result}


@router.get("/")
async def list_devices(request: Request):
    """
    Filtered listing. Query keys: containslikefields, containslikevalues,
    rangefields, rangevalues, sortby, sortingorder, isdetailsrequired, page, size.
    """
    page = await query_service.list_devices(dict(request.query_params))
    return {"message": "Device factory data retrieved successfully.", "data": page}


@router.put("/")
async def update_device(request: DeviceUpdateRequest):
    record = await lifecycle_service.update(request)
    return {"message": "Device updated successfully.", "data": record}


@router.delete("/")
async def delete_device(imei: Optional[str] = None, serialnumber: Optional[str] = None):
    """Delete a PROVISIONED device by imei and/or serial number"""
    await lifecycle_service.delete(imei, serialnumber)
    return {"message": "Device deleted successfully."}


@router.patch("/state")
async def change_state(request: StateChange):
    record = await lifecycle_service.change_state(request)
    return {"message": "Device states changed successfully.", "data": record}


@router.patch("/attributes")
async def update_attributes(request: DeviceAttributesUpdate):
    rows = await lifecycle_service.update_device(request)
    return {"message": "Device updated successfully.", "updated": rows}


@router.get("/states")
async def device_states(imei: Optional[str] = None, page: Optional[str] = None,
                        size: Optional[str] = None, sortingorder: Optional[str] = None,
                        sortby: Optional[str] = None):
    """State history for one IMEI"""
    states = await query_service.find_device_states(imei, page, size, sortingorder, sortby)
    return {"message": "Device states retrieved successfully.", "data": states}


@router.get("/details")
async def device_details(imei: Optional[str] = None, serialnumber: Optional[str] = None,
                         deviceid: Optional[str] = None, vin: Optional[str] = None,
                         state: Optional[str] = None, page: Optional[str] = None,
                         size: Optional[str] = None, sortby: Optional[str] = None,
                         sortingorder: Optional[str] = None):
    details = await query_service.find_device_details(
        imei, serialnumber, deviceid, vin, state, page, size, sortby, sortingorder)
    return {"message": "Device details retrieved successfully", "data": details}


@router.post("/filter")
async def filter_devices(device_filter: DeviceFilter):
    records = await query_service.filter_devices(device_filter)
    return {"message": "Device details retrieved successfully", "data": records}
