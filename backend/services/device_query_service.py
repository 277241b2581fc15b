"""
Device Factory Management - Device Query Service
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): State history by IMEI, single-identifier details lookup
                      (imei/serial/device id/VIN/state) and IN-list filter
v1.0.0 (2026-02-27): Initial filtered/paginated listing with state aggregate
"""

import logging
from typing import Mapping, Optional, List

from database import get_db, execute_all, execute_scalar
from models.device import (
    DeviceFactoryRecord, DeviceHistoryEntry, DeviceFilter, DeviceInfoPage,
    DeviceStatePage,
)
from services import query_builder
from services import validators
from services.column_mappings import (
    DEVICE_DETAILS_SORT_COLUMNS, DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID,
    DEVICE_STATE_SORT_COLUMNS, DEVICE_FILTER_COLUMNS,
)
from services.exceptions import (
    ValidationError, ApiValidationFailedError, DeviceNotFoundError,
    NoMatchingDevicesError,
)

logger = logging.getLogger(__name__)

# Column -> SQL expression for the details lookup's join
DETAILS_IDENTIFIER_COLUMNS = {
    "imei": "d.imei",
    "serial_number": "d.serial_number",
    "device_id": "a.harman_id",
    "vin": "v.vin",
    "state": "d.state",
}


def _qualify_details_column(column: str) -> str:
    return f"a.{column}" if column == "harman_id" else f"d.{column}"


class DeviceQueryService:
    """Read side: listings, state history and identifier lookups."""

    async def list_devices(self, params: Mapping[str, Optional[str]]) -> DeviceInfoPage:
        """
        Filtered, sorted and paginated listing with a per-state aggregate.

        All parameters are validated before the database is opened. The
        total is counted first; a filter that matches nothing is an error
        naming the filter family. Rows are only fetched when
        isDetailsRequired is true.
        """
        query = query_builder.QueryFilter.from_request(params)
        where, where_params = query_builder.build_where(query)

        async with get_db() as db:
            total = await execute_scalar(db, query_builder.count_query(where), where_params)
            if total == 0:
                if query.has_contains_like:
                    raise NoMatchingDevicesError(
                        f"No device is present with containing values: {query.contains_like_values}",
                        filter_family="contains_like")
                if query.has_range:
                    raise NoMatchingDevicesError(
                        f"No device is present with range values: {query.range_values}",
                        filter_family="range")

            aggregate_rows = await execute_all(
                db, query_builder.aggregate_query(where), where_params)
            state_count = query_builder.to_state_count(aggregate_rows)

            if not (query.is_details_required and total > 0):
                return DeviceInfoPage(
                    total=total, page=query.page, size=query.size,
                    state_count=state_count, count=total)

            order_by = query_builder.build_order_by(
                query.sort_by, query.sorting_order, DEVICE_DETAILS_SORT_COLUMNS)
            sql, tail = query_builder.page_query(where, order_by, query.page, query.size)
            rows = await execute_all(db, sql, where_params + tail)

        logger.debug(f"Listing returned {len(rows)} of {total} record(s)")
        return DeviceInfoPage(
            items=[DeviceFactoryRecord.from_row(row) for row in rows],
            total=total, page=query.page, size=query.size, state_count=state_count)

    async def find_device_states(self, imei: Optional[str], page=None, size=None,
                                 sorting_order: Optional[str] = None,
                                 sort_by: Optional[str] = None) -> DeviceStatePage:
        """History snapshots for one IMEI, paginated"""
        if not imei:
            raise ValidationError("Invalid IMEI", code="dfd-006")
        validators.validate_imei(imei)
        validators.validate_sort_and_order("device_state", sort_by, sorting_order)
        page = validators.resolve_page(page)
        size = validators.resolve_size(size)

        where = " WHERE imei = ?"
        async with get_db() as db:
            total = await execute_scalar(
                db, f"SELECT COUNT(*) FROM device_factory_data_history{where}", (imei,))
            if not total:
                raise DeviceNotFoundError(f"Device not found for imei: {imei}", code="dfd-033")
            order_by = query_builder.build_order_by(sort_by, sorting_order, DEVICE_STATE_SORT_COLUMNS)
            tail, tail_params = query_builder.pagination(page, size)
            rows = await execute_all(
                db, f"SELECT * FROM device_factory_data_history{where}{order_by}{tail}",
                [imei, *tail_params])

        return DeviceStatePage(
            items=[DeviceHistoryEntry.from_row(row) for row in rows],
            total=total, page=page, size=size)

    async def find_device_details(self, imei=None, serial_number=None, device_id=None,
                                  vin=None, state=None, page=None, size=None,
                                  sort_by: Optional[str] = None,
                                  sorting_order: Optional[str] = None) -> DeviceInfoPage:
        """
        Records for at most one identifier; no identifier lists everything.

        Device id lookups join device_association and may sort by deviceId.
        """
        input_type, value = validators.validate_single_input(
            imei, serial_number, device_id, vin, state)
        validators.validate_sort_and_order("device_details", sort_by, sorting_order, input_type)
        page = validators.resolve_page(page)
        size = validators.resolve_size(size)

        base = " FROM device_factory_data d LEFT JOIN vin_details v ON v.reference_id = d.id"
        select = "SELECT d.*, v.vin AS vin"
        mapping = DEVICE_DETAILS_SORT_COLUMNS
        if input_type == "device_id":
            base += " JOIN device_association a ON a.factory_id = d.id"
            select += ", a.harman_id AS harman_id"
            mapping = DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID

        where, params = "", []
        if input_type:
            where = f" WHERE {DETAILS_IDENTIFIER_COLUMNS[input_type]} = ?"
            params = [value]

        async with get_db() as db:
            total = await execute_scalar(db, f"SELECT COUNT(*){base}{where}", params)
            if input_type and not total:
                raise DeviceNotFoundError("No data found for the given input", code="dfd-048")
            aggregate_rows = await execute_all(
                db, f"SELECT d.state AS state, COUNT(d.state) AS count{base}{where} GROUP BY d.state",
                params)
            order_by = query_builder.build_order_by(
                sort_by, sorting_order, mapping, qualify=_qualify_details_column)
            tail, tail_params = query_builder.pagination(page, size)
            rows = await execute_all(db, f"{select}{base}{where}{order_by}{tail}", params + tail_params)

        return DeviceInfoPage(
            items=[DeviceFactoryRecord.from_row(row) for row in rows],
            total=total, page=page, size=size,
            state_count=query_builder.to_state_count(aggregate_rows))

    async def filter_devices(self, device_filter: DeviceFilter) -> List[DeviceFactoryRecord]:
        """Exact-match filter; each non-empty attribute list becomes an IN clause"""
        for imei in device_filter.imei or []:
            validators.validate_imei(imei)
        for serial_number in device_filter.serial_number or []:
            validators.validate_serial_number(serial_number)

        conditions, params = [], []
        for attribute, column in DEVICE_FILTER_COLUMNS.items():
            values = getattr(device_filter, attribute)
            if values:
                conditions.append(f"{column} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
        if not conditions:
            raise ApiValidationFailedError("Invalid device filter data", code="dfd-00068")

        async with get_db() as db:
            rows = await execute_all(
                db,
                "SELECT * FROM device_factory_data WHERE " + " AND ".join(conditions)
                + " ORDER BY id ASC",
                params)
        if not rows:
            raise DeviceNotFoundError("Factory data not found for given filter", code="dfd-00067")
        return [DeviceFactoryRecord.from_row(row) for row in rows]
