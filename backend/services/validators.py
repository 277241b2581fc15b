"""
Device Factory Management - Input Validators
Version: 1.2.0

Changelog:
v1.2.0 (2026-03-09): Range bounds checked against the datetime range, page upper bound
v1.1.0 (2026-03-04): Single-identifier check for the details listing,
                      VIN length check, strict yyyy/MM/dd date parsing
v1.0.0 (2026-02-27): Initial identifier, filter, sort and paging validators

All validators raise before any storage access and return the parsed
value where there is one.
"""

import re
from datetime import datetime, timezone
from typing import Optional, List, Tuple

from config import settings
from models.device import DeviceState
from services.column_mappings import (
    CONTAINS_LIKE_COLUMNS, RANGE_COLUMNS, DEVICE_DETAILS_SORT_COLUMNS,
    DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID, DEVICE_STATE_SORT_COLUMNS,
    lookup_field,
)
from services.exceptions import (
    ValidationError, InvalidIdentifierError, InvalidDateFormatError,
    PageParamError, SizeParamError, InvalidSortError, InvalidFilterError,
)

MIN_IDENTIFIER_LENGTH = 3
VIN_LENGTH = 17
STORED_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_SQLITE_INTEGER = 2**63 - 1

_FACTORY_DATE_RE = re.compile(r"^\d{4}/\d{2}/\d{2}$")
_LOG_UNSAFE_RE = re.compile(r"[\r\n]")

INVALID_SORTBY_FIELD = "sortby field and value should be of same length and allowed fields."
INVALID_SORTING_ORDER = "sortingorder field is mandatory.If non empty then should have asc/desc type."
WRONG_ISDETAILSREQUIRED = "isdetailsrequired field is mandatory and should have Boolean type."
INVALID_CONTAINS_LIKE_FIELD = "containslikefields is mandatory.If non empty then should be allowed one."
INVALID_RANGE_FIELD = "rangefields and rangevalues should be of same length and allowed."
INVALID_RANGE_VALUE = "rangevalues is not in proper format.It should be separated by underscore(_)"
ORDER_BY_FIELD_ERROR = "orderby field should have either asc or desc type"


def clean_log_value(value) -> str:
    """Strip CR/LF so request values cannot forge log lines"""
    return _LOG_UNSAFE_RE.sub("", str(value))


def _is_alphanumeric(value: str) -> bool:
    return value.isalnum() and value.isascii()


def _is_numeric(value: str) -> bool:
    return value.isdigit() and value.isascii()


# -- Identifiers --

def validate_imei(imei: Optional[str]) -> None:
    """Search-style IMEI check: at least 3 digits, numeric"""
    if not imei:
        return
    if len(imei) < MIN_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            "IMEI value have to be minimum 3 digits for search", code="dfd-010")
    if not _is_numeric(imei):
        raise InvalidIdentifierError("IMEI must be numeric", code="dfd-011")


def validate_imei_complete(imei: Optional[str]) -> None:
    if imei and not _is_numeric(imei):
        raise InvalidIdentifierError("IMEI must be numeric", code="dfd-011")


def validate_serial_number(serial_number: Optional[str]) -> None:
    if not serial_number:
        return
    if len(serial_number) < MIN_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            "Serial number value must to be minimum 3 characters for search", code="dfd-012")
    if not _is_alphanumeric(serial_number):
        raise InvalidIdentifierError("Serial number must be alphanumeric", code="dfd-013")


def validate_serial_number_complete(serial_number: Optional[str]) -> None:
    if serial_number and not _is_alphanumeric(serial_number):
        raise InvalidIdentifierError("Serial number must be alphanumeric", code="dfd-013")


def validate_device_id(device_id: Optional[str]) -> None:
    if not device_id:
        return
    if len(device_id) < MIN_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            "Invalid device id, length must be atleast of 3 characters", code="dfd-026")
    if not _is_alphanumeric(device_id):
        raise InvalidIdentifierError("Device Id must be alphanumeric", code="dfd-027")


def validate_vin(vin: Optional[str]) -> None:
    if vin is not None and len(vin) != VIN_LENGTH:
        raise InvalidIdentifierError(
            "Invalid VIN, length must be of 17 characters", code="dfd-020")


def validate_state_value(state: Optional[str]) -> None:
    if state is None:
        return
    try:
        DeviceState(state)
    except ValueError:
        raise ValidationError("Invalid payload data", code="dfd-060")


def validate_single_input(imei=None, serial_number=None, device_id=None,
                          vin=None, state=None) -> Tuple[Optional[str], Optional[str]]:
    """
    Details listing accepts at most one identifier.

    Returns (input_type, value); (None, None) when nothing was supplied,
    meaning "list everything".
    """
    supplied = []
    if imei:
        validate_imei(imei)
        supplied.append(("imei", imei))
    if serial_number:
        validate_serial_number(serial_number)
        supplied.append(("serial_number", serial_number))
    if device_id:
        validate_device_id(device_id)
        supplied.append(("device_id", device_id))
    if vin:
        validate_vin(vin)
        supplied.append(("vin", vin))
    if state:
        supplied.append(("state", state))

    if len(supplied) > 1:
        if vin:
            raise ValidationError(
                "Please provide any one of imei , SerialNumber , DeviceId or vin "
                "and perform the search again", code="dfd-018")
        raise ValidationError(
            "Please provide any one of imei , SerialNumber , DeviceId or State "
            "and perform the search again", code="dfd-019")
    if not supplied:
        return None, None
    return supplied[0]


# -- Dates --

def parse_factory_date(value: Optional[str], field: str) -> str:
    """yyyy/MM/dd -> stored 'YYYY-MM-DD 00:00:00' text"""
    if not value or not _FACTORY_DATE_RE.match(value):
        raise InvalidDateFormatError(
            f"Invalid date format passed for {field}. Valid format is yyyy/MM/dd")
    try:
        parsed = datetime.strptime(value, "%Y/%m/%d")
    except ValueError:
        raise InvalidDateFormatError(
            f"Invalid date format passed for {field}. Valid format is yyyy/MM/dd")
    return parsed.strftime(STORED_DATE_FORMAT)


def epoch_millis_to_stored(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime(STORED_DATE_FORMAT)


def now_stored() -> str:
    return datetime.now(timezone.utc).strftime(STORED_DATE_FORMAT)


# -- Listing parameters --

def split_list(value: Optional[str]) -> List[str]:
    """Comma separated request value -> list; spaces are dropped"""
    if not value:
        return []
    return value.replace(" ", "").split(",")


def validate_order(order: Optional[str]) -> None:
    if order and order.lower() not in ("asc", "desc"):
        raise InvalidSortError(ORDER_BY_FIELD_ERROR, code="dfd-031")


def validate_sort_request(sort_by: Optional[str], sorting_order: Optional[str],
                          is_details_required: Optional[str]) -> bool:
    """Checks the listing's sort fields and returns isDetailsRequired as bool"""
    if sort_by and lookup_field(DEVICE_DETAILS_SORT_COLUMNS, sort_by) is None:
        raise InvalidFilterError(INVALID_SORTBY_FIELD, code="dfd-021")
    if sorting_order and sorting_order.lower() not in ("asc", "desc"):
        raise InvalidFilterError(INVALID_SORTING_ORDER, code="dfd-022")
    if not is_details_required or is_details_required.lower() not in ("true", "false"):
        raise InvalidFilterError(WRONG_ISDETAILSREQUIRED, code="dfd-009")
    return is_details_required.lower() == "true"


def validate_contains_like(fields: List[str], values: List[str]) -> None:
    if not fields and not values:
        return
    if len(fields) != len(values):
        raise InvalidFilterError(INVALID_CONTAINS_LIKE_FIELD, code="dfd-023")
    for field in fields:
        if lookup_field(CONTAINS_LIKE_COLUMNS, field) is None:
            raise InvalidFilterError(INVALID_CONTAINS_LIKE_FIELD, code="dfd-023")


def validate_range(fields: List[str], values: List[str]) -> None:
    if not fields and not values:
        return
    if len(fields) != len(values):
        raise InvalidFilterError(INVALID_RANGE_FIELD, code="dfd-024")
    for field in fields:
        if lookup_field(RANGE_COLUMNS, field) is None:
            raise InvalidFilterError(INVALID_RANGE_FIELD, code="dfd-024")
    for value in values:
        bounds = value.split("_")
        if len(bounds) != 2 or not all(_is_numeric(b) for b in bounds):
            raise InvalidFilterError(INVALID_RANGE_VALUE, code="dfd-025")
        for bound in bounds:
            try:
                epoch_millis_to_stored(int(bound))
            except (OSError, OverflowError, ValueError):
                raise InvalidFilterError(INVALID_RANGE_VALUE, code="dfd-025")


def validate_sort_and_order(feature: str, sort_by: Optional[str], order: Optional[str],
                            input_type: Optional[str] = None) -> None:
    """
    Sort check for the history ('device_state') and details
    ('device_details') listings; device-id lookups may also sort by deviceId.
    """
    if sort_by:
        if feature == "device_state":
            if lookup_field(DEVICE_STATE_SORT_COLUMNS, sort_by) is None:
                raise InvalidSortError(
                    "Incorrect sortby field value. Use one of the following values: "
                    + "|".join(DEVICE_STATE_SORT_COLUMNS), code="dfd-028")
        elif input_type == "device_id":
            if lookup_field(DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID, sort_by) is None:
                raise InvalidSortError(
                    "Incorrect sortby field value. Use one of the following values: "
                    + "|".join(DEVICE_DETAILS_SORT_COLUMNS_FOR_DEVICE_ID), code="dfd-030")
        elif lookup_field(DEVICE_DETAILS_SORT_COLUMNS, sort_by) is None:
            raise InvalidSortError(
                "Incorrect sortby field value. Use one of the following values: "
                + "|".join(DEVICE_DETAILS_SORT_COLUMNS), code="dfd-030")
    validate_order(order)


def resolve_page(value) -> int:
    if value is None or value == "":
        return settings.DEFAULT_PAGE
    text = str(value).strip()
    if not _is_numeric(text):
        raise PageParamError("Page should be unsigned number", code="dfd-015")
    page = int(text)
    if page == 0:
        raise PageParamError("Page should be greater than zero", code="dfd-014")
    # OFFSET is bound as a signed 64-bit SQLite integer
    if (page - 1) * settings.MAX_PAGE_SIZE > MAX_SQLITE_INTEGER:
        raise PageParamError("Page is out of range", code="dfd-015")
    return page


def resolve_size(value) -> int:
    message = (f"Page size must be between {settings.MIN_PAGE_SIZE} "
               f"and {settings.MAX_PAGE_SIZE}")
    if value is None or value == "":
        return settings.DEFAULT_PAGE_SIZE
    text = str(value).strip()
    if not _is_numeric(text):
        raise SizeParamError(message)
    size = int(text)
    if not settings.MIN_PAGE_SIZE <= size <= settings.MAX_PAGE_SIZE:
        raise SizeParamError(message)
    return size
