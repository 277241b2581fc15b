from __future__ import annotations

import pytest

from services import validators
from services.exceptions import (
    InvalidDateFormatError, InvalidFilterError, InvalidIdentifierError,
    InvalidSortError, PageParamError, SizeParamError, ValidationError,
)


def test_page_defaults_to_one() -> None:
    assert validators.resolve_page(None) == 1
    assert validators.resolve_page("") == 1
    assert validators.resolve_page("3") == 3


def test_page_zero_is_rejected() -> None:
    with pytest.raises(PageParamError, match="greater than zero") as exc_info:
        validators.resolve_page("0")
    assert exc_info.value.code == "dfd-014"


@pytest.mark.parametrize("value", ["-1", "abc", "1.5"])
def test_page_must_be_unsigned_number(value) -> None:
    with pytest.raises(PageParamError, match="unsigned number"):
        validators.resolve_page(value)


def test_size_defaults_and_bounds() -> None:
    assert validators.resolve_size(None) == 20
    assert validators.resolve_size("1") == 1
    assert validators.resolve_size("5000") == 5000


@pytest.mark.parametrize("value", ["0", "5001", "-5", "ten"])
def test_size_outside_range_is_rejected(value) -> None:
    with pytest.raises(SizeParamError, match="between 1 and 5000"):
        validators.resolve_size(value)


def test_imei_search_rules() -> None:
    validators.validate_imei(None)
    validators.validate_imei("123")
    with pytest.raises(InvalidIdentifierError) as short:
        validators.validate_imei("12")
    assert short.value.code == "dfd-010"
    with pytest.raises(InvalidIdentifierError) as alpha:
        validators.validate_imei("12a4")
    assert alpha.value.code == "dfd-011"


def test_imei_complete_only_checks_digits() -> None:
    validators.validate_imei_complete("")
    validators.validate_imei_complete("1")
    with pytest.raises(InvalidIdentifierError):
        validators.validate_imei_complete("99-00")


def test_serial_number_rules() -> None:
    validators.validate_serial_number("AB1")
    with pytest.raises(InvalidIdentifierError, match="minimum"):
        validators.validate_serial_number("AB")
    with pytest.raises(InvalidIdentifierError, match="alphanumeric"):
        validators.validate_serial_number("AB-12")
    validators.validate_serial_number_complete("A1")
    with pytest.raises(InvalidIdentifierError):
        validators.validate_serial_number_complete("A 1")


def test_device_id_rules() -> None:
    validators.validate_device_id("HU1")
    with pytest.raises(InvalidIdentifierError, match="atleast of 3"):
        validators.validate_device_id("H1")
    with pytest.raises(InvalidIdentifierError, match="alphanumeric"):
        validators.validate_device_id("HU_1")


def test_vin_must_have_17_characters() -> None:
    validators.validate_vin(None)
    validators.validate_vin("1HGCM82633A004352")
    with pytest.raises(InvalidIdentifierError, match="17 characters"):
        validators.validate_vin("1HGCM82633A00435")


def test_factory_date_parsing() -> None:
    assert validators.parse_factory_date("2019/01/01", "manufacturingDate") == "2019-01-01 00:00:00"


@pytest.mark.parametrize("value", [None, "2019-01-01", "2019/13/01", "2019/1/1", "01/01/2019"])
def test_factory_date_rejects_other_formats(value) -> None:
    with pytest.raises(InvalidDateFormatError, match="yyyy/MM/dd"):
        validators.parse_factory_date(value, "recordDate")


def test_epoch_millis_conversion_is_utc() -> None:
    assert validators.epoch_millis_to_stored(0) == "1970-01-01 00:00:00"
    assert validators.epoch_millis_to_stored(86_400_000) == "1970-01-02 00:00:00"


def test_split_list_drops_spaces() -> None:
    assert validators.split_list(None) == []
    assert validators.split_list("imei, serialNumber") == ["imei", "serialNumber"]


def test_single_input_allows_at_most_one_identifier() -> None:
    assert validators.validate_single_input() == (None, None)
    assert validators.validate_single_input(imei="123") == ("imei", "123")
    assert validators.validate_single_input(state="ACTIVE") == ("state", "ACTIVE")
    with pytest.raises(ValidationError) as exc_info:
        validators.validate_single_input(imei="123", serial_number="ABC")
    assert exc_info.value.code == "dfd-019"
    with pytest.raises(ValidationError) as with_vin:
        validators.validate_single_input(imei="123", vin="1HGCM82633A004352")
    assert with_vin.value.code == "dfd-018"


def test_sort_request_parses_details_flag_case_insensitively() -> None:
    assert validators.validate_sort_request("imei", "DESC", "TRUE") is True
    assert validators.validate_sort_request(None, None, "false") is False


@pytest.mark.parametrize("sort_by,order,details", [
    ("password", None, "true"),
    ("imei", "sideways", "true"),
    (None, None, None),
    (None, None, "yes"),
])
def test_sort_request_rejections_are_filter_errors(sort_by, order, details) -> None:
    with pytest.raises(InvalidFilterError):
        validators.validate_sort_request(sort_by, order, details)


def test_history_sort_table_is_separate() -> None:
    validators.validate_sort_and_order("device_state", "stateTimestamp", "asc")
    with pytest.raises(InvalidSortError):
        validators.validate_sort_and_order("device_details", "stateTimestamp", "asc")


def test_device_id_sort_only_for_device_id_lookups() -> None:
    validators.validate_sort_and_order("device_details", "deviceId", None, "device_id")
    with pytest.raises(InvalidSortError):
        validators.validate_sort_and_order("device_details", "deviceId", None, "imei")


def test_order_must_be_asc_or_desc() -> None:
    with pytest.raises(InvalidSortError) as exc_info:
        validators.validate_order("up")
    assert exc_info.value.code == "dfd-031"


def test_clean_log_value_strips_line_breaks() -> None:
    assert validators.clean_log_value("abc\r\nINFO forged") == "abcINFO forged"


@pytest.mark.parametrize("value", ["0_99999999999999999999", "99999999999999999999_0"])
def test_range_bounds_outside_datetime_range_are_rejected(value) -> None:
    with pytest.raises(InvalidFilterError) as exc_info:
        validators.validate_range(["createdDate"], [value])
    assert exc_info.value.code == "dfd-025"


def test_page_offset_must_fit_sqlite_integer() -> None:
    assert validators.resolve_page("1000000") == 1000000
    with pytest.raises(PageParamError, match="out of range"):
        validators.resolve_page("99999999999999999999")
