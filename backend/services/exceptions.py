"""
Device Factory Management - Exception Hierarchy
Version: 1.0.0

Changelog:
v1.0.0 (2026-02-27): Initial exception hierarchy

Every error carries a dfd-xxx code and an HTTP status hint. The API layer
is the only place the status hint is read.
"""


class DeviceFactoryError(Exception):
    """Base exception for all device factory errors."""

    default_code = "dfd-777"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


# -- Input validation --

class ValidationError(DeviceFactoryError):
    """Malformed input detected before any storage access."""

    default_code = "dfd-032"
    status_code = 400


class MissingAttributeError(ValidationError):
    default_code = "dfd-042"


class InvalidIdentifierError(ValidationError):
    """IMEI, serial number, device id or VIN has the wrong shape."""

    default_code = "dfd-006"


class InvalidDateFormatError(ValidationError):
    default_code = "dfd-063"


class PageParamError(ValidationError):
    default_code = "dfd-015"


class SizeParamError(ValidationError):
    default_code = "dfd-016"


class InvalidSortError(ValidationError):
    default_code = "dfd-021"


class ApiValidationFailedError(ValidationError):
    """Business-rule rejection carrying both a specific and a general message."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        general_message: str = "Validation failed",
    ) -> None:
        self.general_message = general_message
        super().__init__(message, code=code)


# -- Not found --

class DeviceNotFoundError(DeviceFactoryError):
    default_code = "dfd-037"
    status_code = 404


class NoMatchingDevicesError(DeviceNotFoundError):
    """A filtered or ranged listing matched zero rows."""

    default_code = "dfd-00067"

    def __init__(self, message: str, *, filter_family: str, code: str | None = None) -> None:
        self.filter_family = filter_family
        super().__init__(message, code=code)


class InvalidFilterError(ValidationError, DeviceNotFoundError):
    """Filter field outside the allow-list, or field/value lists out of step."""

    default_code = "dfd-023"
    status_code = 404


# -- State --

class DeviceStateError(DeviceFactoryError):
    default_code = "dfd-036"
    status_code = 400


class InvalidDeviceStateError(DeviceStateError):
    """Stored state cannot be parsed, or the record is in the wrong state."""


class InvalidStateTransitionError(DeviceStateError):
    def __init__(self, message: str, *, device_id=None, current_state=None,
                 target_state=None, code: str | None = None) -> None:
        self.device_id = device_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message, code=code)


# -- Storage --

class DeleteDeviceError(DeviceFactoryError):
    default_code = "dfd-046"
    status_code = 412


class UpdateDeviceError(DeviceFactoryError):
    default_code = "dfd-00069"


# -- External vehicle sync --

class VehicleSyncError(DeviceFactoryError):
    """SWM vehicle service failed or returned an unusable response."""

    default_code = "dfd-054"
    status_code = 502

    def __init__(self, message: str, *, status: int | None = None,
                 endpoint: str = "", code: str | None = None) -> None:
        self.status = status
        self.endpoint = endpoint
        super().__init__(message, code=code)


class VehicleSyncDeleteError(DeleteDeviceError, VehicleSyncError):
    default_code = "dfd-057"
    status_code = 502


class VehicleSyncUpdateError(UpdateDeviceError, VehicleSyncError):
    default_code = "dfd-058"
    status_code = 502
