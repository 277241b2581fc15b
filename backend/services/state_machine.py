"""
Device Factory Management - Device State Machine
Version: 1.0.0

Changelog:
v1.0.0 (2026-02-27): Initial transition table, effective-state derivation and
                      ACTIVE association guard

Pure decision logic: nothing here touches the database. The lifecycle
service resolves the record and the association row, then asks this
module whether the move is legal.
"""

from types import MappingProxyType
from typing import Optional

from models.device import DeviceState, DeviceFactoryRecord
from services.exceptions import InvalidDeviceStateError, InvalidStateTransitionError


ALLOWED_TRANSITIONS = MappingProxyType({
    DeviceState.PROVISIONED: frozenset({DeviceState.STOLEN, DeviceState.FAULTY}),
    DeviceState.ACTIVE: frozenset({DeviceState.STOLEN, DeviceState.FAULTY}),
    DeviceState.STOLEN: frozenset({DeviceState.ACTIVE, DeviceState.PROVISIONED}),
    DeviceState.FAULTY: frozenset({DeviceState.STOLEN, DeviceState.ACTIVE, DeviceState.PROVISIONED}),
    DeviceState.READY_TO_ACTIVATE: frozenset(),
    DeviceState.DEACTIVATED: frozenset(),
    DeviceState.PROVISIONED_ALIVE: frozenset(),
})


def parse_state(value) -> DeviceState:
    """Parse a stored state string, raising InvalidDeviceStateError"""
    try:
        return DeviceState(value)
    except ValueError:
        raise InvalidDeviceStateError(f"{value} is not a valid existing state")


def effective_state(record: DeviceFactoryRecord) -> DeviceState:
    """Faulty wins over stolen, stolen wins over the stored state."""
    if record.faulty:
        return DeviceState.FAULTY
    if record.stolen:
        return DeviceState.STOLEN
    return parse_state(record.state)


def is_valid_transition(current: DeviceState, target: DeviceState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _transition_error(device_id, current: DeviceState, target: DeviceState) -> InvalidStateTransitionError:
    return InvalidStateTransitionError(
        f"Device State Transition for factoryid :{device_id} ,from "
        f"{current.value} to {target.value} is not allowed",
        device_id=device_id, current_state=current, target_state=target,
    )


def validate_transition(device_id, current: DeviceState, target: DeviceState) -> None:
    if not is_valid_transition(current, target):
        raise _transition_error(device_id, current, target)


def check_active_guard(device_id, current: DeviceState, target: DeviceState,
                       association: Optional[dict]) -> None:
    """
    ACTIVE needs an association row whose harman_id is not blank.

    Only consulted for the ACTIVE target; other targets pass untouched.
    """
    if target != DeviceState.ACTIVE:
        return
    harman_id = (association or {}).get("harman_id")
    if not harman_id or not str(harman_id).strip():
        raise _transition_error(device_id, current, target)


def state_change_columns(target: DeviceState) -> dict:
    """Column values written when a record moves to `target`"""
    return {
        "state": target.value,
        "is_stolen": 1 if target == DeviceState.STOLEN else 0,
        "is_faulty": 1 if target == DeviceState.FAULTY else 0,
    }
