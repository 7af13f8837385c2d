"""Charger state model and the readings derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import CommunicationFailure, ErrorKind, MissingTelemetry


class ChargerStatus(str, Enum):
    CHARGING = "charging"
    PLUGGED = "plugged"
    STANDBY = "standby"
    ERROR = "error"
    DISCONNECT = "disconnect"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> ChargerStatus:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN


POWER_STATUSES = frozenset({ChargerStatus.CHARGING, ChargerStatus.PLUGGED})
FAULT_STATUSES = frozenset({ChargerStatus.ERROR, ChargerStatus.DISCONNECT})


@dataclass(frozen=True)
class DeviceIdentity:
    """A charger unit as returned by account discovery."""

    unit_id: str
    token: str
    name: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DeviceIdentity:
        unit_id = str(payload["unit_id"])
        name = payload.get("name") or unit_id
        return cls(unit_id=unit_id, token=str(payload["token"]), name=str(name))


@dataclass(frozen=True)
class ChargingTelemetry:
    voltage: float | None
    amps_current: float | None
    watt_power: float | None
    wh_energy: float | None


@dataclass(frozen=True)
class ChargerState:
    """Decoded ``get_state`` payload.

    ``charging`` is only kept for statuses where power can flow; readers must
    not assume it is present.
    """

    status: ChargerStatus
    target_time: int | None = None
    default_target_time: int | None = None
    unit_time: int | None = None
    charging: ChargingTelemetry | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChargerState:
        status = ChargerStatus.parse(payload.get("state"))
        charging = None
        raw_charging = payload.get("charging")
        if status in POWER_STATUSES and isinstance(raw_charging, dict):
            charging = ChargingTelemetry(
                voltage=as_float(raw_charging.get("voltage")),
                amps_current=as_float(raw_charging.get("amps_current")),
                watt_power=as_float(raw_charging.get("watt_power")),
                wh_energy=as_float(raw_charging.get("wh_energy")),
            )
        return cls(
            status=status,
            target_time=as_int(payload.get("target_time")),
            default_target_time=as_int(payload.get("default_target_time")),
            unit_time=as_int(payload.get("unit_time")),
            charging=charging,
        )


@dataclass(frozen=True)
class OnOffOverride:
    desired_on: bool


@dataclass(frozen=True)
class PowerSample:
    timestamp: int
    power: float


@dataclass(frozen=True)
class DeviceSnapshot:
    """Last known state of one charger.

    A failed poll leaves ``state`` empty and records ``last_error``; a
    successful one does the opposite. ``override`` bridges the gap between a
    command and the cloud reflecting it.
    """

    state: ChargerState | None = None
    last_error: ErrorKind | None = None
    override: OnOffOverride | None = None


def as_int(value: Any) -> int | None:
    """Vendor integers sometimes arrive as strings; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _require_state(snapshot: DeviceSnapshot) -> ChargerState:
    if snapshot.last_error is not None:
        raise CommunicationFailure(
            f"Charger unavailable ({snapshot.last_error.value})",
            snapshot.last_error,
        )
    if snapshot.state is None:
        raise CommunicationFailure("Charger state not yet known")
    return snapshot.state


def _require_telemetry(snapshot: DeviceSnapshot) -> ChargingTelemetry:
    state = _require_state(snapshot)
    if state.charging is None:
        raise MissingTelemetry(f"No charging telemetry in state {state.status.value}")
    return state.charging


def is_fully_charged(state: ChargerState) -> bool:
    """Plugged in with no pending schedule and past the default target time."""
    if state.status is not ChargerStatus.PLUGGED:
        return False
    if state.target_time is None or state.default_target_time is None:
        return False
    if state.unit_time is None:
        return False
    return (
        state.target_time == state.default_target_time
        and state.unit_time >= state.default_target_time
    )


def is_on(snapshot: DeviceSnapshot) -> bool:
    state = _require_state(snapshot)
    if snapshot.override is not None:
        return snapshot.override.desired_on
    return state.status is ChargerStatus.CHARGING or is_fully_charged(state)


def is_in_use(snapshot: DeviceSnapshot) -> bool:
    return _require_state(snapshot).status in POWER_STATUSES


def voltage(snapshot: DeviceSnapshot) -> float | None:
    return _require_telemetry(snapshot).voltage


def current(snapshot: DeviceSnapshot) -> float | None:
    return _require_telemetry(snapshot).amps_current


def power(snapshot: DeviceSnapshot) -> float | None:
    return _require_telemetry(snapshot).watt_power


def energy_total(snapshot: DeviceSnapshot) -> float | None:
    wh = _require_telemetry(snapshot).wh_energy
    if wh is None:
        return None
    return wh / 1000
