from __future__ import annotations

from typing import Any

from custom_components.juicebox.models import ChargerState

RANDOM_UNIT = "JB0001234"
RANDOM_TOKEN = "dev-token-1"

CHARGING_TELEMETRY = {
    "voltage": 240,
    "amps_current": 16,
    "watt_power": 3840,
    "wh_energy": 5000,
}


def state_payload(state: str, **overrides: Any) -> dict[str, Any]:
    """Build a get_state body the way JuiceNet returns it."""
    body: dict[str, Any] = {
        "success": True,
        "state": state,
        "target_time": 1_700_010_000,
        "default_target_time": 1_700_020_000,
        "unit_time": 1_700_000_000,
    }
    if state in ("charging", "plugged"):
        body["charging"] = dict(CHARGING_TELEMETRY)
    body.update(overrides)
    return body


def charger_state(state: str, **overrides: Any) -> ChargerState:
    return ChargerState.from_payload(state_payload(state, **overrides))
