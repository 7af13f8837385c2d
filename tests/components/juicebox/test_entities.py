from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from custom_components.juicebox import binary_sensor, sensor, switch
from custom_components.juicebox.const import DOMAIN
from custom_components.juicebox.exceptions import TransportError
from custom_components.juicebox.models import DeviceIdentity
from tests.components.juicebox.common import RANDOM_UNIT, charger_state


@pytest_asyncio.fixture
async def charging_controller(controller_factory, fake_client):
    fake_client.async_get_device_state = AsyncMock(
        return_value=charger_state("charging")
    )
    ctrl = controller_factory()
    await ctrl.async_poll()
    return ctrl


def _sensor(ctrl, key: str) -> sensor.JuiceBoxSensor:
    description = next(d for d in sensor.SENSORS if d.key == key)
    return sensor.JuiceBoxSensor(ctrl, description)


@pytest.mark.asyncio
async def test_switch_reflects_controller(charging_controller) -> None:
    ent = switch.ChargingSwitch(charging_controller)

    assert ent.unique_id == f"{DOMAIN}_{RANDOM_UNIT}_charging_switch"
    assert ent.device_info["identifiers"] == {(DOMAIN, RANDOM_UNIT)}
    assert ent.device_info["serial_number"] == RANDOM_UNIT
    assert ent.available is True
    assert ent.is_on is True


@pytest.mark.asyncio
async def test_switch_unavailable_after_failure(
    charging_controller, fake_client
) -> None:
    fake_client.async_get_device_state = AsyncMock(side_effect=TransportError("down"))
    await charging_controller.async_poll()
    ent = switch.ChargingSwitch(charging_controller)

    assert ent.available is False
    assert ent.is_on is None


@pytest.mark.asyncio
async def test_switch_turn_on_off_delegates(controller_factory) -> None:
    ctrl = controller_factory()
    ctrl.async_set_on = AsyncMock()
    ent = switch.ChargingSwitch(ctrl)

    await ent.async_turn_on()
    await ent.async_turn_off()

    assert [c.args for c in ctrl.async_set_on.await_args_list] == [(True,), (False,)]


@pytest.mark.asyncio
async def test_sensors_report_telemetry(charging_controller) -> None:
    assert _sensor(charging_controller, "voltage").native_value == 240
    assert _sensor(charging_controller, "current").native_value == 16
    assert _sensor(charging_controller, "power").native_value == 3840
    assert _sensor(charging_controller, "energy_total").native_value == pytest.approx(5.0)
    assert (
        _sensor(charging_controller, "power").unique_id
        == f"{DOMAIN}_{RANDOM_UNIT}_power"
    )


@pytest.mark.asyncio
async def test_sensors_empty_without_telemetry(controller_factory) -> None:
    ctrl = controller_factory()
    await ctrl.async_poll()

    ent = _sensor(ctrl, "power")
    assert ent.available is True
    assert ent.native_value is None
    assert _sensor(controller_factory(), "voltage").native_value is None


@pytest.mark.asyncio
async def test_plugged_in_binary_sensor(charging_controller, controller_factory) -> None:
    assert binary_sensor.PluggedInBinarySensor(charging_controller).is_on is True

    idle = controller_factory()
    assert binary_sensor.PluggedInBinarySensor(idle).is_on is None
    await idle.async_poll()
    assert binary_sensor.PluggedInBinarySensor(idle).is_on is False


@pytest.mark.asyncio
async def test_controller_update_writes_state(controller_factory) -> None:
    ctrl = controller_factory()
    ent = switch.ChargingSwitch(ctrl)
    ent.async_write_ha_state = MagicMock()
    ctrl.async_add_listener(ent._handle_controller_update)

    await ctrl.async_poll()

    ent.async_write_ha_state.assert_called_once_with()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("platform", "per_device"),
    [(switch, 1), (sensor, len(sensor.SENSORS)), (binary_sensor, 1)],
)
async def test_platform_setup_adds_entities_for_new_controllers(
    platform, per_device, controller_factory, fake_client
) -> None:
    first = controller_factory()
    fleet = SimpleNamespace(controllers={first.unit_id: first})
    fleet.iter_controllers = lambda: list(fleet.controllers.values())
    listeners = []

    def _add_listener(cb):
        listeners.append(cb)
        return MagicMock()

    fleet.async_add_listener = _add_listener
    entry = SimpleNamespace(entry_id="entry-1", async_on_unload=MagicMock())
    hass = SimpleNamespace(data={DOMAIN: {"entry-1": {"fleet": fleet}}})
    added: list = []

    def _capture(entities, update_before_add=False):
        added.extend(entities)

    await platform.async_setup_entry(hass, entry, _capture)
    assert len(added) == per_device
    entry.async_on_unload.assert_called_once()

    second = type(first)(
        SimpleNamespace(),
        fake_client,
        DeviceIdentity(unit_id="JB0002", token="t2", name="Second"),
    )
    fleet.controllers[second.unit_id] = second
    listeners[0]()
    listeners[0]()

    assert len(added) == per_device * 2
    assert {ent._unit_id for ent in added} == {RANDOM_UNIT, "JB0002"}
