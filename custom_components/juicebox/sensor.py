from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import (
    UnitOfElectricCurrent,
    UnitOfElectricPotential,
    UnitOfEnergy,
    UnitOfPower,
)
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .controller import JuiceBoxController
from .entity import JuiceBoxBaseEntity
from .exceptions import CommunicationFailure, MissingTelemetry
from .fleet import JuiceBoxFleet

PARALLEL_UPDATES = 0


@dataclass(frozen=True, kw_only=True)
class JuiceBoxSensorDescription(SensorEntityDescription):
    value_fn: Callable[[JuiceBoxController], float | None]


SENSORS: tuple[JuiceBoxSensorDescription, ...] = (
    JuiceBoxSensorDescription(
        key="voltage",
        name="Voltage",
        device_class=SensorDeviceClass.VOLTAGE,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfElectricPotential.VOLT,
        suggested_display_precision=1,
        value_fn=lambda ctrl: ctrl.get_voltage(),
    ),
    JuiceBoxSensorDescription(
        key="current",
        name="Current",
        device_class=SensorDeviceClass.CURRENT,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfElectricCurrent.AMPERE,
        suggested_display_precision=2,
        value_fn=lambda ctrl: ctrl.get_current(),
    ),
    JuiceBoxSensorDescription(
        key="power",
        name="Power",
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        native_unit_of_measurement=UnitOfPower.WATT,
        suggested_display_precision=1,
        value_fn=lambda ctrl: ctrl.get_power(),
    ),
    JuiceBoxSensorDescription(
        key="energy_total",
        name="Energy",
        device_class=SensorDeviceClass.ENERGY,
        state_class=SensorStateClass.TOTAL_INCREASING,
        native_unit_of_measurement=UnitOfEnergy.KILO_WATT_HOUR,
        suggested_display_precision=3,
        value_fn=lambda ctrl: ctrl.get_energy_total(),
    ),
)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
):
    fleet: JuiceBoxFleet = hass.data[DOMAIN][entry.entry_id]["fleet"]
    known_units: set[str] = set()

    @callback
    def _async_sync_chargers() -> None:
        known_units.intersection_update(fleet.controllers)
        controllers = [
            ctrl for ctrl in fleet.iter_controllers() if ctrl.unit_id not in known_units
        ]
        if not controllers:
            return
        known_units.update(ctrl.unit_id for ctrl in controllers)
        async_add_entities(
            [
                JuiceBoxSensor(ctrl, description)
                for ctrl in controllers
                for description in SENSORS
            ],
            update_before_add=False,
        )

    entry.async_on_unload(fleet.async_add_listener(_async_sync_chargers))
    _async_sync_chargers()


class JuiceBoxSensor(JuiceBoxBaseEntity, SensorEntity):
    entity_description: JuiceBoxSensorDescription

    def __init__(
        self, controller: JuiceBoxController, description: JuiceBoxSensorDescription
    ):
        super().__init__(controller, description.key)
        self.entity_description = description

    @property
    def native_value(self) -> float | None:
        # Telemetry only exists while a car is plugged in
        try:
            return self.entity_description.value_fn(self._controller)
        except (CommunicationFailure, MissingTelemetry):
            return None
