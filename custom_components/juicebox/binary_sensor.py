from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .controller import JuiceBoxController
from .entity import JuiceBoxBaseEntity
from .exceptions import CommunicationFailure
from .fleet import JuiceBoxFleet

PARALLEL_UPDATES = 0


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
            [PluggedInBinarySensor(ctrl) for ctrl in controllers],
            update_before_add=False,
        )

    entry.async_on_unload(fleet.async_add_listener(_async_sync_chargers))
    _async_sync_chargers()


class PluggedInBinarySensor(JuiceBoxBaseEntity, BinarySensorEntity):
    _attr_name = "Plugged in"
    _attr_device_class = BinarySensorDeviceClass.PLUG

    def __init__(self, controller: JuiceBoxController):
        super().__init__(controller, "plugged_in")

    @property
    def is_on(self) -> bool | None:
        try:
            return self._controller.get_in_use()
        except CommunicationFailure:
            return None
