from __future__ import annotations

from homeassistant.components.switch import SwitchEntity
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
            [ChargingSwitch(ctrl) for ctrl in controllers], update_before_add=False
        )

    entry.async_on_unload(fleet.async_add_listener(_async_sync_chargers))
    _async_sync_chargers()


class ChargingSwitch(JuiceBoxBaseEntity, SwitchEntity):
    # Main feature of the device; let entity name equal device name
    _attr_name = None

    def __init__(self, controller: JuiceBoxController):
        super().__init__(controller, "charging_switch")

    @property
    def is_on(self) -> bool | None:
        try:
            return self._controller.get_on()
        except CommunicationFailure:
            return None

    async def async_turn_on(self, **kwargs) -> None:
        await self._controller.async_set_on(True)

    async def async_turn_off(self, **kwargs) -> None:
        await self._controller.async_set_on(False)
