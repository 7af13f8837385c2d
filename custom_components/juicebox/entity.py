from __future__ import annotations

from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity import Entity

from .const import DOMAIN, MANUFACTURER, MODEL
from .controller import JuiceBoxController


class JuiceBoxBaseEntity(Entity):
    """Entity bound to one charger controller; pushes state on every update."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, controller: JuiceBoxController, key: str):
        self._controller = controller
        self._unit_id = controller.unit_id
        self._attr_unique_id = f"{DOMAIN}_{controller.unit_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, controller.unit_id)},
            manufacturer=MANUFACTURER,
            model=MODEL,
            name=controller.name,
            serial_number=controller.unit_id,
        )

    @property
    def available(self) -> bool:  # type: ignore[override]
        return self._controller.available

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(
            self._controller.async_add_listener(self._handle_controller_update)
        )

    @callback
    def _handle_controller_update(self) -> None:
        self.async_write_ha_state()
