from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.event import async_track_time_interval

from .api import JuiceNetClient
from .const import DEFAULT_SCAN_INTERVAL, DEFAULT_SETTLE_INTERVAL, DOMAIN
from .controller import HistorySink, JuiceBoxController
from .exceptions import JuiceBoxError

_LOGGER = logging.getLogger(__name__)


def parse_ignored_ids(raw: str | Iterable[str] | None) -> set[str]:
    """Normalise the ignored unit ids option into a set."""
    if not raw:
        return set()
    if isinstance(raw, str):
        parts = raw.replace(";", ",").split(",")
    else:
        parts = list(raw)
    return {str(part).strip() for part in parts if str(part).strip()}


class JuiceBoxFleet:
    """Keeps one controller per charger on the JuiceNet account."""

    def __init__(
        self,
        hass: HomeAssistant,
        client: JuiceNetClient,
        *,
        scan_interval: float = DEFAULT_SCAN_INTERVAL,
        settle_interval: float = DEFAULT_SETTLE_INTERVAL,
        ignored_ids: Iterable[str] = (),
        history_sink: HistorySink | None = None,
    ):
        self.hass = hass
        self.client = client
        self.controllers: dict[str, JuiceBoxController] = {}
        self._scan_interval = scan_interval
        self._settle_interval = settle_interval
        self._ignored_ids = set(ignored_ids)
        self._history_sink = history_sink
        self._listeners: list[CALLBACK_TYPE] = []
        self._unsub_rediscovery: CALLBACK_TYPE | None = None

    def iter_controllers(self) -> list[JuiceBoxController]:
        return list(self.controllers.values())

    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        """Register a callback fired when discovery adds controllers."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    async def async_discover(self) -> None:
        """Sync controllers with the account's device list.

        Raises the client's JuiceBoxError when the list cannot be fetched;
        existing controllers are left untouched in that case.
        """
        devices = await self.client.async_list_devices()
        seen: set[str] = set()
        added = False
        for device in devices:
            if device.unit_id in self._ignored_ids:
                _LOGGER.info("Skipping JuiceBox with ID: %s", device.unit_id)
                continue
            seen.add(device.unit_id)
            existing = self.controllers.get(device.unit_id)
            if existing is not None:
                if existing.device != device:
                    _LOGGER.debug("Updating identity for JuiceBox %s", device.unit_id)
                    existing.update_identity(device)
                continue
            _LOGGER.info("Adding JuiceBox %s (%s)", device.name, device.unit_id)
            controller = JuiceBoxController(
                self.hass,
                self.client,
                device,
                scan_interval=self._scan_interval,
                settle_interval=self._settle_interval,
                history_sink=self._history_sink,
            )
            self.controllers[device.unit_id] = controller
            controller.async_start()
            added = True

        for unit_id in [uid for uid in self.controllers if uid not in seen]:
            await self._async_remove(unit_id)

        if added:
            for update_callback in list(self._listeners):
                update_callback()

    async def _async_remove(self, unit_id: str) -> None:
        controller = self.controllers.pop(unit_id)
        _LOGGER.info("Removing JuiceBox %s (%s)", controller.name, unit_id)
        await controller.async_shutdown()
        dev_reg = dr.async_get(self.hass)
        device_entry = dev_reg.async_get_device(identifiers={(DOMAIN, unit_id)})
        if device_entry is not None:
            dev_reg.async_remove_device(device_entry.id)

    @callback
    def async_start_rediscovery(self, interval: timedelta) -> None:
        if self._unsub_rediscovery is not None:
            self._unsub_rediscovery()
        self._unsub_rediscovery = async_track_time_interval(
            self.hass, self._async_rediscover, interval
        )

    async def _async_rediscover(self, _now: datetime) -> None:
        try:
            await self.async_discover()
        except JuiceBoxError as err:
            _LOGGER.warning("JuiceNet device discovery failed: %s", err)

    async def async_shutdown(self) -> None:
        if self._unsub_rediscovery is not None:
            self._unsub_rediscovery()
            self._unsub_rediscovery = None
        self._listeners.clear()
        for unit_id in list(self.controllers):
            await self.controllers.pop(unit_id).async_shutdown()
