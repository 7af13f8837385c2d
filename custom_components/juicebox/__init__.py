from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import JuiceNetClient
from .const import (
    CONF_API_TOKEN,
    DEFAULT_API_TIMEOUT,
    DEFAULT_DISCOVERY_INTERVAL,
    DEFAULT_SCAN_INTERVAL,
    DEFAULT_SETTLE_INTERVAL,
    DOMAIN,
    OPT_API_TIMEOUT,
    OPT_IGNORED_IDS,
    OPT_SCAN_INTERVAL,
    OPT_SETTLE_INTERVAL,
    PLATFORMS,
)
from .controller import HistorySink
from .exceptions import JuiceBoxError
from .fleet import JuiceBoxFleet, parse_ignored_ids
from .models import PowerSample

_LOGGER = logging.getLogger(__name__)

EVENT_POWER_SAMPLE = f"{DOMAIN}_power_sample"


def _power_sample_sink(hass: HomeAssistant) -> HistorySink:
    @callback
    def _sink(unit_id: str, sample: PowerSample) -> None:
        hass.bus.async_fire(
            EVENT_POWER_SAMPLE,
            {"unit_id": unit_id, "time": sample.timestamp, "power": sample.power},
        )

    return _sink


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    options = entry.options
    client = JuiceNetClient(
        async_get_clientsession(hass),
        entry.data[CONF_API_TOKEN],
        timeout=int(options.get(OPT_API_TIMEOUT, DEFAULT_API_TIMEOUT)),
    )
    fleet = JuiceBoxFleet(
        hass,
        client,
        scan_interval=float(options.get(OPT_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL)),
        settle_interval=float(
            options.get(OPT_SETTLE_INTERVAL, DEFAULT_SETTLE_INTERVAL)
        ),
        ignored_ids=parse_ignored_ids(options.get(OPT_IGNORED_IDS)),
        history_sink=_power_sample_sink(hass),
    )
    try:
        await fleet.async_discover()
    except JuiceBoxError as err:
        await fleet.async_shutdown()
        raise ConfigEntryNotReady(f"Could not connect to JuiceNet: {err}") from err

    fleet.async_start_rediscovery(DEFAULT_DISCOVERY_INTERVAL)
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {"fleet": fleet}
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        data = hass.data[DOMAIN].pop(entry.entry_id)
        await data["fleet"].async_shutdown()
    return unload_ok


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    _LOGGER.debug("Reloading JuiceBox entry %s after options change", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)
