"""Config flow for the JuiceBox integration."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import HomeAssistant, callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import JuiceNetClient
from .const import (
    CONF_API_TOKEN,
    DEFAULT_API_TIMEOUT,
    DEFAULT_SCAN_INTERVAL,
    DEFAULT_SETTLE_INTERVAL,
    DOMAIN,
    OPT_API_TIMEOUT,
    OPT_IGNORED_IDS,
    OPT_SCAN_INTERVAL,
    OPT_SETTLE_INTERVAL,
)
from .exceptions import ApiLogicalError, TransportError
from .models import DeviceIdentity

_LOGGER = logging.getLogger(__name__)

STEP_USER_SCHEMA = vol.Schema({vol.Required(CONF_API_TOKEN): str})


def token_unique_id(token: str) -> str:
    """Stable unique id for an account token that does not leak the token."""
    return hashlib.sha256(token.encode()).hexdigest()[:16]


async def async_validate_token(hass: HomeAssistant, token: str) -> list[DeviceIdentity]:
    client = JuiceNetClient(async_get_clientsession(hass), token)
    return await client.async_list_devices()


class JuiceBoxConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for JuiceBox."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        errors: dict[str, str] = {}
        if user_input is not None:
            token = user_input[CONF_API_TOKEN].strip()
            await self.async_set_unique_id(token_unique_id(token))
            self._abort_if_unique_id_configured()
            try:
                devices = await async_validate_token(self.hass, token)
            except ApiLogicalError:
                errors["base"] = "invalid_auth"
            except TransportError as err:
                _LOGGER.debug("JuiceNet validation failed: %s", err)
                errors["base"] = "cannot_connect"
            else:
                return self.async_create_entry(
                    title=f"JuiceNet ({len(devices)} chargers)",
                    data={CONF_API_TOKEN: token},
                )

        return self.async_show_form(
            step_id="user", data_schema=STEP_USER_SCHEMA, errors=errors
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> JuiceBoxOptionsFlow:
        return JuiceBoxOptionsFlow()


class JuiceBoxOptionsFlow(config_entries.OptionsFlow):
    """Polling and discovery options."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        options = self.config_entry.options
        schema = vol.Schema(
            {
                vol.Optional(
                    OPT_SCAN_INTERVAL,
                    default=options.get(OPT_SCAN_INTERVAL, DEFAULT_SCAN_INTERVAL),
                ): vol.All(vol.Coerce(int), vol.Range(min=5, max=300)),
                vol.Optional(
                    OPT_SETTLE_INTERVAL,
                    default=options.get(OPT_SETTLE_INTERVAL, DEFAULT_SETTLE_INTERVAL),
                ): vol.All(vol.Coerce(int), vol.Range(min=5, max=300)),
                vol.Optional(
                    OPT_API_TIMEOUT,
                    default=options.get(OPT_API_TIMEOUT, DEFAULT_API_TIMEOUT),
                ): vol.All(vol.Coerce(int), vol.Range(min=5, max=120)),
                vol.Optional(
                    OPT_IGNORED_IDS,
                    default=options.get(OPT_IGNORED_IDS, ""),
                ): str,
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema)
