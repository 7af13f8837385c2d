from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

import aiohttp
import async_timeout
from yarl import URL

from .const import (
    ACCOUNT_PATH,
    BASE_URL,
    CMD_GET_ACCOUNT_UNITS,
    CMD_GET_STATE,
    CMD_SET_OVERRIDE,
    DEFAULT_API_TIMEOUT,
    SECURE_PATH,
    STOP_OVERRIDE_DELAY_S,
)
from .exceptions import ApiLogicalError, TransportError
from .models import ChargerState, DeviceIdentity, as_int

_LOGGER = logging.getLogger(__name__)

_SECRET_FIELDS = {"account_token", "token"}


class JuiceNetClient:
    """Thin async wrapper around the JuiceNet cloud API.

    Every call checks both the HTTP layer and the ``success`` flag JuiceNet
    embeds in each body; the first raises :class:`TransportError`, the second
    :class:`ApiLogicalError`.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        account_token: str,
        timeout: int = DEFAULT_API_TIMEOUT,
        base_url: str = BASE_URL,
    ):
        self._s = session
        self._account_token = account_token
        self._timeout = int(timeout)
        self._base = URL(base_url)
        # JuiceNet wants a stable caller id per client
        self._device_id = str(uuid.uuid4())

    @staticmethod
    def _redact(body: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of a request body with tokens masked."""

        return {
            key: "[redacted]" if key in _SECRET_FIELDS else value
            for key, value in body.items()
        }

    def _body(self, cmd: str, **extra: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "cmd": cmd,
            "device_id": self._device_id,
            "account_token": self._account_token,
        }
        body.update(extra)
        return body

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = self._base.with_path(path)
        _LOGGER.debug("JuiceNet request %s %s", url, self._redact(body))
        try:
            async with async_timeout.timeout(self._timeout):
                async with self._s.post(url, json=body) as r:
                    if r.status >= 400:
                        try:
                            text = await r.text()
                        except Exception:  # noqa: BLE001 - fall back to reason
                            text = ""
                        message = (text or r.reason or "").strip()
                        if len(message) > 512:
                            message = f"{message[:512]}…"
                        raise TransportError(
                            f"JuiceNet {body['cmd']} returned HTTP {r.status}: {message}"
                        )
                    payload = await r.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            raise TransportError(
                f"JuiceNet {body['cmd']} request failed: {err!r}"
            ) from err

        _LOGGER.debug("JuiceNet response %s: %s", body["cmd"], payload)
        if not isinstance(payload, dict):
            raise TransportError(
                f"JuiceNet {body['cmd']} returned a non-object body: {payload!r}"
            )
        if not payload.get("success"):
            raise ApiLogicalError(
                f"JuiceNet {body['cmd']} reported failure: {payload}", payload
            )
        return payload

    async def async_list_devices(self) -> list[DeviceIdentity]:
        payload = await self._post(ACCOUNT_PATH, self._body(CMD_GET_ACCOUNT_UNITS))
        units = payload.get("units") or []
        devices: list[DeviceIdentity] = []
        for unit in units:
            if not isinstance(unit, dict):
                continue
            try:
                devices.append(DeviceIdentity.from_payload(unit))
            except KeyError:
                _LOGGER.debug("Skipping JuiceNet unit without id/token: %s", unit)
        return devices

    async def async_get_raw_state(self, device_token: str) -> dict[str, Any]:
        return await self._post(
            SECURE_PATH, self._body(CMD_GET_STATE, token=device_token)
        )

    async def async_get_device_state(self, device_token: str) -> ChargerState:
        return ChargerState.from_payload(await self.async_get_raw_state(device_token))

    async def async_set_charging_override(
        self,
        device_token: str,
        resume_at: int,
        stop_at: int | None = None,
    ) -> None:
        """Tell the charger to (re)start charging at ``resume_at`` epoch seconds.

        A refusal surfaces as ``ApiLogicalError`` from the ``success`` check.
        """
        extra: dict[str, Any] = {"token": device_token, "override_time": resume_at}
        if stop_at is not None and stop_at > 0:
            extra["target_time"] = stop_at
        await self._post(SECURE_PATH, self._body(CMD_SET_OVERRIDE, **extra))

    async def async_start_charging_after(self, device_token: str, delay_s: int) -> None:
        # Override times are in the charger's own clock, not ours
        state = await self.async_get_raw_state(device_token)
        unit_time = as_int(state.get("unit_time"))
        if unit_time is None:
            raise ApiLogicalError(
                "JuiceNet get_state did not include a usable unit_time", state
            )
        await self.async_set_charging_override(
            device_token, unit_time + int(delay_s)
        )

    async def async_start_charging(self, device_token: str) -> None:
        await self.async_start_charging_after(device_token, 0)

    async def async_stop_charging(self, device_token: str) -> None:
        await self.async_start_charging_after(device_token, STOP_OVERRIDE_DELAY_S)
