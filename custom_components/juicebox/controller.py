from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_call_later
from homeassistant.util import dt as dt_util

from . import models
from .api import JuiceNetClient
from .const import DEFAULT_SCAN_INTERVAL, DEFAULT_SETTLE_INTERVAL
from .exceptions import (
    ApiLogicalError,
    CommandFailed,
    CommandRejected,
    CommunicationFailure,
    DeviceOperationalError,
    JuiceBoxError,
    TransportError,
)
from .models import (
    FAULT_STATUSES,
    ChargerState,
    ChargerStatus,
    DeviceIdentity,
    DeviceSnapshot,
    OnOffOverride,
    PowerSample,
)

_LOGGER = logging.getLogger(__name__)

HistorySink = Callable[[str, PowerSample], None]


class JuiceBoxController:
    """Poll loop and command reconciliation for a single JuiceBox.

    All state lives on the event loop: the timer callback, in-flight awaits
    and ``async_set_on`` are the only writers. Every reschedule bumps
    ``generation``; a poll whose captured generation no longer matches when
    its request returns was superseded and its result is dropped.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        client: JuiceNetClient,
        device: DeviceIdentity,
        *,
        scan_interval: float = DEFAULT_SCAN_INTERVAL,
        settle_interval: float = DEFAULT_SETTLE_INTERVAL,
        history_sink: HistorySink | None = None,
    ):
        self.hass = hass
        self.client = client
        self.device = device
        self._scan_interval = float(scan_interval)
        self._settle_interval = float(settle_interval)
        self._history_sink = history_sink
        self._snapshot = DeviceSnapshot()
        self._listeners: list[CALLBACK_TYPE] = []
        self._unsub_timer: CALLBACK_TYPE | None = None
        self._generation = 0
        self._closed = False

    @property
    def unit_id(self) -> str:
        return self.device.unit_id

    @property
    def name(self) -> str:
        return self.device.name

    @property
    def snapshot(self) -> DeviceSnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def available(self) -> bool:
        return self._snapshot.last_error is None and self._snapshot.state is not None

    @callback
    def update_identity(self, device: DeviceIdentity) -> None:
        if device.unit_id != self.device.unit_id:
            raise ValueError(f"Unit id mismatch: {device.unit_id} != {self.unit_id}")
        self.device = device

    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        """Register a callback fired after every applied poll or command."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    @callback
    def _async_notify(self) -> None:
        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception:  # noqa: BLE001 - one bad entity must not stall the loop
                _LOGGER.exception(
                    "Listener failed for JuiceBox %s", self.unit_id
                )

    @callback
    def async_start(self) -> None:
        self._schedule_poll(0)

    async def async_shutdown(self) -> None:
        self._closed = True
        self._cancel_timer()
        self._generation += 1
        self._listeners.clear()

    def _cancel_timer(self) -> None:
        if self._unsub_timer is not None:
            self._unsub_timer()
            self._unsub_timer = None

    @callback
    def _schedule_poll(self, delay: float) -> None:
        self._cancel_timer()
        self._generation += 1
        if self._closed:
            return
        self._unsub_timer = async_call_later(self.hass, delay, self._async_handle_timer)

    async def _async_handle_timer(self, _now: datetime) -> None:
        self._unsub_timer = None
        await self.async_poll()

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    async def async_poll(self, *, next_interval: float | None = None) -> bool | None:
        """Fetch the charger state and apply it.

        Returns True on success, False on a classified failure and None when
        the result was discarded because a newer reschedule superseded it.
        """
        generation = self._generation
        _LOGGER.debug("Polling JuiceBox %s (generation %s)", self.unit_id, generation)
        failure: JuiceBoxError | None = None
        state: ChargerState | None = None
        try:
            state = await self.client.async_get_device_state(self.device.token)
        except (TransportError, ApiLogicalError) as err:
            failure = err
        except Exception as err:  # noqa: BLE001 - the poll loop must keep running
            _LOGGER.exception("Unexpected error polling JuiceBox %s", self.unit_id)
            failure = TransportError(f"Unexpected error: {err!r}")

        if self._is_stale(generation):
            _LOGGER.debug(
                "Discarding stale poll for JuiceBox %s (generation %s, now %s)",
                self.unit_id,
                generation,
                self._generation,
            )
            return None

        if state is not None and state.status in FAULT_STATUSES:
            failure = DeviceOperationalError(f"Charger reported {state.status.value}")

        # Arm the next poll before anything observes the result
        self._schedule_poll(
            self._scan_interval if next_interval is None else next_interval
        )
        if failure is not None:
            self._record_failure(failure)
        else:
            self._record_success(state)
        return failure is None

    def _record_success(self, state: ChargerState) -> None:
        _LOGGER.debug("Updating JuiceBox %s from poll: %s", self.unit_id, state)
        self._snapshot = DeviceSnapshot(state=state)
        self._async_notify()
        self._push_history(state)

    def _record_failure(self, err: JuiceBoxError) -> None:
        _LOGGER.warning(
            "JuiceBox %s get_state failed (%s): %s%s",
            self.unit_id,
            err.kind.value,
            err,
            f" raw={err.payload}" if isinstance(err, ApiLogicalError) else "",
        )
        self._snapshot = DeviceSnapshot(last_error=err.kind)
        self._async_notify()

    def _push_history(self, state: ChargerState) -> None:
        if self._history_sink is None or state.charging is None:
            return
        watts = state.charging.watt_power
        if watts is None:
            return
        sample = PowerSample(timestamp=int(dt_util.utcnow().timestamp()), power=watts)
        try:
            self._history_sink(self.unit_id, sample)
        except Exception:  # noqa: BLE001 - history must not break polling
            _LOGGER.exception("History sink failed for JuiceBox %s", self.unit_id)

    async def async_set_on(self, desired: bool) -> None:
        """Start or stop charging.

        The charger takes tens of seconds to reflect a command, so the local
        override is reported until the next successful poll.
        """
        desired = bool(desired)
        _LOGGER.debug("Set JuiceBox %s On -> %s", self.unit_id, desired)
        if self._closed:
            raise CommunicationFailure(f"JuiceBox {self.unit_id} is shut down")

        self._schedule_poll(self._settle_interval)
        ok = await self.async_poll(next_interval=self._settle_interval)
        state = self._snapshot.state
        if not ok or state is None:
            _LOGGER.warning(
                "Rejecting set for JuiceBox %s: current state unavailable", self.unit_id
            )
            raise CommandRejected(f"JuiceBox {self.name} is not reachable")
        if desired and state.status is ChargerStatus.STANDBY:
            _LOGGER.warning(
                "Rejecting start for JuiceBox %s: no vehicle plugged in", self.unit_id
            )
            raise CommandRejected(f"No vehicle is plugged in to {self.name}")

        # TODO: drop the override when start/stop fails
        self._snapshot = replace(self._snapshot, override=OnOffOverride(desired))
        # No poll may land while the command is in flight; the finally re-arms.
        self._cancel_timer()
        self._generation += 1
        self._async_notify()
        try:
            if desired:
                await self.client.async_start_charging(self.device.token)
            else:
                await self.client.async_stop_charging(self.device.token)
        except (TransportError, ApiLogicalError) as err:
            _LOGGER.error(
                "JuiceBox %s %s failed: %s",
                self.unit_id,
                "start" if desired else "stop",
                err,
            )
            raise CommandFailed(
                f"Could not {'start' if desired else 'stop'} charging on {self.name}"
            ) from err
        finally:
            self._schedule_poll(self._settle_interval)

    def get_on(self) -> bool:
        value = models.is_on(self._snapshot)
        _LOGGER.debug(
            "Get JuiceBox %s On%s -> %s",
            self.unit_id,
            " (override)" if self._snapshot.override is not None else "",
            value,
        )
        return value

    def get_in_use(self) -> bool:
        value = models.is_in_use(self._snapshot)
        _LOGGER.debug("Get JuiceBox %s InUse -> %s", self.unit_id, value)
        return value

    def get_voltage(self) -> float | None:
        return models.voltage(self._snapshot)

    def get_current(self) -> float | None:
        return models.current(self._snapshot)

    def get_power(self) -> float | None:
        return models.power(self._snapshot)

    def get_energy_total(self) -> float | None:
        return models.energy_total(self._snapshot)
