from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from custom_components.juicebox import controller as controller_mod
from custom_components.juicebox.controller import JuiceBoxController
from custom_components.juicebox.models import DeviceIdentity
from tests.components.juicebox.common import RANDOM_TOKEN, RANDOM_UNIT, charger_state


class _TimerRecorder:
    """Stand-in for async_call_later that records armed timers."""

    def __init__(self) -> None:
        self.timers: list[SimpleNamespace] = []

    def __call__(self, hass, delay, action):
        timer = SimpleNamespace(delay=delay, cancelled=False, fired=False)

        async def _fire(now):
            timer.fired = True
            await action(now)

        timer.action = _fire
        self.timers.append(timer)

        def _cancel() -> None:
            timer.cancelled = True

        return _cancel

    @property
    def active(self) -> list[SimpleNamespace]:
        return [
            timer
            for timer in self.timers
            if not timer.cancelled and not timer.fired
        ]

    @property
    def last(self) -> SimpleNamespace:
        return self.timers[-1]


@pytest.fixture
def timers(monkeypatch) -> _TimerRecorder:
    recorder = _TimerRecorder()
    monkeypatch.setattr(controller_mod, "async_call_later", recorder)
    return recorder


@pytest.fixture
def device() -> DeviceIdentity:
    return DeviceIdentity(unit_id=RANDOM_UNIT, token=RANDOM_TOKEN, name="Garage JuiceBox")


@pytest.fixture
def fake_client():
    return SimpleNamespace(
        async_get_device_state=AsyncMock(
            return_value=charger_state("standby")
        ),
        async_start_charging=AsyncMock(),
        async_stop_charging=AsyncMock(),
        async_list_devices=AsyncMock(return_value=[]),
    )


@pytest.fixture
def controller_factory(timers, fake_client, device):
    """Create a controller wired to the fake client and timer recorder."""

    def _create(**kwargs) -> JuiceBoxController:
        return JuiceBoxController(SimpleNamespace(), fake_client, device, **kwargs)

    return _create
