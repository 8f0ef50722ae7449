from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from airscan.config import DiscoveryConfig, Settings, get_settings
from airscan.core import DeviceManager, EventLoop


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("AIRSCAN_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def eloop():
    loop = EventLoop(name="airscan-test")
    loop.start()
    yield loop
    loop.stop()


@pytest.fixture
def make_manager(eloop: EventLoop):
    managers: list[DeviceManager] = []

    def _make(
        handler: Callable[[httpx.Request], object],
        settings: Settings | None = None,
        **kwargs,
    ) -> DeviceManager:
        if settings is None:
            settings = Settings(
                discovery=DiscoveryConfig(enabled=False, ready_timeout=2.0)
            )
        manager = DeviceManager(
            eloop, settings, transport=httpx.MockTransport(handler), **kwargs
        )
        eloop.run(manager.start())
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        eloop.run(manager.stop())
        manager.cleanup()
