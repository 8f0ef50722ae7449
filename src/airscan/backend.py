from __future__ import annotations

import logging

import httpx

from airscan.config import Settings
from airscan.core import DeviceManager, EventLoop, ZeroconfDiscovery

logger = logging.getLogger(__name__)


class Backend:
    """Device management subsystem: event loop, device table and discovery."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.eloop = EventLoop()
        self.manager = DeviceManager(self.eloop, settings, transport=transport)
        self.discovery: ZeroconfDiscovery | None = None
        if settings.discovery.enabled:
            self.discovery = ZeroconfDiscovery(
                self.manager, self.eloop, settings.discovery
            )
            self.manager.initial_scan_complete = self.discovery.initial_scan_complete

    def __enter__(self) -> DeviceManager:
        self.start()
        return self.manager

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        self.eloop.start()
        self.eloop.run(self.manager.start())
        if self.discovery is not None:
            self.discovery.start()
        logger.debug("Device management started")

    def stop(self) -> None:
        if self.discovery is not None:
            self.discovery.stop()
        self.eloop.run(self.manager.stop())
        self.manager.cleanup()
        self.eloop.stop()
        logger.debug("Device management stopped")
