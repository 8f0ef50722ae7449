"""Device management: discovery entry points and the device listing API.

``device_found``, ``device_removed``, ``device_init_scan_finished`` and the
``start``/``stop`` coroutines run on the event loop thread. ``list_devices``,
``open_device`` and the handle methods are for any other thread.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

import httpx

from airscan.config import Settings
from airscan.core.eloop import EventLoop
from airscan.core.http import HttpClient
from airscan.core.negotiation import CapabilityNegotiator
from airscan.core.options import DeviceOptions, OptionDescriptor
from airscan.core.prober import ensure_trailing_slash
from airscan.core.registry import Device, DeviceFlags, DeviceState, DeviceTable
from airscan.errors import InvalidArgumentError
from airscan.models import AddressInfo, DeviceInfo

logger = logging.getLogger(__name__)

DEVICE_TYPE_LABEL = "eSCL network scanner"


class DeviceHandle:
    """An open device. Holds a reference until closed."""

    def __init__(self, device: Device, table: DeviceTable) -> None:
        self._device = device
        self._table = table
        self._closed = False

    def __enter__(self) -> DeviceHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._device.name

    @property
    def closed(self) -> bool:
        return self._closed

    def _options(self) -> DeviceOptions:
        if self._closed:
            raise InvalidArgumentError(f"{self.name}: device is closed")
        if self._device.options is None:
            raise InvalidArgumentError(f"{self.name}: device is not ready")
        return self._device.options

    def get_option(self, option: int) -> int | float | str:
        with self._table.cond:
            return self._options().get(option)

    def set_option(self, option: int, value: Any) -> None:
        with self._table.cond:
            options = self._options()
            if not self._device.ready:
                raise InvalidArgumentError(f"{self.name}: device is not ready")
            options.set(option, value)

    def describe_option(self, option: int) -> OptionDescriptor:
        with self._table.cond:
            return self._options().describe(option)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._device.unref()


class DeviceManager:
    def __init__(
        self,
        eloop: EventLoop,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        initial_scan_complete: Callable[[], bool] | None = None,
    ) -> None:
        self._eloop = eloop
        self._settings = settings or Settings()
        self.table = DeviceTable()
        self._http = HttpClient(transport)
        self._negotiator = CapabilityNegotiator(self.table, self._http)
        self.initial_scan_complete: Callable[[], bool] = initial_scan_complete or (
            lambda: True
        )

    @property
    def ready_timeout(self) -> float:
        return self._settings.discovery.ready_timeout

    async def start(self) -> None:
        self._http.open()
        for device in self._settings.devices:
            self.device_add_static(device.name, device.url)

    async def stop(self) -> None:
        self.table.purge()
        await self._http.aclose()

    def cleanup(self) -> None:
        size = self.table.size()
        assert size == 0, f"{size} device(s) still listed at cleanup"

    def device_add_static(self, name: str, url: str) -> None:
        if self.table.find(name) is not None:
            logger.debug("%s: device already exists", name)
            return

        device = self.table.insert(name, DeviceState.INIT_WAIT)
        device.base_url = ensure_trailing_slash(url)
        logger.debug("%s: url=%s", name, device.base_url)
        self._negotiator.prober.fetch(device)

    def device_found(
        self, name: str, init_scan: bool, addresses: Sequence[AddressInfo]
    ) -> None:
        if self.table.find(name) is not None:
            logger.debug("%s: device already exists", name)
            return
        if not addresses:
            logger.warning("%s: found without addresses, ignored", name)
            return

        state = DeviceState.INIT_WAIT if init_scan else DeviceState.PROBING
        device = self.table.insert(name, state)
        device.addresses = tuple(addresses)
        if not self._negotiator.prober.start(device):
            logger.info("%s: no usable address", name)
            self.table.remove(name)

    def device_removed(self, name: str) -> None:
        self.table.remove(name)

    def device_init_scan_finished(self) -> None:
        logger.debug("Initial scan finished")
        self.table.notify()

    def _table_ready(self) -> bool:
        return not self.table.collect(DeviceFlags.INIT_WAIT)

    def list_devices(self) -> list[DeviceInfo]:
        """Ready devices, once discovery has settled or the wait timed out."""
        if self._eloop.in_loop_thread():
            raise RuntimeError("list_devices() would block the event loop")

        deadline = time.monotonic() + self.ready_timeout
        with self.table.cond:
            while not (self._table_ready() and self.initial_scan_complete()):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug("Device table not ready, timed out waiting")
                    break
                self.table.cond.wait(remaining)

            return [
                DeviceInfo(
                    name=device.name,
                    vendor=device.caps.vendor,
                    model=device.caps.model,
                    type=DEVICE_TYPE_LABEL,
                )
                for device in self.table.collect(DeviceFlags.READY)
            ]

    def open_device(self, name: str) -> DeviceHandle | None:
        with self.table.cond:
            device = self.table.find(name)
            if device is None or not device.ready:
                return None
            return DeviceHandle(device.ref(), self.table)

    def close_device(self, handle: DeviceHandle) -> None:
        handle.close()
