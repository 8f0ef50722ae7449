"""Device records and the device table."""

from __future__ import annotations

import logging
import threading
from enum import Enum, IntFlag
from typing import TYPE_CHECKING

from airscan.core.http import PendingRequests
from airscan.models import AddressInfo, DeviceCaps

if TYPE_CHECKING:
    from airscan.core.options import DeviceOptions

logger = logging.getLogger(__name__)


class DeviceState(Enum):
    PROBING = "probing"
    INIT_WAIT = "init_wait"
    READY = "ready"
    HALTED = "halted"


class DeviceFlags(IntFlag):
    LISTED = 1 << 0
    READY = 1 << 2
    HALTED = 1 << 3
    INIT_WAIT = 1 << 4

    ALL = LISTED | READY | HALTED | INIT_WAIT


_STATE_FLAGS = {
    DeviceState.PROBING: DeviceFlags(0),
    DeviceState.INIT_WAIT: DeviceFlags.INIT_WAIT,
    DeviceState.READY: DeviceFlags.READY,
    DeviceState.HALTED: DeviceFlags.HALTED,
}


class Device:
    """A scanner known to the device table.

    The table holds one reference while the device is listed, every open
    handle holds another. The record is released when the last reference
    goes away, which requires the device to be unlisted and halted.
    """

    def __init__(self, name: str, state: DeviceState = DeviceState.PROBING) -> None:
        self._name = name
        self._refcnt = 1
        self._ref_lock = threading.Lock()

        self.state = state
        self.listed = True

        self.caps = DeviceCaps()
        self.options: DeviceOptions | None = None

        # None for statically configured devices
        self.addresses: tuple[AddressInfo, ...] | None = None
        self.cursor: int | None = None
        self.base_url: str | None = None
        self.pending = PendingRequests()

    def __repr__(self) -> str:
        return f"<Device {self._name!r} {self.state.value}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def flags(self) -> DeviceFlags:
        flags = _STATE_FLAGS[self.state]
        if self.listed:
            flags |= DeviceFlags.LISTED
        return flags

    @property
    def ready(self) -> bool:
        return self.state is DeviceState.READY

    @property
    def halted(self) -> bool:
        return self.state is DeviceState.HALTED

    @property
    def refcount(self) -> int:
        return self._refcnt

    @property
    def current_address(self) -> AddressInfo | None:
        if self.addresses is None or self.cursor is None:
            return None
        return self.addresses[self.cursor]

    def has_next_address(self) -> bool:
        return (
            self.addresses is not None
            and self.cursor is not None
            and self.cursor + 1 < len(self.addresses)
        )

    def ref(self) -> Device:
        with self._ref_lock:
            self._refcnt += 1
        return self

    def unref(self) -> None:
        with self._ref_lock:
            self._refcnt -= 1
            released = self._refcnt == 0
        if released:
            self._destroy()

    def halt(self) -> int:
        """Cancel all pending I/O and mark the device halted."""
        cancelled = self.pending.cancel_all()
        self.state = DeviceState.HALTED
        return cancelled

    def _destroy(self) -> None:
        assert not self.listed, f"{self._name}: destroyed while listed"
        assert self.halted, f"{self._name}: destroyed while not halted"
        logger.debug("%s: destroyed", self._name)
        self.caps = DeviceCaps()
        self.options = None
        self.addresses = None
        self.cursor = None


class DeviceTable:
    """Devices by name, guarded by one lock and a readiness condition.

    Mutations happen on the event loop thread. Any thread may read while
    holding ``cond``; waiters on ``cond`` are woken on every readiness
    change.
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}
        self.cond = threading.Condition()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, name: object) -> bool:
        with self.cond:
            return name in self._devices

    def insert(self, name: str, state: DeviceState = DeviceState.PROBING) -> Device:
        with self.cond:
            if name in self._devices:
                raise KeyError(f"device already exists: {name}")
            device = Device(name, state)
            self._devices[name] = device
        logger.debug("%s: created", name)
        return device

    def remove(self, name: str) -> bool:
        """Unlist a device, stopping all of its pending I/O."""
        with self.cond:
            device = self._devices.pop(name, None)
            if device is None:
                return False

            logger.debug("%s: removed from device table", name)
            device.listed = False
            cancelled = device.halt()
            if cancelled:
                logger.debug("%s: cancelled %d pending request(s)", name, cancelled)
            self.cond.notify_all()

        device.unref()
        return True

    def find(self, name: str) -> Device | None:
        with self.cond:
            return self._devices.get(name)

    def collect(self, flags: DeviceFlags) -> list[Device]:
        with self.cond:
            return [
                device
                for _, device in sorted(self._devices.items())
                if device.flags & flags
            ]

    def size(self) -> int:
        with self.cond:
            return len(self._devices)

    def purge(self) -> None:
        for device in self.collect(DeviceFlags.ALL):
            self.remove(device.name)

    def notify(self) -> None:
        with self.cond:
            self.cond.notify_all()
