"""airscan - eSCL network scanner discovery and device lifecycle."""

from __future__ import annotations

from importlib.metadata import version

from .backend import Backend
from .config import DiscoveryConfig, Settings, StaticDevice, get_settings
from .core import DeviceHandle, DeviceManager, EventLoop, OptionId
from .errors import (
    AirscanError,
    CapabilitiesError,
    InvalidArgumentError,
    OptionError,
    OutOfRangeError,
)
from .models import AddressFamily, AddressInfo, DeviceCaps, DeviceInfo

__all__ = [
    "AddressFamily",
    "AddressInfo",
    "AirscanError",
    "Backend",
    "CapabilitiesError",
    "DeviceCaps",
    "DeviceHandle",
    "DeviceInfo",
    "DeviceManager",
    "DiscoveryConfig",
    "EventLoop",
    "InvalidArgumentError",
    "OptionError",
    "OptionId",
    "OutOfRangeError",
    "Settings",
    "StaticDevice",
    "__version__",
    "get_settings",
]

__version__ = version("airscan")
