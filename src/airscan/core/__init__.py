from __future__ import annotations

from .devcaps import parse_capabilities
from .discovery import ZeroconfDiscovery
from .eloop import EventLoop
from .manager import DEVICE_TYPE_LABEL, DeviceHandle, DeviceManager
from .options import DEFAULT_RESOLUTION, DeviceOptions, OptionDescriptor, OptionId
from .prober import build_base_url
from .registry import Device, DeviceFlags, DeviceState, DeviceTable

__all__ = [
    "DEFAULT_RESOLUTION",
    "DEVICE_TYPE_LABEL",
    "Device",
    "DeviceFlags",
    "DeviceHandle",
    "DeviceManager",
    "DeviceOptions",
    "DeviceState",
    "DeviceTable",
    "EventLoop",
    "OptionDescriptor",
    "OptionId",
    "ZeroconfDiscovery",
    "build_base_url",
    "parse_capabilities",
]
