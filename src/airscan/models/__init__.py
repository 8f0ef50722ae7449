"""Data models for airscan."""

from airscan.models.address import AddressFamily, AddressInfo
from airscan.models.caps import ColorMode, DeviceCaps, Range, ScanSource, SourceCaps
from airscan.models.device import DeviceInfo

__all__ = [
    "AddressFamily",
    "AddressInfo",
    "ColorMode",
    "DeviceCaps",
    "DeviceInfo",
    "Range",
    "ScanSource",
    "SourceCaps",
]
