from __future__ import annotations

from pydantic import BaseModel


class DeviceInfo(BaseModel):
    """Snapshot of a ready device, as returned by a device listing."""

    model_config = {"frozen": True, "extra": "forbid"}

    name: str
    vendor: str
    model: str
    type: str
