from __future__ import annotations

import ipaddress
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class AddressFamily(str, Enum):
    INET = "inet"
    INET6 = "inet6"


class AddressInfo(BaseModel):
    """One candidate endpoint of a discovered device.

    ``address`` is an IP literal of the given family. An IPv6 literal may
    carry a zone (``fe80::1%eth0``); ``interface`` takes precedence over it.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    family: AddressFamily
    address: str
    port: int = Field(ge=1, le=65535)
    resource_path: str | None = None
    interface: int | None = None

    @model_validator(mode="after")
    def _check_literal(self) -> AddressInfo:
        try:
            if self.family is AddressFamily.INET:
                ipaddress.IPv4Address(self.address)
            else:
                ipaddress.IPv6Address(self.address)
        except ValueError as exc:
            raise ValueError(
                f"{self.address!r} is not an {self.family.value} address"
            ) from exc
        return self

    @property
    def literal(self) -> str:
        """The address without its zone."""
        return self.address.partition("%")[0]

    @property
    def zone(self) -> str | None:
        if self.interface is not None:
            return str(self.interface)
        return self.address.partition("%")[2] or None

    @property
    def link_local(self) -> bool:
        if self.family is not AddressFamily.INET6:
            return False
        return ipaddress.IPv6Address(self.literal).is_link_local
