from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from airscan.core.http import CompletionHandler, HttpClient
from airscan.core.registry import Device
from airscan.models import AddressFamily, AddressInfo

logger = logging.getLogger(__name__)

CAPABILITIES_PATH = "ScannerCapabilities"


def build_base_url(address: AddressInfo) -> str:
    """Build the eSCL base URL for one candidate address.

    Link-local IPv6 addresses carry their zone, with the percent sign
    escaped as required inside a URI (RFC 6874). A link-local address
    without a zone is ambiguous and raises ValueError.
    """
    if address.family is AddressFamily.INET:
        host = address.address
    else:
        literal = address.literal
        if address.link_local:
            zone = address.zone
            if zone is None:
                raise ValueError(f"link-local address {literal} has no zone")
            literal = f"{literal}%25{quote(zone, safe='')}"
        host = f"[{literal}]"

    path = "/"
    if address.resource_path:
        resource = address.resource_path.strip("/")
        if resource:
            path = f"/{resource}/"

    return f"http://{host}:{address.port}{path}"


def ensure_trailing_slash(url: str) -> str:
    parsed = httpx.URL(url)
    if parsed.path.endswith("/"):
        return str(parsed)
    return str(parsed.copy_with(path=parsed.path + "/"))


class AddressProber:
    """Probes the candidate addresses of a device one at a time, in order."""

    def __init__(self, http: HttpClient, on_complete: CompletionHandler) -> None:
        self._http = http
        self._on_complete = on_complete

    def start(self, device: Device) -> bool:
        """Probe the first usable address. False when there is none."""
        return self.probe(device, 0)

    def probe(self, device: Device, index: int) -> bool:
        """Probe the first usable address from ``index`` on.

        Candidates without a usable URL are skipped. False when the list
        is exhausted.
        """
        addresses = device.addresses or ()
        for cursor in range(index, len(addresses)):
            device.cursor = cursor
            try:
                device.base_url = build_base_url(addresses[cursor])
            except ValueError as exc:
                logger.debug("%s: skipping address: %s", device.name, exc)
                continue

            logger.debug("%s: url=%s", device.name, device.base_url)
            self.fetch(device)
            return True
        return False

    def advance(self, device: Device) -> bool:
        """Move on to the next address. False when the list is exhausted."""
        if not device.has_next_address():
            return False
        assert device.cursor is not None
        return self.probe(device, device.cursor + 1)

    def fetch(self, device: Device) -> None:
        self._http.get(device, CAPABILITIES_PATH, self._on_complete)
