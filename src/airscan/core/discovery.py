"""mDNS/DNS-SD discovery of eSCL scanners."""

from __future__ import annotations

import ipaddress
import logging
import threading
from typing import TYPE_CHECKING

from zeroconf import IPVersion, ServiceBrowser, ServiceInfo, ServiceListener, Zeroconf

from airscan.config import DiscoveryConfig
from airscan.core.eloop import EventLoop
from airscan.models import AddressFamily, AddressInfo

if TYPE_CHECKING:
    from airscan.core.manager import DeviceManager

logger = logging.getLogger(__name__)


def _decode_txt_properties(properties: dict[bytes, bytes | None]) -> dict[str, str]:
    decoded: dict[str, str] = {}
    for key, value in properties.items():
        key_text = key.decode("utf-8", errors="replace").lower()
        if value is None:
            value_text = ""
        elif isinstance(value, bytes):
            value_text = value.decode("utf-8", errors="replace")
        else:
            value_text = str(value)
        decoded[key_text] = value_text
    return decoded


def strip_service_suffix(name: str, service_type: str) -> str:
    suffix = f".{service_type}"
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name.rstrip(".")


def addresses_from_service_info(info: ServiceInfo) -> list[AddressInfo]:
    """Candidate addresses of a service, IPv4 first."""
    if not info.port:
        return []

    properties = _decode_txt_properties(info.properties)
    resource_path = properties.get("rs") or None

    addresses: list[AddressInfo] = []
    for ip in info.ip_addresses_by_version(IPVersion.V4Only):
        addresses.append(
            AddressInfo(
                family=AddressFamily.INET,
                address=str(ip),
                port=info.port,
                resource_path=resource_path,
            )
        )

    for ip in info.ip_addresses_by_version(IPVersion.V6Only):
        assert isinstance(ip, ipaddress.IPv6Address)
        scope = ip.scope_id
        if ip.is_link_local and not scope:
            logger.debug("%s: link-local %s without zone, skipped", info.name, ip)
            continue
        addresses.append(
            AddressInfo(
                family=AddressFamily.INET6,
                address=str(ip),
                port=info.port,
                resource_path=resource_path,
                interface=int(scope) if scope and scope.isdigit() else None,
            )
        )
    return addresses


class ScannerListener(ServiceListener):
    def __init__(self, discovery: ZeroconfDiscovery, info_timeout: float) -> None:
        self._discovery = discovery
        self._info_timeout_ms = max(int(info_timeout * 1000), 1)

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        info = zc.get_service_info(type_, name, timeout=self._info_timeout_ms)
        if not info:
            logger.debug("No service info for %s", name)
            return
        addresses = addresses_from_service_info(info)
        if not addresses:
            logger.debug("No usable addresses for %s", name)
            return
        self._discovery.found(strip_service_suffix(name, type_), addresses)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.add_service(zc, type_, name)

    def remove_service(self, _zc: Zeroconf, type_: str, name: str) -> None:
        self._discovery.removed(strip_service_suffix(name, type_))


class ZeroconfDiscovery:
    """Feeds found/removed scanner events into a :class:`DeviceManager`.

    Devices found during the initial scan window are flagged as such, so a
    device listing waits for them. The window closes ``init_scan_time``
    seconds after :meth:`start`.
    """

    def __init__(
        self, manager: DeviceManager, eloop: EventLoop, config: DiscoveryConfig
    ) -> None:
        self._manager = manager
        self._eloop = eloop
        self._config = config
        self._scan_done = threading.Event()
        self._timer: threading.Timer | None = None
        self._zeroconf: Zeroconf | None = None
        self._browser: ServiceBrowser | None = None

    def initial_scan_complete(self) -> bool:
        return self._scan_done.is_set()

    def start(self) -> None:
        self._scan_done.clear()
        self._timer = threading.Timer(
            self._config.init_scan_time, self._eloop.call_soon, (self._close_window,)
        )
        self._timer.daemon = True
        self._timer.start()

        logger.debug(
            "Browsing %s (initial scan %.2fs)",
            self._config.service_type,
            self._config.init_scan_time,
        )
        self._zeroconf = Zeroconf()
        listener = ScannerListener(self, self._config.info_timeout)
        self._browser = ServiceBrowser(
            self._zeroconf, self._config.service_type, listener
        )

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._browser is not None:
            self._browser.cancel()
            self._browser = None
        if self._zeroconf is not None:
            self._zeroconf.close()
            self._zeroconf = None
        self._scan_done.set()

    def _close_window(self) -> None:
        # Runs on the loop, after every found event queued before it
        self._scan_done.set()
        self._manager.device_init_scan_finished()

    def found(self, name: str, addresses: list[AddressInfo]) -> None:
        init_scan = not self._scan_done.is_set()
        logger.debug("Found %s (%d address(es))", name, len(addresses))
        self._eloop.call_soon(self._manager.device_found, name, init_scan, addresses)

    def removed(self, name: str) -> None:
        logger.debug("Removed %s", name)
        self._eloop.call_soon(self._manager.device_removed, name)
