from __future__ import annotations

import logging

from airscan.core.devcaps import parse_capabilities
from airscan.core.http import HttpClient, HttpResponse
from airscan.core.options import DeviceOptions
from airscan.core.prober import AddressProber
from airscan.core.registry import Device, DeviceState, DeviceTable
from airscan.errors import CapabilitiesError
from airscan.models import DeviceCaps

logger = logging.getLogger(__name__)


class CapabilityNegotiator:
    """Drives a device from probing to ready, or out of the table.

    Each completed ScannerCapabilities request either makes the device
    ready, moves probing on to the next address, or removes the device
    once no address is left. Waiters on the table condition are woken
    after every outcome.
    """

    def __init__(self, table: DeviceTable, http: HttpClient) -> None:
        self._table = table
        self.prober = AddressProber(http, self.handle)

    def handle(self, device: Device, response: HttpResponse) -> None:
        logger.debug(
            "%s: ScannerCapabilities: %s", device.name, response.describe()
        )

        with self._table.cond:
            try:
                caps = self._evaluate(response)
            except CapabilitiesError as exc:
                logger.debug("%s: %s", device.name, exc)
                if not self.prober.advance(device):
                    logger.info("%s: no usable address left", device.name)
                    self._table.remove(device.name)
            else:
                self._negotiated(device, caps)

            self._table.cond.notify_all()

    def _evaluate(self, response: HttpResponse) -> DeviceCaps:
        if not response.ok:
            raise CapabilitiesError(
                f"failed to load ScannerCapabilities: {response.describe()}"
            )
        return parse_capabilities(response.content)

    def _negotiated(self, device: Device, caps: DeviceCaps) -> None:
        source = caps.first_source()
        if source is None:
            logger.error("%s: ScannerCapabilities lists no scan source", device.name)
            self._table.remove(device.name)
            return

        device.caps = caps
        device.options = DeviceOptions(caps, source)
        device.state = DeviceState.READY
        logger.info(
            "%s: ready (%s %s, sources: %s)",
            device.name,
            caps.vendor,
            caps.model,
            ", ".join(caps.source_names()),
        )
