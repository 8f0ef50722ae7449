from __future__ import annotations

import asyncio
import ipaddress
import threading
import time

import httpx
import pytest
from escl_documents import capabilities_document, two_source_document

from airscan.config import DiscoveryConfig, Settings, StaticDevice
from airscan.core import DEVICE_TYPE_LABEL, DeviceState, OptionId
from airscan.core.negotiation import CapabilityNegotiator
from airscan.errors import InvalidArgumentError
from airscan.models import AddressFamily, AddressInfo, DeviceInfo


def address(host: str, port: int = 80, rs: str | None = "eSCL") -> AddressInfo:
    return AddressInfo(
        family=AddressFamily.INET, address=host, port=port, resource_path=rs
    )


def capabilities_ok(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/eSCL/ScannerCapabilities"
    return httpx.Response(200, content=two_source_document())


def hanging(started: threading.Event):
    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(3600)
        raise AssertionError("unreachable")

    return handler


def test_found_device_becomes_listed_then_removed(eloop, make_manager):
    manager = make_manager(capabilities_ok)

    eloop.call(manager.device_found, "Printer1", True, [address("192.0.2.5")])

    assert manager.list_devices() == [
        DeviceInfo(
            name="Printer1",
            vendor="HP",
            model="LaserJet MFP M28w",
            type=DEVICE_TYPE_LABEL,
        )
    ]

    eloop.call(manager.device_removed, "Printer1")

    assert manager.list_devices() == []
    assert manager.table.size() == 0


def test_addresses_probed_in_order(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "192.0.2.1":
            return httpx.Response(500)
        if request.url.host == "192.0.2.2":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, content=two_source_document())

    manager = make_manager(handler)
    addresses = [address("192.0.2.1"), address("192.0.2.2"), address("192.0.2.3")]

    eloop.call(manager.device_found, "Printer1", True, addresses)

    assert [info.name for info in manager.list_devices()] == ["Printer1"]
    assert hosts == ["192.0.2.1", "192.0.2.2", "192.0.2.3"]

    device = manager.table.find("Printer1")
    assert device is not None
    assert device.current_address == addresses[2]
    assert device.base_url == "http://192.0.2.3:80/eSCL/"


def test_device_removed_when_all_addresses_fail(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(404)

    manager = make_manager(handler)

    eloop.call(
        manager.device_found,
        "Printer1",
        True,
        [address("192.0.2.1"), address("192.0.2.2")],
    )

    assert manager.list_devices() == []
    assert manager.table.find("Printer1") is None
    assert hosts == ["192.0.2.1", "192.0.2.2"]


def test_device_without_sources_removed_immediately(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, content=capabilities_document())

    manager = make_manager(handler)

    eloop.call(
        manager.device_found,
        "Printer1",
        True,
        [address("192.0.2.1"), address("192.0.2.2")],
    )

    assert manager.list_devices() == []
    assert manager.table.find("Printer1") is None
    assert hosts == ["192.0.2.1"]


def test_removal_cancels_pending_request(eloop, make_manager, monkeypatch):
    completions: list[str] = []
    original = CapabilityNegotiator.handle

    def spy(self, device, response):
        completions.append(device.name)
        original(self, device, response)

    monkeypatch.setattr(CapabilityNegotiator, "handle", spy)

    started = threading.Event()
    manager = make_manager(hanging(started))

    eloop.call(manager.device_found, "Printer1", False, [address("192.0.2.5")])
    assert started.wait(2)

    device = manager.table.find("Printer1")
    assert device is not None
    assert len(device.pending) == 1

    eloop.call(manager.device_removed, "Printer1")
    eloop.run(asyncio.sleep(0.05))

    assert len(device.pending) == 0
    assert device.halted
    assert completions == []


def test_list_devices_returns_immediately_when_settled(make_manager):
    manager = make_manager(capabilities_ok)

    started = time.monotonic()
    assert manager.list_devices() == []
    assert time.monotonic() - started < 0.5


def test_list_devices_gives_up_after_timeout(eloop, make_manager):
    settings = Settings(discovery=DiscoveryConfig(enabled=False, ready_timeout=0.3))
    manager = make_manager(hanging(threading.Event()), settings=settings)

    eloop.call(manager.device_found, "Printer1", True, [address("192.0.2.5")])

    started = time.monotonic()
    assert manager.list_devices() == []
    elapsed = time.monotonic() - started

    assert 0.25 <= elapsed < 2
    device = manager.table.find("Printer1")
    assert device is not None
    assert device.state is DeviceState.INIT_WAIT


def test_list_devices_waits_for_initial_scan(eloop, make_manager):
    scan_done = threading.Event()
    manager = make_manager(capabilities_ok, initial_scan_complete=scan_done.is_set)

    def close_window():
        scan_done.set()
        manager.device_init_scan_finished()

    timer = threading.Timer(0.2, eloop.call_soon, (close_window,))
    timer.start()

    started = time.monotonic()
    assert manager.list_devices() == []
    elapsed = time.monotonic() - started
    timer.join()

    assert 0.15 <= elapsed < 1.5


def test_list_devices_rejected_on_loop_thread(eloop, make_manager):
    manager = make_manager(capabilities_ok)

    with pytest.raises(RuntimeError):
        eloop.call(manager.list_devices)


def test_duplicate_found_ignored(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, content=two_source_document())

    manager = make_manager(handler)
    first = [address("192.0.2.5")]

    eloop.call(manager.device_found, "Printer1", True, first)
    eloop.call(manager.device_found, "Printer1", True, [address("192.0.2.6")])

    assert len(manager.list_devices()) == 1
    assert hosts == ["192.0.2.5"]
    device = manager.table.find("Printer1")
    assert device is not None
    assert device.addresses == tuple(first)


def test_found_without_addresses_ignored(eloop, make_manager):
    manager = make_manager(capabilities_ok)

    eloop.call(manager.device_found, "Printer1", True, [])

    assert manager.table.size() == 0


def test_static_device(make_manager):
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        assert request.url.port == 8080
        return httpx.Response(200, content=two_source_document())

    settings = Settings(
        discovery=DiscoveryConfig(enabled=False, ready_timeout=2.0),
        devices=[StaticDevice(name="Office", url="http://192.0.2.9:8080/eSCL")],
    )
    manager = make_manager(handler, settings=settings)

    assert [info.name for info in manager.list_devices()] == ["Office"]
    assert paths == ["/eSCL/ScannerCapabilities"]


def test_open_requires_ready_device(eloop, make_manager):
    manager = make_manager(hanging(threading.Event()))

    eloop.call(manager.device_found, "Printer1", False, [address("192.0.2.5")])

    assert manager.open_device("Printer1") is None
    assert manager.open_device("ghost") is None


def test_handle_options(eloop, make_manager):
    manager = make_manager(capabilities_ok)
    eloop.call(manager.device_found, "Printer1", True, [address("192.0.2.5")])
    manager.list_devices()

    handle = manager.open_device("Printer1")
    assert handle is not None
    with handle:
        assert handle.get_option(OptionId.SCAN_SOURCE) == "Flatbed"
        handle.set_option(OptionId.SCAN_SOURCE, "ADF")
        assert handle.get_option(OptionId.SCAN_COLORMODE) == "Gray"
        assert handle.describe_option(OptionId.SCAN_COLORMODE).constraint == ["Gray"]

    assert handle.closed
    with pytest.raises(InvalidArgumentError):
        handle.get_option(OptionId.SCAN_SOURCE)


def test_handle_outlives_removal(eloop, make_manager):
    manager = make_manager(capabilities_ok)
    eloop.call(manager.device_found, "Printer1", True, [address("192.0.2.5")])
    manager.list_devices()

    handle = manager.open_device("Printer1")
    assert handle is not None
    device = manager.table.find("Printer1")
    assert device is not None
    assert device.refcount == 2

    eloop.call(manager.device_removed, "Printer1")

    assert manager.open_device("Printer1") is None
    assert device.refcount == 1
    assert handle.get_option(OptionId.SCAN_RESOLUTION) == 300
    with pytest.raises(InvalidArgumentError):
        handle.set_option(OptionId.SCAN_RESOLUTION, 600)

    manager.close_device(handle)
    manager.close_device(handle)

    assert device.refcount == 0


def test_cleanup_requires_empty_table(eloop, make_manager):
    manager = make_manager(hanging(threading.Event()))
    eloop.call(manager.device_found, "Printer1", False, [address("192.0.2.5")])

    with pytest.raises(AssertionError):
        manager.cleanup()


def test_link_local_zone_reaches_transport(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, content=two_source_document())

    manager = make_manager(handler)
    link_local = AddressInfo(
        family=AddressFamily.INET6,
        address="fe80::1c2:3ff:fe04:506",
        port=80,
        resource_path="eSCL",
        interface=3,
    )

    eloop.call(manager.device_found, "Printer1", True, [link_local])

    assert [info.name for info in manager.list_devices()] == ["Printer1"]
    assert hosts == ["fe80::1c2:3ff:fe04:506%3"]
    assert ipaddress.IPv6Address(hosts[0]).scope_id == "3"


def test_unusable_address_skipped(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, content=two_source_document())

    manager = make_manager(handler)
    no_zone = AddressInfo(family=AddressFamily.INET6, address="fe80::1", port=80)

    eloop.call(
        manager.device_found, "Printer1", True, [no_zone, address("192.0.2.3")]
    )

    assert [info.name for info in manager.list_devices()] == ["Printer1"]
    assert hosts == ["192.0.2.3"]
    device = manager.table.find("Printer1")
    assert device is not None
    assert device.cursor == 1


def test_device_removed_when_remaining_addresses_unusable(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(500)

    manager = make_manager(handler)
    unvalidated = AddressInfo.model_construct(
        family=AddressFamily.INET6, address="printer.local", port=80
    )

    eloop.call(
        manager.device_found, "Printer1", True, [address("192.0.2.1"), unvalidated]
    )

    assert manager.list_devices() == []
    assert manager.table.find("Printer1") is None
    assert hosts == ["192.0.2.1"]


def test_device_without_usable_address_not_kept(eloop, make_manager):
    manager = make_manager(capabilities_ok)
    no_zone = AddressInfo(family=AddressFamily.INET6, address="fe80::1", port=80)

    eloop.call(manager.device_found, "Printer1", True, [no_zone])

    assert manager.table.size() == 0
    assert manager.list_devices() == []


def test_unexpected_request_error_advances(eloop, make_manager):
    hosts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "192.0.2.1":
            raise RuntimeError("transport bug")
        return httpx.Response(200, content=two_source_document())

    manager = make_manager(handler)

    eloop.call(
        manager.device_found,
        "Printer1",
        True,
        [address("192.0.2.1"), address("192.0.2.2")],
    )

    assert [info.name for info in manager.list_devices()] == ["Printer1"]
    assert hosts == ["192.0.2.1", "192.0.2.2"]
    device = manager.table.find("Printer1")
    assert device is not None
    assert len(device.pending) == 0
