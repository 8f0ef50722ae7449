"""Asynchronous HTTP requests issued on behalf of a device.

Every request is recorded in the device's pending set while in flight, so
that removing the device can cancel all of them at once. A request that was
cancelled never reaches its completion handler.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote

import httpx

if TYPE_CHECKING:
    from airscan.core.registry import Device

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    url: str
    status_code: int = 0
    content: bytes = b""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300

    def describe(self) -> str:
        if self.error is not None:
            return self.error
        return f"HTTP {self.status_code}"


CompletionHandler = Callable[["Device", HttpResponse], None]


def request_url(url: str) -> httpx.URL:
    """URL to connect to.

    A zone in an IPv6 literal is escaped as `%25` inside a URI (RFC 6874).
    The socket layer takes the plain `%`, so the escape is undone here.
    """
    parsed = httpx.URL(url)
    if "%" in parsed.host:
        parsed = parsed.copy_with(host=unquote(parsed.host))
    return parsed


class PendingRequest:
    def __init__(self, url: str, task: asyncio.Task[HttpResponse]) -> None:
        self.url = url
        self.task = task
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        self.task.cancel()


class PendingRequests:
    """In-flight requests of one device."""

    def __init__(self) -> None:
        self._requests: list[PendingRequest] = []

    def __len__(self) -> int:
        return len(self._requests)

    def __iter__(self) -> Iterator[PendingRequest]:
        return iter(list(self._requests))

    def add(self, request: PendingRequest) -> None:
        self._requests.append(request)

    def discard(self, request: PendingRequest) -> None:
        if request in self._requests:
            self._requests.remove(request)

    def cancel_all(self) -> int:
        count = 0
        while self._requests:
            self._requests.pop().cancel()
            count += 1
        return count


class HttpClient:
    """Shared HTTP session for all devices.

    Must be used from the event loop thread: requests are asyncio tasks
    and completions run as their done-callbacks.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> None:
        if self._client is None:
            # Requests have no timeout of their own; device removal cancels them.
            self._client = httpx.AsyncClient(transport=self._transport, timeout=None)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def get(
        self, device: Device, path: str, callback: CompletionHandler
    ) -> PendingRequest:
        if device.base_url is None:
            raise ValueError(f"{device.name}: no base URL to request {path!r}")
        if device.halted:
            raise RuntimeError(f"{device.name}: request issued on a halted device")

        url = device.base_url + path.lstrip("/")
        task = asyncio.get_running_loop().create_task(self._fetch(url))
        request = PendingRequest(url, task)
        device.pending.add(request)
        task.add_done_callback(
            lambda _task: self._complete(device, request, callback)
        )
        return request

    async def _fetch(self, url: str) -> HttpResponse:
        if self._client is None:
            return HttpResponse(url, error="HTTP session is closed")
        try:
            response = await self._client.get(request_url(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return HttpResponse(url, error=str(exc) or type(exc).__name__)
        return HttpResponse(url, response.status_code, response.content)

    def _complete(
        self, device: Device, request: PendingRequest, callback: CompletionHandler
    ) -> None:
        if request.cancelled or request.task.cancelled():
            logger.debug("GET %s: cancelled", request.url)
            return

        exc = request.task.exception()
        if exc is not None:
            logger.warning("GET %s: unexpected error", request.url, exc_info=exc)
            response = HttpResponse(request.url, error=f"{type(exc).__name__}: {exc}")
        else:
            response = request.task.result()
        logger.debug("GET %s: %s", request.url, response.describe())

        device.pending.discard(request)
        callback(device, response)
