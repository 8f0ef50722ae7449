from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventLoop:
    """Asyncio event loop running in a background thread.

    Device management (registry mutation, address probing and HTTP
    completions) runs on this loop. Other threads talk to it through
    :meth:`run`, :meth:`call` and :meth:`call_soon`.
    """

    def __init__(self, name: str = "airscan") -> None:
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._started = threading.Event()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("event loop not started")
        return self._loop

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def in_loop_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def start(self) -> None:
        if self.running:
            return
        self._started.clear()
        self._thread = threading.Thread(
            target=self._run_event_loop, name=self._name, daemon=True
        )
        self._thread.start()
        self._started.wait()
        logger.debug("Event loop running in thread %s", self._thread.name)

    def _run_event_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._started.set()
        try:
            loop.run_forever()
        finally:
            loop.close()
            logger.debug("Event loop stopped")

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run a coroutine on the loop and wait for its result."""
        if self.in_loop_thread():
            raise RuntimeError("EventLoop.run() called from the loop thread")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def call(self, func: Callable[..., T], *args: Any) -> T:
        """Call a plain function on the loop and wait for its result."""

        async def _invoke() -> T:
            return func(*args)

        return self.run(_invoke())

    def call_soon(self, func: Callable[..., Any], *args: Any) -> None:
        self.loop.call_soon_threadsafe(func, *args)

    def stop(self) -> None:
        if not self.running or self._loop is None:
            return
        asyncio.run_coroutine_threadsafe(self._cancel_tasks(), self._loop).result()
        self._loop.call_soon_threadsafe(self._loop.stop)
        assert self._thread is not None
        self._thread.join()
        self._thread = None
        self._loop = None

    async def _cancel_tasks(self) -> None:
        tasks = [
            task for task in asyncio.all_tasks() if task is not asyncio.current_task()
        ]
        if tasks:
            logger.debug("Cancelling %d pending tasks", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
