"""
Background event loop for the synchronous facade.

A single daemon thread runs an asyncio loop for the lifetime of a client.
Coroutines are handed over with ``asyncio.run_coroutine_threadsafe`` and the
caller waits on the returned ``concurrent.futures.Future``.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from collections.abc import Coroutine
from typing import Any, Optional

from restbind.utils.logger import get_logger

log = get_logger(__name__)


class EventLoopThread:
    """Owns one asyncio loop running on one daemon thread."""

    def __init__(self, name: str = "restbind-loop") -> None:
        self._name = name
        self._loop = asyncio.new_event_loop()
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._stopped = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        """Start the loop thread and wait until the loop is running."""
        self._thread.start()
        self._ready.wait()
        log.debug("event_loop_thread_started", thread=self._name)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._ready.set)
        try:
            self._loop.run_forever()
        finally:
            self._cancel_pending()
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()

    def _cancel_pending(self) -> None:
        pending = asyncio.all_tasks(self._loop)
        if not pending:
            return
        for task in pending:
            task.cancel()
        self._loop.run_until_complete(
            asyncio.gather(*pending, return_exceptions=True)
        )
        log.debug("event_loop_pending_cancelled", count=len(pending))

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped

    def in_loop_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        """Schedule ``coro`` on the loop and return its future."""
        with self._lock:
            if self._stopped or not self._thread.is_alive():
                coro.close()
                raise RuntimeError(f"Event loop thread {self._name!r} is not running")
            return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Submit ``coro`` and block until it settles or ``timeout`` elapses."""
        return self.submit(coro).result(timeout=timeout)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the loop, cancel what is still pending and join the thread."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        if not self._thread.is_alive():
            self._loop.close()
            return

        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            log.warning("event_loop_thread_stop_timeout", thread=self._name, timeout=timeout)
        else:
            log.debug("event_loop_thread_stopped", thread=self._name)
