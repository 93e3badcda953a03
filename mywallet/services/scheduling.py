"""
Cancelable keyed task scheduler

Backs the debounced writers and the reactive reminder pass.

schedule(key, delay, callback) replaces any pending task for the same key,
so a burst of calls within the delay window collapses into one run of the
last callback. Tasks run on the asyncio event loop via call_later.

Outside a running event loop there is nothing to defer to, so the
callback runs immediately (synchronous scripts and tests behave as if the
delay were zero).
"""

import asyncio
from typing import Callable, Iterable, Optional

from mywallet.audit import get_logger

logger = get_logger(__name__)


class TaskScheduler:
    """Keyed, cancelable deferred callbacks on the asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending: dict[str, tuple[asyncio.TimerHandle, Callable[[], None]]] = {}

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        """
        Run callback after delay seconds, superseding any pending task for key.
        """
        self.cancel(key)

        loop = self._get_loop()
        if loop is None:
            self._invoke(key, callback)
            return

        handle = loop.call_later(delay, self._fire, key)
        self._pending[key] = (handle, callback)

    def _fire(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        _, callback = entry
        self._invoke(key, callback)

    def _invoke(self, key: str, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            # A failing background task must not take the loop down
            logger.error("scheduled_task_failed", key=key, error=str(e), exc_info=True)

    def cancel(self, key: str) -> bool:
        """Drop the pending task for key. Returns True if one was pending."""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def cancel_all(self, keys: Optional[Iterable[str]] = None) -> None:
        for key in list(self._pending if keys is None else keys):
            self.cancel(key)

    def flush(self, keys: Optional[Iterable[str]] = None) -> None:
        """Run pending tasks now instead of waiting for their timers."""
        for key in list(self._pending if keys is None else keys):
            entry = self._pending.pop(key, None)
            if entry is None:
                continue
            handle, callback = entry
            handle.cancel()
            self._invoke(key, callback)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)
