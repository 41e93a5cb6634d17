"""
Trailing-edge debounce for a unary coroutine function, coalesced per key.

Calls that arrive for the same key while a call is pending restart the timer
and replace the pending argument; every one of them gets the same future,
which resolves with the outcome of the single call that eventually runs.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def _uri_key(arg) -> Hashable:
    return getattr(arg, 'uri', arg)


@dataclass
class _Pending:
    arg: Any
    future: asyncio.Future
    handle: asyncio.TimerHandle


class Debouncer:
    """Wrap *func* so that bursts of calls per key collapse into one.

    *wait* is the quiet period in seconds.  It may be changed at any time;
    timers that are already running keep the delay they were started with.
    """

    def __init__(
        self,
        func: Callable[[Any], Awaitable[Any]],
        wait: float,
        key: Callable[[Any], Hashable] = _uri_key,
    ):
        self._func = func
        self._key = key
        self.wait = wait
        self._pending: dict[Hashable, _Pending] = {}

    def __call__(self, arg) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        key = self._key(arg)
        pending = self._pending.get(key)
        if pending is not None:
            pending.handle.cancel()
            future = pending.future
            logger.debug('debounce: coalescing call for %s', key)
        else:
            future = loop.create_future()
        handle = loop.call_later(self.wait, self._fire, key)
        self._pending[key] = _Pending(arg=arg, future=future, handle=handle)
        return future

    def _fire(self, key: Hashable) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        task = asyncio.ensure_future(self._func(pending.arg))
        task.add_done_callback(lambda t: self._settle(t, pending.future))

    @staticmethod
    def _settle(task: asyncio.Future, future: asyncio.Future) -> None:
        if future.done():
            return
        if task.cancelled():
            future.cancel()
        elif task.exception() is not None:
            future.set_exception(task.exception())
        else:
            future.set_result(task.result())

    def pending(self, key: Hashable) -> bool:
        return key in self._pending

    def cancel(self, key: Hashable) -> bool:
        """Drop the pending call for *key*; returns False if none was pending."""
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.handle.cancel()
        pending.future.cancel()
        return True
