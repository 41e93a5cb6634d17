"""
Per-key single-value store with suspend-until-filled semantics.

Each key owns one slot that is either *filled* with a value or *empty*.
Callers of :meth:`SlotCache.wait_for` on an empty slot are attached to the
slot's current generation and resumed by the next :meth:`SlotCache.set`.
:meth:`SlotCache.delete` empties the slot and starts a new generation; waiters
of the previous generation are dropped and never resumed.

All methods must be called from the thread running the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar('K')
V = TypeVar('V')


class _Absent:
    __slots__ = ()

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False


#: Returned by :meth:`SlotCache.get` for a slot that is not filled.
ABSENT = _Absent()


class _Slot:
    __slots__ = ('value', 'filled', 'generation', 'waiters')

    def __init__(self) -> None:
        self.value = None
        self.filled = False
        self.generation = 0
        self.waiters: list[asyncio.Future] = []


class SlotCache(Generic[K, V]):
    def __init__(self) -> None:
        self._slots: dict[K, _Slot] = {}

    def _slot(self, key: K) -> _Slot:
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        return slot

    def set(self, key: K, value: V) -> None:
        """Fill the slot and resume every waiter of its current generation."""
        slot = self._slot(key)
        slot.value = value
        slot.filled = True
        waiters, slot.waiters = slot.waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(value)

    def delete(self, key: K) -> None:
        """Empty the slot and start a new generation."""
        slot = self._slot(key)
        if slot.waiters:
            logger.debug('delete: orphaning %d waiter(s) on %s generation %d',
                         len(slot.waiters), key, slot.generation)
        slot.value = None
        slot.filled = False
        slot.generation += 1
        slot.waiters = []

    def discard(self, key: K) -> None:
        """Remove the slot for *key* entirely."""
        self._slots.pop(key, None)

    def get(self, key: K) -> V | _Absent:
        """Return the filled value, or :data:`ABSENT`.  Never suspends."""
        slot = self._slots.get(key)
        if slot is None or not slot.filled:
            return ABSENT
        return slot.value

    async def wait_for(self, key: K) -> V:
        """Return the filled value, suspending until the next ``set`` if empty."""
        slot = self._slot(key)
        if slot.filled:
            return slot.value
        future = asyncio.get_running_loop().create_future()
        slot.waiters.append(future)
        return await future

    def generation(self, key: K) -> int:
        slot = self._slots.get(key)
        return slot.generation if slot is not None else 0

    def __contains__(self, key: object) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
