"""Per-group critical sections.

Mutations that change quorum-relevant state of a group (votes, role
changes, proposal resolution) run under that group's lock, so two
votes racing to the threshold resolve exactly once. Different groups
never contend.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class GroupLockRegistry:
    """One asyncio.Lock per group id, created on first use."""

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, group_id: str) -> AsyncIterator[None]:
        async with self._locks[group_id]:
            yield

    def is_locked(self, group_id: str) -> bool:
        lock = self._locks.get(group_id)
        return lock is not None and lock.locked()
