"""Schlüsselbasierte asyncio-Sperren für Quoten- und Planänderungen."""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLocks:
    """Ein asyncio.Lock pro Schlüssel ("class:7B", "teacher:PER", "task:...").

    Mehrere Schlüssel werden immer sortiert gesperrt, damit zwei Trigger
    mit überlappenden Schlüsseln sich nicht gegenseitig blockieren.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        acquired: list[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self._locks[key]
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def is_locked(self, key: str) -> bool:
        return key in self._locks and self._locks[key].locked()


def class_key(class_id: str) -> str:
    return f"class:{class_id}"


def teacher_key(teacher_id: str) -> str:
    return f"teacher:{teacher_id}"


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


def date_key(day) -> str:
    return f"date:{day.isoformat()}"
