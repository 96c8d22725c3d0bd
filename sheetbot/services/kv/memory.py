from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

from sheetbot.services.kv.base import BaseKVStore

Clock = Callable[[], float]


class InMemoryKVStore(BaseKVStore):
    """
    简易内存版持久层，便于本地调试与测试。
    只在单进程内共享，重启即丢失；生产环境请使用 Redis。
    """

    def __init__(self, *, clock: Clock = time.time) -> None:
        self._lock = asyncio.Lock()
        self._clock = clock
        # key -> (value, expires_at)
        self._items: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() >= expires_at:
                # 惰性过期
                del self._items[key]
                return None
            return value

    async def put(self, key: str, value: str, ttl_s: int) -> None:
        async with self._lock:
            self._items[key] = (value, self._clock() + ttl_s)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)
