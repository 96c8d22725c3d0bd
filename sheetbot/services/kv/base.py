from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class BaseKVStore(ABC):
    """
    持久层抽象：不透明的 get / put(带 TTL) / delete。

    - 实现方负责按自己的时钟让过期的 key 消失
    - 所有失败统一抛 DurableStoreError
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def put(self, key: str, value: str, ttl_s: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None
