"""
Redis 持久层实现，基于 redis-py 的 asyncio 客户端（自带连接池）。
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, cast

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from sheetbot.core.errors import DurableStoreError
from sheetbot.services.kv.base import BaseKVStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class RedisKVStore(BaseKVStore):
    """
    所有实例共享同一个 key；last-write-wins，不做版本校验。
    """

    def __init__(self, client: "Redis") -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKVStore":
        client = aioredis.from_url(  # type: ignore[no-untyped-call]
            url,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.client.get(key)
        except RedisError as exc:
            logger.error("Redis GET failed: key=%s, error=%s", key, exc)
            raise DurableStoreError(f"Redis GET {key} failed: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return cast(Optional[str], value)

    async def put(self, key: str, value: str, ttl_s: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_s)
        except RedisError as exc:
            logger.error("Redis SET failed: key=%s, error=%s", key, exc)
            raise DurableStoreError(f"Redis SET {key} failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            logger.error("Redis DEL failed: key=%s, error=%s", key, exc)
            raise DurableStoreError(f"Redis DEL {key} failed: {exc}") from exc

    async def close(self) -> None:
        await self.client.aclose()
