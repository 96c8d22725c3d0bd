"""
持久层（durable tier）模块

- base: 抽象接口
- redis: 生产实现，多实例共享
- memory: 进程内实现，本地调试用
"""
from __future__ import annotations

import logging

from sheetbot.services.kv.base import BaseKVStore
from sheetbot.services.kv.memory import InMemoryKVStore
from sheetbot.services.kv.redis_store import RedisKVStore

logger = logging.getLogger(__name__)

MEMORY_URL_SCHEME = "memory://"


def build_kv_store(url: str) -> BaseKVStore:
    """
    按 URL 选择实现：memory:// 使用进程内存储，其余交给 Redis。
    """
    if url.startswith(MEMORY_URL_SCHEME):
        logger.warning("Using in-process durable store; cache is not shared across instances")
        return InMemoryKVStore()
    return RedisKVStore.from_url(url)


__all__ = [
    "BaseKVStore",
    "InMemoryKVStore",
    "RedisKVStore",
    "build_kv_store",
]
