"""
两级缓存：进程内快照（RAM）+ 持久层（Redis），数据源为 Google Sheets。

读路径：RAM 未过期直接返回 -> 持久层仍有效则复活为新的 RAM 快照 -> 否则从表格重建并写回两级。
两级 TTL 时长相同但各自计时，因此 RAM 过期而 Redis 仍热时不会访问远端。
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence

from sheetbot.core.errors import DurableStoreError
from sheetbot.core.trigger_table import (
    Responses,
    TriggerTable,
    build_trigger_table,
    deserialize_table,
    normalize_trigger,
    serialize_table,
)
from sheetbot.services.kv.base import BaseKVStore

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_TTL_S = 300


class RowSource(Protocol):
    async def fetch_rows(self) -> List[Sequence[Any]]:
        ...


@dataclass(frozen=True)
class CacheEntry:
    table: TriggerTable
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class TriggerTableCache:
    """
    进程内唯一的触发词表缓存。

    - 重建失败直接向上抛（RemoteFetchError），不回退到旧数据，旧的 RAM 快照保持不变
    - 持久层读失败向上抛；写失败只记日志，因为 RAM 已经是新的
    - single_flight=True 时并发的重建共享同一个进行中的任务，否则允许重复重建（幂等）
    """

    def __init__(
        self,
        *,
        source: RowSource,
        store: BaseKVStore,
        key: str = "sheet-v1",
        ttl_s: int = DEFAULT_TTL_S,
        trigger_column: int = 1,
        response_column: int = 2,
        clock: Clock = time.time,
        single_flight: bool = True,
    ) -> None:
        self._source = source
        self._store = store
        self._key = key
        self._ttl_s = ttl_s
        self._trigger_column = trigger_column
        self._response_column = response_column
        self._clock = clock
        self._single_flight = single_flight

        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[asyncio.Task[TriggerTable]] = None
        # invalidate() 之后，之前启动的重建不再允许写回任何一级
        self._generation = 0

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    async def resolve(self, raw_trigger: str) -> Responses:
        table = await self.ensure_fresh()
        return table.get(normalize_trigger(raw_trigger))

    async def ensure_fresh(self) -> TriggerTable:
        entry = self._entry
        if entry is not None and entry.is_fresh(self._clock()):
            return entry.table

        generation = self._generation
        raw = await self._store.get(self._key)
        if raw is not None:
            try:
                table = deserialize_table(raw)
            except DurableStoreError as exc:
                logger.warning("Discarding corrupt durable entry key=%s: %s", self._key, exc)
            else:
                if generation != self._generation:
                    # 读取期间发生了 invalidate，旧数据只交给本次调用者
                    return table
                self._entry = CacheEntry(table=table, expires_at=self._clock() + self._ttl_s)
                logger.info(
                    "Trigger table restored from durable tier: %d triggers", len(table)
                )
                return table

        return await self.warm()

    async def warm(self) -> TriggerTable:
        """
        强制从表格重建，无论两级缓存是否新鲜。
        """
        if not self._single_flight:
            return await self._rebuild(self._generation)

        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._rebuild(self._generation))
            task.add_done_callback(self._on_rebuild_done)
            self._inflight = task
        # shield：某个等待者被取消时，不影响共享同一任务的其他请求
        return await asyncio.shield(task)

    async def invalidate(self) -> None:
        self._generation += 1
        self._inflight = None
        self._entry = None
        await self._store.delete(self._key)
        logger.info("Trigger table invalidated key=%s", self._key)

    async def _rebuild(self, generation: int) -> TriggerTable:
        rows = await self._source.fetch_rows()
        table = build_trigger_table(
            rows,
            trigger_column=self._trigger_column,
            response_column=self._response_column,
        )

        if generation != self._generation:
            logger.info("Rebuild superseded by invalidation, result not cached")
            return table

        try:
            await self._store.put(self._key, serialize_table(table), self._ttl_s)
        except DurableStoreError as exc:
            logger.warning("Failed to write durable tier key=%s: %s", self._key, exc)

        if generation == self._generation:
            self._entry = CacheEntry(table=table, expires_at=self._clock() + self._ttl_s)
        logger.info("Trigger table rebuilt: %d triggers from %d rows", len(table), len(rows))
        return table

    def _on_rebuild_done(self, task: "asyncio.Task[TriggerTable]") -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # 异常由等待者处理；这里取一次避免 "exception was never retrieved"
            task.exception()
