"""
触发词表：归一化触发词 -> 有序的回复列表。

表格格式（默认三列）：A:任意 | B:trigger | C:response，第 0 行为表头。
同一个 trigger 可以出现多行，回复按表格顺序累积，由调度层随机挑选。
"""
from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

from sheetbot.core.errors import DurableStoreError

Responses = Tuple[str, ...]


def normalize_trigger(text: str) -> str:
    return text.strip().lower()


class TriggerTable:
    """
    不可变的触发词表。每次重建都生成新实例，读者永远看不到半成品。
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Sequence[str]] | None = None) -> None:
        frozen: Dict[str, Responses] = {}
        for trigger, responses in (entries or {}).items():
            frozen[trigger] = tuple(responses)
        self._entries: Mapping[str, Responses] = MappingProxyType(frozen)

    def get(self, trigger: str) -> Responses:
        return self._entries.get(trigger, ())

    def items(self) -> Iterator[Tuple[str, Responses]]:
        return iter(self._entries.items())

    def triggers(self) -> List[str]:
        return list(self._entries.keys())

    def __contains__(self, trigger: object) -> bool:
        return trigger in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TriggerTable):
            return NotImplemented
        return list(self.items()) == list(other.items())

    def __repr__(self) -> str:
        return f"TriggerTable(triggers={len(self)})"


def _cell(row: Sequence[Any], index: int) -> str:
    # 短行（Sheets API 会截掉尾部空单元格）按空白处理
    if index >= len(row) or row[index] is None:
        return ""
    return str(row[index])


def build_trigger_table(
    rows: Iterable[Sequence[Any]],
    *,
    trigger_column: int,
    response_column: int,
) -> TriggerTable:
    """
    从表格原始行构建触发词表。

    - 跳过第 0 行（表头）
    - trigger 归一化（trim + lower），response 只做 trim
    - 任一字段为空的行直接丢弃，不算错误
    - 重复的 trigger 追加回复，保持表格顺序
    """
    entries: Dict[str, List[str]] = {}
    for index, row in enumerate(rows):
        if index == 0:
            continue
        trigger = normalize_trigger(_cell(row, trigger_column))
        response = _cell(row, response_column).strip()
        if not trigger or not response:
            continue
        entries.setdefault(trigger, []).append(response)
    return TriggerTable(entries)


def serialize_table(table: TriggerTable) -> str:
    """
    序列化为 [[trigger, [responses...]], ...]，保持插入顺序。
    """
    pairs = [[trigger, list(responses)] for trigger, responses in table.items()]
    return json.dumps(pairs, ensure_ascii=False)


def deserialize_table(raw: str | bytes) -> TriggerTable:
    try:
        pairs = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DurableStoreError(f"Corrupt trigger table payload: {exc}") from exc

    if not isinstance(pairs, list):
        raise DurableStoreError("Corrupt trigger table payload: expected a list of pairs")

    entries: Dict[str, List[str]] = {}
    for pair in pairs:
        if (
            not isinstance(pair, list)
            or len(pair) != 2
            or not isinstance(pair[0], str)
            or not isinstance(pair[1], list)
            or not all(isinstance(r, str) for r in pair[1])
        ):
            raise DurableStoreError(f"Corrupt trigger table payload: bad pair {pair!r}")
        trigger, responses = pair
        # 与 build_trigger_table 的不变式一致：key 已归一化且非空，回复列表非空且无空白项
        if (
            not trigger
            or normalize_trigger(trigger) != trigger
            or not responses
            or any(not r.strip() for r in responses)
        ):
            raise DurableStoreError(f"Corrupt trigger table payload: invalid entry {pair!r}")
        entries.setdefault(trigger, []).extend(responses)
    return TriggerTable(entries)
