from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from sheetbot.core.errors import translate_error
from sheetbot.core.trigger_cache import TriggerTableCache
from sheetbot.core.trigger_table import normalize_trigger
from sheetbot.services.telegram import ChatId

logger = logging.getLogger(__name__)

RELOAD_COMMAND = "/reload"

RELOAD_OK_TEXT = "Данные перезагружены ✅"
UNKNOWN_TRIGGER_TEXT = (
    "Не знаю такого триггера 🙀 Напишите /reload, если вы только что добавили новый триггер."
)


class MessageSender(Protocol):
    async def send_message(
        self, chat_id: ChatId, text: str, *, reply_to: Optional[int] = None
    ) -> bool:
        ...


@dataclass
class IncomingMessage:
    chat_id: ChatId
    text: str
    message_id: Optional[int] = None


def command_key(text: str) -> str:
    """
    归一化入站文本；命令在群聊中形如 /command1@SomeBot，去掉 @ 后缀。
    """
    key = normalize_trigger(text)
    if key.startswith("/") and " " not in key and "@" in key:
        key = key.split("@", 1)[0]
    return key


class DispatchHandler:
    """
    负责把入站事件（消息 / 定时任务）落到触发词缓存，并驱动回复。

    - /reload 优先于别名表：invalidate + warm，回复确认或失败提示
    - 其余文本先做别名替换，再 resolve；多个回复时均匀随机挑一条
    - 任何内部异常都在这里吞掉并转成用户提示，不会传到 webhook 边界
    """

    def __init__(
        self,
        *,
        cache: TriggerTableCache,
        sender: MessageSender,
        aliases: Optional[Mapping[str, str]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._cache = cache
        self._sender = sender
        self._aliases = {
            normalize_trigger(k): normalize_trigger(v) for k, v in (aliases or {}).items()
        }
        self._rng = rng or random.Random()

    async def handle_message(self, msg: IncomingMessage) -> None:
        key = command_key(msg.text)

        if key == RELOAD_COMMAND:
            await self._handle_reload(msg)
            return

        key = self._aliases.get(key, key)

        try:
            answers = await self._cache.resolve(key)
        except Exception as exc:  # noqa: BLE001
            notice = translate_error(exc, event="message")
            if notice:
                await self._sender.send_message(msg.chat_id, notice)
            return

        if answers:
            answer = self._rng.choice(answers)
            await self._sender.send_message(msg.chat_id, answer, reply_to=msg.message_id)
        else:
            logger.info("Unknown trigger chat_id=%s key=%r", msg.chat_id, key)
            await self._sender.send_message(msg.chat_id, UNKNOWN_TRIGGER_TEXT)

    async def handle_scheduled_tick(self) -> None:
        """
        定时刷新：强制重建，失败只记日志（没有聊天上下文可回复）。
        """
        try:
            table = await self._cache.warm()
        except Exception as exc:  # noqa: BLE001
            translate_error(exc, event="scheduled")
            return
        logger.info("Scheduled refresh done: %d triggers", len(table))

    async def _handle_reload(self, msg: IncomingMessage) -> None:
        try:
            await self._cache.invalidate()
            table = await self._cache.warm()
        except Exception as exc:  # noqa: BLE001
            notice = translate_error(exc, event="reload")
            if notice:
                await self._sender.send_message(msg.chat_id, notice)
            return

        logger.info("Reload requested by chat_id=%s: %d triggers", msg.chat_id, len(table))
        await self._sender.send_message(msg.chat_id, RELOAD_OK_TEXT)
