"""
Telegram Bot API 客户端（只负责发消息）
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import httpx

logger = logging.getLogger(__name__)

ChatId = Union[int, str]


class TelegramClient:
    """
    发送消息是尽力而为的：任何失败只记日志并返回 False，不会抛回调度路径。
    """

    TELEGRAM_HOST = "https://api.telegram.org"

    def __init__(
        self,
        *,
        bot_token: str,
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._token = bot_token
        self._client = client or httpx.AsyncClient(base_url=self.TELEGRAM_HOST, timeout=timeout_s)

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        *,
        reply_to: Optional[int] = None,
    ) -> bool:
        """
        API: POST /bot{token}/sendMessage

        Args:
            chat_id: 目标会话
            text: 消息文本
            reply_to: 被回复消息的 message_id（线程化回复）
        """
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_to:
            payload["reply_to_message_id"] = reply_to

        try:
            resp = await self._client.post(f"/bot{self._token}/sendMessage", json=payload)
        except httpx.HTTPError as e:
            # 异常信息可能带完整 URL（含 token），只记录类型
            logger.error("sendMessage failed: chat_id=%s, error=%s", chat_id, type(e).__name__)
            return False

        if not resp.is_success:
            try:
                description = resp.json().get("description")
            except (ValueError, AttributeError):
                description = resp.text[:200]
            logger.error(
                "sendMessage rejected: chat_id=%s, status=%s, description=%s",
                chat_id,
                resp.status_code,
                description,
            )
            return False

        logger.info("sendMessage succeeded: chat_id=%s, reply_to=%s", chat_id, reply_to)
        return True

    async def close(self) -> None:
        await self._client.aclose()
