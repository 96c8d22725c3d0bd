"""
Webhook 边界：无论内部结果如何，POST 一律返回 200 {"ok": true}，
否则 Telegram 会认为投递失败并不断重试。
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from fastapi import APIRouter, Header, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from sheetbot.core.dispatcher import IncomingMessage

if TYPE_CHECKING:
    from sheetbot.app import BotServices

logger = logging.getLogger(__name__)

router = APIRouter()

HEALTH_TEXT = "🐈‍⬛ CatBot online"
ACK: Dict[str, Any] = {"ok": True}


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]


class TelegramMessage(BaseModel):
    """
    只保留回复所需的字段。
    """

    model_config = ConfigDict(extra="ignore")

    message_id: Optional[int] = None
    chat: TelegramChat
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: Optional[int] = None
    message: Optional[TelegramMessage] = None


def _services(request: Request) -> "BotServices":
    return request.app.state.services


@router.get("/", summary="存活检查", response_class=PlainTextResponse)
async def liveness() -> PlainTextResponse:
    return PlainTextResponse(HEALTH_TEXT)


@router.get("/health", summary="健康检查")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@router.post("/", summary="Telegram webhook")
async def telegram_webhook(
    request: Request,
    secret_token: Optional[str] = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> Dict[str, Any]:
    services = _services(request)

    if services.webhook_secret and secret_token != services.webhook_secret:
        logger.warning("Rejected webhook call with bad secret token")
        return ACK

    try:
        raw = await request.json()
    except ValueError:
        logger.warning("Webhook payload is not valid JSON, ignored")
        return ACK

    try:
        update = TelegramUpdate.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Webhook payload has unexpected shape, ignored: %s", exc.errors())
        return ACK

    message = update.message
    if message is None or not message.text:
        # 贴纸、图片、编辑消息等：直接确认
        return ACK

    try:
        await services.dispatcher.handle_message(
            IncomingMessage(
                chat_id=message.chat.id,
                text=message.text,
                message_id=message.message_id,
            )
        )
    except Exception:  # noqa: BLE001
        logger.exception("Handler error update_id=%s", update.update_id)

    return ACK
