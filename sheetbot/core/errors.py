"""
错误类型，以及 webhook 边界上唯一的错误翻译函数。
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

logger = logging.getLogger(__name__)

EventKind = Literal["message", "reload", "scheduled"]

DATA_UNAVAILABLE_TEXT = "Не удалось получить данные из таблицы 😿"
RELOAD_FAILED_TEXT = "Ошибка при перезагрузке таблицы 😿"


class SheetBotError(Exception):
    """
    所有业务异常的基类。
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(SheetBotError):
    """
    必需的配置缺失或非法，不重试。
    """


class DataUnavailableError(SheetBotError):
    """
    无法得到新鲜的触发词表（远端或持久层不可用）。
    """


class RemoteFetchError(DataUnavailableError):
    """
    Google Sheets 返回非 2xx、网络错误或无法解析的响应体。
    """


class DurableStoreError(DataUnavailableError):
    """
    持久层（Redis）读写删除失败，或存储的内容已损坏。
    """


def translate_error(exc: BaseException, *, event: EventKind) -> Optional[str]:
    """
    把内部异常翻译为面向用户的提示，并记录一条诊断日志。

    - 已知的数据不可用错误只记一行 error；其他异常带 traceback
    - 返回值不包含任何异常细节；scheduled 事件没有聊天上下文，返回 None
    """
    if isinstance(exc, DataUnavailableError):
        logger.error(
            "%s event failed: %s(status=%s): %s",
            event,
            type(exc).__name__,
            exc.status_code,
            exc,
        )
    else:
        logger.error(
            "%s event failed with unexpected error",
            event,
            exc_info=(type(exc), exc, exc.__traceback__),
        )

    if event == "reload":
        return RELOAD_FAILED_TEXT
    if event == "message":
        return DATA_UNAVAILABLE_TEXT
    return None
