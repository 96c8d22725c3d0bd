from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from sheetbot.api.routes import router
from sheetbot.config import Settings, get_settings
from sheetbot.core.dispatcher import DispatchHandler
from sheetbot.core.trigger_cache import TriggerTableCache
from sheetbot.scheduler import RefreshScheduler
from sheetbot.services.kv import BaseKVStore, build_kv_store
from sheetbot.services.sheets import GoogleSheetsClient
from sheetbot.services.telegram import TelegramClient

logger = logging.getLogger(__name__)


@dataclass
class BotServices:
    """
    应用运行期依赖的组合。测试时可以直接注入替身。
    """

    dispatcher: DispatchHandler
    webhook_secret: Optional[str] = None
    scheduler: Optional[RefreshScheduler] = None
    telegram: Optional[TelegramClient] = None
    sheets: Optional[GoogleSheetsClient] = None
    store: Optional[BaseKVStore] = None

    async def aclose(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        if self.telegram is not None:
            await self.telegram.close()
        if self.sheets is not None:
            await self.sheets.close()
        if self.store is not None:
            await self.store.close()


def build_services(settings: Settings) -> BotServices:
    store = build_kv_store(settings.REDIS_URL)
    sheets = GoogleSheetsClient(
        spreadsheet_id=settings.GOOGLE_SHEETS_ID,
        api_key=settings.GOOGLE_SHEETS_API_KEY,
        sheet_range=settings.SHEET_RANGE,
        timeout_s=settings.HTTP_TIMEOUT_S,
    )
    telegram = TelegramClient(
        bot_token=settings.TELEGRAM_BOT_TOKEN, timeout_s=settings.HTTP_TIMEOUT_S
    )
    cache = TriggerTableCache(
        source=sheets,
        store=store,
        key=settings.CACHE_KEY,
        ttl_s=settings.CACHE_TTL_S,
        trigger_column=settings.SHEET_TRIGGER_COLUMN,
        response_column=settings.SHEET_RESPONSE_COLUMN,
        single_flight=settings.SINGLE_FLIGHT_REBUILD,
    )
    dispatcher = DispatchHandler(
        cache=cache, sender=telegram, aliases=settings.COMMAND_ALIASES
    )
    scheduler = None
    if settings.REFRESH_INTERVAL_S > 0:
        scheduler = RefreshScheduler(dispatcher, interval_s=settings.REFRESH_INTERVAL_S)

    logger.info(
        "Services built: range=%s, ttl=%ss, refresh_interval=%ss, single_flight=%s",
        settings.SHEET_RANGE,
        settings.CACHE_TTL_S,
        settings.REFRESH_INTERVAL_S,
        settings.SINGLE_FLIGHT_REBUILD,
    )
    return BotServices(
        dispatcher=dispatcher,
        webhook_secret=settings.TELEGRAM_WEBHOOK_SECRET,
        scheduler=scheduler,
        telegram=telegram,
        sheets=sheets,
        store=store,
    )


def create_app(services: Optional[BotServices] = None) -> FastAPI:
    """
    创建 FastAPI 应用，并挂载路由与运行期依赖。
    """
    if services is None:
        # 启动时就校验配置，缺失的凭据以 ConfigurationError 尽早暴露
        services = build_services(get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if services.scheduler is not None:
            services.scheduler.start()
        try:
            yield
        finally:
            await services.aclose()

    app = FastAPI(title="Sheet Trigger Bot", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    app.include_router(router)
    return app
