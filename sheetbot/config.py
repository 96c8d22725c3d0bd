from functools import lru_cache
from typing import Dict

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetbot.core.errors import ConfigurationError

# 原版机器人的快捷命令：/commandN -> 表格中的触发词
DEFAULT_COMMAND_ALIASES: Dict[str, str] = {
    "/command1": "мяу",
    "/command2": "песенка",
    "/command3": "обнимашка",
    "/command4": "скучно",
    "/command5": "миссия",
    "/command6": "поговорим",
}


class Settings(BaseSettings):
    """
    全局配置，从环境变量 / .env 中读取，构造时一次性校验。
    """

    # Telegram 机器人
    TELEGRAM_BOT_TOKEN: str
    TELEGRAM_WEBHOOK_SECRET: str | None = None

    # Google Sheets 数据源
    GOOGLE_SHEETS_ID: str
    GOOGLE_SHEETS_API_KEY: str
    SHEET_RANGE: str = "Sheet1!A:C"
    # 列偏移：三列表格为 1/2（B=触发词, C=回复），两列表格为 0/1
    SHEET_TRIGGER_COLUMN: int = 1
    SHEET_RESPONSE_COLUMN: int = 2

    # 持久层（Redis）；memory:// 表示进程内存储，仅用于本地调试
    REDIS_URL: str
    CACHE_KEY: str = "sheet-v1"
    CACHE_TTL_S: int = 300

    # 定时刷新间隔，0 表示不启动进程内调度器
    REFRESH_INTERVAL_S: int = 300
    SINGLE_FLIGHT_REBUILD: bool = True

    HTTP_TIMEOUT_S: float = 10.0

    COMMAND_ALIASES: Dict[str, str] = DEFAULT_COMMAND_ALIASES

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator(
        "TELEGRAM_BOT_TOKEN",
        "GOOGLE_SHEETS_ID",
        "GOOGLE_SHEETS_API_KEY",
        "SHEET_RANGE",
        "REDIS_URL",
        "CACHE_KEY",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("TELEGRAM_WEBHOOK_SECRET")
    @classmethod
    def _blank_secret_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("SHEET_TRIGGER_COLUMN", "SHEET_RESPONSE_COLUMN", "REFRESH_INTERVAL_S")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("CACHE_TTL_S")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @model_validator(mode="after")
    def _distinct_columns(self) -> "Settings":
        if self.SHEET_TRIGGER_COLUMN == self.SHEET_RESPONSE_COLUMN:
            raise ValueError("SHEET_TRIGGER_COLUMN and SHEET_RESPONSE_COLUMN must differ")
        return self


def load_settings(**overrides) -> Settings:
    """
    构造并校验配置；任何校验失败都转换为 ConfigurationError。
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) or "settings" for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid or missing configuration: {fields}") from exc


@lru_cache
def get_settings() -> Settings:
    """
    获取全局单例配置实例。
    """
    return load_settings()
