from __future__ import annotations

import json
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_allowed_origins(raw: str | None) -> tuple[str, ...]:
    """ALLOWED_ORIGINS: ``*``, JSON-список или домены через запятую."""

    text = (raw or "").strip()
    if text.startswith("["):
        values = json.loads(text)
        if not isinstance(values, list):
            raise ValueError("ALLOWED_ORIGINS must be a JSON list")
    else:
        values = text.split(",")
    origins = tuple(str(item).strip() for item in values if str(item).strip())
    return origins or ("*",)


class Settings(BaseSettings):
    """Конфигурация приложения на основе переменных окружения."""

    shopify_store: str = Field(..., alias="SHOPIFY_STORE")
    shopify_api_token: str = Field(..., alias="SHOPIFY_API_TOKEN")
    shopify_api_version: str = Field("2024-01", alias="SHOPIFY_API_VERSION")

    booking_metafield_namespace: str = Field("custom", alias="BOOKING_METAFIELD_NAMESPACE")
    booking_metafield_key: str = Field("booking", alias="BOOKING_METAFIELD_KEY")

    allowed_origins_raw: str = Field("*", alias="ALLOWED_ORIGINS")

    api_prefix: str = ""
    port: int = Field(3000, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    request_timeout: float = Field(30.0, alias="REQUEST_TIMEOUT")

    # Сериализация записи в журнал бронирований
    use_redis_lock: bool = Field(
        False,
        alias="USE_REDIS_LOCK",
        description="Блокировать запись журнала через Redis (несколько воркеров) вместо asyncio.Lock",
    )
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    ledger_lock_timeout: float = Field(
        30.0,
        alias="LEDGER_LOCK_TIMEOUT",
        description="Время жизни блокировки в Redis (секунды)",
    )
    ledger_lock_blocking_timeout: float = Field(
        10.0,
        alias="LEDGER_LOCK_BLOCKING_TIMEOUT",
        description="Сколько ждать освобождения блокировки (секунды)",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        return parse_allowed_origins(self.allowed_origins_raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings", "parse_allowed_origins"]
