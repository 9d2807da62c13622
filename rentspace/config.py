"""
Настройки приложения.

Значения читаются из переменных окружения с префиксом ``RENTSPACE_``
и из файла ``.env``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки с поддержкой переменных окружения."""

    model_config = SettingsConfigDict(
        env_prefix="RENTSPACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Хранилище
    storage_backend: Literal["memory", "json"] = "memory"
    data_dir: Path = Path("data")

    # Redis: счетчик идентификаторов и инвалидация кэша
    redis_url: Optional[str] = None

    # Идентификаторы объектов: PROP1001, PROP1002, ...
    property_id_prefix: str = Field("PROP", min_length=1)
    property_id_start: int = Field(1000, ge=0)

    # Повторы при конфликте версий
    max_write_attempts: int = Field(3, ge=1)

    debug: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Неизвестный уровень логирования: {v}")
        return level

    @property
    def properties_file(self) -> Path:
        return self.data_dir / "properties.json"

    @property
    def tenants_file(self) -> Path:
        return self.data_dir / "tenants.json"

    @property
    def counters_file(self) -> Path:
        return self.data_dir / "counters.json"


@lru_cache()
def get_settings() -> Settings:
    """Возвращает закэшированный экземпляр настроек."""
    return Settings()
