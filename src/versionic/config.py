"""
Settings read from `VERSIONIC_*` environment variables (or `.env`).
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_prefix="VERSIONIC_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # db
    database_url: str = "sqlite+aiosqlite:///versionic.db"
    database_echo: bool = False
    database_pool_size: int | None = None
    database_max_overflow: int | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Plain postgresql:// URLs need the asyncpg driver for the async engine."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # logging
    log_level: str = "INFO"
    log_format: str = "json"

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``; pool sizes only when set."""
        kwargs: dict[str, Any] = {"echo": self.database_echo}
        if self.database_pool_size is not None:
            kwargs["pool_size"] = self.database_pool_size
        if self.database_max_overflow is not None:
            kwargs["max_overflow"] = self.database_max_overflow
        return kwargs


@lru_cache
def get_settings() -> Settings:
    return Settings()
