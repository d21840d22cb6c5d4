from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Storage
    storage_backend: Literal["memory", "postgres", "redis"] = "memory"
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    redis_key_prefix: str = "pwl:"
    token_namespace: str = Field(default="passwordless-token", min_length=1)

    # Security
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
