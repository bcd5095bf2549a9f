from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "production", "staging", "test"]
GenerationBackendName = Literal["openai", "offline"]


def _resolve_env_files() -> tuple[str, ...]:
    env = os.getenv("WORDFIT_ENVIRONMENT", "development").lower()
    if env in {"prod", "production"}:
        return (".env", ".env.prod")
    if env in {"dev", "development"}:
        return (".env", ".env.dev")
    if env in {"test", "testing"}:
        return (".env", ".env.test")
    return (".env",)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WORDFIT_",
        env_file=_resolve_env_files(),
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Environment = "development"
    project_name: str = "WordFit Enhancement API"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"
    log_json: bool = False
    rate_limit: str = "60/minute"
    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = []
    enable_docs: bool = True

    database_url: str | None = None
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "wordfit"

    generation_backend: GenerationBackendName = "openai"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 30.0
    openai_max_retries: int = 1
    generation_timeout_seconds: float = 45.0

    max_input_tokens: int = 16000
    tokens_per_word: float = 1.3
    output_token_floor: int = 2000
    output_token_ceiling: int = 8000
    output_expansion_factor: float = 2.5
    tolerance_ratio: float = 0.05
    tolerance_floor_words: int = 5

    guest_daily_messages: int = 5
    user_daily_free_messages: int = 5
    user_id_header: str = "X-User-Id"
    admin_user_id: str | None = None

    @property
    def async_database_uri(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            "postgresql+asyncpg://"
            f"{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
