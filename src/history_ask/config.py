from __future__ import annotations

from enum import Enum

from pydantic import ConfigDict, SecretStr, field_validator
from pydantic_settings import BaseSettings


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # LLM Keys
    openai_api_key: SecretStr = SecretStr("")
    anthropic_api_key: SecretStr = SecretStr("")

    # Ask pipeline
    ai_enabled: bool = False
    ai_provider: LLMProvider = LLMProvider.OPENAI
    ai_model: str = "gpt-4o-mini"
    ai_sql_timeout_seconds: float = 10.0
    ai_max_sql_retries: int = 3
    ai_max_chunk_tokens: int = 4000
    ai_retry_on_execution_error: bool = True

    # LLM
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.0

    # History store
    database_path: str = "~/.fh/history.db"

    log_level: str = "INFO"

    @field_validator("ai_provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("ai_max_sql_retries", "ai_max_chunk_tokens")
    @classmethod
    def must_be_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("ai_sql_timeout_seconds")
    @classmethod
    def must_be_positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be greater than 0")
        return v


def get_settings() -> Settings:
    return Settings()
