import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ai_mode: Literal["off", "fallback", "primary"] = Field("fallback", alias="LEARNPATH_AI_MODE")
    ai_provider: str = Field("deepseek", alias="LEARNPATH_AI_PROVIDER")
    ai_base_url: str = Field("https://api.deepseek.com/v1", alias="LEARNPATH_AI_BASE_URL")
    ai_model: str = Field("deepseek-chat", alias="LEARNPATH_AI_MODEL")
    ai_api_key: Optional[str] = Field(None, alias="LEARNPATH_AI_API_KEY")
    ai_timeout_seconds: float = Field(20.0, alias="LEARNPATH_AI_TIMEOUT_SECONDS", gt=0)
    study_plan_provider: str = Field("openai-agent", alias="LEARNPATH_STUDY_PLAN_PROVIDER")
    study_plan_model: str = Field("gpt-5-mini", alias="LEARNPATH_STUDY_PLAN_MODEL")
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    recommendation_ttl_hours: float = Field(24, alias="LEARNPATH_RECOMMENDATION_TTL_HOURS", gt=0)
    study_plan_ttl_hours: float = Field(48, alias="LEARNPATH_STUDY_PLAN_TTL_HOURS", gt=0)
    max_cache_size: int = Field(100, alias="LEARNPATH_MAX_CACHE_SIZE", ge=1)
    cache_backend: Literal["memory", "database"] = Field("memory", alias="LEARNPATH_CACHE_BACKEND")
    dedupe_inflight: bool = Field(True, alias="LEARNPATH_DEDUPE_INFLIGHT")
    database_url: Optional[str] = Field(None, alias="LEARNPATH_DATABASE_URL")
    database_pool_size: int = Field(10, alias="LEARNPATH_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="LEARNPATH_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="LEARNPATH_DATABASE_ECHO")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True

    @property
    def ai_configured(self) -> bool:
        key = (self.ai_api_key or "").strip()
        return bool(key) and not key.startswith("your-")


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[call-arg]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid engine configuration: {exc}") from exc
