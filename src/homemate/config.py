"""
HomeMate - Configuration and settings.

All settings come from the environment (or a local .env file).
Supabase and LLM credentials are optional at load time so that the
endpoints can report missing configuration instead of failing on import.
"""

import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

ZHIPU_DEFAULT_BASE_URL = "https://open.bigmodel.cn/api/paas/v4"
ZHIPU_DEFAULT_MODEL = "glm-4.7"


class HomemateSettings(BaseSettings):
    """
    Application settings.

    Field names map to upper-case environment variables
    (e.g. supabase_url <- SUPABASE_URL).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None

    # Zhipu GLM (preferred provider when a key is set)
    zhipuai_api_key: str | None = None
    zhipuai_api_base: str = ZHIPU_DEFAULT_BASE_URL
    zhipuai_model: str = ZHIPU_DEFAULT_MODEL

    # Any OpenAI-compatible provider
    health_llm_api_key: str | None = None
    health_llm_model: str | None = None
    health_llm_api_base: str | None = None

    # Weekly cron
    health_cron_secret: str | None = None
    health_cron_timezone: str = "Asia/Shanghai"

    # Application
    homemate_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    homemate_log_prompts: bool = False
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def has_service_role(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> HomemateSettings:
    """Get cached settings instance."""
    return HomemateSettings()


def configure_logging(level: str | None = None) -> None:
    """Set up root logging and quiet down noisy client libraries."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
