"""Environment-backed settings for the verdict engine."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # DNS
    dns_timeout_seconds: float = Field(default=5.0, gt=0)
    dns_nameservers: str = ""

    # AI content analysis
    ai_enabled: bool = True
    ai_timeout_seconds: float = Field(default=10.0, gt=0)
    ai_use_deep_model: bool = False
    groq_api_key: str = ""
    openai_api_key: str = ""
    openai_base_url: str = ""

    # Policy inputs
    brand_list_path: Optional[str] = None
    weights_path: Optional[str] = None

    # Persistence (disabled when unset)
    database_url: Optional[str] = None

    log_level: str = "INFO"

    @property
    def nameservers(self) -> List[str]:
        return [ns.strip() for ns in self.dns_nameservers.split(",") if ns.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
