"""Configuration for the Fast-Memory API Adapter."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


PLACEHOLDER_API_KEY = "YOUR_N8N_API_KEY"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="fast-memory-adapter")

    remote_api_base_url: str = Field(default="http://localhost:5678/api/v1")
    remote_api_key: str = Field(default=PLACEHOLDER_API_KEY)
    remote_api_timeout_seconds: float = Field(default=15)
    remote_api_verify_ssl: bool = Field(default=True)

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=8000)
    adapter_auth_token: Optional[str] = Field(default=None)
    adapter_db_dir: str = Field(default="db")

    adapter_max_concurrency: int = Field(default=20)
    adapter_max_response_chars: int = Field(default=5000)

    adapter_log_level: str = Field(default="INFO")

    def api_key_is_placeholder(self) -> bool:
        return not self.remote_api_key or self.remote_api_key == PLACEHOLDER_API_KEY

    def catalog_db_path(self) -> str:
        return os.path.join(self.adapter_db_dir, "api_spec.db")

    def fast_memory_db_path(self) -> str:
        return os.path.join(self.adapter_db_dir, "fast_memory.db")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
