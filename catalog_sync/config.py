from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./test-product-catalog.db")
    delta_file: str = "updated-catalog.csv"
    batch_size: int = Field(default=100_000, ge=1)
    delete_policy: Literal["tombstone", "full-scan"] = "tombstone"

    delete_weight: int = 10
    update_weight: int = 10
    add_weight: int = 20
    unchanged_weight: int = 60

    write_retry_attempts: int = Field(default=3, ge=1)
    write_retry_backoff_seconds: float = Field(default=0.5, ge=0.0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CATALOG_")


@lru_cache
def get_settings() -> Settings:
    return Settings()
