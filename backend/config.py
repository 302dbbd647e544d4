# backend/config.py
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    # Which storage the service talks to
    INVENTORY_BACKEND: Literal["local", "remote"] = "local"

    # Hosted REST table API
    REMOTE_API_URL: str = ""
    REMOTE_API_KEY: str = ""
    REMOTE_TIMEOUT_SECONDS: float = 10.0
    POLL_INTERVAL_SECONDS: float = 2.0

    # Local key-value storage
    LOCAL_DATABASE_URL: str = "sqlite:///./inventory_local.db"
    LOCAL_STORAGE_KEY: str = "inventory_data"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
