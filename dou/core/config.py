"""Process configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    address: str = ":8099"
    read_timeout: float = Field(default=0, ge=0)
    write_timeout: float = Field(default=0, ge=0)
    max_header_bytes: int = Field(default=0, ge=0)
    log_level: str = "INFO"
    access_log: bool = True
    documentation_url: str = "http://toqoz.net"

    model_config = SettingsConfigDict(env_prefix="DOU_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
