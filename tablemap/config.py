"""
Configuration settings for tablemap.

Uses Pydantic Settings to load environment variables for database connections,
logging, primary-key defaults, mapping generation defaults and the remote API
used by the `load` command.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("tablemap", alias="DB_NAME")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Table creation defaults
    primary_key_name: str = Field("id", alias="PRIMARY_KEY_NAME")
    primary_key_type: str = Field("INTEGER", alias="PRIMARY_KEY_TYPE")

    # Mapping generation defaults
    mapping_title_field: str = Field("title", alias="MAPPING_TITLE_FIELD")
    mapping_content_field: str = Field("content", alias="MAPPING_CONTENT_FIELD")
    mapping_detect_images: bool = Field(True, alias="MAPPING_DETECT_IMAGES")
    mapping_max_depth: int = Field(3, ge=0, alias="MAPPING_MAX_DEPTH")

    # Remote API
    api_base_url: Optional[str] = Field(None, alias="API_BASE_URL")
    api_timeout_seconds: float = Field(30.0, alias="API_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
