"""
Pydantic validators for environment configuration.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..config import DEFAULT_MAX_REDIRECTS, DEFAULT_TIMEOUT


class FetchSettings(BaseSettings):
    """
    Настройки http-fetch из переменных окружения.

    Читает (по убыванию приоритета):
    1. Переменные окружения (HTTP_FETCH_*)
    2. .env файл
    3. Значения по умолчанию

    Example .env file:
        HTTP_FETCH_TIMEOUT=10
        HTTP_FETCH_MAX_REDIRECTS=3
        HTTP_FETCH_VERIFY_SSL=false
        HTTP_FETCH_LOG_ENABLED=true
        HTTP_FETCH_LOG_LEVEL=DEBUG
        HTTP_FETCH_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix='HTTP_FETCH_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Transport
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")
    allow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=DEFAULT_MAX_REDIRECTS, ge=0)
    verify_ssl: bool = Field(default=True)
    user_agent: Optional[str] = Field(default=None, description="Session-wide User-Agent")
    proxy: Optional[str] = Field(default=None, description="Proxy for http and https")

    # Logging
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text", "colored"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_request_id: bool = Field(default=True)

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('log_format', mode='before')
    @classmethod
    def normalize_log_format(cls, v):
        return v.lower() if isinstance(v, str) else v

    @model_validator(mode='after')
    def validate_file_path(self) -> "FetchSettings":
        """log_file_path обязателен при log_enable_file=True."""
        if self.log_enable_file and not self.log_file_path:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return self
