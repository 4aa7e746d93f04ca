"""
Загрузка ClientConfig из переменных окружения и .env файлов.
"""

from typing import Any, Optional

from pydantic import ValidationError

from ..config import ClientConfig
from ..exceptions import ConfigurationError
from ..logging.config import LoggingConfig
from .validator import FetchSettings


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> FetchSettings:
    """
    Прочитать FetchSettings.

    Raises:
        ConfigurationError: значения не прошли валидацию
    """
    try:
        if env_file is None:
            return FetchSettings(**overrides)
        return FetchSettings(_env_file=env_file, **overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid http-fetch settings: {exc}") from exc


def load_from_env(env_file: Optional[str] = None, **overrides: Any) -> ClientConfig:
    """
    Собрать ClientConfig из окружения.

    Priority (highest to lowest):
    1. **overrides - явные параметры (имена полей FetchSettings)
    2. Environment variables (HTTP_FETCH_*)
    3. .env file
    4. Defaults

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.test", timeout=5)
        >>> dispatcher = Dispatcher(config=config)

    Raises:
        ConfigurationError: значения не прошли валидацию
    """
    settings = load_settings(env_file, **overrides)

    headers = {}
    if settings.user_agent:
        headers["User-Agent"] = settings.user_agent

    proxies = {}
    if settings.proxy:
        proxies = {"http": settings.proxy, "https": settings.proxy}

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_request_id=settings.log_enable_request_id,
        )

    try:
        return ClientConfig.create(
            timeout=settings.timeout,
            allow_redirects=settings.allow_redirects,
            max_redirects=settings.max_redirects,
            verify_ssl=settings.verify_ssl,
            headers=headers,
            proxies=proxies,
            logging=logging_config,
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
