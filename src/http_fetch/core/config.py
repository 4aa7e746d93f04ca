"""
Конфигурация транспорта http-fetch.

Конфиг immutable (frozen dataclass) для потокобезопасности:
Dispatcher строит из него Client один раз, дальше per-request
настройки живут в поверхностной копии Client.
"""

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .logging import LoggingConfig

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_REDIRECTS = 10


def _freeze_dict(d: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """
    Convert dict to immutable MappingProxyType.

    Example:
        >>> frozen = _freeze_dict({"X-API-Key": "secret"})
        >>> frozen["X-New"] = "value"  # Raises TypeError
    """
    if d is None:
        return MappingProxyType({})
    return MappingProxyType(dict(d))


@dataclass(frozen=True)
class ClientConfig:
    """
    Настройки транспорта по умолчанию.

    Args:
        timeout: Таймаут запроса целиком (сек)
        allow_redirects: Следовать редиректам
        max_redirects: Максимум редиректов
        verify_ssl: Проверять SSL сертификаты
        headers: Заголовки сессии (добавляются к каждому запросу)
        proxies: Прокси сессии
        logging: Конфигурация логирования (None = без структурных логов)

    Examples:
        >>> ClientConfig()
        >>> ClientConfig.create(timeout=5, headers={"User-Agent": "svc/1.0"})
    """
    timeout: float = DEFAULT_TIMEOUT
    allow_redirects: bool = True
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    verify_ssl: bool = True
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    proxies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    logging: Optional['LoggingConfig'] = None

    def __post_init__(self):
        """Валидация и заморозка словарей."""
        if self.timeout is None or self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative")

        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, 'headers', _freeze_dict(self.headers))
        if not isinstance(self.proxies, MappingProxyType):
            object.__setattr__(self, 'proxies', _freeze_dict(self.proxies))

    @classmethod
    def create(
        cls,
        timeout: float = DEFAULT_TIMEOUT,
        allow_redirects: bool = True,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        verify_ssl: bool = True,
        headers: Optional[Dict[str, str]] = None,
        proxies: Optional[Dict[str, str]] = None,
        logging: Optional['LoggingConfig'] = None
    ) -> 'ClientConfig':
        """Удобный конструктор: принимает обычные dict."""
        return cls(
            timeout=float(timeout),
            allow_redirects=allow_redirects,
            max_redirects=max_redirects,
            verify_ssl=verify_ssl,
            headers=headers or {},
            proxies=proxies or {},
            logging=logging,
        )

    def with_timeout(self, timeout: float) -> 'ClientConfig':
        """Создать новый конфиг с изменённым timeout."""
        return dataclasses.replace(self, timeout=float(timeout))

    def with_headers(self, headers: Mapping[str, str]) -> 'ClientConfig':
        """Создать новый конфиг, добавив заголовки к существующим."""
        merged = dict(self.headers)
        merged.update(headers)
        return dataclasses.replace(self, headers=merged)
