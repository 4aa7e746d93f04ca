"""
Настройки dump adapter.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .filters import Filter
from ..core.logging import FetchLogger

DEFAULT_REQUEST_BODY_MAX_SIZE = 10 * 1024  # 10KB
DEFAULT_RESPONSE_BODY_MAX_SIZE = 100 * 1024  # 100KB

DEFAULT_LOGGER_NAME = "http_fetch.dump"

HeaderFilter = Callable[[str, List[str]], Dict[str, Any]]


def default_log_level(request: requests.PreparedRequest, status_code: int) -> int:
    """
    Уровень записи по статусу ответа.

    5xx - ERROR, 429 - INFO, 4xx - WARNING, OPTIONS - DEBUG, остальное - INFO.
    """
    if status_code >= 500:
        return logging.ERROR
    if status_code == 429:
        return logging.INFO
    if status_code >= 400:
        return logging.WARNING
    if request.method == "OPTIONS":
        return logging.DEBUG
    return logging.INFO


@dataclass
class DumpOptions:
    """
    Attributes:
        skippers: Если хотя бы один вернул True, запрос не логируется и не читается
        logger: FetchLogger или logging.Logger (по умолчанию http_fetch.dump)
        log_level: Уровень, если log_level_func не задан
        log_level_func: (request, status) -> уровень
        filters: Все должны вернуть True, чтобы запись попала в лог
        request_body_filter: Логировать тело запроса, если вернул True
        request_body_max_size: Сколько байт тела запроса сохранить в записи
        request_header_filter: (key, values) -> поля записи; пустой dict скрывает заголовок
        request_attrs: Дополнительные поля по запросу
        response_body_filter: Логировать тело ответа, если вернул True
        response_body_max_size: Сколько байт тела ответа сохранить в записи
        response_header_filter: Как request_header_filter, для ответа
        response_attrs: (response, duration_sec) -> дополнительные поля
    """
    skippers: List[Callable[[requests.PreparedRequest], bool]] = field(default_factory=list)
    logger: Union[FetchLogger, logging.Logger, None] = None
    log_level: int = logging.INFO
    log_level_func: Optional[Callable[[requests.PreparedRequest, int], int]] = default_log_level
    filters: List[Filter] = field(default_factory=list)
    request_body_filter: Optional[Callable[[requests.PreparedRequest], bool]] = None
    request_body_max_size: int = DEFAULT_REQUEST_BODY_MAX_SIZE
    request_header_filter: Optional[HeaderFilter] = None
    request_attrs: Optional[Callable[[requests.PreparedRequest], Dict[str, Any]]] = None
    response_body_filter: Optional[Callable[[requests.PreparedRequest], bool]] = None
    response_body_max_size: int = DEFAULT_RESPONSE_BODY_MAX_SIZE
    response_header_filter: Optional[HeaderFilter] = None
    response_attrs: Optional[Callable[[requests.Response, float], Dict[str, Any]]] = None


def default_options() -> DumpOptions:
    return DumpOptions()
