"""
Dispatcher - общий транспорт и общий префикс pipeline.

Все методы потокобезопасны: изменения (`use`, `set_client`) идут под
блокировкой, `dispatch` снимает снимок middlewares и клиента под той же
блокировкой и дальше работает без неё.
"""

import threading
import time
import uuid
from typing import List, Optional

import requests

from .client import Client, clone_client, round_trip
from .config import ClientConfig
from .logging import FetchLogger, set_request_id, clear_request_id
from .middleware import Middleware, compose
from .models import OutgoingRequest
from .request import RequestBuilder
from ..utils.sanitizer import mask_url


class Dispatcher:
    """
    Владелец транспорта и middlewares, общих для всех запросов.

    Args:
        client: Транспорт (по умолчанию Client.from_config(config))
        *middlewares: Начальный префикс pipeline
        config: Конфигурация для клиента по умолчанию и логирования
        logger: Готовый FetchLogger; Dispatcher его не закрывает

    Example:
        >>> dispatcher = Dispatcher()
        >>> dispatcher.use(set_header(lambda h: h.set("User-Agent", "svc/1.0")))
        >>> resp = dispatcher.new_request().get("https://api.example.com/ping")
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        *middlewares: Middleware,
        config: Optional[ClientConfig] = None,
        logger: Optional[FetchLogger] = None
    ):
        self._config = config or ClientConfig()
        self._lock = threading.Lock()
        self._owns_client = client is None
        self._client = client if client is not None else Client.from_config(self._config)
        self._middlewares: List[Middleware] = list(middlewares)

        self._logger = logger
        self._owns_logger = logger is None and self._config.logging is not None
        if self._owns_logger:
            self._logger = FetchLogger(self._config.logging)

    @property
    def client(self) -> Client:
        return self._client

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def middlewares(self) -> List[Middleware]:
        """Снимок текущего префикса."""
        with self._lock:
            return list(self._middlewares)

    def set_client(self, client: Optional[Client]) -> None:
        """Заменить транспорт; None игнорируется."""
        if client is None:
            return
        with self._lock:
            self._client = client
            self._owns_client = False

    def use(self, *middlewares: Middleware) -> "Dispatcher":
        """Добавить middlewares в конец префикса."""
        with self._lock:
            self._middlewares.extend(middlewares)
        return self

    def clone(self) -> "Dispatcher":
        """
        Независимая копия: поверхностная копия клиента, копия списка
        middlewares, своя блокировка. Логгер общий с исходным и
        закрывается только им.
        """
        with self._lock:
            client = clone_client(self._client)
            middlewares = list(self._middlewares)

        return Dispatcher(client, *middlewares, config=self._config, logger=self._logger)

    def dispatch(self, request: OutgoingRequest, *middlewares: Middleware) -> requests.Response:
        """
        Пропустить запрос через prefix + middlewares и транспорт.

        Не повторяет запрос и не классифицирует ошибки: исключение из
        pipeline выходит как есть.
        """
        with self._lock:
            client = clone_client(self._client)
            prefix = list(self._middlewares)

        handler = compose(*prefix, *middlewares)(round_trip)

        if self._logger is None:
            return handler(client, request)

        return self._dispatch_logged(handler, client, request)

    def _dispatch_logged(self, handler, client: Client, request: OutgoingRequest) -> requests.Response:
        request_id = uuid.uuid4().hex[:12]
        set_request_id(request_id)
        start = time.perf_counter()

        self._logger.debug("Request dispatched", method=request.method)

        try:
            response = handler(client, request)
        except Exception as exc:
            self._logger.error(
                "Request failed",
                method=request.method,
                url=mask_url(str(request.url)),
                error=str(exc),
                error_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        else:
            self._logger.info(
                "Request completed",
                method=request.method,
                url=mask_url(response.url or str(request.url)),
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return response
        finally:
            clear_request_id()

    def new_request(self) -> "RequestBuilder":
        return RequestBuilder(self)

    def close(self) -> None:
        """Закрыть собственный клиент и логгер."""
        if self._owns_client:
            self._client.close()
        if self._owns_logger:
            self._logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

