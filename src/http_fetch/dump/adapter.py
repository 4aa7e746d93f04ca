"""
DumpAdapter - транспортный адаптер, который логирует каждый round trip.

Оборачивает следующий адаптер (обычно HTTPAdapter сессии). Подключается
либо напрямую через session.mount(...), либо на один запрос через
dump_middleware(), который ставит адаптер в копию Client.

Example:
    >>> options = default_options()
    >>> options.filters = [ignore_path_prefix("/health")]
    >>> options.response_body_filter = lambda request: True
    >>> dispatcher.use(dump_middleware(options))
"""

import http
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.adapters import BaseAdapter, HTTPAdapter

from .body import DrainedBody, drain_body
from .options import DEFAULT_LOGGER_NAME, DumpOptions, HeaderFilter, default_options
from ..core.context import Context, ContextKey
from ..core.logging import FetchLogger
from ..core.middleware import Middleware
from ..utils.sanitizer import mask_headers, mask_url

logger = logging.getLogger(__name__)

_skip_dump_key: "ContextKey[bool]" = ContextKey("fetch_dump_skip")


def skip_dump(ctx: Optional[Context]) -> Context:
    """Контекст, запросы с которым dump_middleware не логирует."""
    return _skip_dump_key.with_value(ctx, True)


def _header_pairs(headers: Any) -> List[Tuple[str, str]]:
    if headers is None:
        return []
    if hasattr(headers, "getlist"):
        return [(key, value) for key in headers for value in headers.getlist(key)]
    return list(headers.items())


def _header_fields(pairs: Iterable[Tuple[str, str]], header_filter: Optional[HeaderFilter]) -> Dict[str, Any]:
    if header_filter is None:
        return mask_headers(pairs)

    grouped: "OrderedDict[str, List[str]]" = OrderedDict()
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)

    fields: Dict[str, Any] = {}
    for key, values in grouped.items():
        fields.update(header_filter(key, values) or {})
    return fields


def _body_fields(body: Optional[DrainedBody]) -> Dict[str, Any]:
    return body.to_fields() if body is not None else {}


def _status_text(status_code: int) -> str:
    try:
        return http.HTTPStatus(status_code).phrase
    except ValueError:
        return ""


class DumpAdapter(BaseAdapter):
    """
    Args:
        next_adapter: Адаптер, который реально отправляет запрос
        options: Настройки (по умолчанию default_options())
        options_func: Настройки на каждый запрос; имеет приоритет над options
    """

    def __init__(
        self,
        next_adapter: Optional[BaseAdapter] = None,
        options: Optional[DumpOptions] = None,
        options_func: Optional[Callable[[requests.PreparedRequest], Optional[DumpOptions]]] = None
    ):
        super().__init__()
        self.next_adapter = next_adapter if next_adapter is not None else HTTPAdapter()
        self._options_func = options_func or (lambda request: options)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        options = self._options_func(request) or default_options()

        if any(skipper(request) for skipper in options.skippers):
            return self.next_adapter.send(request, **kwargs)

        request_body = None
        if options.request_body_filter is not None and options.request_body_filter(request):
            request_body, request.body = drain_body(request.body, options.request_body_max_size)

        start = time.perf_counter()
        try:
            response = self.next_adapter.send(request, **kwargs)
        except Exception as exc:
            self._dump(options, request, None, exc, time.perf_counter() - start, request_body)
            raise

        self._dump(options, request, response, None, time.perf_counter() - start, request_body)
        return response

    def close(self) -> None:
        self.next_adapter.close()

    # ==================== Логирование ====================

    def _dump(
        self,
        options: DumpOptions,
        request: requests.PreparedRequest,
        response: Optional[requests.Response],
        error: Optional[Exception],
        duration: float,
        request_body: Optional[DrainedBody]
    ) -> None:
        status_code = response.status_code if response is not None else 0

        if not all(f(request, status_code) for f in options.filters):
            return

        response_body = None
        if (
            response is not None
            and options.response_body_filter is not None
            and options.response_body_filter(request)
        ):
            try:
                # requests отдаст прочитанное тело повторно через iter_content
                response_body, _ = drain_body(response.content, options.response_body_max_size)
            except requests.RequestException as exc:
                logger.warning("Failed to read response body for dump: %s", exc)
                return

        level = options.log_level
        if options.log_level_func is not None:
            level = options.log_level_func(request, status_code)

        sink = options.logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        if isinstance(sink, FetchLogger):
            if not sink.is_enabled_for(level):
                return
        elif not sink.isEnabledFor(level):
            return

        parts = urlsplit(request.url or "")
        fields: Dict[str, Any] = {
            "http": {
                "method": request.method,
                "url": mask_url(request.url or ""),
                "host": parts.netloc,
                "path": parts.path,
                "query": mask_url("?" + parts.query)[1:] if parts.query else "",
                "proto": "HTTP/1.1",
            },
            "duration_ms": round(duration * 1000, 3),
            "request_headers": _header_fields(_header_pairs(request.headers), options.request_header_filter),
            "request_body": _body_fields(request_body),
        }

        if options.request_attrs is not None:
            fields.update(options.request_attrs(request))

        if response is not None:
            response_group: Dict[str, Any] = {
                "status": response.status_code,
                "status_text": _status_text(response.status_code),
            }
            content_length = response.headers.get("Content-Length")
            if content_length is not None and content_length.isdigit():
                response_group["content_length"] = int(content_length)

            raw_headers = getattr(response.raw, "headers", None) or response.headers
            fields.update({
                "response": response_group,
                "response_headers": _header_fields(_header_pairs(raw_headers), options.response_header_filter),
                "response_body": _body_fields(response_body),
            })

            if options.response_attrs is not None:
                fields.update(options.response_attrs(response, duration))

        if error is not None:
            fields["error"] = str(error)

        message = "HTTP request failed" if error is not None else "HTTP request completed"

        if isinstance(sink, FetchLogger):
            sink.log(level, message, **fields)
        else:
            sink.log(level, message, extra=fields)


def dump_middleware(options: Optional[DumpOptions] = None) -> Middleware:
    """
    Логировать запросы через DumpAdapter.

    Адаптер ставится в копию Client текущего запроса; запросы с контекстом
    из skip_dump() проходят без логирования.
    """
    def middleware(handler):
        def handle(client, request):
            skip, _ = _skip_dump_key.get_value(request.context)
            if not skip:
                client.transport = DumpAdapter(client.get_adapter(str(request.url)), options)
            return handler(client, request)
        return handle
    return middleware
