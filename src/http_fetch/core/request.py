"""
RequestBuilder - накопитель middlewares одного запроса.

Builder хранит только список middlewares; pipeline собирается заново
при каждой отправке, поэтому один builder можно отправлять многократно.

Example:
    >>> resp = (
    ...     dispatcher.new_request()
    ...     .header_kv("Accept", "application/json")
    ...     .add_query("page", "2")
    ...     .get("https://api.example.com/users")
    ... )
    >>> with resp:
    ...     users = resp.json()
"""

import logging
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Dict, List, Mapping, Optional

import requests

from .context import Context, background
from .exceptions import (
    InvalidRequestError,
    MultipartProducerError,
    ResponseError,
)
from .middleware import Middleware, RequestFunc, request_funcs
from .models import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    TRACE,
    OutgoingRequest,
    parse_url,
)
from .response import Response
from ..middlewares.body import (
    BodyOptions,
    body_form,
    body_get_bytes,
    body_get_reader,
    body_json,
    body_reader,
    body_xml,
)
from ..middlewares.client_options import ClientFunc, client_funcs
from ..middlewares.cookie import add_cookie, del_all_cookies
from ..middlewares.header import HeaderFunc, header_kv, set_header
from ..middlewares.multipart import MultipartField, MultipartOptions, set_multipart
from ..middlewares.query import QueryFunc, add_query_kv, del_query, set_query, set_query_kv
from ..middlewares.url import URLOptions, url_options

if TYPE_CHECKING:
    from .dispatcher import Dispatcher

logger = logging.getLogger(__name__)

BodyOption = Callable[[BodyOptions], None]


class RequestBuilder:
    """
    Цепочка middlewares для одного запроса поверх Dispatcher.

    Все методы-модификаторы возвращают тот же builder.
    Builder не потокобезопасен; для параллельной работы используйте clone().
    """

    def __init__(self, dispatcher: "Dispatcher", middlewares: Optional[List[Middleware]] = None):
        self.dispatcher = dispatcher
        self.middlewares: List[Middleware] = list(middlewares or ())

    # ==================== Middlewares ====================

    def use(self, *middlewares: Middleware) -> "RequestBuilder":
        self.middlewares.extend(middlewares)
        return self

    def use_funcs(self, *funcs: RequestFunc) -> "RequestBuilder":
        """Добавить функции f(request), вызываемые перед отправкой."""
        return self.use(request_funcs(*funcs))

    # ==================== Тело ====================

    def body(self, reader: Optional[BinaryIO], *opts: BodyOption) -> "RequestBuilder":
        """Одноразовое тело из потока."""
        return self.use(body_reader(reader, *opts))

    def body_get(self, get_reader: Optional[Callable[[], BinaryIO]], *opts: BodyOption) -> "RequestBuilder":
        """Повторяемое тело из фабрики потоков."""
        return self.use(body_get_reader(get_reader, *opts))

    def body_get_bytes(self, get_bytes: Optional[Callable[[], bytes]], *opts: BodyOption) -> "RequestBuilder":
        return self.use(body_get_bytes(get_bytes, *opts))

    def form(self, data: Mapping[str, Any], *opts: BodyOption) -> "RequestBuilder":
        return self.use(body_form(data, *opts))

    def json(self, data: Any, *opts: BodyOption) -> "RequestBuilder":
        return self.use(body_json(data, *opts))

    def xml(self, data: Any, *opts: BodyOption) -> "RequestBuilder":
        return self.use(body_xml(data, *opts))

    def multipart(
        self,
        fields: List[MultipartField],
        *opts: Callable[[MultipartOptions], None]
    ) -> "RequestBuilder":
        return self.use(set_multipart(fields, *opts))

    # ==================== Заголовки, query, cookies ====================

    def header(self, *funcs: HeaderFunc) -> "RequestBuilder":
        return self.use(set_header(*funcs))

    def header_kv(self, key: str, value: str) -> "RequestBuilder":
        return self.use(header_kv(key, value))

    def query(self, *funcs: QueryFunc) -> "RequestBuilder":
        return self.use(set_query(*funcs))

    def add_query(self, key: str, value: str) -> "RequestBuilder":
        return self.use(add_query_kv(key, value))

    def set_query(self, key: str, value: str) -> "RequestBuilder":
        return self.use(set_query_kv(key, value))

    def del_query(self, *keys: str) -> "RequestBuilder":
        return self.use(del_query(*keys))

    def cookie(self, *cookies: Any) -> "RequestBuilder":
        return self.use(add_cookie(*cookies))

    def del_all_cookies(self) -> "RequestBuilder":
        return self.use(del_all_cookies())

    # ==================== URL и транспорт ====================

    def url_options(self, *funcs: Callable[[URLOptions], None]) -> "RequestBuilder":
        return self.use(url_options(*funcs))

    def base_url(self, base_url: str) -> "RequestBuilder":
        """Подменить scheme и host (путь запроса сохраняется)."""
        def apply(options: URLOptions) -> None:
            options.base_url = base_url
        return self.url_options(apply)

    def path_params(self, params: Dict[str, str]) -> "RequestBuilder":
        """Подставить значения вместо `{name}` в пути."""
        def apply(options: URLOptions) -> None:
            options.path_params.update(params)
        return self.url_options(apply)

    def client_funcs(self, *funcs: ClientFunc) -> "RequestBuilder":
        """Настроить копию Client только для этого запроса (timeout, redirect policy...)."""
        return self.use(client_funcs(*funcs))

    def clone(self) -> "RequestBuilder":
        """Копия списка middlewares с тем же Dispatcher."""
        return RequestBuilder(self.dispatcher, self.middlewares)

    # ==================== Отправка ====================

    def do(self, request: OutgoingRequest) -> requests.Response:
        """
        Отправить готовый запрос через pipeline.

        Ошибки не перехватываются.
        """
        return self.dispatcher.dispatch(request, *self.middlewares)

    def send(self, method: str, url: str) -> Response:
        return self.send_ctx(None, method, url)

    def send_ctx(self, ctx: Optional[Context], method: str, url: str) -> Response:
        """
        Отправить запрос и обернуть результат в Response.

        Никогда не бросает: ошибка лежит в Response.error.
        Если URL не разбирается, pipeline не запускается вовсе.
        """
        request = OutgoingRequest(method=method, context=ctx if ctx is not None else background())

        try:
            request.url = parse_url(url)
        except ValueError as exc:
            return Response(request, None, InvalidRequestError(exc))

        try:
            raw_response = self.dispatcher.dispatch(request, *self.middlewares)
        except (ResponseError, MultipartProducerError) as exc:
            return Response(request, exc.response, exc)
        except Exception as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            return Response(request, None, exc)

        return Response(request, raw_response)

    # ==================== Методы ====================

    def get(self, url: str) -> Response:
        return self.send(GET, url)

    def head(self, url: str) -> Response:
        return self.send(HEAD, url)

    def post(self, url: str) -> Response:
        return self.send(POST, url)

    def put(self, url: str) -> Response:
        return self.send(PUT, url)

    def patch(self, url: str) -> Response:
        return self.send(PATCH, url)

    def delete(self, url: str) -> Response:
        return self.send(DELETE, url)

    def options(self, url: str) -> Response:
        return self.send(OPTIONS, url)

    def trace(self, url: str) -> Response:
        return self.send(TRACE, url)

    def get_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, GET, url)

    def head_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, HEAD, url)

    def post_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, POST, url)

    def put_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, PUT, url)

    def patch_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, PATCH, url)

    def delete_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, DELETE, url)

    def options_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, OPTIONS, url)

    def trace_ctx(self, ctx: Optional[Context], url: str) -> Response:
        return self.send_ctx(ctx, TRACE, url)

    def __repr__(self) -> str:
        return f"<RequestBuilder middlewares={len(self.middlewares)}>"
