"""
URL middleware: base URL, path параметры, дополнительные query параметры.

Опции накапливаются в контексте (`set_url_options` / `with_url_options`)
и применяются `prepare_url_middleware` перед отправкой.

Example:
    >>> req = dispatcher.new_request().base_url("api.example.com").path_params({"id": "42"})
    >>> req.get("/users/{id}")   # GET http://api.example.com/users/42
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict

from ..core.context import Context, ContextKey
from ..core.exceptions import InvalidRequestError
from ..core.middleware import Middleware, skip
from ..core.models import URL, QueryValues, parse_url
from ..core.options import apply_options, get_options, with_options, with_options_middleware

_SCHEME_PREFIX_RE = re.compile(r"^https?://")


@dataclass
class URLOptions:
    """
    Attributes:
        base_url: Подменяет scheme и host запроса (путь запроса сохраняется)
        path_params: Замены для плейсхолдеров `{name}` в пути
        query_params: Параметры, дописываемые к query строке
    """
    base_url: str = ""
    path_params: Dict[str, str] = field(default_factory=dict)
    query_params: QueryValues = field(default_factory=QueryValues)


_url_options_key: "ContextKey" = ContextKey("prepare_url")


def normalize(uri: str) -> str:
    """
    Добавить `http://`, если схема не указана.

    Examples:
        >>> normalize("api.example.com")
        'http://api.example.com'
        >>> normalize("https://api.example.com")
        'https://api.example.com'
    """
    if _SCHEME_PREFIX_RE.match(uri):
        return uri
    return "http://" + uri


def normalize_path(path: str) -> str:
    if path == "/":
        return ""
    return path


def apply_url_options(url: URL, options: URLOptions) -> None:
    """
    Применить URLOptions к URL.

    Path параметры подставляются как есть, без кодирования; незаменённые
    плейсхолдеры остаются в пути и при отправке становятся `%7Bname%7D`.

    Raises:
        InvalidRequestError: base URL не разбирается
    """
    if options.base_url:
        try:
            base = parse_url(normalize(options.base_url))
        except ValueError as exc:
            raise InvalidRequestError(exc) from exc

        url.scheme = base.scheme
        url.host = base.host

        if base.path and base.path != "/":
            url.path = normalize_path(url.path)

    for key, value in options.path_params.items():
        url.path = url.path.replace("{" + key + "}", value)

    if len(options.query_params) > 0:
        encoded = options.query_params.encode()
        url.raw_query = f"{url.raw_query}&{encoded}" if url.raw_query else encoded


def prepare_url_middleware() -> Middleware:
    """Применить URLOptions, накопленные в контексте запроса."""
    def middleware(handler):
        def handle(client, request):
            options, ok = get_options(_url_options_key, request, URLOptions)
            if ok:
                apply_url_options(request.url, options)
            return handler(client, request)
        return handle
    return middleware


def url_options(*funcs: Callable[[URLOptions], None]) -> Middleware:
    """
    Применить URLOptions, собранные только из `funcs`, без контекста.

    Каждый вызов независим: повторное использование не дублирует
    query параметры предыдущих вызовов.
    """
    if not funcs:
        return skip()

    def middleware(handler):
        def handle(client, request):
            apply_url_options(request.url, apply_options(URLOptions(), *funcs))
            return handler(client, request)
        return handle
    return middleware


def set_url_options(*funcs: Callable[[URLOptions], None]) -> Middleware:
    return with_options_middleware(_url_options_key, *funcs)


def with_url_options(ctx: Context, *funcs: Callable[[URLOptions], None]) -> Context:
    return with_options(_url_options_key, ctx, *funcs)
