"""
Header middlewares.

`set_header` меняет заголовки запроса напрямую; `set_header_options`
кладёт мутаторы в контекст, а `prepare_header_middleware` применяет
их перед отправкой.
"""

from dataclasses import dataclass, field
from typing import Callable

from ..core.context import Context, ContextKey
from ..core.middleware import Middleware
from ..core.models import Headers
from ..core.options import get_options, with_options, with_options_middleware

HeaderFunc = Callable[[Headers], None]


def set_header(*funcs: HeaderFunc) -> Middleware:
    """Применить функции к заголовкам запроса (ключи уже канонические)."""
    def middleware(handler):
        def handle(client, request):
            for func in funcs:
                func(request.headers)
            return handler(client, request)
        return handle
    return middleware


def header_kv(key: str, value: str) -> Middleware:
    """Установить один заголовок."""
    return set_header(lambda headers: headers.set(key, value))


@dataclass
class HeaderOptions:
    header: Headers = field(default_factory=Headers)


_header_options_key: "ContextKey" = ContextKey("prepare_header")


def prepare_header_middleware() -> Middleware:
    """
    Применить HeaderOptions из контекста.

    Мутаторы видят сами заголовки запроса, поэтому изменения
    попадают в запрос напрямую.
    """
    def middleware(handler):
        def handle(client, request):
            options, ok = get_options(
                _header_options_key, request, lambda: HeaderOptions(header=request.headers)
            )
            if ok:
                request.headers = options.header
            return handler(client, request)
        return handle
    return middleware


def set_header_options(*funcs: Callable[[HeaderOptions], None]) -> Middleware:
    return with_options_middleware(_header_options_key, *funcs)


def with_header_options(ctx: Context, *funcs: Callable[[HeaderOptions], None]) -> Context:
    return with_options(_header_options_key, ctx, *funcs)
