"""
Handler и Middleware - основа pipeline.

Handler: (client, request) -> requests.Response, ошибки выбрасываются.
Middleware: Handler -> Handler.

Порядок выполнения compose(m1, m2, m3)(h):
    m1-before -> m2-before -> m3-before -> h -> m3-after -> m2-after -> m1-after

Middleware может не вызывать внутренний handler (short-circuit):
вернуть свой ответ или выбросить исключение.

Example:
    >>> def add_trace(handler):
    ...     def handle(client, request):
    ...         request.headers.set("X-Trace", "1")
    ...         return handler(client, request)
    ...     return handle
    >>> pipeline = compose(add_trace, skip())(round_trip)
"""

from typing import TYPE_CHECKING, Callable

import requests

if TYPE_CHECKING:
    from .client import Client
    from .models import OutgoingRequest

Handler = Callable[["Client", "OutgoingRequest"], requests.Response]
Middleware = Callable[[Handler], Handler]
RequestFunc = Callable[["OutgoingRequest"], None]


def _skip(handler: Handler) -> Handler:
    def handle(client, request):
        return handler(client, request)
    return handle


def skip() -> Middleware:
    """Middleware, который ничего не делает."""
    return _skip


def compose(*middlewares: Middleware) -> Middleware:
    """
    Собрать middlewares в один.

    compose(m1, ..., mN)(h) == m1(m2(...mN(h)...)): первый
    в списке выполняется первым.
    """
    def composed(handler: Handler) -> Handler:
        for middleware in reversed(middlewares):
            handler = middleware(handler)
        return handler
    return composed


def request_funcs(*funcs: RequestFunc) -> Middleware:
    """
    Адаптер: функции вида f(request) как middleware.

    Функции вызываются по порядку перед внутренним handler.
    """
    def middleware(handler: Handler) -> Handler:
        def handle(client, request):
            for func in funcs:
                func(request)
            return handler(client, request)
        return handle
    return middleware
