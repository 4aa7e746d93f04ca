"""
Per-request настройка транспорта.

Dispatcher передаёт в pipeline поверхностную копию Client, поэтому
изменения здесь действуют только на текущий запрос.

Example:
    >>> def short_timeout(client):
    ...     client.timeout = 0.5
    >>> request.use(client_funcs(short_timeout))
"""

from dataclasses import dataclass, field
from typing import Callable, List

from ..core.client import Client
from ..core.context import Context, ContextKey
from ..core.middleware import Middleware
from ..core.options import get_options, with_options, with_options_middleware

ClientFunc = Callable[[Client], None]


def client_funcs(*funcs: ClientFunc) -> Middleware:
    """Вызвать функции для копии Client текущего запроса."""
    def middleware(handler):
        def handle(client, request):
            for func in funcs:
                func(client)
            return handler(client, request)
        return handle
    return middleware


@dataclass
class ClientOptions:
    funcs: List[ClientFunc] = field(default_factory=list)


_client_options_key: "ContextKey" = ContextKey("prepare_client")


def prepare_client_middleware() -> Middleware:
    """Применить к копии Client функции, накопленные в контексте."""
    def middleware(handler):
        def handle(client, request):
            options, ok = get_options(_client_options_key, request, ClientOptions)
            if ok:
                for func in options.funcs:
                    func(client)
            return handler(client, request)
        return handle
    return middleware


def set_client_options(*funcs: Callable[[ClientOptions], None]) -> Middleware:
    return with_options_middleware(_client_options_key, *funcs)


def with_client_options(ctx: Context, *funcs: Callable[[ClientOptions], None]) -> Context:
    return with_options(_client_options_key, ctx, *funcs)
