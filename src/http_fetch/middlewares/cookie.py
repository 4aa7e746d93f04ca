"""
Cookie middlewares.

Cookie - любой объект с атрибутами `name` и `value`
(например, requests.cookies.create_cookie(...)).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List

from ..core.context import Context, ContextKey
from ..core.middleware import Middleware
from ..core.options import get_options, with_options, with_options_middleware


def add_cookie(*cookies: Any) -> Middleware:
    """Добавить cookies в заголовок Cookie запроса."""
    def middleware(handler):
        def handle(client, request):
            for cookie in cookies:
                request.add_cookie(cookie)
            return handler(client, request)
        return handle
    return middleware


def del_all_cookies() -> Middleware:
    """Удалить заголовок Cookie (cookie jar сессии это не затрагивает)."""
    def middleware(handler):
        def handle(client, request):
            request.headers.delete("Cookie")
            return handler(client, request)
        return handle
    return middleware


@dataclass
class CookieOptions:
    cookies: List[Any] = field(default_factory=list)


_cookie_options_key: "ContextKey" = ContextKey("prepare_cookie")


def prepare_cookie_middleware() -> Middleware:
    """
    Заменить cookies запроса на собранные из контекста.

    Заголовок Cookie очищается, затем все cookies добавляются заново.
    """
    def middleware(handler):
        def handle(client, request):
            options, ok = get_options(_cookie_options_key, request, CookieOptions)
            if ok:
                request.headers.delete("Cookie")
                for cookie in options.cookies:
                    request.add_cookie(cookie)
            return handler(client, request)
        return handle
    return middleware


def set_cookie_options(*funcs: Callable[[CookieOptions], None]) -> Middleware:
    return with_options_middleware(_cookie_options_key, *funcs)


def with_cookie_options(ctx: Context, *funcs: Callable[[CookieOptions], None]) -> Context:
    return with_options(_cookie_options_key, ctx, *funcs)
