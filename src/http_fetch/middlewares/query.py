"""Query string middlewares."""

from typing import Callable, Iterable, Mapping

from ..core.middleware import Middleware
from ..core.models import QueryValues

QueryFunc = Callable[[QueryValues], None]


def set_query(*funcs: QueryFunc) -> Middleware:
    """
    Разобрать query строку, применить функции и закодировать обратно.

    Ключи после кодирования отсортированы.
    """
    def middleware(handler):
        def handle(client, request):
            query = request.url.query()
            for func in funcs:
                func(query)
            request.url.raw_query = query.encode()
            return handler(client, request)
        return handle
    return middleware


def add_query_kv(key: str, value: str) -> Middleware:
    return set_query(lambda query: query.add(key, value))


def set_query_kv(key: str, value: str) -> Middleware:
    return set_query(lambda query: query.set(key, value))


def add_query_from_map(params: Mapping[str, str]) -> Middleware:
    def apply(query: QueryValues) -> None:
        for key, value in params.items():
            query.add(key, value)
    return set_query(apply)


def set_query_from_map(params: Mapping[str, str]) -> Middleware:
    def apply(query: QueryValues) -> None:
        for key, value in params.items():
            query.set(key, value)
    return set_query(apply)


def del_query(*keys: str) -> Middleware:
    def apply(query: QueryValues) -> None:
        for key in keys:
            query.delete(key)
    return set_query(apply)
