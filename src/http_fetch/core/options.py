"""
Мост между контекстом и опциями middleware.

Каждое семейство опций (URL, заголовки, cookies, клиент) объявляет свой
ContextKey. В контексте под ключом лежит кортеж функций-мутаторов;
кортеж никогда не меняется на месте, добавление создаёт новый.

Опции материализуются только в момент использования:
get_options() создаёт свежий объект через defaults() и применяет
к нему все мутаторы по порядку.
"""

from typing import Callable, Optional, Tuple, TypeVar

from .context import Context, ContextKey, background
from .middleware import Middleware, skip
from .models import OutgoingRequest

T = TypeVar("T")

OptionsKey = ContextKey[Tuple[Callable[[T], None], ...]]


def apply_options(options: T, *mutators: Callable[[T], None]) -> T:
    """Применить мутаторы к объекту опций и вернуть его."""
    for mutator in mutators:
        mutator(options)
    return options


def with_options(
    key: "OptionsKey",
    ctx: Optional[Context],
    *mutators: Callable[[T], None]
) -> Context:
    """
    Добавить мутаторы к списку под ключом.

    Исходный контекст не меняется; None означает background().
    """
    if ctx is None:
        ctx = background()

    existing, _ = key.get_value(ctx)
    return key.with_value(ctx, tuple(existing or ()) + tuple(mutators))


def get_options(
    key: "OptionsKey",
    request: OutgoingRequest,
    defaults: Callable[[], T]
) -> Tuple[Optional[T], bool]:
    """
    Материализовать опции из контекста запроса.

    Returns:
        (options, True) если ключ есть в контексте, иначе (None, False)
    """
    mutators, ok = key.get_value(request.context)
    if not ok:
        return None, False
    return apply_options(defaults(), *mutators), True


def with_options_middleware(key: "OptionsKey", *mutators: Callable[[T], None]) -> Middleware:
    """
    Middleware, который кладёт мутаторы в контекст запроса.

    Пустой список мутаторов даёт skip().
    """
    if not mutators:
        return skip()

    def middleware(handler):
        def handle(client, request):
            request = request.with_context(with_options(key, request.context, *mutators))
            return handler(client, request)
        return handle
    return middleware
