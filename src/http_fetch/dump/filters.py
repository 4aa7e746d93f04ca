"""
Фильтры для dump: решают, попадёт ли запрос в лог.

Filter получает requests.PreparedRequest и статус ответа
(0, если ответа нет) и возвращает True, если запрос нужно залогировать.

Example:
    >>> options = default_options()
    >>> options.filters = [
    ...     ignore_path_prefix("/health"),
    ...     accept_status_greater_than_or_equal(400),
    ... ]
"""

import re
from typing import Callable, Iterable, Pattern, Union
from urllib.parse import urlsplit

import requests

Filter = Callable[[requests.PreparedRequest, int], bool]


def _path(request: requests.PreparedRequest) -> str:
    return urlsplit(request.url or "").path


def _host(request: requests.PreparedRequest) -> str:
    return urlsplit(request.url or "").netloc


def _compile(patterns: Iterable[Union[str, Pattern]]):
    return [re.compile(p) if isinstance(p, str) else p for p in patterns]


def accept(filter: Filter) -> Filter:
    return filter


def ignore(filter: Filter) -> Filter:
    """Инвертировать фильтр."""
    return lambda request, status: not filter(request, status)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# METHOD
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def accept_method(*methods: str) -> Filter:
    """Методы сравниваются без учёта регистра."""
    wanted = {m.lower() for m in methods}
    return lambda request, status: (request.method or "").lower() in wanted


def ignore_method(*methods: str) -> Filter:
    return ignore(accept_method(*methods))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# STATUS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def accept_status(*statuses: int) -> Filter:
    wanted = set(statuses)
    return lambda request, status: status in wanted


def ignore_status(*statuses: int) -> Filter:
    return ignore(accept_status(*statuses))


def accept_status_greater_than(status: int) -> Filter:
    return lambda request, response_status: response_status > status


def accept_status_greater_than_or_equal(status: int) -> Filter:
    return lambda request, response_status: response_status >= status


def accept_status_less_than(status: int) -> Filter:
    return lambda request, response_status: response_status < status


def accept_status_less_than_or_equal(status: int) -> Filter:
    return lambda request, response_status: response_status <= status


def ignore_status_greater_than(status: int) -> Filter:
    return accept_status_less_than_or_equal(status)


def ignore_status_greater_than_or_equal(status: int) -> Filter:
    return accept_status_less_than(status)


def ignore_status_less_than(status: int) -> Filter:
    return accept_status_greater_than_or_equal(status)


def ignore_status_less_than_or_equal(status: int) -> Filter:
    return accept_status_greater_than(status)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PATH
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def accept_path(*paths: str) -> Filter:
    """Точное совпадение пути."""
    wanted = set(paths)
    return lambda request, status: _path(request) in wanted


def ignore_path(*paths: str) -> Filter:
    return ignore(accept_path(*paths))


def accept_path_contains(*parts: str) -> Filter:
    return lambda request, status: any(part in _path(request) for part in parts)


def ignore_path_contains(*parts: str) -> Filter:
    return ignore(accept_path_contains(*parts))


def accept_path_prefix(*prefixes: str) -> Filter:
    return lambda request, status: _path(request).startswith(tuple(prefixes))


def ignore_path_prefix(*prefixes: str) -> Filter:
    return ignore(accept_path_prefix(*prefixes))


def accept_path_suffix(*suffixes: str) -> Filter:
    return lambda request, status: _path(request).endswith(tuple(suffixes))


def ignore_path_suffix(*suffixes: str) -> Filter:
    return ignore(accept_path_suffix(*suffixes))


def accept_path_match(*patterns: Union[str, Pattern]) -> Filter:
    """Путь совпадает хотя бы с одним регулярным выражением (re.search)."""
    regs = _compile(patterns)
    return lambda request, status: any(reg.search(_path(request)) for reg in regs)


def ignore_path_match(*patterns: Union[str, Pattern]) -> Filter:
    return ignore(accept_path_match(*patterns))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HOST
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def accept_host(*hosts: str) -> Filter:
    """Точное совпадение host[:port]."""
    wanted = set(hosts)
    return lambda request, status: _host(request) in wanted


def ignore_host(*hosts: str) -> Filter:
    return ignore(accept_host(*hosts))


def accept_host_contains(*parts: str) -> Filter:
    return lambda request, status: any(part in _host(request) for part in parts)


def ignore_host_contains(*parts: str) -> Filter:
    return ignore(accept_host_contains(*parts))


def accept_host_prefix(*prefixes: str) -> Filter:
    return lambda request, status: _host(request).startswith(tuple(prefixes))


def ignore_host_prefix(*prefixes: str) -> Filter:
    return ignore(accept_host_prefix(*prefixes))


def accept_host_suffix(*suffixes: str) -> Filter:
    return lambda request, status: _host(request).endswith(tuple(suffixes))


def ignore_host_suffix(*suffixes: str) -> Filter:
    return ignore(accept_host_suffix(*suffixes))


def accept_host_match(*patterns: Union[str, Pattern]) -> Filter:
    regs = _compile(patterns)
    return lambda request, status: any(reg.search(_host(request)) for reg in regs)


def ignore_host_match(*patterns: Union[str, Pattern]) -> Filter:
    return ignore(accept_host_match(*patterns))
