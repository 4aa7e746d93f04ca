"""
Модель исходящего запроса: заголовки, URL, query и сам запрос.

Заголовки хранятся как упорядоченный multi-map с каноническими ключами
(`content-type` -> `Content-Type`). URL хранит декодированный путь;
при сериализации путь заново кодируется, поэтому `{id}` превращается
в `%7Bid%7D`.
"""

import copy
import re
from collections.abc import MutableMapping
from typing import (
    Any, BinaryIO, Callable, Dict, Iterable, Iterator, List, Mapping,
    Optional, Tuple, Union,
)
from urllib.parse import parse_qsl, quote, unquote, urlencode, urlsplit

from .context import Context, background

GET = "GET"
HEAD = "HEAD"
POST = "POST"
PUT = "PUT"
PATCH = "PATCH"
DELETE = "DELETE"
OPTIONS = "OPTIONS"
TRACE = "TRACE"

METHODS = (GET, HEAD, POST, PUT, PATCH, DELETE, OPTIONS, TRACE)

DEFAULT_PROTO = "HTTP/1.1"

BodyFactory = Callable[[], BinaryIO]

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HEADERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~"
    "0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def canonical_header_key(key: str) -> str:
    """
    Привести имя заголовка к канонической форме.

    Первая буква и каждая буква после '-' в верхнем регистре,
    остальные в нижнем. Ключи с недопустимыми символами
    возвращаются без изменений.

    Examples:
        >>> canonical_header_key("content-type")
        'Content-Type'
        >>> canonical_header_key("X-REQUEST-ID")
        'X-Request-Id'
        >>> canonical_header_key("bad key")
        'bad key'
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key

    chars = []
    upper = True
    for ch in key:
        chars.append(ch.upper() if upper else ch.lower())
        upper = ch == "-"
    return "".join(chars)


class Headers(MutableMapping):
    """
    Упорядоченный multi-map заголовков с каноническими ключами.

    Mapping-интерфейс работает с первым значением ключа;
    `add`/`get_all`/`multi_items` работают со всеми значениями.

    Example:
        >>> h = Headers()
        >>> h.add("accept", "text/html")
        >>> h.add("ACCEPT", "application/json")
        >>> h.get_all("Accept")
        ['text/html', 'application/json']
        >>> h["accept"]
        'text/html'
    """

    def __init__(self, data: Union[Mapping[str, Any], Iterable[Tuple[str, str]], None] = None):
        self._data: Dict[str, List[str]] = {}
        if data is None:
            return
        items = data.items() if isinstance(data, Mapping) else data
        for key, value in items:
            if isinstance(value, (list, tuple)):
                for v in value:
                    self.add(key, v)
            else:
                self.add(key, value)

    def add(self, key: str, value: str) -> None:
        """Добавить значение, сохранив существующие."""
        self._data.setdefault(canonical_header_key(key), []).append(str(value))

    def set(self, key: str, value: str) -> None:
        """Заменить все значения ключа одним."""
        self._data[canonical_header_key(key)] = [str(value)]

    def get_all(self, key: str) -> List[str]:
        return list(self._data.get(canonical_header_key(key), ()))

    def delete(self, key: str) -> None:
        """Удалить ключ; отсутствующий ключ игнорируется."""
        self._data.pop(canonical_header_key(key), None)

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(k, v) for k, values in self._data.items() for v in values]

    def clone(self) -> "Headers":
        cloned = Headers()
        cloned._data = {k: list(v) for k, v in self._data.items()}
        return cloned

    def __getitem__(self, key: str) -> str:
        values = self._data.get(canonical_header_key(key))
        if not values:
            raise KeyError(key)
        return values[0]

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        canonical = canonical_header_key(key)
        if canonical not in self._data:
            raise KeyError(key)
        del self._data[canonical]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# QUERY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class QueryValues:
    """
    Упорядоченный multi-map для query строки и form тела.

    `encode()` сортирует ключи; значения одного ключа идут в порядке добавления.
    """

    def __init__(self, data: Union[Mapping[str, Any], Iterable[Tuple[str, str]], None] = None):
        self._data: Dict[str, List[str]] = {}
        if data is None:
            return
        items = data.items() if isinstance(data, Mapping) else data
        for key, value in items:
            if isinstance(value, (list, tuple)):
                for v in value:
                    self.add(key, v)
            else:
                self.add(key, value)

    def add(self, key: str, value: str) -> None:
        self._data.setdefault(key, []).append(str(value))

    def set(self, key: str, value: str) -> None:
        self._data[key] = [str(value)]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        values = self._data.get(key)
        return values[0] if values else default

    def get_all(self, key: str) -> List[str]:
        return list(self._data.get(key, ()))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data)

    def encode(self) -> str:
        """Закодировать как `k=v&k2=v2` (ключи отсортированы, пробел -> '+')."""
        pairs = [(k, v) for k in sorted(self._data) for v in self._data[k]]
        return urlencode(pairs)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryValues):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"QueryValues({self._data!r})"


def parse_query(raw_query: str) -> QueryValues:
    """Разобрать `a=1&a=2&b=` в QueryValues (пустые значения сохраняются)."""
    return QueryValues(parse_qsl(raw_query, keep_blank_values=True))

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# URL
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_PATH_SAFE = "/:@!$&'()*+,;=-._~"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_CTL_RE = re.compile(r"[\x00-\x1f\x7f]")
_VALID_RAW_PATH_RE = re.compile(r"^[A-Za-z0-9/:@!$&'()*+,;=\-._~%]*$")


class URL:
    """
    Изменяемый URL исходящего запроса.

    Attributes:
        scheme: Схема (http, https) или '' для относительного URL
        host: host[:port]
        path: Декодированный путь
        raw_query: Закодированная query строка без '?'
        fragment: Фрагмент без '#'
        userinfo: user[:password] или ''
    """

    def __init__(
        self,
        scheme: str = "",
        host: str = "",
        path: str = "",
        raw_query: str = "",
        fragment: str = "",
        userinfo: str = "",
        raw_path: str = ""
    ):
        self.scheme = scheme
        self.host = host
        self.path = path
        self.raw_query = raw_query
        self.fragment = fragment
        self.userinfo = userinfo
        self.raw_path = raw_path

    @property
    def hostname(self) -> str:
        """Host без порта, в нижнем регистре."""
        host = self.host
        if host.startswith("["):
            return host[1:host.find("]")].lower()
        return host.rsplit(":", 1)[0].lower() if ":" in host else host.lower()

    def escaped_path(self) -> str:
        """
        Закодированный путь.

        raw_path используется, только если он всё ещё соответствует path;
        иначе path кодируется заново ('{' -> '%7B').
        """
        if self.raw_path and unquote(self.raw_path) == self.path:
            return self.raw_path
        return quote(self.path, safe=_PATH_SAFE)

    def query(self) -> QueryValues:
        return parse_query(self.raw_query)

    def clone(self) -> "URL":
        return copy.copy(self)

    def __str__(self) -> str:
        result = ""
        if self.scheme:
            result += self.scheme + ":"
        if self.scheme or self.host:
            result += "//"
            if self.userinfo:
                result += self.userinfo + "@"
            result += self.host
        path = self.escaped_path()
        if path and not path.startswith("/") and self.host:
            path = "/" + path
        result += path
        if self.raw_query:
            result += "?" + self.raw_query
        if self.fragment:
            result += "#" + quote(self.fragment, safe=_PATH_SAFE + "?")
        return result

    def __repr__(self) -> str:
        return f"URL({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, URL):
            return NotImplemented
        return str(self) == str(other)


def parse_url(raw: str) -> URL:
    """
    Разобрать строку в URL.

    Относительные URL допустимы (scheme и host подставит base URL middleware).

    Raises:
        ValueError: управляющие символы, пустая схема перед ':',
            невалидный порт или IPv6 адрес

    Examples:
        >>> u = parse_url("http://host/users/{id}")
        >>> u.path
        '/users/{id}'
        >>> str(u)
        'http://host/users/%7Bid%7D'
    """
    if _CTL_RE.search(raw):
        raise ValueError(f"parse {raw!r}: invalid control character in URL")
    if raw.startswith(":"):
        raise ValueError(f"parse {raw!r}: missing protocol scheme")

    scheme_part, sep, _ = raw.partition(":")
    if sep and "/" not in scheme_part and "?" not in scheme_part and not _SCHEME_RE.match(scheme_part):
        raise ValueError(f"parse {raw!r}: first path segment in URL cannot contain colon")

    parts = urlsplit(raw)

    # Доступ к port проверяет диапазон и формат
    _ = parts.port

    netloc = parts.netloc
    userinfo = ""
    if "@" in netloc:
        userinfo, _, netloc = netloc.rpartition("@")

    path = unquote(parts.path)
    raw_path = ""
    if quote(path, safe=_PATH_SAFE) != parts.path and _VALID_RAW_PATH_RE.match(parts.path):
        # Альтернативная кодировка (например, %2F) сохраняется как есть
        raw_path = parts.path

    return URL(
        scheme=parts.scheme.lower(),
        host=netloc,
        path=path,
        raw_query=parts.query,
        fragment=unquote(parts.fragment),
        userinfo=userinfo,
        raw_path=raw_path,
    )

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# OUTGOING REQUEST
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_COOKIE_VALUE_BAD = re.compile(r'[\x00-\x20\x22\x2c\x3b\x5c\x7f]')


def _sanitize_cookie_value(value: str) -> str:
    quoted = " " in value or "," in value
    value = "".join(ch for ch in value if ch in (" ", ",") or not _COOKIE_VALUE_BAD.match(ch))
    if quoted:
        return f'"{value}"'
    return value


def _sanitize_cookie_name(name: str) -> str:
    return name.replace("\n", "-").replace("\r", "-")


class OutgoingRequest:
    """
    Исходящий запрос, который проходит через pipeline.

    Тело задаётся одним из двух способов:
    - `body` - одноразовый поток, читается один раз
    - `get_body` - фабрика, на каждый вызов отдаёт новый поток
      (безопасно для повторов). Установка фабрики очищает `body`.

    Attributes:
        method: HTTP метод
        url: URL
        headers: Заголовки
        content_length: Длина тела, если известна (None = неизвестна)
        context: Контекст запроса
        proto: Версия протокола
    """

    def __init__(
        self,
        method: str = GET,
        url: Optional[URL] = None,
        headers: Optional[Headers] = None,
        context: Optional[Context] = None,
        proto: str = DEFAULT_PROTO
    ):
        self.method = method
        self.url = url if url is not None else URL()
        self.headers = headers if headers is not None else Headers()
        self.body: Optional[BinaryIO] = None
        self._get_body: Optional[BodyFactory] = None
        self.content_length: Optional[int] = None
        self.context = context if context is not None else background()
        self.proto = proto

    @property
    def get_body(self) -> Optional[BodyFactory]:
        return self._get_body

    @get_body.setter
    def get_body(self, factory: Optional[BodyFactory]) -> None:
        self._get_body = factory
        if factory is not None:
            self.body = None

    def open_body(self) -> Optional[BinaryIO]:
        """
        Поток тела для отправки.

        Одноразовое тело имеет приоритет; иначе вызывается фабрика.
        """
        if self.body is not None:
            return self.body
        if self._get_body is not None:
            return self._get_body()
        return None

    def add_cookie(self, cookie: Any) -> None:
        """
        Добавить cookie в заголовок `Cookie` (через '; ').

        Args:
            cookie: объект с атрибутами name и value
                (например, результат requests.cookies.create_cookie)
        """
        pair = f"{_sanitize_cookie_name(cookie.name)}={_sanitize_cookie_value(cookie.value or '')}"
        existing = self.headers.get("Cookie")
        if existing:
            self.headers.set("Cookie", f"{existing}; {pair}")
        else:
            self.headers.set("Cookie", pair)

    def cookies(self) -> List[Tuple[str, str]]:
        """Пары (name, value) из заголовков `Cookie`."""
        result = []
        for line in self.headers.get_all("Cookie"):
            for part in line.split(";"):
                name, sep, value = part.strip().partition("=")
                if sep and name:
                    result.append((name, value.strip('"')))
        return result

    def with_context(self, ctx: Context) -> "OutgoingRequest":
        """
        Поверхностная копия запроса с новым контекстом.

        Заголовки и URL общие с исходным запросом.
        """
        if ctx is None:
            raise ValueError("nil context")
        clone = copy.copy(self)
        clone.context = ctx
        return clone

    def clone(self, ctx: Optional[Context] = None) -> "OutgoingRequest":
        """Копия с независимыми заголовками и URL."""
        clone = copy.copy(self)
        clone.url = self.url.clone()
        clone.headers = self.headers.clone()
        if ctx is not None:
            clone.context = ctx
        return clone

    def __repr__(self) -> str:
        return f"<OutgoingRequest [{self.method} {self.url}]>"
