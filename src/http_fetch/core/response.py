"""
Response - обёртка над requests.Response, возвращаемая из send().

Создаётся всегда, даже если запрос не удался: ошибка лежит в `error`,
и `close()` безопасно вызывать на любом пути.

Тело читается лениво: `bytes()`/`string()`/`json()`/`xml()` один раз
вычитывают его во внутренний буфер и закрывают поток.

Example:
    >>> with dispatcher.new_request().get("https://api.example.com/users") as resp:
    ...     if resp.error is None:
    ...         users = resp.json()
"""

import json as jsonlib
import logging
import time
import xml.etree.ElementTree as ET
from typing import Any, Iterator, List, Optional

import requests
from pydantic import TypeAdapter, ValidationError

from .client import response_deadline
from .exceptions import FetchError, InvalidResponseError, TimeoutError, classify_requests_exception
from .models import Headers, OutgoingRequest

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32 * 1024


class Response:
    """
    Результат запроса.

    Attributes:
        error: Ошибка запроса (None при успехе) - единственный источник истины
        header: Заголовки ответа (пустые при ошибке)
        cookies: Cookies из ответа (http.cookiejar.Cookie)
        raw_request: Исходящий запрос (может быть None)
        raw_response: requests.Response (может быть None)
    """

    def __init__(
        self,
        request: Optional[OutgoingRequest],
        raw_response: Optional[requests.Response],
        error: Optional[Exception] = None
    ):
        self.error = error
        self.raw_request = request
        self.raw_response = raw_response
        self.header = Headers()
        self.cookies: List[Any] = []

        self._content: Optional[bytes] = None
        self._chunks: Optional[Iterator[bytes]] = None
        self._pending = b""
        self._closed = False
        self._close_error: Optional[Exception] = None

        if error is None and raw_response is not None:
            self.header = Headers(_raw_header_items(raw_response))
            self.cookies = list(raw_response.cookies)

    # ==================== Свойства ====================

    @property
    def status_code(self) -> int:
        if self.raw_response is None:
            return 0
        return self.raw_response.status_code

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 400

    # ==================== Чтение тела ====================

    def _iter_chunks(self) -> Iterator[bytes]:
        if self._chunks is None:
            self._chunks = self.raw_response.iter_content(CHUNK_SIZE)
        return self._chunks

    def read(self, size: int = -1) -> bytes:
        """
        Прочитать до `size` байт тела (-1 - до конца).

        Raises:
            Исключение из `error`, если запрос не удался
            TransportError: ошибка при чтении потока (сохраняется в `error`)
            CancelledError, TimeoutError: контекст отменён или истёк таймаут
                запроса во время чтения
        """
        if self.error is not None:
            raise self.error
        if self.raw_response is None or self._closed:
            return b""

        out = bytearray(self._pending)
        self._pending = b""

        try:
            chunks = self._iter_chunks()
            while size < 0 or len(out) < size:
                self._check_live()
                chunk = next(chunks, b"")
                if not chunk:
                    break
                out += chunk
        except requests.RequestException as exc:
            self.error = classify_requests_exception(exc, self.raw_response.url)
            self._close_body()
            raise self.error from exc

        if 0 <= size < len(out):
            self._pending = bytes(out[size:])
            del out[size:]

        return bytes(out)

    def _check_live(self) -> None:
        """Прервать чтение, если контекст отменён или deadline запроса истёк."""
        err = None
        if self.raw_request is not None:
            err = self.raw_request.context.err()

        deadline = response_deadline(self.raw_response)
        if err is None and deadline is not None and time.monotonic() >= deadline:
            err = TimeoutError("Request timeout", timeout_type="deadline")

        if err is not None:
            err.url = self.raw_response.url
            self.error = err
            self._close_body(drain=False)
            raise err

    def _populate(self) -> None:
        if self._content is not None or self.raw_response is None:
            return

        try:
            if self.raw_response.headers.get("Content-Length") == "0":
                self._content = b""
                return
            self._content = self.read()
        except FetchError as exc:
            # Ошибка уже записана в self.error
            logger.debug("Failed to read response body: %s", exc)
        finally:
            self.close()

    def bytes(self) -> bytes:
        """Тело целиком; b"" при ошибке."""
        if self.error is not None:
            return b""
        self._populate()
        if self.error is not None or self._content is None:
            return b""
        return self._content

    def string(self) -> str:
        """Тело как строка (charset из Content-Type, иначе UTF-8); "" при ошибке."""
        data = self.bytes()
        if not data:
            return ""
        return data.decode(self._charset(), errors="replace")

    def _charset(self) -> str:
        content_type = self.header.get("Content-Type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip('"\'')
        return "utf-8"

    def json(self, model: Any = None) -> Any:
        """
        Декодировать тело как JSON.

        Args:
            model: Тип для валидации (pydantic модель, dataclass, List[...] ...)

        Returns:
            Данные (или экземпляр model); None при ошибке запроса или пустом теле

        Raises:
            InvalidResponseError: невалидный JSON или данные не прошли валидацию
        """
        data = self.bytes()
        if self.error is not None or not data.strip():
            return None

        try:
            if model is not None:
                return TypeAdapter(model).validate_json(data)
            return jsonlib.loads(data)
        except (ValueError, ValidationError) as exc:
            raise InvalidResponseError(f"Invalid JSON response: {exc}") from exc

    def xml(self) -> Optional[ET.Element]:
        """
        Декодировать тело как XML.

        Returns:
            Корневой элемент; None при ошибке запроса или пустом теле

        Raises:
            InvalidResponseError: невалидный XML
        """
        data = self.bytes()
        if self.error is not None or not data.strip():
            return None

        try:
            return ET.fromstring(data)
        except ET.ParseError as exc:
            raise InvalidResponseError(f"Invalid XML response: {exc}") from exc

    def save_to_file(self, path: str) -> None:
        """
        Записать тело в файл.

        Использует внутренний буфер, если тело уже прочитано.

        Raises:
            Исключение из `error`; OSError при работе с файлом
        """
        if self.error is not None:
            raise self.error

        try:
            with open(path, "wb") as fd:
                if self._content is not None:
                    fd.write(self._content)
                    return
                while True:
                    chunk = self.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    fd.write(chunk)
        finally:
            self.close()

    def clear_internal_buffer(self) -> None:
        """Сбросить внутренний буфер; ничего не делает при ошибке."""
        if self.error is not None:
            return
        self._content = None

    # ==================== Жизненный цикл ====================

    def _close_body(self, drain: bool = True) -> None:
        raw = self.raw_response
        if raw is None:
            return
        try:
            if drain and raw.raw is not None and hasattr(raw.raw, "drain_conn"):
                raw.raw.drain_conn()
            raw.close()
        except (OSError, requests.RequestException) as exc:
            self._close_error = exc

    def close(self) -> Optional[Exception]:
        """
        Дочитать и закрыть тело. Идемпотентно, никогда не бросает.

        Returns:
            Ошибку запроса, если она была; иначе ошибку закрытия или None
        """
        if not self._closed:
            self._closed = True
            self._close_body()

        if self.error is not None:
            return self.error
        return self._close_error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __str__(self) -> str:
        return self.string()

    def __repr__(self) -> str:
        if self.error is not None:
            return f"<Response [error: {self.error}]>"
        return f"<Response [{self.status_code}]>"


def _raw_header_items(raw_response: requests.Response):
    raw = getattr(raw_response, "raw", None)
    headers = getattr(raw, "headers", None)
    if headers is not None and hasattr(headers, "getlist"):
        # urllib3 хранит повторяющиеся заголовки раздельно
        return [(key, value) for key in headers for value in headers.getlist(key)]
    return list(raw_response.headers.items())

