"""
Иерархия исключений http-fetch.

Классификация:
- InvalidRequestError - запрос не удалось построить, pipeline не запускался
- PipelineError - ошибка из middleware (фабрика тела, опции)
- TransportError (retryable=True) - ошибка транспорта: сеть, таймаут, отмена
- ResponseError - ошибка после успешного транспорта, несёт частичный ответ
- MultipartProducerError - ошибка потока, пишущего multipart тело
"""

from typing import Optional, Tuple

import requests

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FetchError(Exception):
    """Базовое исключение http-fetch."""

    retryable: bool = False
    fatal: bool = False

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ДО ТРАНСПОРТА
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class InvalidRequestError(FetchError):
    """
    Запрос невозможно построить.

    Оборачивает исходную причину (обычно ошибку разбора URL).
    Никогда не является ошибкой транспорта.

    Args:
        error: Исходное исключение
    """
    fatal = True

    def __init__(self, error: Exception):
        self.error = error
        super().__init__(str(error))
        self.__cause__ = error

class PipelineError(FetchError):
    """
    Ошибка, возникшая внутри middleware.

    Примеры: упала фабрика тела запроса, не удалось закодировать JSON.

    Args:
        error: Исходное исключение
        stage: Имя middleware (опционально)
    """

    def __init__(self, error: Exception, stage: Optional[str] = None):
        self.error = error
        self.stage = stage

        msg = str(error)
        if stage:
            msg = f"{stage}: {msg}"

        super().__init__(msg)
        self.__cause__ = error

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ТРАНСПОРТ (retryable=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TransportError(FetchError):
    """Ошибка транспорта: соединение, таймаут, отмена."""

    retryable = True

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        full_message = f"{message}"
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """
    Таймаут запроса или истёкший deadline контекста.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        timeout: Значение таймаута
        timeout_type: Тип таймаута ('connect', 'read' или 'deadline')
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        timeout_type: Optional[str] = None
    ):
        self.timeout = timeout
        self.timeout_type = timeout_type

        msg = message
        if timeout_type:
            msg += f" ({timeout_type} timeout"
            if timeout:
                msg += f": {timeout}s"
            msg += ")"

        super().__init__(msg, url)

class ConnectionError(TransportError):
    """
    Ошибка подключения.

    Примеры:
    - Connection refused
    - Connection reset
    - SSL handshake failed
    """
    pass

class ProxyError(ConnectionError):
    """Ошибка прокси."""
    pass

class CancelledError(TransportError):
    """Контекст запроса отменён до или во время отправки."""

    retryable = False

class TooManyRedirectsError(TransportError):
    """
    Превышен лимит редиректов.

    Args:
        max_redirects: Лимит
        url: URL последнего запроса
    """

    retryable = False
    fatal = True

    def __init__(self, max_redirects: int, url: Optional[str] = None):
        self.max_redirects = max_redirects
        super().__init__(f"stopped after {max_redirects} redirects", url)

class RedirectNotAllowedError(TransportError):
    """Редирект запрещён политикой редиректов."""

    retryable = False
    fatal = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ПОСЛЕ ТРАНСПОРТА
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ResponseError(FetchError):
    """
    Ошибка вместе с частично полученным ответом.

    Используется, когда middleware на обратном пути падает
    после успешного транспорта. Ответ нужно закрыть.

    Args:
        response: requests.Response (может быть None)
        error: Исходное исключение
    """

    def __init__(self, response: Optional[requests.Response], error: Exception):
        self.response = response
        self.error = error
        super().__init__(str(error))
        self.__cause__ = error

class MultipartProducerError(FetchError):
    """
    Ошибка потока, пишущего multipart тело.

    Объединяется с ошибкой обработчика (если она была): обе видны
    в `errors`, сообщение содержит обе строки.

    Args:
        error: Ошибка producer'а
        handler_error: Ошибка внутреннего обработчика (опционально)
        response: Ответ, если транспорт успел его вернуть
    """

    def __init__(
        self,
        error: Exception,
        handler_error: Optional[Exception] = None,
        response: Optional[requests.Response] = None
    ):
        self.error = error
        self.handler_error = handler_error
        self.response = response

        lines = [str(handler_error)] if handler_error is not None else []
        lines.append(str(error))

        super().__init__("\n".join(lines))
        self.__cause__ = error

    @property
    def errors(self) -> Tuple[Exception, ...]:
        """Все объединённые ошибки: сначала обработчика, затем producer'а."""
        if self.handler_error is None:
            return (self.error,)
        return (self.handler_error, self.error)

class InvalidResponseError(FetchError):
    """
    Тело ответа не удалось декодировать.

    Примеры:
    - Битый JSON
    - Невалидный XML
    """
    fatal = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# СПЕЦИАЛЬНЫЕ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class UseLastResponse(Exception):
    """
    Сигнал от политики редиректов: не следовать редиректу,
    вернуть последний ответ как есть.
    """

class ConfigurationError(FetchError):
    """Ошибка конфигурации."""
    fatal = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(
    exc: Exception,
    url: str,
    timeout: Optional[float] = None
) -> FetchError:
    """
    Конвертировать requests.exceptions в наши исключения.

    Args:
        exc: Исключение из requests
        url: URL запроса
        timeout: Таймаут, с которым ушёл запрос

    Returns:
        Наше исключение с правильной классификацией

    Examples:
        >>> exc = requests.exceptions.ReadTimeout()
        >>> our_exc = classify_requests_exception(exc, "https://example.com", 0.05)
        >>> assert isinstance(our_exc, TimeoutError)
        >>> str(our_exc)
        'Request timeout (read timeout: 0.05s) (url: https://example.com)'
    """

    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return TimeoutError("Request timeout", url, timeout, "connect")

    elif isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError("Request timeout", url, timeout, "read")

    elif isinstance(exc, requests.exceptions.ProxyError):
        return ProxyError(f"Proxy error: {exc}", url)

    elif isinstance(exc, requests.exceptions.SSLError):
        return ConnectionError(f"SSL error: {exc}", url)

    elif isinstance(exc, requests.exceptions.ConnectionError):
        return ConnectionError(f"Connection error: {exc}", url)

    elif isinstance(exc, requests.exceptions.TooManyRedirects):
        return TransportError(f"Redirect error: {exc}", url)

    elif isinstance(exc, (
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
        requests.exceptions.InvalidHeader,
    )):
        return InvalidRequestError(exc)

    elif isinstance(exc, requests.exceptions.RequestException):
        return TransportError(f"Transport error: {exc}", url)

    else:
        # Неизвестная ошибка - оборачиваем
        return TransportError(str(exc), url)
