"""
Client - транспорт, вокруг которого строится pipeline.

Client держит requests.Session (пул соединений, cookie jar, заголовки
сессии) и per-request настройки: timeout, политику редиректов, SSL.
Dispatcher делает поверхностную копию Client на каждый запрос, поэтому
middleware может менять поля копии, не затрагивая общий Client.

round_trip() - лист pipeline: готовит requests.PreparedRequest из
OutgoingRequest, отправляет его через адаптер и сам следует редиректам.
"""

import copy
import logging
import threading
import time
from datetime import timedelta
from typing import BinaryIO, Callable, Dict, List, Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.cookies import extract_cookies_to_jar

from .config import ClientConfig, DEFAULT_MAX_REDIRECTS, DEFAULT_TIMEOUT
from .context import Context
from .exceptions import (
    FetchError,
    PipelineError,
    RedirectNotAllowedError,
    TimeoutError,
    TooManyRedirectsError,
    UseLastResponse,
    classify_requests_exception,
)
from .logging.filters import get_request_id, set_request_id
from .models import OutgoingRequest
from ..utils.streams import close_quietly, iter_chunks

logger = logging.getLogger(__name__)

RedirectPolicy = Callable[[requests.PreparedRequest, List[requests.PreparedRequest]], None]

_BODY_HEADERS = ("Content-Length", "Content-Type", "Transfer-Encoding")


def create_session(config: Optional[ClientConfig] = None) -> requests.Session:
    """Create a session configured from `config`."""
    config = config or ClientConfig()
    session = requests.Session()

    # Повторы - забота middleware, не адаптера
    adapter = HTTPAdapter(max_retries=0)
    session.mount('http://', adapter)
    session.mount('https://', adapter)

    if config.headers:
        session.headers.update(config.headers)
    if config.proxies:
        session.proxies.update(config.proxies)

    return session


class Client:
    """
    Транспорт и его per-request настройки.

    Args:
        session: requests.Session (по умолчанию создаётся новая)
        timeout: Таймаут запроса (сек); None - без таймаута
        allow_redirects: Следовать редиректам
        max_redirects: Лимит редиректов для политики по умолчанию
        redirect_policy: Функция (next_request, via) -> None; может
            выбросить UseLastResponse или ошибку
        verify: Проверка SSL (bool или путь к CA bundle)
        proxies: Прокси для запросов
        cert: Клиентский сертификат
        transport: Адаптер вместо смонтированного в сессии

    Example:
        >>> client = Client(timeout=5)
        >>> client.redirect_policy = no_redirect_policy()
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        allow_redirects: bool = True,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        redirect_policy: Optional[RedirectPolicy] = None,
        verify=True,
        proxies: Optional[Dict[str, str]] = None,
        cert=None,
        transport: Optional[BaseAdapter] = None
    ):
        self.session = session if session is not None else create_session()
        self.timeout = timeout
        self.allow_redirects = allow_redirects
        self.max_redirects = max_redirects
        self.redirect_policy = redirect_policy
        self.verify = verify
        self.proxies = dict(proxies) if proxies else {}
        self.cert = cert
        self.transport = transport

    @classmethod
    def from_config(cls, config: ClientConfig) -> "Client":
        return cls(
            session=create_session(config),
            timeout=config.timeout,
            allow_redirects=config.allow_redirects,
            max_redirects=config.max_redirects,
            verify=config.verify_ssl,
        )

    def get_adapter(self, url: str) -> BaseAdapter:
        if self.transport is not None:
            return self.transport
        return self.session.get_adapter(url)

    def close(self) -> None:
        """Закрыть сессию и её соединения."""
        self.session.close()

    def __repr__(self) -> str:
        return f"<Client timeout={self.timeout} allow_redirects={self.allow_redirects}>"


def clone_client(client: Optional[Client]) -> Optional[Client]:
    """
    Поверхностная копия: та же сессия и транспорт, новый держатель полей.
    """
    if client is None:
        return None
    clone = copy.copy(client)
    clone.proxies = dict(client.proxies)
    return clone

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# REDIRECT POLICIES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _hostname(url: str) -> str:
    return (requests.utils.urlparse(url).hostname or "").lower()


def no_redirect_policy() -> RedirectPolicy:
    """Не следовать редиректам: вернуть 3xx ответ как есть."""
    def policy(request, via):
        raise UseLastResponse()
    return policy


def flexible_redirect_policy(max_redirects: int) -> RedirectPolicy:
    """Следовать не более чем `max_redirects` редиректам."""
    def policy(request, via):
        if len(via) >= max_redirects:
            raise TooManyRedirectsError(max_redirects, request.url)
    return policy


def domain_check_redirect_policy(*hostnames: str) -> RedirectPolicy:
    """Следовать редиректам только на перечисленные хосты."""
    allowed = {h.lower() for h in hostnames}

    def policy(request, via):
        if _hostname(request.url) not in allowed:
            raise RedirectNotAllowedError(
                "redirect is not allowed as per domain check policy", request.url
            )
    return policy

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ROUND TRIP
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

# Как часто ожидающий поток проверяет отмену и deadline (сек)
WATCH_INTERVAL = 0.01

DEADLINE_ATTR = "fetch_deadline"


def response_deadline(response: Optional[requests.Response]) -> Optional[float]:
    """Крайний срок (time.monotonic) для чтения тела ответа от round_trip."""
    return getattr(response, DEADLINE_ATTR, None)


def _request_deadline(client: Client, ctx: Context) -> Optional[float]:
    """
    Крайний срок всего запроса: min(сейчас + client.timeout, deadline контекста).

    Покрывает соединение, отправку, редиректы и чтение тела.
    """
    deadline = ctx.deadline
    if client.timeout is not None:
        end = time.monotonic() + client.timeout
        deadline = end if deadline is None else min(deadline, end)
    return deadline


def _socket_timeout(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.001)


def _check_context(ctx: Context, url: str) -> None:
    err = ctx.err()
    if err is not None:
        err.url = url
        raise err


def _done_error(client: Client, ctx: Context, url: str) -> Exception:
    err = ctx.err()
    if err is not None:
        err.url = url
        return err
    return TimeoutError("Request timeout", url, client.timeout, "deadline")


class _InFlight:
    """
    adapter.send в отдельном потоке.

    Вызывающий ждёт ответа, отмены контекста или deadline. Брошенный
    запрос дорабатывает в фоне, его ответ закрывается сразу по приходу.
    """

    def __init__(self, send: Callable[[], requests.Response]):
        self._send = send
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._abandoned = False
        self._response: Optional[requests.Response] = None
        self._error: Optional[Exception] = None
        self._request_id = get_request_id()

        threading.Thread(target=self._run, name="http-fetch-send", daemon=True).start()

    def _run(self) -> None:
        if self._request_id:
            set_request_id(self._request_id)

        response, error = None, None
        try:
            response = self._send()
        except Exception as exc:
            error = exc
        finally:
            with self._lock:
                self._response, self._error = response, error
                abandoned = self._abandoned
                self._done.set()

        if abandoned and response is not None:
            logger.debug("Closing response of abandoned request to %s", response.url)
            response.close()

    def wait(
        self,
        ctx: Context,
        deadline: Optional[float],
        stop: Callable[[], Exception]
    ) -> requests.Response:
        """
        Raises:
            Исключение из adapter.send как есть
            Результат stop(): контекст отменён или deadline истёк раньше ответа
        """
        while not self._done.wait(WATCH_INTERVAL):
            if ctx.err() is None and (deadline is None or time.monotonic() < deadline):
                continue
            with self._lock:
                if not self._done.is_set():
                    self._abandoned = True
                    raise stop()

        if self._error is not None:
            raise self._error
        return self._response


def _prepare(client: Client, request: OutgoingRequest) -> requests.PreparedRequest:
    headers = {}
    for key in request.headers:
        values = request.headers.get_all(key)
        headers[key] = ("; " if key == "Cookie" else ", ").join(values)

    return client.session.prepare_request(
        requests.Request(method=request.method, url=str(request.url), headers=headers)
    )


def _attach_body(prepared: requests.PreparedRequest, body, content_length: Optional[int]) -> None:
    for header in ("Content-Length", "Transfer-Encoding"):
        prepared.headers.pop(header, None)

    prepared.body = iter_chunks(body)
    if content_length is not None and content_length >= 0:
        prepared.headers["Content-Length"] = str(content_length)
    else:
        prepared.headers["Transfer-Encoding"] = "chunked"


def _send(
    client: Client,
    prepared: requests.PreparedRequest,
    ctx: Context,
    deadline: Optional[float]
) -> requests.Response:
    timeout = _socket_timeout(deadline)
    settings = client.session.merge_environment_settings(
        prepared.url, dict(client.proxies), True, client.verify, client.cert
    )
    adapter = client.get_adapter(prepared.url)

    def send() -> requests.Response:
        return adapter.send(
            prepared,
            stream=True,
            timeout=timeout,
            verify=settings["verify"],
            cert=settings["cert"],
            proxies=settings["proxies"],
        )

    start = time.perf_counter()
    try:
        if deadline is None and not ctx.cancellable:
            response = send()
        else:
            response = _InFlight(send).wait(
                ctx, deadline, lambda: _done_error(client, ctx, prepared.url)
            )
    except requests.RequestException as exc:
        _check_context(ctx, prepared.url)
        raise classify_requests_exception(exc, prepared.url, timeout) from exc

    response.elapsed = timedelta(seconds=time.perf_counter() - start)
    extract_cookies_to_jar(client.session.cookies, prepared, response.raw)
    return response


def _copy_same_host_headers(cur: requests.PreparedRequest, prev: requests.PreparedRequest) -> None:
    if _hostname(cur.url) != _hostname(prev.url):
        return
    for key, value in prev.headers.items():
        if key in cur.headers:
            continue
        if cur.body is None and key in _BODY_HEADERS:
            continue
        cur.headers[key] = value


def _open_replay(request: OutgoingRequest, sent_body) -> Optional[BinaryIO]:
    """
    Новый поток тела для 307/308 или None, если фабрика не может его дать.

    Фабрика, вернувшая уже отправленный или закрытый поток (например,
    pipe multipart), повторить тело не может.
    """
    try:
        replay = request.get_body()
    except Exception as exc:
        raise PipelineError(exc, stage="body") from exc

    if replay is None or replay is sent_body or getattr(replay, "closed", False):
        if replay is not sent_body:
            close_quietly(replay)
        return None
    return replay


def _follow_redirects(
    client: Client,
    request: OutgoingRequest,
    response: requests.Response,
    sent_body,
    one_shot_body: bool,
    deadline: Optional[float]
) -> requests.Response:
    session = client.session
    ctx = request.context
    history: List[requests.Response] = []
    via: List[requests.PreparedRequest] = [response.request]

    while response.is_redirect:
        try:
            next_request = next(session.resolve_redirects(
                response, response.request, yield_requests=True
            ))
        except StopIteration:
            break
        except requests.RequestException as exc:
            raise classify_requests_exception(exc, response.url) from exc

        try:
            if client.redirect_policy is not None:
                client.redirect_policy(next_request, via)
            elif len(via) >= client.max_redirects:
                raise TooManyRedirectsError(client.max_redirects, next_request.url)
        except UseLastResponse:
            break
        except Exception:
            response.close()
            raise

        _copy_same_host_headers(next_request, via[-1])

        replay = None
        if next_request.body is not None:
            # 307/308 повторяют тело: нужен новый поток из фабрики
            if not one_shot_body and request.get_body is not None:
                replay = _open_replay(request, sent_body)
            if replay is None:
                logger.debug("Cannot replay request body for redirect to %s", next_request.url)
                break
            next_request.body = iter_chunks(replay)

        _check_context(ctx, next_request.url)
        logger.debug("Following redirect %s -> %s", response.status_code, next_request.url)

        history.append(response)
        via.append(next_request)
        try:
            response = _send(client, next_request, ctx, deadline)
        finally:
            close_quietly(replay)

    response.history = history
    return response


def round_trip(client: Client, request: OutgoingRequest) -> requests.Response:
    """
    Выполнить запрос через транспорт клиента.

    Ответ всегда возвращается в режиме stream: тело читает Response wrapper.
    client.timeout ограничивает весь запрос вместе с чтением тела; отмена
    контекста прерывает ожидание ответа.

    Raises:
        CancelledError: контекст отменён до или во время отправки
        TimeoutError: истёк таймаут или deadline контекста
        TransportError: любая другая ошибка транспорта
        PipelineError: фабрика тела не смогла открыть поток
        InvalidRequestError: URL не годится для отправки
    """
    url = str(request.url)
    ctx = request.context
    _check_context(ctx, url)
    deadline = _request_deadline(client, ctx)

    try:
        prepared = _prepare(client, request)
    except requests.RequestException as exc:
        raise classify_requests_exception(exc, url) from exc

    one_shot_body = request.body is not None
    try:
        body = request.open_body()
    except FetchError:
        raise
    except Exception as exc:
        raise PipelineError(exc, stage="body") from exc

    try:
        if body is not None:
            _attach_body(prepared, body, request.content_length)

        response = _send(client, prepared, ctx, deadline)
    finally:
        if body is not None and not one_shot_body:
            close_quietly(body)

    if client.allow_redirects and response.is_redirect:
        response = _follow_redirects(client, request, response, body, one_shot_body, deadline)

    setattr(response, DEADLINE_ATTR, deadline)
    return response
