"""
Pytest configuration and fixtures for http-fetch tests.
"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest
import responses as responses_lib

from http_fetch.core.dispatcher import Dispatcher
from http_fetch.core.middleware import compose
from http_fetch.core.models import OutgoingRequest, parse_url


class _TestHandler(BaseHTTPRequestHandler):
    """
    Маршруты тестового сервера:
        /ok                 -> 200 "OK"
        /echo               -> тело запроса с тем же Content-Type
        /inspect            -> JSON: method, path, query, headers, body
        /sleep?ms=N         -> ждёт N мс, затем 200 "OK"
        /redirect?to=P      -> 302 на P
        /status/N           -> пустой ответ со статусом N
    """

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _read_body(self) -> bytes:
        if self.headers.get("Transfer-Encoding", "").lower() == "chunked":
            chunks = []
            while True:
                size = int(self.rfile.readline().strip().split(b";")[0], 16)
                if size == 0:
                    # trailer до пустой строки
                    while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                        pass
                    break
                chunks.append(self.rfile.read(size))
                self.rfile.readline()
            return b"".join(chunks)

        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(self, status: int, body: bytes = b"", content_type: str = "text/plain", headers=None):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _handle(self):
        parts = urlsplit(self.path)
        query = parse_qs(parts.query)
        body = self._read_body()

        if parts.path == "/ok":
            self._send(200, b"OK")
        elif parts.path == "/echo":
            self._send(200, body, self.headers.get("Content-Type", "application/octet-stream"))
        elif parts.path.startswith("/inspect"):
            payload = {
                "method": self.command,
                "path": parts.path,
                "query": parts.query,
                "headers": {key: value for key, value in self.headers.items()},
                "body": body.decode("utf-8", errors="replace"),
            }
            self._send(200, json.dumps(payload).encode("utf-8"), "application/json")
        elif parts.path == "/sleep":
            time.sleep(int(query.get("ms", ["100"])[0]) / 1000)
            self._send(200, b"OK")
        elif parts.path == "/redirect":
            self._send(302, headers={"Location": query.get("to", ["/ok"])[0]})
        elif parts.path.startswith("/status/"):
            self._send(int(parts.path.rsplit("/", 1)[1]))
        else:
            self._send(404, b"not found")

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_PATCH = _handle
    do_DELETE = _handle
    do_HEAD = _handle
    do_OPTIONS = _handle


@pytest.fixture(scope="session")
def server_url():
    """Base URL локального HTTP сервера."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TestHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_address[1]}"

    server.shutdown()
    server.server_close()


@pytest.fixture
def base_url():
    """Base URL for mocked requests."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def dispatcher():
    """Dispatcher с клиентом по умолчанию."""
    d = Dispatcher()
    yield d
    d.close()


@pytest.fixture
def run_pipeline():
    """
    Прогнать middlewares до фиктивного транспорта.

    Возвращает функцию run(*middlewares, request=None, client=None),
    которая отдаёт запрос в том виде, в каком его увидел транспорт.
    """
    def run(*middlewares, request=None, client=None):
        if request is None:
            request = OutgoingRequest(url=parse_url("http://example.com/"))
        seen = {}

        def leaf(c, r):
            seen["request"] = r
            seen["client"] = c
            return "response"

        compose(*middlewares)(leaf)(client, request)
        return seen["request"]

    return run
