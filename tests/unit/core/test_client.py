"""Тесты Client, политик редиректов и round_trip."""

import io
import threading
import time

import pytest
import requests
import responses
from requests.adapters import BaseAdapter

from http_fetch.core.client import (
    Client,
    clone_client,
    domain_check_redirect_policy,
    flexible_redirect_policy,
    no_redirect_policy,
    round_trip,
)
from http_fetch.core.config import ClientConfig
from http_fetch.core.context import background
from http_fetch.core.exceptions import (
    CancelledError,
    ConnectionError,
    PipelineError,
    RedirectNotAllowedError,
    TimeoutError,
    TooManyRedirectsError,
)
from http_fetch.core.models import OutgoingRequest, parse_url


def _request(url, method="GET", ctx=None):
    return OutgoingRequest(method=method, url=parse_url(url), context=ctx)


@pytest.fixture
def client():
    c = Client(timeout=5)
    yield c
    c.close()


class TestClient:

    def test_from_config(self):
        config = ClientConfig.create(timeout=3, max_redirects=2, verify_ssl=False, headers={"X-App": "svc"})
        client = Client.from_config(config)

        assert client.timeout == 3
        assert client.max_redirects == 2
        assert client.verify is False
        assert client.session.headers["X-App"] == "svc"
        client.close()

    def test_clone_shares_session_not_fields(self, client):
        cloned = clone_client(client)
        cloned.timeout = 0.5
        cloned.proxies["http"] = "http://proxy:3128"

        assert cloned.session is client.session
        assert client.timeout == 5
        assert client.proxies == {}

    def test_clone_none(self):
        assert clone_client(None) is None


class TestRoundTrip:

    def test_simple_get(self, client, mock_responses):
        mock_responses.add(responses.GET, "https://api.example.com/ok", body="OK")

        response = round_trip(client, _request("https://api.example.com/ok"))

        assert response.status_code == 200
        assert response.content == b"OK"

    def test_session_headers_and_request_headers(self, client, mock_responses):
        client.session.headers["X-Session"] = "s"
        mock_responses.add(responses.GET, "https://api.example.com/h")

        request = _request("https://api.example.com/h")
        request.headers.add("Accept", "a")
        request.headers.add("Accept", "b")
        round_trip(client, request)

        sent = mock_responses.calls[0].request
        assert sent.headers["X-Session"] == "s"
        assert sent.headers["Accept"] == "a, b"

    def test_body_with_known_length(self, client, mock_responses):
        mock_responses.add(responses.POST, "https://api.example.com/upload")

        request = _request("https://api.example.com/upload", method="POST")
        request.get_body = lambda: io.BytesIO(b"payload")
        request.content_length = 7
        round_trip(client, request)

        sent = mock_responses.calls[0].request
        assert sent.headers["Content-Length"] == "7"
        assert "Transfer-Encoding" not in sent.headers

    def test_body_with_unknown_length_is_chunked(self, client, mock_responses):
        mock_responses.add(responses.POST, "https://api.example.com/upload")

        request = _request("https://api.example.com/upload", method="POST")
        request.body = io.BytesIO(b"payload")
        round_trip(client, request)

        sent = mock_responses.calls[0].request
        assert sent.headers["Transfer-Encoding"] == "chunked"

    def test_cancelled_context_does_not_send(self, client, mock_responses):
        ctx, cancel = background().with_cancel()
        cancel()

        with pytest.raises(CancelledError):
            round_trip(client, _request("https://api.example.com/ok", ctx=ctx))

        assert len(mock_responses.calls) == 0

    def test_expired_deadline(self, client, mock_responses):
        ctx = background().with_timeout(-1)

        with pytest.raises(TimeoutError):
            round_trip(client, _request("https://api.example.com/ok", ctx=ctx))

    def test_connection_error_is_classified(self, client, mock_responses):
        mock_responses.add(
            responses.GET, "https://api.example.com/down",
            body=requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(ConnectionError) as exc_info:
            round_trip(client, _request("https://api.example.com/down"))

        assert exc_info.value.url == "https://api.example.com/down"
        assert exc_info.value.retryable

    def test_read_timeout_is_classified(self, client, mock_responses):
        mock_responses.add(
            responses.GET, "https://api.example.com/slow",
            body=requests.exceptions.ReadTimeout("slow"),
        )

        with pytest.raises(TimeoutError) as exc_info:
            round_trip(client, _request("https://api.example.com/slow"))

        assert "timeout" in str(exc_info.value).lower()


class TestRedirects:

    def test_follows_redirect(self, client, mock_responses):
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=302, headers={"Location": "/b"},
        )
        mock_responses.add(responses.GET, "https://api.example.com/b", body="B")

        response = round_trip(client, _request("https://api.example.com/a"))

        assert response.status_code == 200
        assert response.url == "https://api.example.com/b"
        assert len(response.history) == 1

    def test_disabled_redirects_return_3xx(self, client, mock_responses):
        client.allow_redirects = False
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=302, headers={"Location": "/b"},
        )

        assert round_trip(client, _request("https://api.example.com/a")).status_code == 302

    def test_no_redirect_policy_uses_last_response(self, client, mock_responses):
        client.redirect_policy = no_redirect_policy()
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=301, headers={"Location": "/b"},
        )

        response = round_trip(client, _request("https://api.example.com/a"))

        assert response.status_code == 301
        assert len(mock_responses.calls) == 1

    def test_flexible_policy_limit(self, client, mock_responses):
        client.redirect_policy = flexible_redirect_policy(2)
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=302, headers={"Location": "/b"},
        )
        mock_responses.add(
            responses.GET, "https://api.example.com/b",
            status=302, headers={"Location": "/c"},
        )

        with pytest.raises(TooManyRedirectsError) as exc_info:
            round_trip(client, _request("https://api.example.com/a"))

        assert exc_info.value.max_redirects == 2

    def test_domain_check_policy(self, client, mock_responses):
        client.redirect_policy = domain_check_redirect_policy("api.example.com")
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=302, headers={"Location": "https://evil.example.org/steal"},
        )

        with pytest.raises(RedirectNotAllowedError):
            round_trip(client, _request("https://api.example.com/a"))

    def test_default_limit_from_client(self, client, mock_responses):
        client.max_redirects = 0
        mock_responses.add(
            responses.GET, "https://api.example.com/a",
            status=302, headers={"Location": "/b"},
        )

        with pytest.raises(TooManyRedirectsError):
            round_trip(client, _request("https://api.example.com/a"))

    def test_307_stops_when_factory_cannot_reopen(self, client, mock_responses):
        mock_responses.add(
            responses.POST, "https://api.example.com/upload",
            status=307, headers={"Location": "/target"},
        )
        stream = io.BytesIO(b"payload")
        request = _request("https://api.example.com/upload", method="POST")
        request.get_body = lambda: stream

        response = round_trip(client, request)

        assert response.status_code == 307
        assert len(mock_responses.calls) == 1

    def test_307_replays_fresh_body(self, client, mock_responses):
        mock_responses.add(
            responses.POST, "https://api.example.com/upload",
            status=307, headers={"Location": "/target"},
        )
        mock_responses.add(responses.POST, "https://api.example.com/target", body="stored")
        request = _request("https://api.example.com/upload", method="POST")
        request.get_body = lambda: io.BytesIO(b"payload")

        response = round_trip(client, request)

        assert response.status_code == 200
        assert len(mock_responses.calls) == 2


class TestBodyFactory:

    def test_factory_failure_is_pipeline_error(self, client, mock_responses):
        def broken():
            raise OSError("cannot open")

        request = _request("https://api.example.com/upload", method="POST")
        request.get_body = broken

        with pytest.raises(PipelineError) as exc_info:
            round_trip(client, request)

        assert exc_info.value.stage == "body"
        assert isinstance(exc_info.value.error, OSError)
        assert len(mock_responses.calls) == 0


class _BlockingAdapter(BaseAdapter):
    """Отвечает только после release; закрытие ответа отмечается в `closed`."""

    def __init__(self):
        super().__init__()
        self.released = threading.Event()
        self.closed = threading.Event()

    def send(self, request, **kwargs):
        self.released.wait(5)

        response = requests.Response()
        response.status_code = 200
        response.url = request.url
        response.request = request
        response.raw = io.BytesIO(b"late")

        close = response.close

        def tracked_close():
            self.closed.set()
            close()

        response.close = tracked_close
        return response

    def close(self):
        pass


class TestInFlight:

    @pytest.fixture
    def blocking(self, client):
        adapter = _BlockingAdapter()
        client.transport = adapter
        yield adapter
        adapter.released.set()

    def test_cancel_interrupts_send(self, client, blocking):
        ctx, cancel = background().with_cancel()
        timer = threading.Timer(0.05, cancel)
        timer.start()

        start = time.monotonic()
        with pytest.raises(CancelledError) as exc_info:
            round_trip(client, _request("https://api.example.com/slow", ctx=ctx))

        assert time.monotonic() - start < 1
        assert exc_info.value.url == "https://api.example.com/slow"
        timer.join()

    def test_abandoned_response_is_closed(self, client, blocking):
        ctx, cancel = background().with_cancel()
        threading.Timer(0.05, cancel).start()

        with pytest.raises(CancelledError):
            round_trip(client, _request("https://api.example.com/slow", ctx=ctx))

        blocking.released.set()
        assert blocking.closed.wait(1)

    def test_client_timeout_is_end_to_end(self, client, blocking):
        client.timeout = 0.05

        start = time.monotonic()
        with pytest.raises(TimeoutError) as exc_info:
            round_trip(client, _request("https://api.example.com/slow"))

        assert time.monotonic() - start < 1
        assert exc_info.value.timeout_type == "deadline"

    def test_context_deadline_during_send(self, client, blocking):
        ctx = background().with_timeout(0.05)

        with pytest.raises(TimeoutError, match="context deadline exceeded"):
            round_trip(client, _request("https://api.example.com/slow", ctx=ctx))

    def test_response_arrives_before_cancel(self, client, blocking):
        blocking.released.set()
        ctx, _ = background().with_cancel()

        response = round_trip(client, _request("https://api.example.com/fast", ctx=ctx))

        assert response.status_code == 200
        assert response.content == b"late"
        assert not blocking.closed.is_set()
