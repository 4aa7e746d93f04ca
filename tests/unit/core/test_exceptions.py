"""Тесты иерархии исключений и classify_requests_exception."""

import pytest
import requests

from http_fetch.core.exceptions import (
    CancelledError,
    ConnectionError,
    FetchError,
    InvalidRequestError,
    MultipartProducerError,
    PipelineError,
    ProxyError,
    ResponseError,
    TimeoutError,
    TooManyRedirectsError,
    TransportError,
    classify_requests_exception,
)


class TestHierarchy:

    def test_transport_errors_are_retryable(self):
        assert TransportError("x").retryable
        assert TimeoutError("x").retryable
        assert ConnectionError("x").retryable
        assert not CancelledError("x").retryable
        assert not TooManyRedirectsError(3).retryable

    def test_invalid_request_is_not_transport(self):
        exc = InvalidRequestError(ValueError("bad url"))

        assert isinstance(exc, FetchError)
        assert not isinstance(exc, TransportError)
        assert exc.fatal
        assert exc.__cause__ is exc.error

    def test_pipeline_error_stage(self):
        exc = PipelineError(RuntimeError("boom"), stage="body")

        assert str(exc) == "body: boom"
        assert exc.stage == "body"

    def test_transport_error_url(self):
        exc = TransportError("Transport error", "https://example.com")

        assert str(exc) == "Transport error (url: https://example.com)"

    def test_timeout_message(self):
        exc = TimeoutError("Request timeout", "https://example.com", 0.05, "read")

        assert str(exc) == "Request timeout (read timeout: 0.05s) (url: https://example.com)"

    def test_response_error_carries_response(self):
        raw = requests.Response()
        exc = ResponseError(raw, ValueError("bad"))

        assert exc.response is raw
        assert exc.error.args == ("bad",)


class TestMultipartProducerError:

    def test_producer_only(self):
        producer = OSError("disk")
        exc = MultipartProducerError(producer)

        assert exc.errors == (producer,)
        assert str(exc) == "disk"

    def test_joined_with_handler_error(self):
        producer = OSError("disk")
        handler = ConnectionError("reset")
        exc = MultipartProducerError(producer, handler, None)

        assert exc.errors == (handler, producer)
        assert "reset" in str(exc)
        assert "disk" in str(exc)


class TestClassify:

    @pytest.mark.parametrize("exc,expected", [
        (requests.exceptions.ConnectTimeout(), TimeoutError),
        (requests.exceptions.ReadTimeout(), TimeoutError),
        (requests.exceptions.ProxyError(), ProxyError),
        (requests.exceptions.SSLError(), ConnectionError),
        (requests.exceptions.ConnectionError(), ConnectionError),
        (requests.exceptions.TooManyRedirects(), TransportError),
        (requests.exceptions.InvalidURL(), InvalidRequestError),
        (requests.exceptions.MissingSchema(), InvalidRequestError),
        (requests.exceptions.ChunkedEncodingError(), TransportError),
    ])
    def test_mapping(self, exc, expected):
        assert isinstance(classify_requests_exception(exc, "https://example.com"), expected)

    def test_connect_timeout_type(self):
        our = classify_requests_exception(requests.exceptions.ConnectTimeout(), "https://x", 1.0)

        assert our.timeout_type == "connect"
        assert our.timeout == 1.0
