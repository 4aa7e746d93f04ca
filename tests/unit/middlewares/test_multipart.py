"""Тесты multipart middleware."""

import io

import pytest

from http_fetch.core.exceptions import MultipartProducerError
from http_fetch.core.middleware import compose
from http_fetch.core.models import OutgoingRequest, parse_url
from http_fetch.middlewares.multipart import (
    MultipartField,
    MultipartOptions,
    detect_content_type,
    set_multipart,
)


def _boundary(value):
    def apply(options: MultipartOptions):
        options.boundary = value
    return apply


def _send(middleware, leaf=None):
    """Прогнать multipart middleware; транспорт вычитывает тело целиком."""
    seen = {}

    def reading_leaf(client, request):
        body = request.open_body()
        seen["body"] = body.read() if body is not None else None
        seen["request"] = request
        return "response"

    result = compose(middleware)(leaf or reading_leaf)(
        None, OutgoingRequest(method="POST", url=parse_url("http://example.com/upload"))
    )
    return result, seen


class TestMultipartEnvelope:

    def test_fields_in_order(self):
        fields = [
            MultipartField(name="description", values=["hi"]),
            MultipartField(
                name="file",
                filename="f.txt",
                get_reader=lambda: io.BytesIO(b"hello world"),
            ),
        ]

        result, seen = _send(set_multipart(fields, _boundary("xyz")))
        body = seen["body"]

        assert result == "response"
        assert seen["request"].headers["Content-Type"] == "multipart/form-data; boundary=xyz"
        assert body.startswith(b'--xyz\r\nContent-Disposition: form-data; name="description"\r\n\r\nhi')
        assert b'name="file"; filename="f.txt"\r\nContent-Type: text/plain\r\n\r\nhello world' in body
        assert body.index(b"hi") < body.index(b"hello world")
        assert body.endswith(b"\r\n--xyz--\r\n")

    def test_multiple_values_keep_order(self):
        fields = [MultipartField(name="tag", values=["a", "b", "c"])]

        _, seen = _send(set_multipart(fields, _boundary("b1")))
        body = seen["body"]

        assert body.count(b'name="tag"') == 3
        assert body.index(b"\r\n\r\na") < body.index(b"\r\n\r\nb") < body.index(b"\r\n\r\nc")

    def test_random_boundary(self):
        fields = [MultipartField(name="a", values=["1"])]

        _, seen = _send(set_multipart(fields))
        content_type = seen["request"].headers["Content-Type"]
        boundary = content_type.split("boundary=", 1)[1]

        assert boundary
        assert seen["body"].startswith(b"--" + boundary.encode("ascii"))

    def test_extra_disposition_and_explicit_type(self):
        fields = [
            MultipartField(
                name="doc",
                filename="data.bin",
                content_type="application/pdf",
                extra_content_disposition={"size": "3"},
                get_reader=lambda: io.BytesIO(b"pdf"),
            ),
        ]

        _, seen = _send(set_multipart(fields, _boundary("z")))

        assert b'filename="data.bin"; size="3"' in seen["body"]
        assert b"Content-Type: application/pdf" in seen["body"]

    def test_large_stream(self):
        payload = b"x" * (256 * 1024)
        fields = [MultipartField(name="big", filename="big.bin", get_reader=lambda: io.BytesIO(payload))]

        _, seen = _send(set_multipart(fields, _boundary("big")))

        assert payload in seen["body"]

    def test_empty_fields_are_noop(self):
        _, seen = _send(set_multipart([]))

        assert seen["body"] is None
        assert "Content-Type" not in seen["request"].headers

    def test_reader_is_closed(self):
        reader = io.BytesIO(b"data")
        fields = [MultipartField(name="f", filename="f.txt", get_reader=lambda: reader)]

        _send(set_multipart(fields))

        assert reader.closed


class TestMultipartProgress:

    def test_progress_reports_final_size(self):
        reports = []
        fields = [
            MultipartField(
                name="file",
                filename="f.txt",
                file_size=11,
                get_reader=lambda: io.BytesIO(b"hello world"),
                progress_callback=reports.append,
            ),
        ]

        _send(set_multipart(fields))

        assert reports
        assert reports[-1].written == 11
        assert reports[-1].name == "file"
        assert reports[-1].filename == "f.txt"


class TestMultipartErrors:

    def test_producer_error_reaches_caller(self):
        def broken_reader():
            raise OSError("cannot open")

        fields = [
            MultipartField(name="ok", values=["1"]),
            MultipartField(name="file", filename="f.txt", get_reader=broken_reader),
        ]

        with pytest.raises(MultipartProducerError) as exc_info:
            _send(set_multipart(fields))

        exc = exc_info.value
        assert isinstance(exc.error, OSError)
        assert exc.handler_error is None
        assert exc.response == "response"
        assert exc.errors == (exc.error,)

    def test_producer_and_handler_errors_are_joined(self):
        def broken_reader():
            raise OSError("cannot open")

        def failing_leaf(client, request):
            request.open_body().read()
            raise RuntimeError("transport failed")

        fields = [MultipartField(name="file", filename="f.txt", get_reader=broken_reader)]

        with pytest.raises(MultipartProducerError) as exc_info:
            _send(set_multipart(fields), leaf=failing_leaf)

        exc = exc_info.value
        assert isinstance(exc.handler_error, RuntimeError)
        assert "transport failed" in str(exc)
        assert "cannot open" in str(exc)
        assert exc.response is None

    def test_handler_error_without_producer_error(self):
        def failing_leaf(client, request):
            raise RuntimeError("transport failed")

        fields = [MultipartField(name="file", filename="f.bin", get_reader=lambda: io.BytesIO(b"x" * 200000))]

        with pytest.raises(RuntimeError, match="transport failed"):
            _send(set_multipart(fields), leaf=failing_leaf)


class TestDetectContentType:

    @pytest.mark.parametrize("probe,filename,expected", [
        (b"hello", "notes.txt", "text/plain"),
        (b"{}", "data.json", "application/json"),
        (b"hello", "", "text/plain; charset=utf-8"),
        (b"\x00\x01\x02", "", "application/octet-stream"),
        (b"\xff\xfe\xfa" * 10, "", "application/octet-stream"),
        ("é".encode("utf-8")[:1], "", "text/plain; charset=utf-8"),
    ])
    def test_detection(self, probe, filename, expected):
        assert detect_content_type(probe, filename) == expected
