"""Тесты body middlewares и кодировщиков."""

import io
import xml.etree.ElementTree as ET

import pytest

from http_fetch.core.exceptions import PipelineError
from http_fetch.core.models import OutgoingRequest, QueryValues, parse_url
from http_fetch.middlewares.body import (
    BodyOptions,
    body_form,
    body_get_bytes,
    body_get_reader,
    body_json,
    body_reader,
    body_xml,
    content_type,
    encode_form,
    encode_json,
    encode_xml,
)


class TestBodyReader:

    def test_one_shot_body(self, run_pipeline):
        reader = io.BytesIO(b"hello")

        request = run_pipeline(body_reader(reader, content_type("text/plain")))

        assert request.body is reader
        assert request.get_body is None
        assert request.content_length == 5
        assert request.headers["Content-Type"] == "text/plain"

    def test_unknown_length(self, run_pipeline):
        class Stream:
            def read(self, n=-1):
                return b""

        request = run_pipeline(body_reader(Stream()))

        assert request.content_length is None

    def test_existing_length_is_kept(self, run_pipeline):
        request = OutgoingRequest(url=parse_url("http://example.com/"))
        request.content_length = 3

        seen = run_pipeline(body_reader(io.BytesIO(b"hello")), request=request)

        assert seen.content_length == 3

    def test_auto_length_can_be_disabled(self, run_pipeline):
        def no_length(options: BodyOptions):
            options.auto_set_content_length = False

        request = run_pipeline(body_reader(io.BytesIO(b"hello"), no_length))

        assert request.content_length is None

    def test_none_reader_is_noop(self, run_pipeline):
        request = run_pipeline(body_reader(None, content_type("text/plain")))

        assert request.body is None
        assert "Content-Type" not in request.headers


class TestBodyFactories:

    def test_get_reader_is_lazy(self, run_pipeline):
        calls = []

        def factory():
            calls.append(1)
            return io.BytesIO(b"x")

        request = run_pipeline(body_get_reader(factory))

        assert calls == []
        assert request.open_body().read() == b"x"
        assert request.open_body().read() == b"x"
        assert len(calls) == 2

    def test_get_bytes_computed_once(self, run_pipeline):
        calls = []

        def produce():
            calls.append(1)
            return b"payload"

        request = run_pipeline(body_get_bytes(produce))

        assert request.content_length == 7
        assert request.open_body().read() == b"payload"
        assert request.open_body().read() == b"payload"
        assert len(calls) == 1

    def test_get_bytes_error_stops_pipeline(self):
        reached = []

        def leaf(client, request):
            reached.append(request)

        def broken():
            raise RuntimeError("cannot build body")

        handler = body_get_bytes(broken)(leaf)

        with pytest.raises(PipelineError) as exc_info:
            handler(None, OutgoingRequest())

        assert exc_info.value.stage == "body"
        assert isinstance(exc_info.value.error, RuntimeError)
        assert reached == []


class TestEncodedBodies:

    def test_json(self, run_pipeline):
        request = run_pipeline(body_json({"b": [1, 2], "a": "é"}))

        assert request.headers["Content-Type"] == "application/json"
        assert request.open_body().read() == '{"b":[1,2],"a":"é"}\n'.encode("utf-8")

    def test_json_content_type_override(self, run_pipeline):
        request = run_pipeline(body_json({}, content_type("application/vnd.api+json")))

        assert request.headers["Content-Type"] == "application/vnd.api+json"

    def test_json_passthrough(self):
        assert encode_json('{"raw":true}') == b'{"raw":true}'
        assert encode_json(b"[]") == b"[]"

    def test_xml_element(self, run_pipeline):
        root = ET.Element("user")
        ET.SubElement(root, "name").text = "Ann"

        request = run_pipeline(body_xml(root))

        assert request.headers["Content-Type"] == "application/xml"
        assert b"<user><name>Ann</name></user>" in request.open_body().read()

    def test_xml_to_xml_method(self):
        class Payload:
            def to_xml(self):
                return "<p/>"

        assert encode_xml(Payload()) == b"<p/>"

    def test_xml_unsupported_type(self):
        with pytest.raises(TypeError):
            encode_xml(42)

    def test_xml_error_becomes_pipeline_error(self, run_pipeline):
        with pytest.raises(PipelineError):
            run_pipeline(body_xml(42))

    def test_form(self, run_pipeline):
        request = run_pipeline(body_form({"b": "2", "a": "1 2"}))

        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.open_body().read() == b"a=1+2&b=2"

    def test_form_multi_values(self):
        assert encode_form(QueryValues([("k", "1"), ("k", "2")])) == b"k=1&k=2"
        assert encode_form(None) == b""
