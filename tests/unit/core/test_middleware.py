"""Тесты compose, skip и request_funcs."""

from http_fetch.core.middleware import compose, request_funcs, skip
from http_fetch.core.models import OutgoingRequest


def _tracing(name, calls):
    def middleware(handler):
        def handle(client, request):
            calls.append(f"{name}-before")
            response = handler(client, request)
            calls.append(f"{name}-after")
            return response
        return handle
    return middleware


class TestCompose:
    """Порядок выполнения middlewares."""

    def test_first_middleware_is_outermost(self):
        calls = []

        def leaf(client, request):
            calls.append("handler")
            return "response"

        pipeline = compose(_tracing("m1", calls), _tracing("m2", calls), _tracing("m3", calls))(leaf)
        result = pipeline(None, OutgoingRequest())

        assert result == "response"
        assert calls == [
            "m1-before", "m2-before", "m3-before",
            "handler",
            "m3-after", "m2-after", "m1-after",
        ]

    def test_empty_compose_returns_handler_behavior(self):
        def leaf(client, request):
            return "leaf"

        assert compose()(leaf)(None, OutgoingRequest()) == "leaf"

    def test_nested_compose_keeps_order(self):
        calls = []

        def leaf(client, request):
            calls.append("handler")
            return None

        inner = compose(_tracing("b", calls), _tracing("c", calls))
        compose(_tracing("a", calls), inner)(leaf)(None, OutgoingRequest())

        assert calls[:3] == ["a-before", "b-before", "c-before"]

    def test_short_circuit_skips_inner(self):
        calls = []

        def short_circuit(handler):
            def handle(client, request):
                calls.append("short")
                return "cached"
            return handle

        def leaf(client, request):
            calls.append("handler")
            return "live"

        pipeline = compose(_tracing("m1", calls), short_circuit, _tracing("m3", calls))(leaf)

        assert pipeline(None, OutgoingRequest()) == "cached"
        assert calls == ["m1-before", "short", "m1-after"]

    def test_exception_propagates_through_middlewares(self):
        calls = []

        def leaf(client, request):
            raise RuntimeError("boom")

        pipeline = compose(_tracing("m1", calls))(leaf)

        try:
            pipeline(None, OutgoingRequest())
        except RuntimeError as exc:
            assert str(exc) == "boom"
        else:
            raise AssertionError("RuntimeError expected")

        assert calls == ["m1-before"]


class TestSkipAndRequestFuncs:
    """skip() и request_funcs()."""

    def test_skip_passes_through(self):
        request = OutgoingRequest()
        seen = []

        def leaf(client, r):
            seen.append(r)
            return "ok"

        assert skip()(leaf)("client", request) == "ok"
        assert seen == [request]

    def test_request_funcs_run_in_order(self, run_pipeline):
        order = []

        def first(request):
            order.append("first")
            request.headers.set("X-Step", "1")

        def second(request):
            order.append("second")
            request.headers.add("X-Step", "2")

        request = run_pipeline(request_funcs(first, second))

        assert order == ["first", "second"]
        assert request.headers.get_all("X-Step") == ["1", "2"]
