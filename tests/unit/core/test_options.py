"""Тесты моста между контекстом и опциями."""

from dataclasses import dataclass, field
from typing import List

from http_fetch.core.context import ContextKey, background
from http_fetch.core.middleware import skip
from http_fetch.core.models import OutgoingRequest
from http_fetch.core.options import apply_options, get_options, with_options, with_options_middleware


@dataclass
class _Opts:
    items: List[str] = field(default_factory=list)


def _append(value):
    def mutator(options):
        options.items.append(value)
    return mutator


class TestWithOptions:

    def test_mutators_accumulate_in_order(self):
        key = ContextKey("opts")
        ctx = with_options(key, None, _append("a"))
        ctx = with_options(key, ctx, _append("b"), _append("c"))

        options, ok = get_options(key, OutgoingRequest(context=ctx), _Opts)

        assert ok
        assert options.items == ["a", "b", "c"]

    def test_original_context_unchanged(self):
        key = ContextKey("opts")
        first = with_options(key, background(), _append("a"))
        with_options(key, first, _append("b"))

        options, _ = get_options(key, OutgoingRequest(context=first), _Opts)
        assert options.items == ["a"]

    def test_fresh_options_per_lookup(self):
        key = ContextKey("opts")
        request = OutgoingRequest(context=with_options(key, None, _append("a")))

        first, _ = get_options(key, request, _Opts)
        first.items.append("mutated")
        second, _ = get_options(key, request, _Opts)

        assert second.items == ["a"]

    def test_missing_key(self):
        options, ok = get_options(ContextKey("absent"), OutgoingRequest(), _Opts)

        assert options is None
        assert ok is False

    def test_apply_options_returns_same_object(self):
        opts = _Opts()
        assert apply_options(opts, _append("x")) is opts
        assert opts.items == ["x"]


class TestWithOptionsMiddleware:

    def test_no_mutators_is_skip(self):
        assert with_options_middleware(ContextKey("opts")) is skip()

    def test_request_gets_derived_context(self, run_pipeline):
        key = ContextKey("opts")
        original = OutgoingRequest()

        seen = run_pipeline(
            with_options_middleware(key, _append("a")),
            with_options_middleware(key, _append("b")),
            request=original,
        )

        options, ok = get_options(key, seen, _Opts)
        assert ok
        assert options.items == ["a", "b"]
        assert key.get_value(original.context) == (None, False)
