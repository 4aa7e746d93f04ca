"""
Middlewares: общий префикс Dispatcher, middlewares на запрос и опции через контекст.
"""

import io
import time

from http_fetch import MultipartField, new_dispatcher
from http_fetch.core.client import no_redirect_policy
from http_fetch.core.context import background
from http_fetch.middlewares import prepare_header_middleware, set_header, with_header_options


def timing_middleware(handler):
    """Замер времени round trip."""
    def handle(client, request):
        start = time.perf_counter()
        try:
            return handler(client, request)
        finally:
            print(f"{request.method} {request.url} took {time.perf_counter() - start:.3f}s")
    return handle


def shared_prefix():
    print("\n=== Shared prefix ===")

    dispatcher = new_dispatcher(
        set_header(lambda h: h.set("User-Agent", "http-fetch-example/1.0")),
        timing_middleware,
    )
    with dispatcher:
        resp = dispatcher.new_request().get("https://httpbin.org/headers")
        print(resp.json())


def context_options():
    print("\n=== Header options from context ===")

    with new_dispatcher(prepare_header_middleware()) as dispatcher:
        ctx = with_header_options(background(), lambda h: h.set("X-Tenant", "acme"))
        resp = dispatcher.new_request().get_ctx(ctx, "https://httpbin.org/headers")
        print(resp.json()["headers"].get("X-Tenant"))


def per_request_client():
    print("\n=== Per-request client tuning ===")

    def tune(client):
        client.timeout = 5
        client.redirect_policy = no_redirect_policy()

    with new_dispatcher() as dispatcher:
        resp = dispatcher.new_request().client_funcs(tune).get("https://httpbin.org/redirect/1")
        print(f"Status: {resp.status_code}, Location: {resp.header.get('Location')}")


def multipart_upload():
    print("\n=== Multipart upload ===")

    fields = [
        MultipartField(name="description", values=["report"]),
        MultipartField(
            name="file",
            filename="report.txt",
            get_reader=lambda: io.BytesIO(b"hello world"),
            file_size=11,
            progress_interval=0.1,
            progress_callback=lambda p: print(f"  {p.filename}: {p.written}/{p.file_size}"),
        ),
    ]

    with new_dispatcher() as dispatcher:
        resp = dispatcher.new_request().multipart(fields).post("https://httpbin.org/post")
        print(resp.json()["files"])


if __name__ == "__main__":
    shared_prefix()
    context_options()
    per_request_client()
    multipart_upload()
