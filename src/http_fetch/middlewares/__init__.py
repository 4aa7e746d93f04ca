"""Стандартный набор middlewares."""

from .body import (
    BodyOptions,
    body_form,
    body_get_bytes,
    body_get_reader,
    body_json,
    body_reader,
    body_xml,
    content_type,
)
from .client_options import (
    ClientOptions,
    client_funcs,
    prepare_client_middleware,
    set_client_options,
    with_client_options,
)
from .cookie import (
    CookieOptions,
    add_cookie,
    del_all_cookies,
    prepare_cookie_middleware,
    set_cookie_options,
    with_cookie_options,
)
from .header import (
    HeaderOptions,
    header_kv,
    prepare_header_middleware,
    set_header,
    set_header_options,
    with_header_options,
)
from .multipart import (
    MultipartField,
    MultipartFieldProgress,
    MultipartOptions,
    set_multipart,
)
from .query import (
    add_query_from_map,
    add_query_kv,
    del_query,
    set_query,
    set_query_from_map,
    set_query_kv,
)
from .url import (
    URLOptions,
    apply_url_options,
    normalize,
    normalize_path,
    prepare_url_middleware,
    set_url_options,
    url_options,
    with_url_options,
)

__all__ = [
    # Body
    "BodyOptions",
    "body_form",
    "body_get_bytes",
    "body_get_reader",
    "body_json",
    "body_reader",
    "body_xml",
    "content_type",
    # Client
    "ClientOptions",
    "client_funcs",
    "prepare_client_middleware",
    "set_client_options",
    "with_client_options",
    # Cookie
    "CookieOptions",
    "add_cookie",
    "del_all_cookies",
    "prepare_cookie_middleware",
    "set_cookie_options",
    "with_cookie_options",
    # Header
    "HeaderOptions",
    "header_kv",
    "prepare_header_middleware",
    "set_header",
    "set_header_options",
    "with_header_options",
    # Multipart
    "MultipartField",
    "MultipartFieldProgress",
    "MultipartOptions",
    "set_multipart",
    # Query
    "add_query_from_map",
    "add_query_kv",
    "del_query",
    "set_query",
    "set_query_from_map",
    "set_query_kv",
    # URL
    "URLOptions",
    "apply_url_options",
    "normalize",
    "normalize_path",
    "prepare_url_middleware",
    "set_url_options",
    "url_options",
    "with_url_options",
]
