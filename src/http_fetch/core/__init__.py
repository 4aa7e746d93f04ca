"""Core модули http-fetch: pipeline, транспорт, запрос и ответ."""

from .client import (
    Client,
    RedirectPolicy,
    clone_client,
    create_session,
    domain_check_redirect_policy,
    flexible_redirect_policy,
    no_redirect_policy,
    round_trip,
)
from .config import ClientConfig
from .context import Context, ContextKey, background
from .dispatcher import Dispatcher
from .exceptions import (
    CancelledError,
    ConfigurationError,
    ConnectionError,
    FetchError,
    InvalidRequestError,
    InvalidResponseError,
    MultipartProducerError,
    PipelineError,
    ProxyError,
    RedirectNotAllowedError,
    ResponseError,
    TimeoutError,
    TooManyRedirectsError,
    TransportError,
    UseLastResponse,
    classify_requests_exception,
)
from .middleware import Handler, Middleware, RequestFunc, compose, request_funcs, skip
from .models import URL, Headers, OutgoingRequest, QueryValues, canonical_header_key, parse_query, parse_url
from .options import apply_options, get_options, with_options, with_options_middleware
from .request import RequestBuilder
from .response import Response

__all__ = [
    # Pipeline
    "Handler",
    "Middleware",
    "RequestFunc",
    "compose",
    "request_funcs",
    "skip",
    # Transport
    "Client",
    "ClientConfig",
    "RedirectPolicy",
    "clone_client",
    "create_session",
    "domain_check_redirect_policy",
    "flexible_redirect_policy",
    "no_redirect_policy",
    "round_trip",
    # Context
    "Context",
    "ContextKey",
    "background",
    "apply_options",
    "get_options",
    "with_options",
    "with_options_middleware",
    # Request / response
    "Dispatcher",
    "RequestBuilder",
    "Response",
    "OutgoingRequest",
    "URL",
    "Headers",
    "QueryValues",
    "canonical_header_key",
    "parse_query",
    "parse_url",
    # Exceptions
    "FetchError",
    "InvalidRequestError",
    "PipelineError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "ProxyError",
    "CancelledError",
    "TooManyRedirectsError",
    "RedirectNotAllowedError",
    "ResponseError",
    "MultipartProducerError",
    "InvalidResponseError",
    "UseLastResponse",
    "ConfigurationError",
    "classify_requests_exception",
]
