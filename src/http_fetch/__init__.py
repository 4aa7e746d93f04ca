"""http-fetch - composable HTTP client built on middleware pipelines."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core import (
    Client,
    ClientConfig,
    Context,
    ContextKey,
    Dispatcher,
    FetchError,
    Headers,
    Middleware,
    OutgoingRequest,
    QueryValues,
    RequestBuilder,
    Response,
    URL,
    background,
    compose,
    skip,
)
from .core.env_config import FetchSettings, load_from_env
from .core.exceptions import (
    CancelledError,
    ConfigurationError,
    ConnectionError,
    InvalidRequestError,
    InvalidResponseError,
    MultipartProducerError,
    PipelineError,
    ResponseError,
    TimeoutError,
    TransportError,
)
from .core.logging import FetchLogger, LoggingConfig
from .middlewares import MultipartField, URLOptions

# NullHandler: без настройки логирования библиотека молчит
logging.getLogger('http_fetch').addHandler(logging.NullHandler())

# Version info - read from package metadata (single source of truth in pyproject.toml)
try:
    __version__ = version("http-fetch-core")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"


def new_dispatcher(*middlewares: Middleware, config: ClientConfig = None) -> Dispatcher:
    """Dispatcher с клиентом по умолчанию."""
    return Dispatcher(None, *middlewares, config=config)


__all__ = [
    "__version__",
    "new_dispatcher",
    "Dispatcher",
    "RequestBuilder",
    "Response",
    "Client",
    "ClientConfig",
    "Context",
    "ContextKey",
    "background",
    "compose",
    "skip",
    "Middleware",
    "OutgoingRequest",
    "URL",
    "Headers",
    "QueryValues",
    "MultipartField",
    "URLOptions",
    "FetchSettings",
    "load_from_env",
    "FetchLogger",
    "LoggingConfig",
    "FetchError",
    "InvalidRequestError",
    "PipelineError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "CancelledError",
    "ResponseError",
    "MultipartProducerError",
    "InvalidResponseError",
    "ConfigurationError",
]
