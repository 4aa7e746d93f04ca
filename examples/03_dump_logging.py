"""
Structured logging: FetchLogger в Dispatcher и dump каждого round trip.
"""

from http_fetch import ClientConfig, LoggingConfig, new_dispatcher
from http_fetch.core.context import background
from http_fetch.core.logging import configure_logging
from http_fetch.dump import (
    default_options,
    dump_middleware,
    ignore_path_prefix,
    skip_dump,
)


def main():
    logging_config = LoggingConfig.create(level="DEBUG", format="colored")

    options = default_options()
    options.logger = configure_logging(
        LoggingConfig.create(level="DEBUG", format="json", logger_name="http_fetch.dump")
    )
    options.filters = [ignore_path_prefix("/status/200")]
    options.response_body_filter = lambda request: True

    config = ClientConfig(logging=logging_config)
    with new_dispatcher(dump_middleware(options), config=config) as dispatcher:
        dispatcher.new_request().get("https://httpbin.org/get?token=secret")
        dispatcher.new_request().get("https://httpbin.org/status/404")
        dispatcher.new_request().get("https://httpbin.org/status/200")
        dispatcher.new_request().get_ctx(skip_dump(background()), "https://httpbin.org/uuid")


if __name__ == "__main__":
    main()
