"""
Debug dump: структурированный лог каждого HTTP round trip.
"""

from .adapter import DumpAdapter, dump_middleware, skip_dump
from .body import DrainedBody, drain_body
from .filters import (
    Filter,
    accept,
    accept_host,
    accept_host_contains,
    accept_host_match,
    accept_host_prefix,
    accept_host_suffix,
    accept_method,
    accept_path,
    accept_path_contains,
    accept_path_match,
    accept_path_prefix,
    accept_path_suffix,
    accept_status,
    accept_status_greater_than,
    accept_status_greater_than_or_equal,
    accept_status_less_than,
    accept_status_less_than_or_equal,
    ignore,
    ignore_host,
    ignore_host_contains,
    ignore_host_match,
    ignore_host_prefix,
    ignore_host_suffix,
    ignore_method,
    ignore_path,
    ignore_path_contains,
    ignore_path_match,
    ignore_path_prefix,
    ignore_path_suffix,
    ignore_status,
    ignore_status_greater_than,
    ignore_status_greater_than_or_equal,
    ignore_status_less_than,
    ignore_status_less_than_or_equal,
)
from .options import (
    DEFAULT_REQUEST_BODY_MAX_SIZE,
    DEFAULT_RESPONSE_BODY_MAX_SIZE,
    DumpOptions,
    default_log_level,
    default_options,
)

__all__ = [
    "DumpAdapter",
    "dump_middleware",
    "skip_dump",
    "DrainedBody",
    "drain_body",
    "DumpOptions",
    "default_options",
    "default_log_level",
    "DEFAULT_REQUEST_BODY_MAX_SIZE",
    "DEFAULT_RESPONSE_BODY_MAX_SIZE",
    "Filter",
    "accept",
    "ignore",
    "accept_method",
    "ignore_method",
    "accept_status",
    "ignore_status",
    "accept_status_greater_than",
    "accept_status_greater_than_or_equal",
    "accept_status_less_than",
    "accept_status_less_than_or_equal",
    "ignore_status_greater_than",
    "ignore_status_greater_than_or_equal",
    "ignore_status_less_than",
    "ignore_status_less_than_or_equal",
    "accept_path",
    "ignore_path",
    "accept_path_contains",
    "ignore_path_contains",
    "accept_path_prefix",
    "ignore_path_prefix",
    "accept_path_suffix",
    "ignore_path_suffix",
    "accept_path_match",
    "ignore_path_match",
    "accept_host",
    "ignore_host",
    "accept_host_contains",
    "ignore_host_contains",
    "accept_host_prefix",
    "ignore_host_prefix",
    "accept_host_suffix",
    "ignore_host_suffix",
    "accept_host_match",
    "ignore_host_match",
]
