"""
Log filters that attach request ids and static fields to records.
"""

import logging
import threading
from typing import Dict, Any, Optional


_request_id_storage = threading.local()


def set_request_id(request_id: str) -> None:
    """Bind a request id to the current thread."""
    _request_id_storage.value = request_id


def get_request_id() -> Optional[str]:
    return getattr(_request_id_storage, 'value', None)


def clear_request_id() -> None:
    if hasattr(_request_id_storage, 'value'):
        delattr(_request_id_storage, 'value')


class RequestIdFilter(logging.Filter):
    """
    Adds `request_id` to records emitted while a request is in flight.

    The Dispatcher binds the id for the duration of one dispatch, so
    every record written by middlewares on that thread carries it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = get_request_id()
        if request_id and not hasattr(record, 'request_id'):
            record.request_id = request_id
        return True


class StaticFieldsFilter(logging.Filter):
    """
    Adds fixed fields (service, environment, ...) to every record.

    Fields already present on the record win.
    """

    def __init__(self, fields: Dict[str, Any]):
        super().__init__()
        self.fields = dict(fields)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
