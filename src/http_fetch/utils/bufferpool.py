"""
Process-wide pool of reusable write buffers.

get() always returns an empty buffer; put() is best-effort and drops
buffers once the pool is full or the buffer grew too large.

Example:
    >>> buf = bufferpool.get()
    >>> try:
    ...     buf.write(b"payload")
    ...     data = buf.getvalue()
    ... finally:
    ...     bufferpool.put(buf)
"""

import io
import threading
from typing import List

MAX_POOLED = 64
MAX_BUFFER_SIZE = 1024 * 1024  # 1MB


class BufferPool:
    """Thread-safe pool of io.BytesIO."""

    def __init__(self, max_pooled: int = MAX_POOLED, max_buffer_size: int = MAX_BUFFER_SIZE):
        self._lock = threading.Lock()
        self._buffers: List[io.BytesIO] = []
        self.max_pooled = max_pooled
        self.max_buffer_size = max_buffer_size

    def get(self) -> io.BytesIO:
        with self._lock:
            buf = self._buffers.pop() if self._buffers else None
        if buf is None:
            return io.BytesIO()
        buf.seek(0)
        buf.truncate()
        return buf

    def put(self, buf: io.BytesIO) -> None:
        if buf.closed or buf.seek(0, io.SEEK_END) > self.max_buffer_size:
            return
        with self._lock:
            if len(self._buffers) < self.max_pooled:
                self._buffers.append(buf)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)


_pool = BufferPool()


def get() -> io.BytesIO:
    """Take an empty buffer from the shared pool."""
    return _pool.get()


def put(buf: io.BytesIO) -> None:
    """Return a buffer to the shared pool."""
    _pool.put(buf)
