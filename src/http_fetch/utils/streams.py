"""
Small stream helpers: chunked iteration and a progress-reporting writer.
"""

import time
from typing import Any, BinaryIO, Callable, Iterator, Optional

CHUNK_SIZE = 64 * 1024


def iter_chunks(reader: Any, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Yield bytes from a file-like object until EOF.

    `str` chunks are encoded as UTF-8; empty reads end the iteration.
    """
    while True:
        chunk = reader.read(chunk_size)
        if not chunk:
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk


def close_quietly(stream: Optional[Any]) -> None:
    """Close a stream if it has close(); OSError on close is ignored."""
    close = getattr(stream, "close", None)
    if close is None:
        return
    try:
        close()
    except OSError:
        pass


class ProgressWriter:
    """
    Writer that reports progress through a callback.

    The callback receives the total bytes written so far. It fires when
    `total_size` bytes have been written, or when at least `interval`
    seconds passed since the previous report.
    """

    def __init__(
        self,
        writer: BinaryIO,
        total_size: int,
        callback: Callable[[int], None],
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self._writer = writer
        self._callback = callback
        self._clock = clock
        self.total_size = total_size
        self.interval = interval
        self.written = 0
        self._last_report = clock()

    def write(self, data: bytes) -> int:
        n = self._writer.write(data)
        if n is None:
            n = len(data)
        if n <= 0:
            return n

        self.written += n
        if self.written == self.total_size:
            self._callback(self.written)
        else:
            now = self._clock()
            if now - self._last_report >= self.interval:
                self._last_report = now
                self._callback(self.written)
        return n
