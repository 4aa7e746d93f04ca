"""Тесты пула буферов."""

import io
import threading

from http_fetch.utils import bufferpool
from http_fetch.utils.bufferpool import BufferPool


class TestBufferPool:

    def test_get_returns_empty_buffer(self):
        pool = BufferPool()
        buf = pool.get()
        buf.write(b"dirty")
        pool.put(buf)

        again = pool.get()

        assert again is buf
        assert again.getvalue() == b""

    def test_oversized_buffers_are_dropped(self):
        pool = BufferPool(max_buffer_size=4)
        buf = io.BytesIO(b"too large")

        pool.put(buf)

        assert len(pool) == 0

    def test_pool_size_is_bounded(self):
        pool = BufferPool(max_pooled=2)
        for _ in range(5):
            pool.put(io.BytesIO())

        assert len(pool) == 2

    def test_closed_buffer_is_dropped(self):
        pool = BufferPool()
        buf = io.BytesIO()
        buf.close()

        pool.put(buf)

        assert len(pool) == 0

    def test_shared_pool_concurrent_use(self):
        results = []

        def worker(n):
            buf = bufferpool.get()
            try:
                buf.write(str(n).encode() * 100)
                results.append(buf.getvalue() == str(n).encode() * 100)
            finally:
                bufferpool.put(buf)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(results)
        assert len(results) == 20
