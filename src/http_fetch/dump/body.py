"""
Чтение тела для лога без потери самого тела.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from ..utils.streams import iter_chunks


@dataclass
class DrainedBody:
    """
    Attributes:
        content: Сохранённая часть тела (не больше max_size)
        size: Полный размер тела
        truncated: Тело длиннее max_size
    """
    content: bytes
    size: int
    truncated: bool = False

    def to_fields(self) -> dict:
        fields = {
            "content": self.content.decode("utf-8", errors="replace"),
            "size": self.size,
        }
        if self.truncated:
            fields["truncated"] = True
            fields["captured_size"] = len(self.content)
        return fields


def _read_all(data: Any) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if hasattr(data, "read"):
        return b"".join(iter_chunks(data))
    return b"".join(
        chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        for chunk in data
    )


def drain_body(data: Any, max_size: int) -> Tuple[Optional[DrainedBody], Any]:
    """
    Прочитать тело целиком и вернуть копию для лога и замену тела.

    Args:
        data: bytes, str, поток или итератор чанков
        max_size: Сколько байт сохранить (<= 0 - без ограничения)

    Returns:
        (DrainedBody, bytes для повторной отправки); (None, data), если тела нет
    """
    if data is None:
        return None, None

    payload = _read_all(data)
    size = len(payload)

    if 0 < max_size < size:
        return DrainedBody(payload[:max_size], size, truncated=True), payload
    return DrainedBody(payload, size), payload
