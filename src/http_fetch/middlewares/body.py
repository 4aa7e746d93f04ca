"""
Body middlewares.

Два вида тела:
- одноразовое (`body_reader`) - поток читается один раз;
- повторяемое (`body_get_reader`, `body_get_bytes` и всё, что на них
  построено) - фабрика отдаёт новый поток на каждый вызов, поэтому
  retry middleware может отправить запрос ещё раз.

JSON/XML/form кодируются один раз при входе в pipeline и дальше
раздаются из готовых байтов.
"""

import io
import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Mapping, Optional, Union

from ..core.exceptions import FetchError, PipelineError
from ..core.middleware import Middleware
from ..core.models import QueryValues
from ..core.options import apply_options
from ..utils import bufferpool

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_XML = "application/xml"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"


@dataclass
class BodyOptions:
    """
    Настройки тела запроса.

    Attributes:
        content_type: Значение заголовка Content-Type (пусто - не трогать)
        auto_set_content_length: Выставлять длину тела, если она известна
    """
    content_type: str = ""
    auto_set_content_length: bool = True


def content_type(value: str) -> Callable[[BodyOptions], None]:
    """Мутатор BodyOptions, задающий Content-Type."""
    def mutator(options: BodyOptions) -> None:
        options.content_type = value
    return mutator


def _reader_length(reader: Any) -> Optional[int]:
    if isinstance(reader, io.BytesIO):
        position = reader.tell()
        end = reader.seek(0, io.SEEK_END)
        reader.seek(position)
        return end - position
    if hasattr(reader, "__len__"):
        return len(reader)
    return None


def body_reader(reader: Optional[BinaryIO], *opts: Callable[[BodyOptions], None]) -> Middleware:
    """
    Одноразовое тело из потока.

    Длина выставляется, если поток умеет её сообщить (BytesIO или __len__)
    и длина ещё не задана. Фабрика тела не устанавливается.
    """
    options = apply_options(BodyOptions(), *opts)

    def middleware(handler):
        def handle(client, request):
            if reader is not None:
                request.body = reader

                if options.auto_set_content_length and request.content_length is None:
                    request.content_length = _reader_length(reader)

                if options.content_type:
                    request.headers.set("Content-Type", options.content_type)

            return handler(client, request)
        return handle
    return middleware


def body_get_reader(
    get_reader: Optional[Callable[[], BinaryIO]],
    *opts: Callable[[BodyOptions], None]
) -> Middleware:
    """
    Повторяемое тело: фабрика вызывается при каждой отправке.

    Фабрика не вызывается здесь; её ошибки round_trip поднимает как PipelineError.
    """
    options = apply_options(BodyOptions(), *opts)

    def middleware(handler):
        def handle(client, request):
            if get_reader is not None:
                request.get_body = get_reader

                if options.content_type:
                    request.headers.set("Content-Type", options.content_type)

            return handler(client, request)
        return handle
    return middleware


def body_get_bytes(
    get_bytes: Optional[Callable[[], bytes]],
    *opts: Callable[[BodyOptions], None]
) -> Middleware:
    """
    Тело из байтов, вычисленных один раз при входе в pipeline.

    Raises:
        PipelineError: фабрика байтов упала (pipeline дальше не идёт)
    """
    options = apply_options(BodyOptions(), *opts)

    def middleware(handler):
        def handle(client, request):
            if get_bytes is not None:
                try:
                    data = get_bytes()
                except FetchError:
                    raise
                except Exception as exc:
                    raise PipelineError(exc, stage="body") from exc

                request.get_body = lambda: io.BytesIO(data)

                if options.auto_set_content_length and request.content_length is None:
                    request.content_length = len(data)

                if options.content_type:
                    request.headers.set("Content-Type", options.content_type)

            return handler(client, request)
        return handle
    return middleware

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# ENCODED BODIES
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _encode_with_pool(write: Callable[[BinaryIO], None]) -> bytes:
    buf = bufferpool.get()
    try:
        write(buf)
        return buf.getvalue()
    finally:
        bufferpool.put(buf)


def encode_json(data: Any) -> bytes:
    """str/bytes как есть, остальное через json.dumps с переводом строки в конце."""
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)

    def write(buf):
        buf.write(json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8"))
        buf.write(b"\n")
    return _encode_with_pool(write)


def encode_xml(data: Any) -> bytes:
    """
    str/bytes как есть; Element сериализуется ElementTree;
    объект с методом to_xml() отдаёт Element или строку.
    """
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)

    if not isinstance(data, ET.Element) and hasattr(data, "to_xml"):
        data = data.to_xml()
        if isinstance(data, (str, bytes, bytearray)):
            return encode_xml(data)

    if not isinstance(data, ET.Element):
        raise TypeError(f"cannot encode {type(data).__name__} as XML")

    return _encode_with_pool(lambda buf: ET.ElementTree(data).write(buf, encoding="utf-8"))


def encode_form(data: Union[QueryValues, Mapping[str, Any], None]) -> bytes:
    if data is None:
        return b""
    if not isinstance(data, QueryValues):
        data = QueryValues(data)
    return _encode_with_pool(lambda buf: buf.write(data.encode().encode("ascii")))


def body_json(data: Any, *opts: Callable[[BodyOptions], None]) -> Middleware:
    """JSON тело с Content-Type: application/json."""
    return body_get_bytes(lambda: encode_json(data), content_type(CONTENT_TYPE_JSON), *opts)


def body_xml(data: Any, *opts: Callable[[BodyOptions], None]) -> Middleware:
    """XML тело с Content-Type: application/xml."""
    return body_get_bytes(lambda: encode_xml(data), content_type(CONTENT_TYPE_XML), *opts)


def body_form(
    data: Union[QueryValues, Mapping[str, Any]],
    *opts: Callable[[BodyOptions], None]
) -> Middleware:
    """urlencoded тело с Content-Type: application/x-www-form-urlencoded."""
    return body_get_bytes(lambda: encode_form(data), content_type(CONTENT_TYPE_FORM), *opts)
