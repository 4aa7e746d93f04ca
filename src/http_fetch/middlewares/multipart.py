"""
Multipart/form-data тело без буферизации всего конверта.

Тело пишет отдельный поток (producer) в OS pipe; транспорт читает
другой конец pipe как обычный поток тела. Ошибку producer'а middleware
узнаёт через очередь на одно место и после ответа транспорта выбрасывает
её как MultipartProducerError (вместе с ошибкой транспорта, если была).

Example:
    >>> fields = [
    ...     MultipartField(name="description", values=["hi"]),
    ...     MultipartField(
    ...         name="file",
    ...         filename="f.txt",
    ...         get_reader=lambda: open("f.txt", "rb"),
    ...         file_size=11,
    ...         progress_callback=lambda p: print(p.written),
    ...     ),
    ... ]
    >>> resp = dispatcher.new_request().multipart(fields).post(url)
"""

import logging
import mimetypes
import os
import queue
import threading
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Dict, List, Optional

from urllib3.fields import RequestField, format_multipart_header_param
from urllib3.filepost import choose_boundary

from ..core.exceptions import MultipartProducerError
from ..core.middleware import Middleware
from ..core.options import apply_options
from ..utils.streams import ProgressWriter, close_quietly, iter_chunks

logger = logging.getLogger(__name__)

SNIFF_LEN = 512
DEFAULT_PROGRESS_INTERVAL = 1.0

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
BINARY_CONTENT_TYPE = "application/octet-stream"


@dataclass
class MultipartFieldProgress:
    """Прогресс отправки одного поля."""
    name: str
    filename: str
    file_size: int
    written: int


@dataclass
class MultipartField:
    """
    Поле multipart запроса: либо набор строковых значений, либо поток.

    Attributes:
        name: Имя поля
        filename: Имя файла (пусто для обычного поля)
        content_type: Тип содержимого (пусто - определить автоматически)
        get_reader: Фабрика потока с содержимым
        file_size: Ожидаемый размер (для прогресса)
        extra_content_disposition: Дополнительные параметры Content-Disposition
        progress_interval: Интервал вызова progress_callback (сек)
        progress_callback: Функция, получающая MultipartFieldProgress
        values: Строковые значения; если заданы, get_reader не используется
    """
    name: str
    filename: str = ""
    content_type: str = ""
    get_reader: Optional[Callable[[], BinaryIO]] = None
    file_size: int = 0
    extra_content_disposition: Dict[str, str] = field(default_factory=dict)
    progress_interval: float = 0
    progress_callback: Optional[Callable[[MultipartFieldProgress], None]] = None
    values: List[str] = field(default_factory=list)


@dataclass
class MultipartOptions:
    boundary: str = ""


def detect_content_type(probe: bytes, filename: str = "") -> str:
    """
    Определить тип содержимого по имени файла, иначе по первым байтам.

    Examples:
        >>> detect_content_type(b"hello", "notes.txt")
        'text/plain'
        >>> detect_content_type(b"hello")
        'text/plain; charset=utf-8'
        >>> detect_content_type(b"\\x00\\x01")
        'application/octet-stream'
    """
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed

    if b"\x00" in probe:
        return BINARY_CONTENT_TYPE
    try:
        probe.decode("utf-8")
    except UnicodeDecodeError as exc:
        # Probe может оборвать многобайтовый символ на границе
        if exc.start < len(probe) - 3:
            return BINARY_CONTENT_TYPE
    return TEXT_CONTENT_TYPE


def _part_header(mf: MultipartField, content_type: Optional[str]) -> bytes:
    rf = RequestField(name=mf.name, data=b"", filename=mf.filename or None)
    rf.make_multipart(content_disposition="form-data", content_type=content_type)

    if mf.extra_content_disposition:
        disposition = rf.headers["Content-Disposition"]
        for key, value in mf.extra_content_disposition.items():
            disposition += "; " + format_multipart_header_param(key, value)
        rf.headers["Content-Disposition"] = disposition

    return rf.render_headers().encode("utf-8")


class MultipartWriter:
    """
    Пишет части multipart конверта в поток.

    Args:
        out: Поток, в который пишется тело
        boundary: Разделитель (по умолчанию случайный)
    """

    def __init__(self, out: BinaryIO, boundary: str = ""):
        self._out = out
        self.boundary = boundary or choose_boundary()
        self._first = True

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _open_part(self, header: bytes) -> None:
        prefix = b"" if self._first else b"\r\n"
        self._first = False
        self._out.write(prefix + b"--" + self.boundary.encode("ascii") + b"\r\n" + header)

    def write_field(self, mf: MultipartField) -> None:
        if mf.values:
            for value in mf.values:
                self._open_part(_part_header(MultipartField(name=mf.name), None))
                self._out.write(str(value).encode("utf-8"))
            return

        reader = mf.get_reader()
        try:
            self._write_stream(mf, reader)
        finally:
            close_quietly(reader)

    def _write_stream(self, mf: MultipartField, reader: BinaryIO) -> None:
        probe = reader.read(SNIFF_LEN) or b""
        if isinstance(probe, str):
            probe = probe.encode("utf-8")

        content_type = mf.content_type or detect_content_type(probe, mf.filename)
        self._open_part(_part_header(mf, content_type))

        out = self._out
        if mf.progress_callback is not None:
            def report(written: int) -> None:
                mf.progress_callback(MultipartFieldProgress(
                    name=mf.name,
                    filename=mf.filename,
                    file_size=mf.file_size,
                    written=written,
                ))

            out = ProgressWriter(
                self._out,
                mf.file_size,
                report,
                interval=mf.progress_interval if mf.progress_interval > 0 else DEFAULT_PROGRESS_INTERVAL,
            )

        if probe:
            out.write(probe)
        for chunk in iter_chunks(reader):
            out.write(chunk)

    def close(self) -> None:
        """Записать закрывающий разделитель."""
        prefix = b"" if self._first else b"\r\n"
        self._out.write(prefix + b"--" + self.boundary.encode("ascii") + b"--\r\n")


def _produce(writer: MultipartWriter, out: BinaryIO, fields: List[MultipartField], errors: queue.Queue) -> None:
    try:
        for mf in fields:
            writer.write_field(mf)
        writer.close()
    except BrokenPipeError:
        # Читатель ушёл раньше (ошибка транспорта), сообщать нечего
        logger.debug("Multipart consumer closed the pipe early")
    except Exception as exc:
        errors.put_nowait(exc)
    finally:
        close_quietly(out)


def set_multipart(fields: List[MultipartField], *opts: Callable[[MultipartOptions], None]) -> Middleware:
    """
    Middleware, формирующий multipart/form-data тело.

    Поля пишутся в переданном порядке, значения одного поля - в порядке списка.
    Пустой список полей ничего не меняет.

    Raises:
        MultipartProducerError: producer не смог записать поле
    """
    options = apply_options(MultipartOptions(), *opts)
    fields = list(fields or ())

    def middleware(handler):
        def handle(client, request):
            if not fields:
                return handler(client, request)

            read_fd, write_fd = os.pipe()
            reader = os.fdopen(read_fd, "rb")
            out = os.fdopen(write_fd, "wb")

            writer = MultipartWriter(out, options.boundary)
            request.get_body = lambda: reader
            request.headers.set("Content-Type", writer.content_type)

            errors: queue.Queue = queue.Queue(maxsize=1)
            producer = threading.Thread(
                target=_produce,
                args=(writer, out, fields, errors),
                name="multipart-producer",
                daemon=True,
            )
            producer.start()

            response = None
            handler_error: Optional[Exception] = None
            try:
                response = handler(client, request)
            except Exception as exc:
                handler_error = exc
            finally:
                # Закрытие чтения разблокирует producer, если он ещё пишет
                close_quietly(reader)
                producer.join()

            try:
                producer_error = errors.get_nowait()
            except queue.Empty:
                producer_error = None

            if producer_error is not None:
                raise MultipartProducerError(producer_error, handler_error, response) from producer_error
            if handler_error is not None:
                raise handler_error
            return response
        return handle
    return middleware
