import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import suppress

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from upload_handler.logging.logger import Log
from upload_handler.multipart.exceptions import MultipartError
from upload_handler.upload.models import Part

_END = object()


def boundary_from_content_type(content_type: str) -> bytes:
    """Extract the multipart boundary from a Content-Type header value."""
    mime_type, options = parse_options_header(content_type)
    if mime_type != b"multipart/form-data":
        raise MultipartError(f"Unsupported content type: {content_type!r}")
    boundary = options.get(b"boundary")
    if not boundary:
        raise MultipartError("Missing multipart boundary")
    return boundary


class PartStream:
    """Async byte iterator for one part, fed by the parser as the body arrives.

    Holds at most ``max_chunks`` pending chunks, so the request body is read
    only as fast as the part is consumed. Closing the stream discards the
    rest of the part.
    """

    def __init__(self, max_chunks: int = 1) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_chunks)
        self._closed = False
        self._exhausted = False

    async def feed(self, chunk: bytes) -> None:
        if not self._closed:
            await self._queue.put(chunk)

    async def finish(self, error: BaseException | None = None) -> None:
        if not self._closed:
            await self._queue.put(error if error is not None else _END)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        if self._exhausted:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._exhausted = True
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self._exhausted = True
            raise item
        return item  # type: ignore[return-value]

    async def aclose(self) -> None:
        self._closed = True
        self._exhausted = True
        while not self._queue.empty():
            self._queue.get_nowait()


class _BodySplitter:
    """Drives python-multipart and turns its callbacks into Part streams."""

    def __init__(self, boundary: bytes, parts: asyncio.Queue[object], max_chunks: int) -> None:
        self._parts = parts
        self._max_chunks = max_chunks
        self._pending: list[tuple[str, PartStream | None, object]] = []
        self._headers: dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._current: PartStream | None = None
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
            },
        )

    async def run(self, body: AsyncIterable[bytes]) -> None:
        try:
            async for chunk in body:
                self._parser.write(chunk)
                await self._flush()
            self._parser.finalize()
            await self._flush()
            if self._current is not None:
                raise MultipartError("Request body ended inside a part")
        except (MultipartParseError, MultipartError) as exc:
            await self._abort(exc if isinstance(exc, MultipartError) else MultipartError(str(exc)))
            return
        except Exception as exc:
            await self._abort(exc)
            return
        await self._parts.put(_END)

    async def _abort(self, exc: Exception) -> None:
        self._pending.clear()
        if self._current is not None:
            await self._current.finish(exc)
            self._current = None
        await self._parts.put(exc)

    async def _flush(self) -> None:
        pending, self._pending = self._pending, []
        for kind, stream, payload in pending:
            if kind == "part":
                await self._parts.put(payload)
            elif kind == "data":
                await stream.feed(payload)  # type: ignore[union-attr, arg-type]
            elif kind == "end":
                await stream.finish()  # type: ignore[union-attr]

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        _disposition, options = parse_options_header(
            self._headers.get(b"content-disposition", b"")
        )
        field_name = options.get(b"name", b"").decode("utf-8", errors="replace")
        filename = options.get(b"filename")
        if not filename:
            Log.debug(f"Skipping non-file field '{field_name}'")
            self._current = None
            return
        stream = PartStream(self._max_chunks)
        self._current = stream
        part = Part(field_name, stream, filename.decode("utf-8", errors="replace"))
        self._pending.append(("part", None, part))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._current is not None and end > start:
            self._pending.append(("data", self._current, data[start:end]))

    def _on_part_end(self) -> None:
        if self._current is not None:
            self._pending.append(("end", self._current, None))
            self._current = None


async def iter_parts(
    body: AsyncIterable[bytes],
    content_type: str,
    max_chunks: int = 1,
) -> AsyncIterator[Part]:
    """Split a raw multipart/form-data body into file parts, lazily.

    Each yielded part's stream must be consumed or closed; the body is not
    read past a part that nobody drains.

    Raises:
        MultipartError: on a bad Content-Type or a malformed body.
    """
    boundary = boundary_from_content_type(content_type)
    parts: asyncio.Queue[object] = asyncio.Queue(maxsize=1)
    splitter = _BodySplitter(boundary, parts, max_chunks)
    reader = asyncio.create_task(splitter.run(body), name="multipart-reader")
    try:
        while True:
            item = await parts.get()
            if item is _END:
                break
            if isinstance(item, BaseException):
                raise item
            yield item  # type: ignore[misc]
        await reader
    finally:
        if not reader.done():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader
