import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import aclosing

from upload_handler.logging.logger import Log
from upload_handler.storage.base import BaseSink, BaseStorage, target_path
from upload_handler.storage.exceptions import StorageError
from upload_handler.upload.clock import Clock, MonotonicClock
from upload_handler.upload.exceptions import (
    SinkOpenError,
    SinkWriteError,
    SourceReadError,
    UploadError,
)
from upload_handler.upload.models import PipelineResult, SessionConfig
from upload_handler.upload.throttle import ThrottledCounter


class _GuardedSource:
    """Re-raises any failure of the wrapped source as SourceReadError."""

    def __init__(self, source: AsyncIterable[bytes]) -> None:
        self._iterator = aiter(source)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        try:
            return await anext(self._iterator)
        except StopAsyncIteration:
            raise
        except Exception as exc:
            raise SourceReadError(f"Part stream failed: {exc}") from exc


class UploadPipeline:
    """Streams one part through a ThrottledCounter into a storage sink.

    Pipeline: source -> counter -> sink. Chunks are pulled one at a time and
    the next one is only requested after the sink accepted the previous one.
    """

    def __init__(
        self,
        config: SessionConfig,
        storage: BaseStorage,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._storage = storage
        self._clock = clock if clock is not None else MonotonicClock()
        self._publishing: set[asyncio.Task[None]] = set()

    async def run(self, part_stream: AsyncIterable[bytes], filename: str) -> PipelineResult:
        """Persist ``part_stream`` at ``storage_root/filename``.

        Stage failures are returned in the result, never raised.
        """
        result = PipelineResult(filename=filename)
        counter = ThrottledCounter(
            filename=filename,
            session_id=self._config.session_id,
            channel=self._config.channel,
            clock=self._clock,
            interval_ms=self._config.report_interval_ms,
            report_first_chunk=self._config.report_first_chunk,
            event_name=self._config.event_name,
        )

        try:
            sink = await self._open(filename, result)
        except UploadError as exc:
            await self._release_source(part_stream)
            return self._fail(result, exc)

        try:
            await self._pump(counter, part_stream, sink, result)
            try:
                await sink.close()
            except Exception as exc:
                raise SinkWriteError(f"Could not finalize {result.path}: {exc}") from exc
        except UploadError as exc:
            await sink.abort()
            await self._release_source(part_stream)
            self._detach(counter)
            return self._fail(result, exc)
        except asyncio.CancelledError:
            counter.cancel()
            await sink.abort()
            await self._release_source(part_stream)
            raise

        if self._config.report_on_complete:
            counter.report_final()
        self._detach(counter)
        Log.info(
            f"File [{filename}] upload finished",
            session=self._config.session_id,
            bytes_written=result.bytes_written,
        )
        return result

    async def _open(self, filename: str, result: PipelineResult) -> BaseSink:
        try:
            result.path = target_path(self._config.storage_root, filename)
            return await self._storage.open(result.path)
        except (StorageError, OSError, ValueError) as exc:
            raise SinkOpenError(f"Cannot open target for [{filename}]: {exc}") from exc

    async def _pump(
        self,
        counter: ThrottledCounter,
        part_stream: AsyncIterable[bytes],
        sink: BaseSink,
        result: PipelineResult,
    ) -> None:
        async with aclosing(counter.wrap(_GuardedSource(part_stream))) as chunks:
            async for chunk in chunks:
                try:
                    await sink.write(chunk)
                except Exception as exc:
                    raise SinkWriteError(f"Write to {result.path} failed: {exc}") from exc
                result.bytes_written += len(chunk)

    async def drain_progress(self) -> None:
        """Wait until progress events of finished runs have reached the channel."""
        if self._publishing:
            await asyncio.gather(*self._publishing)

    def _detach(self, counter: ThrottledCounter) -> None:
        # Queued events outlive the run; persistence does not wait for them.
        task = counter.close()
        if task is not None and not task.done():
            self._publishing.add(task)
            task.add_done_callback(self._publishing.discard)

    async def _release_source(self, part_stream: AsyncIterable[bytes]) -> None:
        # Parsers stall until an abandoned part is drained or closed.
        close = getattr(part_stream, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as exc:
            Log.warning(f"Could not close part stream: {exc}")

    def _fail(self, result: PipelineResult, exc: UploadError) -> PipelineResult:
        result.error = exc
        Log.error(
            f"File [{result.filename}] upload failed: {exc}",
            session=self._config.session_id,
            stage=exc.stage,
        )
        return result
