import asyncio
from collections.abc import AsyncIterable, AsyncIterator

from upload_handler.progress.base import BaseProgressChannel
from upload_handler.upload.clock import Clock
from upload_handler.upload.models import ProgressEvent, ThrottleState
from upload_handler.upload.publisher import ProgressPublisher


class ThrottledCounter:
    """Pass-through stage that counts bytes and reports progress at most once per interval.

    One instance serves exactly one file. Chunks are forwarded unchanged, with
    their original boundaries, before they are counted. Reports are queued on a
    ProgressPublisher, so a slow channel never holds back the next chunk.
    """

    def __init__(
        self,
        filename: str,
        session_id: str,
        channel: BaseProgressChannel,
        clock: Clock,
        interval_ms: int = 200,
        report_first_chunk: bool = True,
        event_name: str = "file-upload",
    ) -> None:
        self.filename = filename
        self._clock = clock
        self._interval_ms = interval_ms
        self._report_first_chunk = report_first_chunk
        self._publisher = ProgressPublisher(
            channel, session_id=session_id, filename=filename, event_name=event_name
        )
        self.state = ThrottleState(last_emitted_at=clock.now_ms())

    @property
    def processed_already(self) -> int:
        return self.state.processed_already

    @property
    def events_published(self) -> int:
        return self._publisher.delivered

    def can_report(self, now: float) -> bool:
        return now - self.state.last_emitted_at >= self._interval_ms

    async def wrap(self, source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
        """Yield every chunk of ``source`` and report progress as a side effect."""
        seen_data = False
        async for chunk in source:
            yield chunk

            if not chunk:
                continue
            self.state.processed_already += len(chunk)

            now = self._clock.now_ms()
            first = not seen_data
            seen_data = True
            if (first and self._report_first_chunk) or self.can_report(now):
                self.state.last_emitted_at = now
                self._report()

    def report_final(self) -> None:
        """Queue the total byte count unless a delivered event already carried it."""
        self.state.last_emitted_at = self._clock.now_ms()
        self._report(final=True)

    def close(self) -> asyncio.Task[None] | None:
        """Stop reporting. Returns the task still delivering queued events, if any."""
        return self._publisher.close()

    async def flush(self) -> None:
        """Stop reporting and wait for queued events to reach the channel."""
        await self._publisher.join()

    def cancel(self) -> None:
        self._publisher.cancel()

    def _report(self, final: bool = False) -> None:
        event = ProgressEvent(
            filename=self.filename, processed_already=self.state.processed_already
        )
        self._publisher.submit(event, final=final)
