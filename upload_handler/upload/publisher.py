import asyncio

from upload_handler.logging.logger import Log
from upload_handler.progress.base import BaseProgressChannel
from upload_handler.upload.models import ProgressEvent

_STOP = object()


class ProgressPublisher:
    """Delivers one file's progress events in order, off the upload's critical path.

    Events are queued by ``submit`` without suspending the caller and handed to
    the channel one at a time by a background task. A failed publish is logged
    and dropped; later events are still delivered.
    """

    def __init__(
        self,
        channel: BaseProgressChannel,
        session_id: str,
        filename: str,
        event_name: str = "file-upload",
    ) -> None:
        self._channel = channel
        self._session_id = session_id
        self._filename = filename
        self._event_name = event_name
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.delivered = 0
        self.last_delivered: int | None = None

    def submit(self, event: ProgressEvent, final: bool = False) -> None:
        """Queue ``event``. A final event is dropped if its total was already delivered."""
        if self._closed:
            raise RuntimeError(f"Progress publisher for [{self._filename}] is closed")
        if self._task is None:
            self._task = asyncio.create_task(
                self._deliver(), name=f"progress:{self._filename}"
            )
        self._queue.put_nowait((event, final))

    def close(self) -> asyncio.Task[None] | None:
        """Stop accepting events. Returns the delivery task, if one was started."""
        if not self._closed:
            self._closed = True
            if self._task is not None:
                self._queue.put_nowait(_STOP)
        return self._task

    async def join(self) -> None:
        """Close and wait until every queued event has been handed to the channel."""
        task = self.close()
        if task is not None:
            await task

    def cancel(self) -> None:
        self._closed = True
        if self._task is not None:
            self._task.cancel()

    async def _deliver(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _STOP:
                return
            event, final = item  # type: ignore[misc]
            if final and self.last_delivered == event.processed_already:
                continue
            await self._publish(event)

    async def _publish(self, event: ProgressEvent) -> None:
        try:
            await self._channel.publish(
                self._session_id, self._event_name, event.to_payload()
            )
        except Exception as exc:
            Log.warning(
                f"Progress for [{self._filename}] not delivered to {self._session_id}: {exc}"
            )
            return
        self.delivered += 1
        self.last_delivered = event.processed_already
        Log.info(
            f"File [{self._filename}] got {event.processed_already} bytes to {self._session_id}"
        )
