import asyncio
import inspect
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable

from upload_handler.logging.logger import Log
from upload_handler.upload.models import Part, PipelineResult
from upload_handler.upload.pipeline import UploadPipeline

OnFinish = Callable[[], Awaitable[None] | None]


class PartRegistrar:
    """Starts one pipeline per incoming part and signals when the parts run out."""

    def __init__(self, pipeline: UploadPipeline) -> None:
        self._pipeline = pipeline
        self._running: set[asyncio.Task[PipelineResult]] = set()

    async def register(
        self,
        parts: AsyncIterable[Part] | Iterable[Part],
        on_finish: OnFinish,
    ) -> list[asyncio.Task[PipelineResult]]:
        """Start a pipeline task for every part, then call ``on_finish``.

        ``on_finish`` runs once the part source is exhausted and every task
        has been started; it does not wait for the tasks to complete. Parts
        may be ``Part`` values or plain ``(field_name, stream, filename)``
        tuples.

        Returns:
            The started tasks, in part arrival order.
        """
        tasks: list[asyncio.Task[PipelineResult]] = []
        async for part in _iterate(parts):
            field_name, stream, filename = part
            Log.info(f"Receiving part '{field_name}' as [{filename}]")
            task = asyncio.create_task(
                self._pipeline.run(stream, filename), name=f"upload:{filename}"
            )
            self._running.add(task)
            task.add_done_callback(self._running.discard)
            tasks.append(task)

        Log.info(f"All {len(tasks)} part(s) registered")
        outcome = on_finish()
        if inspect.isawaitable(outcome):
            await outcome
        return tasks

    @staticmethod
    async def wait(tasks: Iterable[asyncio.Task[PipelineResult]]) -> list[PipelineResult]:
        """Wait for started pipelines and return their results in start order."""
        return list(await asyncio.gather(*tasks))


async def _iterate(parts: AsyncIterable[Part] | Iterable[Part]) -> AsyncIterator[Part]:
    if isinstance(parts, AsyncIterable):
        async for part in parts:
            yield part
    else:
        for part in parts:
            yield part
