import asyncio
from collections.abc import AsyncIterable, Iterable

from upload_handler.config.settings import Settings
from upload_handler.progress.base import BaseProgressChannel
from upload_handler.progress.factory import ProgressChannelFactory
from upload_handler.storage.base import BaseStorage
from upload_handler.storage.factory import StorageFactory
from upload_handler.upload.clock import Clock
from upload_handler.upload.models import Part, PipelineResult, SessionConfig
from upload_handler.upload.pipeline import UploadPipeline
from upload_handler.upload.registrar import OnFinish, PartRegistrar


class UploadHandler:
    """Upload entry point for one session: one config, any number of files."""

    def __init__(
        self,
        config: SessionConfig,
        storage: BaseStorage,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self._pipeline = UploadPipeline(config, storage, clock)
        self._registrar = PartRegistrar(self._pipeline)

    async def on_file(
        self, field_name: str, stream: AsyncIterable[bytes], filename: str
    ) -> PipelineResult:
        return await self._pipeline.run(stream, filename)

    async def register_parts(
        self,
        parts: AsyncIterable[Part] | Iterable[Part],
        on_finish: OnFinish,
    ) -> list[asyncio.Task[PipelineResult]]:
        return await self._registrar.register(parts, on_finish)

    async def wait(self, tasks: Iterable[asyncio.Task[PipelineResult]]) -> list[PipelineResult]:
        results = await PartRegistrar.wait(tasks)
        await self._pipeline.drain_progress()
        return results

    async def drain_progress(self) -> None:
        await self._pipeline.drain_progress()


def build_upload_handler(
    settings: Settings,
    session_id: str,
    channel: BaseProgressChannel | None = None,
    clock: Clock | None = None,
) -> UploadHandler:
    """Build an UploadHandler with the configured storage and progress channel."""
    if channel is None:
        channel = ProgressChannelFactory.create(settings)
    config = SessionConfig.from_settings(settings, session_id=session_id, channel=channel)
    return UploadHandler(config, StorageFactory.create(settings), clock=clock)
