import asyncio
import os
from pathlib import Path

import aiofiles
from aiofiles.threadpool.binary import AsyncBufferedIOBase

from upload_handler.logging.logger import Log
from upload_handler.storage.base import BaseSink, BaseStorage


class LocalFileSink(BaseSink):
    """Streams raw bytes into a file on the local filesystem."""

    def __init__(self, file: AsyncBufferedIOBase, path: Path, fsync: bool = False) -> None:
        self._file = file
        self._fsync = fsync
        self.path = path

    async def write(self, chunk: bytes) -> None:
        await self._file.write(chunk)

    async def close(self) -> None:
        await self._file.flush()
        if self._fsync:
            await asyncio.to_thread(os.fsync, self._file.fileno())
        await self._file.close()

    async def abort(self) -> None:
        try:
            await self._file.close()
        except OSError as exc:
            Log.warning(f"Could not close partial file {self.path}: {exc}")


class LocalStorage(BaseStorage):
    """Opens sinks on local disk with aiofiles."""

    def __init__(self, fsync: bool = False) -> None:
        self._fsync = fsync

    async def open(self, path: Path) -> LocalFileSink:
        file = await aiofiles.open(path, "wb")
        return LocalFileSink(file, path, fsync=self._fsync)
