import argparse
import asyncio
import sys
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles

from upload_handler.config.settings import Settings
from upload_handler.database.connection import close_pool, init_pool
from upload_handler.logging.logger import Log
from upload_handler.multipart.exceptions import MultipartError
from upload_handler.multipart.parser import iter_parts
from upload_handler.progress.factory import ProgressChannelFactory
from upload_handler.upload.handler import build_upload_handler
from upload_handler.upload.models import PipelineResult


async def read_body(path: Path, chunk_size: int) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as f:
        while chunk := await f.read(chunk_size):
            yield chunk


async def ingest(
    settings: Settings,
    body_path: Path,
    content_type: str,
    session_id: str,
) -> list[PipelineResult]:
    """Run a stored multipart request body through the upload handler."""
    uses_db = settings.progress_channel.lower() == "postgres"
    if uses_db:
        await init_pool(settings)
    try:
        channel = ProgressChannelFactory.create(settings)
        handler = build_upload_handler(settings, session_id, channel)
        parts = iter_parts(read_body(body_path, settings.read_chunk_size), content_type)
        tasks = await handler.register_parts(
            parts, on_finish=lambda: Log.info(f"Request body {body_path} fully parsed")
        )
        return await handler.wait(tasks)
    finally:
        if uses_db:
            await close_pool()


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> handler -> ingest one request body."""
    parser = argparse.ArgumentParser(prog="upload-handler")
    parser.add_argument("body", type=Path, help="raw multipart/form-data request body")
    parser.add_argument("content_type", help="Content-Type header, including boundary")
    parser.add_argument("session_id", help="session that receives progress events")
    args = parser.parse_args(argv)

    settings = Settings()
    Log.configure(settings.log_level)

    try:
        results = asyncio.run(
            ingest(settings, args.body, args.content_type, args.session_id)
        )
    except MultipartError as exc:
        Log.error(f"Cannot parse request body {args.body}: {exc}")
        return 2
    failed = [r for r in results if not r.ok]
    for result in failed:
        Log.error(f"[{result.filename}] failed at {result.stage}")
    Log.info(f"Stored {len(results) - len(failed)} of {len(results)} file(s)")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
