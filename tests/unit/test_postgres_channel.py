import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest

from upload_handler.progress.postgres_adapter import PostgresNotifyProgressChannel
from upload_handler.upload.exceptions import ChannelPublishError


def _patch_connection(conn: MagicMock):  # type: ignore[no-untyped-def]
    @asynccontextmanager
    async def fake_get_connection() -> AsyncIterator[MagicMock]:
        yield conn

    return patch(
        "upload_handler.progress.postgres_adapter.get_connection", fake_get_connection
    )


class TestPostgresNotifyProgressChannel:
    @pytest.mark.asyncio
    async def test_notifies_with_session_payload(self) -> None:
        conn = MagicMock()
        conn.execute = AsyncMock()
        conn.commit = AsyncMock()
        channel = PostgresNotifyProgressChannel("file_upload")

        with _patch_connection(conn):
            await channel.publish(
                "sock-1", "file-upload", {"processedAlready": 5, "filename": "a.txt"}
            )

        sql, (notify_channel, message) = conn.execute.await_args.args
        assert sql == "SELECT pg_notify(%s, %s)"
        assert notify_channel == "file_upload"
        assert json.loads(message) == {
            "session_id": "sock-1",
            "event": "file-upload",
            "data": {"processedAlready": 5, "filename": "a.txt"},
        }
        conn.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wraps_database_errors(self) -> None:
        conn = MagicMock()
        conn.execute = AsyncMock(side_effect=psycopg.OperationalError("server closed"))
        channel = PostgresNotifyProgressChannel("file_upload")

        with _patch_connection(conn), pytest.raises(ChannelPublishError, match="pg_notify failed"):
            await channel.publish("sock-1", "file-upload", {})
