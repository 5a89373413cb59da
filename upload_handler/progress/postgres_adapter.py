import json

import psycopg

from upload_handler.database.connection import get_connection
from upload_handler.progress.base import BaseProgressChannel
from upload_handler.upload.exceptions import ChannelPublishError


class PostgresNotifyProgressChannel(BaseProgressChannel):
    """Publishes progress through Postgres LISTEN/NOTIFY.

    Every event goes to one NOTIFY channel; listeners filter on the
    ``session_id`` carried in the JSON payload.
    """

    def __init__(self, notify_channel: str) -> None:
        self._notify_channel = notify_channel

    async def publish(
        self, session_id: str, event_name: str, payload: dict[str, object]
    ) -> None:
        message = json.dumps(
            {"session_id": session_id, "event": event_name, "data": payload}
        )
        try:
            async with get_connection() as conn:
                await conn.execute(
                    "SELECT pg_notify(%s, %s)", (self._notify_channel, message)
                )
                await conn.commit()
        except psycopg.Error as exc:
            raise ChannelPublishError(f"pg_notify failed: {exc}") from exc
