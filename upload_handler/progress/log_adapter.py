from upload_handler.logging.logger import Log
from upload_handler.progress.base import BaseProgressChannel


class LogProgressChannel(BaseProgressChannel):
    """Writes progress events to the application log only."""

    async def publish(
        self, session_id: str, event_name: str, payload: dict[str, object]
    ) -> None:
        Log.debug(f"[{session_id}] {event_name}: {payload}")
