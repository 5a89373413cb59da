from upload_handler.progress.base import BaseProgressChannel


class InMemoryProgressChannel(BaseProgressChannel):
    """Keeps every published event in a list, in publish order."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str, dict[str, object]]] = []

    async def publish(
        self, session_id: str, event_name: str, payload: dict[str, object]
    ) -> None:
        self.published.append((session_id, event_name, dict(payload)))

    def for_session(self, session_id: str) -> list[dict[str, object]]:
        return [payload for sid, _event, payload in self.published if sid == session_id]
