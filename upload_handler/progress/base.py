from abc import ABC, abstractmethod


class BaseProgressChannel(ABC):
    """Contract for publish-capable progress channels addressed by session id."""

    @abstractmethod
    async def publish(
        self, session_id: str, event_name: str, payload: dict[str, object]
    ) -> None:
        """Publish one event to the session's observers.

        Fire-and-forget: no acknowledgment is expected and delivery is not
        guaranteed.

        Raises:
            ChannelPublishError: if the transport rejects the event.
        """
