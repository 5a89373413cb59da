from collections.abc import Callable

from upload_handler.config.settings import Settings
from upload_handler.progress.base import BaseProgressChannel
from upload_handler.progress.log_adapter import LogProgressChannel
from upload_handler.progress.memory_adapter import InMemoryProgressChannel
from upload_handler.progress.postgres_adapter import PostgresNotifyProgressChannel


class ProgressChannelFactory:
    """Creates the configured progress channel adapter."""

    ADAPTERS: dict[str, Callable[[Settings], BaseProgressChannel]] = {
        "log": lambda _settings: LogProgressChannel(),
        "memory": lambda _settings: InMemoryProgressChannel(),
        "postgres": lambda settings: PostgresNotifyProgressChannel(settings.notify_channel),
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseProgressChannel:
        name = settings.progress_channel.lower()
        builder = cls.ADAPTERS.get(name)
        if builder is None:
            raise ValueError(
                f"Unknown progress channel '{name}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return builder(settings)
