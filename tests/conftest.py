from collections.abc import Callable
from pathlib import Path

import pytest

from tests.fakes import RecordingStorage
from upload_handler.progress.memory_adapter import InMemoryProgressChannel
from upload_handler.upload.models import SessionConfig


@pytest.fixture
def channel() -> InMemoryProgressChannel:
    return InMemoryProgressChannel()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def make_config(channel: InMemoryProgressChannel, tmp_path: Path) -> Callable[..., SessionConfig]:
    def _make(**overrides: object) -> SessionConfig:
        values: dict[str, object] = {
            "channel": channel,
            "session_id": "01",
            "storage_root": tmp_path,
            "report_interval_ms": 200,
        }
        values.update(overrides)
        return SessionConfig(**values)  # type: ignore[arg-type]

    return _make
