from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from upload_handler.upload.exceptions import UploadError

if TYPE_CHECKING:
    from upload_handler.config.settings import Settings
    from upload_handler.progress.base import BaseProgressChannel


@dataclass(frozen=True)
class SessionConfig:
    """Per-session upload configuration, immutable for the handler's lifetime."""

    channel: "BaseProgressChannel"
    session_id: str
    storage_root: Path
    report_interval_ms: int = 200
    report_first_chunk: bool = True
    report_on_complete: bool = False
    event_name: str = "file-upload"

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("session_id is required")
        if self.report_interval_ms < 0:
            raise ValueError(
                f"report_interval_ms must be >= 0, got {self.report_interval_ms}"
            )

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        session_id: str,
        channel: "BaseProgressChannel",
    ) -> "SessionConfig":
        return cls(
            channel=channel,
            session_id=session_id,
            storage_root=Path(settings.storage_root),
            report_interval_ms=settings.report_interval_ms,
            report_first_chunk=settings.report_first_chunk,
            report_on_complete=settings.report_on_complete,
            event_name=settings.progress_event_name,
        )


@dataclass(slots=True)
class ThrottleState:
    """Mutable per-file throttle bookkeeping. Never shared across files."""

    last_emitted_at: float
    processed_already: int = 0


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    filename: str
    processed_already: int

    def to_payload(self) -> dict[str, object]:
        """Wire shape published on the progress channel."""
        return {"processedAlready": self.processed_already, "filename": self.filename}


class Part(NamedTuple):
    """One file part of a multipart body, as yielded by the parser."""

    field_name: str
    stream: AsyncIterable[bytes]
    filename: str


@dataclass
class PipelineResult:
    """Outcome of one file's pipeline run."""

    filename: str
    path: Path | None = None
    bytes_written: int = 0
    error: UploadError | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def stage(self) -> str | None:
        return self.error.stage if self.error is not None else None
