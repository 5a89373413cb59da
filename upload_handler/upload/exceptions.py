class UploadError(Exception):
    """Base exception for all upload pipeline failures."""

    stage: str = "pipeline"


class SourceReadError(UploadError):
    """Raised when the inbound part stream fails before completion."""

    stage = "source"


class SinkOpenError(UploadError):
    """Raised when the target file cannot be opened for writing."""

    stage = "sink_open"


class SinkWriteError(UploadError):
    """Raised when writing or flushing to storage fails mid-stream."""

    stage = "sink_write"


class ChannelPublishError(UploadError):
    """Raised when a progress event cannot be published. Never fatal."""

    stage = "channel"
