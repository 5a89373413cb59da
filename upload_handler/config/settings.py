from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    storage_disk: str = "local"
    storage_root: Path = Path("/app/files")
    storage_fsync: bool = False

    report_interval_ms: int = Field(default=200, ge=0)
    report_first_chunk: bool = True
    report_on_complete: bool = False

    progress_channel: str = "log"
    progress_event_name: str = "file-upload"
    notify_channel: str = "file_upload"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "uploads"
    db_username: str = "uploads"
    db_password: str = "secret"

    read_chunk_size: int = Field(default=64 * 1024, gt=0)
