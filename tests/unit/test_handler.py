import asyncio
from pathlib import Path

import pytest

from tests.fakes import stream_of
from upload_handler.config.settings import Settings
from upload_handler.multipart.parser import iter_parts
from upload_handler.progress.memory_adapter import InMemoryProgressChannel
from upload_handler.upload.clock import ManualClock
from upload_handler.upload.handler import UploadHandler, build_upload_handler
from upload_handler.upload.models import Part, PipelineResult, SessionConfig


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {"storage_root": tmp_path, "progress_channel": "memory"}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


class TestSessionConfig:
    def test_from_settings(self, tmp_path: Path) -> None:
        channel = InMemoryProgressChannel()
        settings = _settings(tmp_path, report_interval_ms=50, report_on_complete=True)

        config = SessionConfig.from_settings(settings, session_id="s1", channel=channel)

        assert config.channel is channel
        assert config.session_id == "s1"
        assert config.storage_root == tmp_path
        assert config.report_interval_ms == 50
        assert config.report_on_complete is True
        assert config.event_name == "file-upload"

    def test_requires_session_id(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="session_id"):
            SessionConfig(channel=InMemoryProgressChannel(), session_id="", storage_root=tmp_path)

    def test_rejects_negative_interval(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="report_interval_ms"):
            SessionConfig(
                channel=InMemoryProgressChannel(),
                session_id="s1",
                storage_root=tmp_path,
                report_interval_ms=-5,
            )


class TestUploadHandler:
    @pytest.mark.asyncio
    async def test_on_file_saves_to_storage_root(self, tmp_path: Path) -> None:
        channel = InMemoryProgressChannel()
        handler = build_upload_handler(
            _settings(tmp_path), session_id="01", channel=channel, clock=ManualClock()
        )

        result = await handler.on_file("video", stream_of([b"hey", b"dude"]), "mockFile.txt")
        await handler.drain_progress()

        assert result.ok
        assert (tmp_path / "mockFile.txt").read_bytes() == b"heydude"
        assert channel.for_session("01") == [{"processedAlready": 3, "filename": "mockFile.txt"}]

    @pytest.mark.asyncio
    async def test_register_parts_and_wait(self, tmp_path: Path) -> None:
        handler = build_upload_handler(_settings(tmp_path), session_id="01")
        assert isinstance(handler, UploadHandler)
        finished: list[bool] = []

        tasks = await handler.register_parts(
            [
                Part("a", stream_of([b"first"]), "one.txt"),
                Part("b", stream_of([b"second"]), "two.txt"),
            ],
            on_finish=lambda: finished.append(True),
        )
        results = await handler.wait(tasks)

        assert finished == [True]
        assert [r.ok for r in results] == [True, True]
        assert (tmp_path / "one.txt").read_bytes() == b"first"
        assert (tmp_path / "two.txt").read_bytes() == b"second"

    def test_uses_configured_channel_when_none_given(self, tmp_path: Path) -> None:
        handler = build_upload_handler(_settings(tmp_path), session_id="01")
        assert isinstance(handler.config.channel, InMemoryProgressChannel)

    @pytest.mark.asyncio
    async def test_rejected_multipart_filename_does_not_stall_next_part(
        self, tmp_path: Path
    ) -> None:
        boundary = "----HandlerBoundary"
        body = b""
        for filename, data in ((b"a\x00b.txt", b"x" * 2048), (b"ok.txt", b"fine")):
            body += (
                b"--" + boundary.encode() + b"\r\n"
                b'Content-Disposition: form-data; name="file"; filename="' + filename + b'"\r\n'
                b"Content-Type: text/plain\r\n\r\n" + data + b"\r\n"
            )
        body += b"--" + boundary.encode() + b"--\r\n"
        chunks = [body[i : i + 256] for i in range(0, len(body), 256)]
        handler = build_upload_handler(_settings(tmp_path), session_id="01", clock=ManualClock())

        async def register_and_wait() -> list[PipelineResult]:
            tasks = await handler.register_parts(
                iter_parts(stream_of(chunks), f"multipart/form-data; boundary={boundary}"),
                on_finish=lambda: None,
            )
            return await handler.wait(tasks)

        results = await asyncio.wait_for(register_and_wait(), timeout=5)

        assert [r.stage for r in results] == ["sink_open", None]
        assert (tmp_path / "ok.txt").read_bytes() == b"fine"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["ok.txt"]
