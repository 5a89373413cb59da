import logging

import pytest

from upload_handler.logging.logger import Log


class TestLog:
    def test_appends_context_to_message(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="upload_handler"):
            Log.info("File [a.txt] upload finished", session="01", bytes_written=3)

        record = caplog.records[-1]
        assert record.getMessage() == (
            "File [a.txt] upload finished (session=01 bytes_written=3)"
        )
        assert record.session == "01"  # type: ignore[attr-defined]

    def test_plain_message_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="upload_handler"):
            Log.warning("Could not close part stream")

        assert caplog.records[-1].getMessage() == "Could not close part stream"
        assert caplog.records[-1].levelno == logging.WARNING
