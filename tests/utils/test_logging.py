# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the structured JSON logger.

We verify:
  - output is valid JSON with ts, level, module and msg
  - extra context fields get merged into the JSON
  - log levels filter correctly, including after configure_logging
"""

import json
import logging
from pathlib import Path

import pytest

from autobuild.logging.logger import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _reset_loggers() -> None:
    yield  # type: ignore[misc]
    for name in list(logging.Logger.manager.loggerDict):
        if name.startswith("autobuild.test"):
            logging.getLogger(name).handlers.clear()


class TestJsonOutput:
    def test_mandatory_fields_are_present(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("autobuild.test.fields", log_level="INFO")
        logger.info("test message")

        parsed = json.loads(capsys.readouterr().out.strip())
        assert parsed["level"] == "INFO"
        assert parsed["module"] == "autobuild.test.fields"
        assert parsed["msg"] == "test message"
        assert "ts" in parsed

    def test_extra_fields_are_included(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("autobuild.test.extra", log_level="INFO")
        logger.info("packaged", extra={"platform": "x86_64-linux-gnu", "files": 3})

        parsed = json.loads(capsys.readouterr().out.strip())
        assert parsed["platform"] == "x86_64-linux-gnu"
        assert parsed["files"] == 3

    def test_exception_is_rendered(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("autobuild.test.exc", log_level="INFO")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.error("failed", exc_info=True)

        parsed = json.loads(capsys.readouterr().out.strip())
        assert "RuntimeError: boom" in parsed["exception"]


class TestLevels:
    def test_debug_hidden_at_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("autobuild.test.hidden", log_level="INFO")
        logger.debug("invisible")
        assert capsys.readouterr().out.strip() == ""

    def test_configure_logging_relevels_existing_loggers(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        logger = get_logger("autobuild.test.relevel", log_level="INFO")
        configure_logging("DEBUG")
        try:
            logger.debug("now visible")
            assert "now visible" in capsys.readouterr().out
        finally:
            configure_logging("INFO")

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            get_logger("autobuild.test.invalid", log_level="LOUD")


class TestFileOutput:
    def test_logs_are_written_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "run.log"
        logger = get_logger("autobuild.test.file", log_level="INFO", log_file=log_file)
        logger.info("to disk")

        parsed = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert parsed["msg"] == "to disk"
