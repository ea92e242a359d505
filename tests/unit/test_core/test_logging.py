"""Unit tests for logging configuration."""

import json
from collections.abc import Iterator

import pytest
from loguru import logger

from catalog_api.core.logging import setup_logging


@pytest.fixture
def configured_logging(capsys: pytest.CaptureFixture[str]) -> Iterator[pytest.CaptureFixture[str]]:
    """Configure logging against the captured stderr and drop the sinks afterwards."""
    setup_logging("INFO")
    yield capsys
    logger.remove()


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")
        logger.remove()

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")
        logger.remove()

    def test_bound_records_reach_json_sink(self, configured_logging: pytest.CaptureFixture[str]) -> None:
        logger.bind(json_output=True, status=200).info("GET /datasets 200")

        lines = [line for line in configured_logging.readouterr().err.splitlines() if line.strip()]

        assert len(lines) == 1
        record = json.loads(lines[0])["record"]
        assert record["message"] == "GET /datasets 200"
        assert record["extra"]["status"] == 200

    def test_plain_records_stay_human_readable(self, configured_logging: pytest.CaptureFixture[str]) -> None:
        logger.info("Published dataset cpih01")

        err = configured_logging.readouterr().err

        assert "Published dataset cpih01" in err
        assert not err.lstrip().startswith("{")
