"""Tests for structured logging with trace propagation."""

from __future__ import annotations

import io
import json

import pytest
from pydantic import ValidationError

from marketcharts.core.logging import LogConfig, StructuredLogger, get_logger, log_context


def _read_records(stream: io.StringIO) -> list[dict[str, object]]:
    stream.seek(0)
    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


def _capture() -> tuple[io.StringIO, StructuredLogger]:
    buffer = io.StringIO()
    return buffer, StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))


def test_structured_log_contains_trace_and_context() -> None:
    buffer, logger = _capture()

    with logger.context(trace_id="trace-123", provider="Alpha Vantage", error_code="QUOTA_EXCEEDED", request_id="req-42"):
        logger.logger.info("quota check", symbol="^GSPC")

    records = _read_records(buffer)
    assert len(records) == 1
    record = records[0]
    assert record["trace_id"] == "trace-123"
    assert record["provider"] == "Alpha Vantage"
    assert record["error_code"] == "QUOTA_EXCEEDED"
    assert record["context"]["request_id"] == "req-42"
    assert record["context"]["symbol"] == "^GSPC"


def test_trace_id_propagates_within_context() -> None:
    buffer, logger = _capture()

    with logger.context() as trace_id:
        logger.logger.info("first event")
        logger.logger.info("second event")

    logger.logger.info("outside context")

    records = _read_records(buffer)
    assert len(records) == 3
    assert records[0]["trace_id"] == records[1]["trace_id"] == trace_id
    assert records[2]["trace_id"] != trace_id


def test_module_logger_records_its_name() -> None:
    buffer, _ = _capture()

    get_logger("marketcharts.core.services.consistency").warning("Data conflict detected", symbol="^DJI")

    record = _read_records(buffer)[0]
    assert record["logger"] == "marketcharts.core.services.consistency"
    assert record["level"] == "WARNING"
    assert record["message"] == "Data conflict detected"
    assert record["context"]["symbol"] == "^DJI"


def test_log_context_extra_reaches_nested_calls() -> None:
    buffer, _ = _capture()
    module_logger = get_logger("marketcharts.tests")

    with log_context(period="inauguration"):
        module_logger.info("Chart ready", labels=10)

    record = _read_records(buffer)[0]
    assert record["context"]["period"] == "inauguration"
    assert record["context"]["labels"] == 10


def test_level_filtering() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(level="WARNING", console_stream=buffer))

    logger.logger.info("dropped")
    logger.logger.warning("kept")

    records = _read_records(buffer)
    assert [record["message"] for record in records] == ["kept"]


def test_file_output(tmp_path) -> None:
    log_file = tmp_path / "logs" / "marketcharts.log"
    logger = StructuredLogger(LogConfig(console_output=False, file_output=True, file_path=str(log_file)))

    logger.logger.error("Storage failure", table="index_prices")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["message"] == "Storage failure"


def test_level_is_normalized_and_checked() -> None:
    assert LogConfig(level="debug").level == "DEBUG"

    with pytest.raises(ValidationError):
        LogConfig(level="verbose")
