"""Tests for flowdag.kernel.logging."""

import pytest
from loguru import logger

from flowdag.kernel import logging as flowdag_logging
from flowdag.kernel.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    reset_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def captured():
    messages: list[dict] = []
    handler_id = logger.add(lambda message: messages.append(message.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class TestCorrelationId:
    def test_default(self) -> None:
        assert get_correlation_id() == "-"

    def test_set_and_reset(self) -> None:
        token = set_correlation_id("run-1")
        assert get_correlation_id() == "run-1"
        reset_correlation_id(token)
        assert get_correlation_id() == "-"

    def test_clear(self) -> None:
        set_correlation_id("run-2")
        clear_correlation_id()
        assert get_correlation_id() == "-"

    def test_records_carry_run_id(self, captured) -> None:
        configure_logging(level="DEBUG", format="console", force_reconfigure=True)
        token = set_correlation_id("run-3")
        try:
            get_logger("tests.logging").info("hello")
        finally:
            reset_correlation_id(token)

        assert captured[-1]["extra"]["cid"] == "run-3"
        assert captured[-1]["extra"]["module"] == "tests.logging"


class TestConfigureLogging:
    def test_idempotent(self) -> None:
        configure_logging(level="INFO", format="console", force_reconfigure=True)
        handlers = list(flowdag_logging._HANDLER_IDS)

        configure_logging(level="INFO", format="console")

        assert flowdag_logging._HANDLER_IDS == handlers

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging(level="INFO", format="console", force_reconfigure=True)
        before = list(flowdag_logging._HANDLER_IDS)

        configure_logging(level="DEBUG", format="json")

        assert flowdag_logging._HANDLER_IDS != before
        assert len(flowdag_logging._HANDLER_IDS) == 1

    def test_output_file(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "runs.log"

        configure_logging(level="INFO", format="console", output_file=log_file)
        get_logger("tests.logging").info("to file")
        logger.complete()

        assert log_file.exists()
        assert "to file" in log_file.read_text()
        configure_logging(level="INFO", format="console", force_reconfigure=True)
