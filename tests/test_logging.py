"""
Tests for logging helpers.
"""

import json
import logging

from tenderwatch.core.logging import JSONFormatter, get_contextual_logger, get_logger, setup_logging


class TestJSONFormatter:
    """Test JSONFormatter."""

    def test_includes_context_fields(self):
        record = logging.LogRecord("tenderwatch.test", logging.INFO, __file__, 1, "Fetched %d", (3,), None)
        record.source = "AusTender"
        record.run_id = "abc123"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Fetched 3"
        assert data["level"] == "INFO"
        assert data["source"] == "AusTender"
        assert data["run_id"] == "abc123"
        assert "tender_id" not in data


class TestContextualLogger:
    """Test get_contextual_logger()."""

    def test_injects_source_and_run(self):
        log = get_contextual_logger("orchestrator", source="NSW eTendering", run_id="r1")
        msg, kwargs = log.process("hello", {"extra": {"url": "https://x"}})

        assert msg == "hello"
        assert kwargs["extra"] == {"url": "https://x", "source": "NSW eTendering", "run_id": "r1"}
        assert log.logger.name == "tenderwatch.orchestrator"

    def test_with_context_overrides(self):
        log = get_contextual_logger("orchestrator", source="A", run_id="r1").with_context(source="B")
        assert (log.source, log.run_id) == ("B", "r1")


class TestSetupLogging:
    """Test setup_logging()."""

    def test_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "tw.log"
        logger = setup_logging(level="DEBUG", log_file=log_file, json_format=True, rich_console=False)
        try:
            get_logger("test").info("written", extra={"source": "AusTender"})
            for handler in logger.handlers:
                handler.flush()

            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["source"] == "AusTender"
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
