"""Tests for logging setup and conversion helpers."""

import json
import logging
import sys

import pytest
import yaml
from rich.logging import RichHandler

from jobplane.errors import ValidationError
from jobplane.utils import StructuredFormatter, json_to_yaml, setup_logging


class TestJsonToYaml:

    def test_converts(self):
        text = json_to_yaml('{"kind": "Pod", "spec": {"containers": [{"name": "main"}]}}')
        assert yaml.safe_load(text) == {"kind": "Pod", "spec": {"containers": [{"name": "main"}]}}

    def test_keeps_key_order(self):
        text = json_to_yaml('{"b": 1, "a": 2}')
        assert text.index("b:") < text.index("a:")

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            json_to_yaml("{not json")


class TestStructuredFormatter:

    def test_formats_json_with_extras(self):
        record = logging.LogRecord(
            "jobplane.orchestrator", logging.INFO, __file__, 1, "stop job [%s]", ("job-1",), None,
        )
        record.job_id = "job-1"
        data = json.loads(StructuredFormatter().format(record))
        assert data["level"] == "INFO"
        assert data["logger"] == "jobplane.orchestrator"
        assert data["message"] == "stop job [job-1]"
        assert data["job_id"] == "job-1"
        assert "cluster_id" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord("jobplane", logging.ERROR, __file__, 1, "failed", (), exc_info)
        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: bad" in data["exception"]


class TestSetupLogging:

    def test_pretty_console(self):
        logger = setup_logging("DEBUG", "pretty")
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_structured_file(self, tmp_path):
        log_file = tmp_path / "logs" / "jobplane.log"
        logger = setup_logging("INFO", "structured", log_file, console_output=False)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "hello"

    def test_replaces_handlers(self):
        setup_logging("INFO", "structured")
        logger = setup_logging("INFO", "structured")
        assert len(logger.handlers) == 1
