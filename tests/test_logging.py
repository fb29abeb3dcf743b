"""Tests for logging configuration."""

import json
import logging

import pytest
import structlog

from repolens.logging import configure_logging, selection_context


class TestConfigureLogging:
    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging("LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging("INFO", "xml")

    def test_file_only(self, tmp_path):
        log_file = tmp_path / "repolens.log"
        configure_logging("INFO", "json", log_file=log_file, stderr=False)

        root = logging.getLogger()
        assert [type(h) for h in root.handlers] == [logging.FileHandler]

        with selection_context("acme/widgets", "readme", generation=3):
            structlog.get_logger("repolens.test").info("content_loaded")
        for handler in root.handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "content_loaded"
        assert record["repository"] == "acme/widgets"
        assert record["tab"] == "readme"
        assert record["generation"] == 3
        assert record["level"] == "info"

    def test_context_is_unbound_after_block(self, tmp_path):
        log_file = tmp_path / "repolens.log"
        configure_logging("INFO", "json", log_file=log_file, stderr=False)

        with selection_context("acme/widgets", "commits"):
            pass
        structlog.get_logger("repolens.test").info("after")
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert "repository" not in record

    def test_reconfigure_replaces_handlers(self):
        configure_logging("WARNING")
        configure_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1
