"""
Tests for artiforge.core.logging
==================================
"""

import json
import logging

import pytest
import structlog

from artiforge.core.logging import configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_output(self, capsys: pytest.CaptureFixture) -> None:
        configure_logging("INFO", json_output=True)
        structlog.get_logger().info("artifact_published", coordinate="g:n:1@jar")
        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "artifact_published"
        assert record["coordinate"] == "g:n:1@jar"
        assert record["level"] == "info"

    def test_level_filters_lower_levels(self, capsys: pytest.CaptureFixture) -> None:
        configure_logging("WARNING", json_output=True)
        structlog.get_logger().info("quiet")
        assert capsys.readouterr().out == ""

    def test_httpx_quieted_unless_debug(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG
