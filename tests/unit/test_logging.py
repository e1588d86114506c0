"""Tests for structlog configuration."""

import logging

import pytest
import structlog

from kubelens.utils.logging import configure_logging, level_from_verbosity


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    configure_logging()
    structlog.reset_defaults()


class TestLevelFromVerbosity:

    @pytest.mark.parametrize("verbose,expected", [
        (0, logging.WARNING),
        (1, logging.INFO),
        (2, logging.DEBUG),
        (5, logging.DEBUG),
    ])
    def test_mapping(self, verbose, expected):
        assert level_from_verbosity(verbose) == expected


class TestConfigureLogging:

    def test_trace_file_receives_debug_events(self, tmp_path):
        trace = tmp_path / "traces" / "kubelens.log"
        configure_logging(logging.WARNING, trace)

        structlog.get_logger("test").debug("Command finished", command="kubectl get pods")

        content = trace.read_text(encoding="utf-8")
        assert "Command finished" in content
        assert "kubectl get pods" in content

    def test_level_filters_events(self, capsys):
        configure_logging(logging.WARNING)
        log = structlog.get_logger("test")

        log.info("hidden event")
        log.warning("visible event")

        err = capsys.readouterr().err
        assert "hidden event" not in err
        assert "visible event" in err

    def test_reconfigure_appends_to_trace_file(self, tmp_path):
        trace = tmp_path / "kubelens.log"
        configure_logging(logging.DEBUG, trace)
        structlog.get_logger("test").info("first run")
        configure_logging(logging.DEBUG, trace)
        structlog.get_logger("test").info("second run")

        content = trace.read_text(encoding="utf-8")
        assert "first run" in content
        assert "second run" in content
