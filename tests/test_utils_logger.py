"""Tests for the centralized logging utility."""

from io import StringIO

import pytest

from wattmon.utils.logger import Logger, LoggerNotConfiguredError


def test_logger_unconfigured():
    """Test that using Logger before configuration raises error."""
    # Reset logger state for test
    Logger._configured = False

    with pytest.raises(LoggerNotConfiguredError):
        Logger.get("test")

    with pytest.raises(LoggerNotConfiguredError):
        Logger.set_level("DEBUG")


def test_logger_configuration():
    """Test logger configuration."""
    output = StringIO()
    Logger.configure(level="DEBUG", output=output, timestamps=False)

    assert Logger.is_configured()

    log = Logger.get("engine.scheduler")
    log.debug("Debug message")

    content = output.getvalue()
    assert "DEBUG" in content
    assert "[wattmon.engine.scheduler]" in content
    assert "Debug message" in content


def test_logger_set_level():
    """Test changing log level."""
    output = StringIO()
    Logger.configure(level="INFO", output=output, timestamps=False)

    log = Logger.get("test_level")
    log.debug("Hidden")
    assert "Hidden" not in output.getvalue()

    Logger.set_level("DEBUG")
    log.debug("Visible")
    assert "Visible" in output.getvalue()


def test_logger_file_output(tmp_path):
    """Test logging to a file path."""
    path = tmp_path / "wattmon.log"
    Logger.configure(level="WARNING", output=path, timestamps=True)

    Logger.get().warning("Disk nearly full")
    for handler in Logger.get().handlers:
        handler.flush()

    assert "Disk nearly full" in path.read_text()
    Logger.configure(level="DEBUG", output=StringIO(), timestamps=False)


def test_logger_invalid_level():
    """Test that unknown level names are rejected."""
    with pytest.raises(ValueError):
        Logger.configure(level="LOUD", output=StringIO())
