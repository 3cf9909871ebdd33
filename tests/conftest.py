"""Pytest configuration and fixtures for backporter tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from backporter.core.log import ConsoleSink, FileSink, OTLPSink, setup_logger
from backporter.core.model import Commit
from fakes import RecordingProgress


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level for the whole test run."""
    test_log_root = Path(tempfile.gettempdir()) / "backporter-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=False),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["backporter"]
    yield
    sys.argv = original


@pytest.fixture
def commit():
    return Commit(
        sha="abc123def4567890",
        message="Fix typo in readme\n\nLonger description.",
        author_name="Ada Lovelace",
        author_email="ada@example.com",
    )


@pytest.fixture
def progress():
    return RecordingProgress()
