"""Unit tests for the plugin's logging setup."""

import logging
import sys
from unittest.mock import patch

import pytest

from fido2prf.frontend.cli.logging_config import LIBRARY_LOGGER, PROGRAM, configure_logging


@pytest.fixture
def mock_basic_config():
    with patch("fido2prf.frontend.cli.logging_config.logging.basicConfig") as basic_config:
        yield basic_config


@pytest.fixture(autouse=True)
def restore_library_level():
    library = logging.getLogger(LIBRARY_LOGGER)
    level = library.level
    yield
    library.setLevel(level)


def test_logs_to_stderr_with_program_name(mock_basic_config):
    configure_logging(logging.INFO)

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["stream"] is sys.stderr
    assert kwargs["level"] == logging.INFO
    assert kwargs["format"].startswith(f"{PROGRAM}: ")


def test_library_traffic_hidden_without_agedebug(mock_basic_config):
    configure_logging(logging.DEBUG)
    assert logging.getLogger(LIBRARY_LOGGER).level == logging.INFO


def test_library_follows_quieter_level(mock_basic_config):
    configure_logging(logging.ERROR)
    assert logging.getLogger(LIBRARY_LOGGER).level == logging.ERROR


def test_agedebug_shows_library_traffic(mock_basic_config):
    configure_logging(logging.WARNING, debug=True)
    assert logging.getLogger(LIBRARY_LOGGER).level == logging.DEBUG
