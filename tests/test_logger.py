"""Tests for logger setup."""

import logging
from utils.logger import setup_logger


def test_setup_logger_default():
    """Test logger setup with default settings."""
    logger = setup_logger()
    assert logger.name == "r2r_stats"
    assert logger.level == logging.INFO


def test_setup_logger_custom_level():
    """Test logger setup with custom log level."""
    logger = setup_logger(log_level="DEBUG")
    assert logger.level == logging.DEBUG


def test_setup_logger_custom_name():
    """Test logger setup with module-style name."""
    logger = setup_logger(name="fetchers.aggregator")
    assert logger.name == "fetchers.aggregator"


def test_unknown_level_falls_back_to_info():
    """Unknown level names fall back to INFO instead of raising."""
    logger = setup_logger(log_level="chatty", name="fallback_logger")
    assert logger.level == logging.INFO


def test_http_libraries_held_at_warning():
    """Per-request lines from the HTTP clients stay quiet at INFO."""
    setup_logger(log_level="INFO")
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_http_libraries_follow_debug():
    setup_logger(log_level="DEBUG")
    assert logging.getLogger("urllib3").level == logging.DEBUG
