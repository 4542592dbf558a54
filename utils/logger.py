"""Logging setup for the application."""

import logging
import sys

# HTTP client libraries under requests and the supabase client; their
# per-request lines drown out retry and cache logs
CHATTY_LOGGERS = ("urllib3", "httpx", "httpcore", "hpack")


def setup_logger(log_level: str = "INFO", name: str = "r2r_stats") -> logging.Logger:
    """
    Set up and configure application logger.

    Configures the root handler once with a format suitable for CLI output
    and the API server's console. Unless the level is DEBUG, the HTTP
    client libraries are held at WARNING.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        name: Logger name (default: r2r_stats)

    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
        force=True,
    )

    library_level = numeric_level if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for library in CHATTY_LOGGERS:
        logging.getLogger(library).setLevel(library_level)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    return logger
