# src/localmind/log.py
"""Logging configuration.

The library itself only creates module loggers; applications (and the CLI)
call configure_logging() once at startup.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "litellm", "chromadb", "urllib3")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure the root logger with a single stderr handler.

    Args:
        level: Level for the root logger (name or number).
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Third-party clients log every request at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
