"""Logging configuration for codebox.

Provides console logging with appropriate levels for application
code vs third-party libraries.
"""

import logging
import sys
from typing import Literal

from codebox.settings import get_settings

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = [
    "asyncio",
    "httpx",
    "httpcore",
    "urllib3",
    "langchain",
    "langchain_core",
]


def suppress_noisy_loggers() -> None:
    """Suppress noisy third-party loggers.

    Call this after importing libraries that configure their own logging.
    """
    for logger_name in NOISY_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.WARNING)
        logger.handlers.clear()


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
) -> None:
    """Configure application logging.

    Sets up logging with:
    - Application logs at configured level
    - Third-party library logs suppressed to WARNING+
    - Clean console output format on stderr (stdout carries sandbox output)

    Args:
        level: Override log level (defaults to settings.log_level)
    """
    settings = get_settings()
    log_level = level or settings.log_level

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.setFormatter(
        logging.Formatter(
            "%(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    logging.getLogger("codebox").setLevel(getattr(logging, log_level))

    suppress_noisy_loggers()


# Configure logging on module import
configure_logging()
