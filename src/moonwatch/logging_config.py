"""Console logging setup for the command-line entry point.

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached here, once, by whoever owns the process.
"""

import logging
import sys

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """Configure the ``moonwatch`` logger hierarchy to write to stderr.

    Args:
        log_level: Level name; unknown names fall back to INFO.

    Returns:
        The configured ``moonwatch`` logger.
    """
    level = LOG_LEVELS.get(log_level.upper(), logging.INFO)

    logger = logging.getLogger("moonwatch")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logger
