"""Shared logger for the calculator engine and its drivers."""
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger: logging.Logger = logging.getLogger("safe_calculator")


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a single stream handler to the package logger.

    Calling it again only updates the level, so worker processes and tests
    can call it freely without duplicating output.

    :param str level: Logging level name (e.g. "DEBUG", "INFO")
    """
    log_level: int = getattr(logging, level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        # Keep records out of the root logger to avoid duplicate lines
        logger.propagate = False

    logger.setLevel(log_level)
