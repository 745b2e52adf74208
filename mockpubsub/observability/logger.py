"""Structured logging for pub-sub events (publish, deliver, ack, nack)."""

import logging
import sys


def get_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """Return a configured logger for observability. Level defaults to PUBSUB_LOG_LEVEL."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
            )
        )
        logger.addHandler(handler)
        if level is None:
            from mockpubsub.config import get_settings
            level = get_settings().log_level
        logger.setLevel(level)
    return logger
