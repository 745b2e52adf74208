"""Observability: logging and metrics for the pub-sub emulator."""

from mockpubsub.observability.logger import get_logger
from mockpubsub.observability.metrics import Metrics

__all__ = ["get_logger", "Metrics"]
