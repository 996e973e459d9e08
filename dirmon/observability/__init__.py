"""Logging and metrics for dirmon."""

from dirmon.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
