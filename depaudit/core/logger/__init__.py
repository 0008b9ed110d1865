"""Logging module."""

from depaudit.core.logger.logger import get_console, get_logger, setup_logging

__all__ = ["get_logger", "setup_logging", "get_console"]
