"""Logging management."""

from .log_manager import LogManager, PerformanceLogger, JSONFormatter, setup_logging, PACKAGE_LOGGER

__all__ = [
    "LogManager",
    "PerformanceLogger",
    "JSONFormatter",
    "setup_logging",
    "PACKAGE_LOGGER",
]
