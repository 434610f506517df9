"""
Log manager for the package logger hierarchy.

Every module logs through ``logging.getLogger(__name__)``, so all records
flow into the ``lensing_shapelets`` logger. :class:`LogManager` attaches
console and rotating-file handlers to that logger (never to the root logger)
and provides timing helpers for expensive operations such as building
conversion blocks or convolution matrices.
"""

import logging
import logging.handlers
import json
import time
import threading
from typing import Dict, Any, Optional, Union, List
from pathlib import Path
from contextlib import contextmanager
import functools

from ..base.exceptions import ConfigurationError
from ..config.settings import ShapeletConfig, get_config


#: Name of the logger every package module logs under.
PACKAGE_LOGGER = "lensing_shapelets"

FORMATS = {
    "standard": '%(asctime)s - %(levelname)s - %(message)s',
    "detailed": '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
}


def _parse_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown log level: {level}", parameter="log_level")
    return value


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        details = getattr(record, 'details', None)
        if details:
            log_entry['details'] = details

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """Logger for timing of named operations."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._timers: Dict[str, float] = {}
        self._lock = threading.Lock()

    def start_timer(self, name: str) -> None:
        """Start timing operation."""
        with self._lock:
            self._timers[name] = time.perf_counter()

    def end_timer(self, name: str, log_level: int = logging.DEBUG) -> float:
        """End timing and log duration."""
        with self._lock:
            if name not in self._timers:
                self.logger.warning(f"Timer '{name}' not found")
                return 0.0
            duration = time.perf_counter() - self._timers.pop(name)
        self.logger.log(log_level, f"Operation '{name}' completed in {duration:.3f}s",
                        extra={'details': {'operation': name, 'duration': duration}})
        return duration

    @contextmanager
    def time_operation(self, name: str, log_level: int = logging.DEBUG):
        """Context manager for timing operations."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.end_timer(name, log_level)

    def time_function(self, name: Optional[str] = None, log_level: int = logging.DEBUG):
        """Decorator for timing functions."""
        def decorator(func):
            timer_name = name or f"{func.__module__}.{func.__name__}"

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.time_operation(timer_name, log_level):
                    return func(*args, **kwargs)
            return wrapper
        return decorator


class LogManager:
    """Configure handlers and levels for the package logger.

    Parameters
    ----------
    level : str or int
        Logging level
    file_path : str or Path, optional
        Log file path; a rotating file handler is added when given
    max_file_size : int
        Max file size in MB for rotation
    backup_count : int
        Number of backup files to keep
    format_type : str
        Format type ("standard", "detailed", "json")
    enable_console : bool
        Enable console logging
    enable_performance : bool
        Create a :class:`PerformanceLogger` as ``self.performance``
    config : ShapeletConfig, optional
        Configuration supplying level, file and format
    logger_name : str
        Logger to configure
    """

    def __init__(
        self,
        level: Union[str, int] = logging.INFO,
        file_path: Optional[Union[str, Path]] = None,
        max_file_size: int = 10,
        backup_count: int = 5,
        format_type: str = "standard",
        enable_console: bool = True,
        enable_performance: bool = True,
        config: Optional[ShapeletConfig] = None,
        logger_name: str = PACKAGE_LOGGER,
    ):
        if config is not None:
            level = config.log_level
            file_path = file_path or config.log_file
            format_type = config.log_format

        if format_type not in FORMATS and format_type != "json":
            raise ConfigurationError(f"Unknown log format: {format_type}", parameter="log_format")

        self.level = _parse_level(level)
        self.file_path = Path(file_path) if file_path else None
        self.max_file_size = max_file_size * 1024 * 1024
        self.backup_count = backup_count
        self.format_type = format_type
        self.enable_console = enable_console
        self.enable_performance = enable_performance
        self.logger_name = logger_name

        self._loggers: Dict[str, logging.Logger] = {}
        self._handlers: List[logging.Handler] = []

        self._setup_package_logger()

        self.performance = PerformanceLogger(self.get_logger('performance')) if enable_performance else None

        self.logger.debug("LogManager initialized")

    @property
    def logger(self) -> logging.Logger:
        """The configured package logger."""
        return logging.getLogger(self.logger_name)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a child of the package logger."""
        if not name.startswith(self.logger_name):
            name = f"{self.logger_name}.{name}"
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def set_level(self, level: Union[str, int]) -> None:
        """Set logging level for the package logger and its handlers."""
        self.level = _parse_level(level)
        self.logger.setLevel(self.level)
        for handler in self._handlers:
            handler.setLevel(self.level)

    def add_file_handler(
        self,
        file_path: Union[str, Path],
        level: Optional[Union[str, int]] = None,
        format_type: Optional[str] = None
    ) -> logging.Handler:
        """Add file handler with rotation."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count
        )
        return self._attach(handler, level, format_type)

    def add_console_handler(
        self,
        level: Optional[Union[str, int]] = None,
        format_type: Optional[str] = None
    ) -> logging.Handler:
        """Add console handler."""
        return self._attach(logging.StreamHandler(), level, format_type)

    def _attach(self, handler: logging.Handler, level: Optional[Union[str, int]],
                format_type: Optional[str]) -> logging.Handler:
        handler.setLevel(_parse_level(level) if level is not None else self.level)
        handler.setFormatter(self._create_formatter(format_type or self.format_type))
        self.logger.addHandler(handler)
        self._handlers.append(handler)
        return handler

    def _setup_package_logger(self) -> None:
        logger = self.logger
        logger.setLevel(self.level)

        if self.enable_console:
            self.add_console_handler()

        if self.file_path:
            self.add_file_handler(self.file_path)

    def _create_formatter(self, format_type: str) -> logging.Formatter:
        if format_type == "json":
            return JSONFormatter()
        return logging.Formatter(FORMATS.get(format_type, FORMATS["standard"]))

    def get_status(self) -> Dict[str, Any]:
        """Get log manager status."""
        return {
            'logger': self.logger_name,
            'level': logging.getLevelName(self.level),
            'file_path': str(self.file_path) if self.file_path else None,
            'format_type': self.format_type,
            'console_enabled': self.enable_console,
            'performance_enabled': self.enable_performance,
            'handlers': len(self._handlers),
            'loggers': len(self._loggers),
        }

    def close(self) -> None:
        """Detach and close every handler this manager added."""
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def setup_logging(config: Optional[ShapeletConfig] = None, **kwargs) -> LogManager:
    """Create a :class:`LogManager` from ``config`` (the global one by default)."""
    if config is None:
        config = get_config()
    return LogManager(config=config, **kwargs)
