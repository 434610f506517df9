"""
Core infrastructure: base classes, configuration and logging.
"""

from .base import (
    ShapeletError,
    ValidationError,
    LengthError,
    OrderMismatchError,
    ConfigurationError,
    GeometryError,
    LinearTransform,
    AffineTransform,
    EllipseCore,
    Ellipse,
)
from .config import ShapeletConfig, get_config, set_config, reset_config, update_config
from .managers import LogManager, setup_logging

__all__ = [
    "ShapeletError",
    "ValidationError",
    "LengthError",
    "OrderMismatchError",
    "ConfigurationError",
    "GeometryError",
    "LinearTransform",
    "AffineTransform",
    "EllipseCore",
    "Ellipse",
    "ShapeletConfig",
    "get_config",
    "set_config",
    "reset_config",
    "update_config",
    "LogManager",
    "setup_logging",
]
