"""
Configuration settings and management for LensingShapelets.

This module provides a single dataclass configuration with validation and
environment variable support, plus module-level accessors for the global
instance used by the conversion cache and the convolution engine.
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional
from pathlib import Path
import logging

from ..base.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

# Global configuration instance
_global_config: Optional["ShapeletConfig"] = None

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["standard", "detailed", "json"]


@dataclass
class ShapeletConfig:
    """Package-wide configuration.

    ``max_order`` bounds every polynomial order accepted by the conversion
    cache and the convolution engine. When ``prewarm_order`` is set, the
    shared conversion cache builds all blocks up to that order on creation,
    so later concurrent readers never need the cache lock.
    """

    # Shapelet limits
    max_order: int = 30
    prewarm_order: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_format: str = "standard"

    def __post_init__(self):
        """Post-initialization validation and setup."""
        if self.log_file is not None:
            self.log_file = Path(self.log_file)
        self.validate()

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises
        ------
        ConfigurationError
            If any configuration parameter is invalid
        """
        errors = []

        if isinstance(self.max_order, bool) or not isinstance(self.max_order, int) or self.max_order < 0:
            errors.append("max_order must be a non-negative integer")

        if self.prewarm_order is not None:
            if isinstance(self.prewarm_order, bool) or not isinstance(self.prewarm_order, int):
                errors.append("prewarm_order must be an integer or None")
            elif self.prewarm_order < 0:
                errors.append("prewarm_order must be non-negative")
            elif isinstance(self.max_order, int) and self.prewarm_order > self.max_order:
                errors.append("prewarm_order must not exceed max_order")

        if not isinstance(self.log_level, str) or self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of {VALID_LOG_LEVELS}")

        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(f"log_format must be one of {VALID_LOG_FORMATS}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Returns
        -------
        dict
            Dictionary representation of configuration
        """
        result = {}
        for key, value in self.__dict__.items():
            if isinstance(value, Path):
                result[key] = str(value)
            else:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShapeletConfig":
        """Create configuration from dictionary.

        Parameters
        ----------
        data : dict
            Dictionary containing configuration data

        Returns
        -------
        ShapeletConfig
            New configuration instance

        Raises
        ------
        ConfigurationError
            If the dictionary contains unknown parameters
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration parameters: {unknown}",
                                     parameter=unknown[0])
        return cls(**data)

    def update(self, **kwargs) -> None:
        """Update configuration parameters.

        The update is applied only if the resulting configuration is valid;
        otherwise the configuration is left unchanged.

        Parameters
        ----------
        **kwargs
            Configuration parameters to update

        Raises
        ------
        ConfigurationError
            If unknown parameter or validation fails
        """
        known = {f.name for f in fields(self)}
        for key in kwargs:
            if key not in known:
                raise ConfigurationError(f"Unknown configuration parameter: {key}", parameter=key)

        # Validated on construction
        candidate = replace(self, **kwargs)
        for f in fields(self):
            setattr(self, f.name, getattr(candidate, f.name))


def get_config() -> ShapeletConfig:
    """Get the global configuration instance.

    Returns
    -------
    ShapeletConfig
        Global configuration instance
    """
    global _global_config
    if _global_config is None:
        _global_config = ShapeletConfig()
    return _global_config


def set_config(config: ShapeletConfig) -> None:
    """Set the global configuration instance.

    Parameters
    ----------
    config : ShapeletConfig
        Configuration instance to set as global

    Raises
    ------
    TypeError
        If config is not a ShapeletConfig instance
    """
    global _global_config
    if not isinstance(config, ShapeletConfig):
        raise TypeError("config must be a ShapeletConfig instance")
    config.validate()
    _global_config = config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _global_config
    _global_config = ShapeletConfig()


def update_config(**kwargs) -> None:
    """Update global configuration parameters.

    Parameters
    ----------
    **kwargs
        Configuration parameters to update
    """
    config = get_config()
    config.update(**kwargs)


def load_config_from_env() -> ShapeletConfig:
    """Load configuration from environment variables.

    Returns
    -------
    ShapeletConfig
        Configuration loaded from environment

    Raises
    ------
    ConfigurationError
        If a numeric variable cannot be parsed
    """
    config = ShapeletConfig()

    # Map environment variables to config attributes
    env_mapping = {
        'LENSING_SHAPELETS_MAX_ORDER': 'max_order',
        'LENSING_SHAPELETS_PREWARM_ORDER': 'prewarm_order',
        'LENSING_SHAPELETS_LOG_LEVEL': 'log_level',
        'LENSING_SHAPELETS_LOG_FILE': 'log_file',
        'LENSING_SHAPELETS_LOG_FORMAT': 'log_format',
    }

    updates = {}
    for env_var, attr_name in env_mapping.items():
        if env_var in os.environ:
            value = os.environ[env_var]

            if attr_name in ['max_order', 'prewarm_order']:
                try:
                    updates[attr_name] = int(value) if value else None
                except ValueError as e:
                    raise ConfigurationError(f"Invalid integer in {env_var}: {value!r}",
                                             parameter=attr_name, cause=e)
            elif attr_name == 'log_file':
                updates[attr_name] = Path(value) if value else None
            else:
                updates[attr_name] = value

    if updates.get('max_order', 0) is None:
        del updates['max_order']

    if updates:
        config.update(**updates)
        logger.info(f"Updated configuration from environment variables: {list(updates.keys())}")

    return config
