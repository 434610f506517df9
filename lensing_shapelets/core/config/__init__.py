"""
Configuration management for LensingShapelets.

The global :class:`ShapeletConfig` bounds supported polynomial orders and
carries logging settings; it can be read from the environment or from JSON
and YAML files.
"""

from .settings import (
    ShapeletConfig,
    get_config,
    set_config,
    reset_config,
    update_config,
    load_config_from_env,
)
from .loader import (
    ConfigLoader,
    JSONConfigLoader,
    YAMLConfigLoader,
    get_config_loader,
    load_config,
    save_config,
)

__all__ = [
    # Configuration class
    "ShapeletConfig",
    # Global config functions
    "get_config",
    "set_config",
    "reset_config",
    "update_config",
    "load_config_from_env",
    # Loader classes
    "ConfigLoader",
    "JSONConfigLoader",
    "YAMLConfigLoader",
    "get_config_loader",
    "load_config",
    "save_config",
]
