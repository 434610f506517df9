"""
Configuration loaders for JSON and YAML files.

A configuration file holds a single mapping whose keys are
:class:`~lensing_shapelets.core.config.settings.ShapeletConfig` fields. An
optional top-level ``shapelets`` section is accepted so the settings can sit
inside a larger project file.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Union
import json
import logging

import yaml

from ..base.exceptions import ConfigurationError
from .settings import ShapeletConfig


#: Section name accepted as a wrapper around the configuration mapping.
SECTION_NAME = "shapelets"


class ConfigLoader(ABC):
    """Abstract base class for configuration loaders."""

    @abstractmethod
    def load(self, path: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from file.

        Parameters
        ----------
        path : str or Path
            Path to configuration file

        Returns
        -------
        dict
            Configuration data

        Raises
        ------
        ConfigurationError
            If loading fails
        """

    @abstractmethod
    def save(self, data: Dict[str, Any], path: Union[str, Path]) -> None:
        """Save configuration to file.

        Raises
        ------
        ConfigurationError
            If saving fails
        """

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """List of supported file extensions (including the dot)."""

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Human-readable format name."""

    def validate_data(self, data: Dict[str, Any]) -> bool:
        """Validate configuration data before saving."""
        return isinstance(data, dict)

    def preprocess_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Convert Path objects to strings before saving."""
        def convert_paths(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: convert_paths(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert_paths(item) for item in obj]
            else:
                return obj

        return convert_paths(data)

    def _check_mapping(self, data: Any, path: Path) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{self.format_name} file must contain a mapping, got {type(data).__name__}",
                config_file=str(path)
            )
        return data

    def _prepare_output(self, data: Dict[str, Any], path: Path) -> Dict[str, Any]:
        if not self.validate_data(data):
            raise ConfigurationError(f"Data must be a dictionary for {self.format_name} format",
                                     config_file=str(path))
        path.parent.mkdir(parents=True, exist_ok=True)
        return self.preprocess_data(data)


class JSONConfigLoader(ConfigLoader):
    """JSON configuration loader."""

    @property
    def supported_extensions(self) -> List[str]:
        return ['.json']

    @property
    def format_name(self) -> str:
        return "JSON"

    def load(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}", config_file=str(path), cause=e)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}",
                                     config_file=str(path), cause=e)
        except PermissionError as e:
            raise ConfigurationError(f"Permission denied reading {path}",
                                     config_file=str(path), cause=e)

        logging.debug(f"Successfully loaded JSON config from {path}")
        return self._check_mapping(data, path)

    def save(self, data: Dict[str, Any], path: Union[str, Path]) -> None:
        path = Path(path)
        processed_data = self._prepare_output(data, path)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(processed_data, f, indent=2, ensure_ascii=False, sort_keys=True)
        except PermissionError as e:
            raise ConfigurationError(f"Permission denied writing to {path}",
                                     config_file=str(path), cause=e)
        logging.debug(f"Successfully saved JSON config to {path}")


class YAMLConfigLoader(ConfigLoader):
    """YAML configuration loader (PyYAML)."""

    @property
    def supported_extensions(self) -> List[str]:
        return ['.yaml', '.yml']

    @property
    def format_name(self) -> str:
        return "YAML"

    def load(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", config_file=str(path), cause=e)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}",
                                     config_file=str(path), cause=e)
        except PermissionError as e:
            raise ConfigurationError(f"Permission denied reading {path}",
                                     config_file=str(path), cause=e)

        # Empty files
        if data is None:
            data = {}

        logging.debug(f"Successfully loaded YAML config from {path}")
        return self._check_mapping(data, path)

    def save(self, data: Dict[str, Any], path: Union[str, Path]) -> None:
        path = Path(path)
        processed_data = self._prepare_output(data, path)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(processed_data, f, default_flow_style=False, indent=2,
                               allow_unicode=True, sort_keys=True)
        except PermissionError as e:
            raise ConfigurationError(f"Permission denied writing to {path}",
                                     config_file=str(path), cause=e)
        logging.debug(f"Successfully saved YAML config to {path}")


_LOADERS = {
    '.json': JSONConfigLoader,
    '.yaml': YAMLConfigLoader,
    '.yml': YAMLConfigLoader,
}


def get_config_loader(file_path: Union[str, Path]) -> ConfigLoader:
    """Get appropriate config loader for file extension.

    Raises
    ------
    ConfigurationError
        If file format is not supported
    """
    suffix = Path(file_path).suffix.lower()
    if suffix not in _LOADERS:
        available = list(_LOADERS.keys())
        raise ConfigurationError(
            f"Unsupported configuration file format: {suffix}. Available: {available}",
            config_file=str(file_path)
        )
    return _LOADERS[suffix]()


def load_config(file_path: Union[str, Path]) -> ShapeletConfig:
    """Read a configuration file into a :class:`ShapeletConfig`.

    Parameters
    ----------
    file_path : str or Path
        JSON or YAML file

    Returns
    -------
    ShapeletConfig
        Validated configuration

    Raises
    ------
    ConfigurationError
        If the file cannot be read or holds invalid settings
    """
    data = get_config_loader(file_path).load(file_path)
    if SECTION_NAME in data:
        data = data[SECTION_NAME]
        if not isinstance(data, dict):
            raise ConfigurationError(f"Section '{SECTION_NAME}' must be a mapping",
                                     config_file=str(file_path))
    try:
        return ShapeletConfig.from_dict(data)
    except ConfigurationError as e:
        e.add_detail('config_file', str(file_path))
        raise


def save_config(config: ShapeletConfig, file_path: Union[str, Path]) -> None:
    """Write ``config`` to a JSON or YAML file."""
    get_config_loader(file_path).save(config.to_dict(), file_path)
