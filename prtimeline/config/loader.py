"""Configuration loading.

Configuration comes from a YAML file, a dictionary, or defaults alone. String
values may reference environment variables, which are substituted while the
models validate.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationFileError, ConfigurationValidationError
from .models import Config

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "prtimeline.yaml"
CONFIG_PATH_ENV = "PRTIMELINE_CONFIG_PATH"


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse a configuration file into a mapping; empty files give ``{}``."""
    if not path.exists():
        raise ConfigurationFileError(f"Configuration file not found: {path}", path)
    if not path.is_file():
        raise ConfigurationFileError(f"Configuration path is not a file: {path}", path)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationFileError(f"Cannot read {path}: {e}", path) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationFileError(f"Cannot parse YAML in {path}: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationFileError(
            f"Top level of {path} must be a mapping, got {type(data).__name__}", path
        )
    return data


class ConfigurationLoader:
    """Loads a ``Config`` and remembers where it came from."""

    def __init__(self) -> None:
        self._config: Config | None = None
        self._config_file_path: Path | None = None

    def load_from_file(self, config_path: str | Path) -> Config:
        """Load configuration from a YAML file.

        Raises:
            ConfigurationFileError: If the file is missing, unreadable or not YAML
            ConfigurationValidationError: If a value is invalid
        """
        path = Path(config_path)
        config = self.load_from_dict(_read_yaml(path))
        self._config_file_path = path.resolve()
        logger.info(f"Loaded configuration from {self._config_file_path}")
        return config

    def load_from_dict(self, config_data: dict[str, Any]) -> Config:
        """Validate a configuration mapping.

        Raises:
            ConfigurationValidationError: If a value is invalid
        """
        try:
            config = Config.model_validate(config_data)
        except ValidationError as e:
            raise ConfigurationValidationError(
                f"Invalid configuration: {e.error_count()} error(s)\n{e}", e.errors()
            ) from e

        self._config = config
        return config

    def load_default(self) -> Config:
        """Load configuration with default values only."""
        return self.load_from_dict({})

    def find_config_file(self, filename: str = CONFIG_FILENAME) -> Path | None:
        """Find a configuration file.

        Candidates, first match wins: ``$PRTIMELINE_CONFIG_PATH`` (a file, or
        a directory holding ``filename``), the working directory, then
        ``~/.config/prtimeline/``.
        """
        candidates: list[Path] = []

        override = os.getenv(CONFIG_PATH_ENV)
        if override:
            override_path = Path(override)
            candidates.append(
                override_path if override_path.is_file() else override_path / filename
            )

        candidates.append(Path.cwd() / filename)
        candidates.append(Path.home() / ".config" / "prtimeline" / filename)

        return next((path for path in candidates if path.is_file()), None)

    def auto_load(self, filename: str = CONFIG_FILENAME) -> Config:
        """Load the first configuration file found, or defaults if none is.

        Raises:
            ConfigurationFileError: If a found file cannot be read or parsed
            ConfigurationValidationError: If a value is invalid
        """
        path = self.find_config_file(filename)
        if path is None:
            logger.debug("No configuration file found, using defaults")
            return self.load_default()
        return self.load_from_file(path)

    @property
    def config(self) -> Config | None:
        """Most recently loaded configuration."""
        return self._config

    @property
    def config_file_path(self) -> Path | None:
        """File the configuration was loaded from, if any."""
        return self._config_file_path


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a file, or from standard locations."""
    loader = ConfigurationLoader()
    if config_path is not None:
        return loader.load_from_file(config_path)
    return loader.auto_load()
