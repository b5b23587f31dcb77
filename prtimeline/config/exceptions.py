"""Configuration errors raised while loading ``prtimeline.yaml``."""

from pathlib import Path
from typing import Any


class ConfigurationError(Exception):
    """Base exception for configuration problems."""

    pass


class ConfigurationFileError(ConfigurationError):
    """Raised when a configuration file is missing, unreadable or not YAML."""

    def __init__(self, message: str, file_path: str | Path | None = None):
        """Initialize configuration file error.

        Args:
            message: Human-readable error message
            file_path: The offending configuration file
        """
        super().__init__(message)
        self.file_path = Path(file_path) if file_path is not None else None


class ConfigurationValidationError(ConfigurationError):
    """Raised when configuration values fail validation."""

    def __init__(self, message: str, validation_errors: list[Any] | None = None):
        """Initialize configuration validation error.

        Args:
            message: Human-readable error message
            validation_errors: Error records as reported by pydantic
        """
        super().__init__(message)
        self.validation_errors = validation_errors or []

    @property
    def fields(self) -> list[str]:
        """Dotted paths of the invalid fields, e.g. ``github.per_page``."""
        return [
            ".".join(str(part) for part in error.get("loc", ()))
            for error in self.validation_errors
            if isinstance(error, dict)
        ]
