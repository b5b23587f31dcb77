"""Pydantic configuration models for prtimeline.

``Config`` is the root and holds one section per concern: ``github`` (API
location, credentials, page size), ``retry`` (backoff), ``cache`` (response
cache location and eviction), ``fetch`` (deadline and the optional
lookups) and ``system`` (logging).

Any string value may reference the environment as ``${NAME}``, or as
``${NAME:fallback}`` when the variable is optional.
"""

import os
import re
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _expand(match: re.Match[str]) -> str:
    name, fallback = match.group(1), match.group(2)
    resolved = os.environ.get(name, fallback)
    if resolved is None:
        raise ValueError(f"Environment variable '{name}' is not set and has no default")
    return resolved


def _substitute(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_PATTERN.sub(_expand, value)
    if isinstance(value, dict):
        return {k: _substitute(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute(item) for item in value]
    return value


class BaseConfigModel(BaseModel):
    """Strict section model; unknown keys and bad assignments are rejected."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Expand ``${NAME}`` references before field validation."""
        if not isinstance(values, dict):
            return values
        return {key: _substitute(value) for key, value in values.items()}


class GitHubConfig(BaseConfigModel):
    """GitHub API access."""

    token: str = Field(
        default="",
        description="Personal access token; anonymous access when empty",
    )

    base_url: str = Field(
        default="https://api.github.com", description="REST API root URL"
    )

    timeout: float = Field(
        default=30.0, gt=0, le=600, description="Per-request timeout in seconds"
    )

    user_agent: str = Field(default="prtimeline/1.0", description="User-Agent header")

    per_page: int = Field(
        default=100, ge=1, le=100, description="Records requested per page"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate API URL format."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"GitHub base URL must be an http(s) URL: {v}")
        return v.rstrip("/")


class RetryConfig(BaseConfigModel):
    """Backoff for transient remote failures."""

    max_attempts: int = Field(
        default=10, ge=1, le=50, description="Total attempts per request"
    )

    initial_delay: float = Field(
        default=1.0, ge=0, description="Delay before the first retry in seconds"
    )

    max_delay: float = Field(
        default=120.0, ge=0, description="Upper bound for the exponential delay"
    )

    max_jitter: float = Field(
        default=1.0, ge=0, description="Upper bound for the random extra delay"
    )

    @model_validator(mode="after")
    def validate_delays(self) -> "RetryConfig":
        """Ensure the delay cap is not below the initial delay."""
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be greater than or equal to initial_delay")
        return self


class CacheConfig(BaseConfigModel):
    """Disk cache of remote responses."""

    enabled: bool = Field(default=True, description="Enable the response cache")

    directory: str = Field(
        default="~/.cache/prtimeline", description="Cache directory"
    )

    retention_days: int = Field(
        default=28, ge=1, le=365, description="Days before unused files are swept"
    )

    sweep_interval: float = Field(
        default=3600.0, gt=0, description="Seconds between background sweeps"
    )

    @property
    def path(self) -> Path:
        """Absolute cache directory."""
        return Path(self.directory).expanduser().resolve()

    @property
    def retention(self) -> timedelta:
        """Retention window."""
        return timedelta(days=self.retention_days)


class FetchConfig(BaseConfigModel):
    """Fetch orchestration."""

    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Deadline in seconds for a whole pull request fetch",
    )

    required_checks: bool = Field(
        default=True,
        description="Look up the base branch's required status checks",
    )

    collaborators: bool = Field(
        default=True,
        description="Look up collaborator roles to settle members' write access",
    )


class SystemConfig(BaseConfigModel):
    """Process-wide settings."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Root logger level"
    )


class Config(BaseConfigModel):
    """Root configuration."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)
