"""
Client configuration for the Query Service client

Configuration is immutable once built; it can be assembled from a YAML file,
environment variables and explicit overrides (in increasing precedence).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional, Mapping, Union

import yaml

from .. import __version__
from ..core.exceptions import ConfigurationError
from ..services.backoff import PollBackoff, RetryBackoff

DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_WAIT_TIME = 300.0
DEFAULT_USER_AGENT = f"query-service-python-sdk/{__version__}"

# Environment variable -> (config key, converter)
ENVIRONMENT_VARIABLES = {
    "QUERY_SERVICE_URL": ("base_url", str),
    "QUERY_SERVICE_TOKEN": ("token", str),
    "QUERY_SERVICE_TIMEOUT": ("timeout", float),
    "QUERY_SERVICE_MAX_RETRIES": ("max_retries", int),
    "QUERY_SERVICE_MAX_WAIT_TIME": ("max_wait_time", float),
}


@dataclass(frozen=True)
class ClientConfig:
    """Connection and resilience settings shared by all calls of one client."""

    base_url: str
    token: str

    # Per-attempt request timeout and retries after the first attempt
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    user_agent: str = DEFAULT_USER_AGENT

    # Retry backoff
    retry_base_delay: float = 0.1
    retry_max_delay: float = 10.0
    retry_max_jitter: float = 0.1

    # Job polling
    poll_interval_start: float = 0.1
    poll_interval_max: float = 2.0
    max_wait_time: float = DEFAULT_MAX_WAIT_TIME

    def __post_init__(self):
        for f in fields(self):
            _check_type(f.name, getattr(self, f.name), f.type)

        if not self.base_url:
            raise ConfigurationError("base_url", "is required")
        if not self.token:
            raise ConfigurationError("token", "is required")
        if self.timeout <= 0:
            raise ConfigurationError("timeout", "must be positive")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries", "must not be negative")
        if self.max_wait_time < 0:
            raise ConfigurationError("max_wait_time", "must not be negative")

        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

        # Fail on invalid backoff settings at construction, not on first retry
        self.retry_backoff
        self.poll_backoff

    @property
    def retry_backoff(self) -> RetryBackoff:
        return RetryBackoff(
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            max_jitter=self.retry_max_jitter
        )

    @property
    def poll_backoff(self) -> PollBackoff:
        return PollBackoff(start=self.poll_interval_start, maximum=self.poll_interval_max)

    @property
    def headers(self) -> Dict[str, str]:
        """Headers sent with every request."""
        return {
            "X-StorageAPI-Token": self.token,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary with the token masked."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["token"] = "***"
        return data

    @classmethod
    def from_file(cls, path: Union[str, Path], **overrides: Any) -> "ClientConfig":
        """Create configuration from a YAML file."""
        return cls.load(path=path, environ={}, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "ClientConfig":
        """Create configuration from QUERY_SERVICE_* environment variables."""
        return cls.load(environ=environ, **overrides)

    @classmethod
    def load(
        cls,
        path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "ClientConfig":
        """
        Build configuration from a file, the environment and explicit values.

        Args:
            path: Optional YAML file with configuration keys at top level
            environ: Environment mapping, defaults to os.environ
            **overrides: Explicit values; None values are ignored

        Returns:
            Validated ClientConfig
        """
        values: Dict[str, Any] = {}

        if path is not None:
            values.update(_read_config_file(Path(path)))

        values.update(_read_environment(os.environ if environ is None else environ))
        values.update({key: value for key, value in overrides.items() if value is not None})

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(unknown[0], "unknown configuration key")

        for required in ("base_url", "token"):
            if not values.get(required):
                raise ConfigurationError(required, "is required")

        return cls(**values)


def _check_type(key: str, value: Any, expected: type):
    # ints are accepted for float settings; bools are never numbers here
    accepted = (int, float) if expected is float else expected
    if isinstance(value, bool) or not isinstance(value, accepted):
        raise ConfigurationError(key, f"expected {expected.__name__}, got {value!r}")


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(str(path), f"cannot read file: {e.strerror}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(str(path), f"invalid YAML: {str(e)}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "must contain a mapping")
    return data


def _read_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for variable, (key, convert) in ENVIRONMENT_VARIABLES.items():
        raw = environ.get(variable)
        if raw is None or raw == "":
            continue
        try:
            values[key] = convert(raw)
        except ValueError as e:
            raise ConfigurationError(variable, f"invalid value {raw!r}") from e
    return values
