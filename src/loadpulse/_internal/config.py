"""Run configuration for loadpulse.

Values are layered: built-in defaults, then an optional JSON file, then
environment variables. The result is validated before any engine object is
constructed, so an invalid configuration is always a startup failure.
"""

from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loadpulse._internal.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

# JSON file key -> RunConfig field.
_FILE_KEYS: dict[str, str] = {
    "totalRequests": "total_requests",
    "postRatio": "post_ratio",
    "baseURL": "base_url",
    "workerNumber": "worker_number",
    "timeout": "timeout",
    "duration": "duration",
    "requestInterval": "request_interval",
    "batchSize": "batch_size",
    "poolSize": "connection_pool_size",
}

_INT_FIELDS = frozenset({"total_requests", "worker_number", "batch_size", "connection_pool_size"})
_FLOAT_FIELDS = frozenset({"post_ratio", "timeout", "duration", "request_interval"})


def normalize_endpoint(value: str) -> str:
    """Reduce a base URL to the bare ``host:port`` form used for requests.

    Args:
        value: A value such as ``"http://localhost:8080/"`` or
            ``"localhost:8080"``.

    Returns:
        The endpoint without scheme, surrounding whitespace or trailing slash.
    """
    endpoint = value.strip()
    for scheme in ("http://", "https://"):
        if endpoint.startswith(scheme):
            endpoint = endpoint[len(scheme):]
            break
    return endpoint.rstrip("/")


@dataclass(frozen=True)
class RunConfig:
    """Validated configuration for a single load-test run.

    Attributes:
        total_requests: Request quota for quota-driven mode.
        post_ratio: Fraction of requests that are POSTs, in ``[0, 1]``.
        base_url: Initial ``host:port`` endpoint.
        worker_number: Concurrent workers in quota-driven mode.
        timeout: Per-request timeout in seconds.
        duration: Run length in seconds for interval-driven mode.
        request_interval: Tick interval (interval mode) and per-worker
            pacing interval (quota mode), in seconds.
        batch_size: Shuffled batch size used by the quota-mode producer.
        connection_pool_size: Maximum pooled connections in the HTTP client.
    """

    total_requests: int = 100
    post_ratio: float = 0.7
    base_url: str = "localhost:8080"
    worker_number: int = 10
    timeout: float = 5.0
    duration: float = 10.0
    request_interval: float = 0.1
    batch_size: int = 10
    connection_pool_size: int = 100

    def validate(self) -> RunConfig:
        """Check every field and return ``self`` for chaining.

        Raises:
            ConfigError: If any value is out of range.
        """
        if self.total_requests <= 0:
            msg = f"totalRequests must be greater than 0, got: {self.total_requests}"
            raise ConfigError(msg)
        if not 0.0 <= self.post_ratio <= 1.0:
            msg = f"postRatio must be between 0 and 1, got: {self.post_ratio}"
            raise ConfigError(msg)
        if not self.base_url:
            msg = "baseURL cannot be empty"
            raise ConfigError(msg)
        if self.worker_number <= 0:
            msg = f"workerNumber must be greater than 0, got: {self.worker_number}"
            raise ConfigError(msg)
        if self.timeout <= 0:
            msg = f"timeout must be greater than 0, got: {self.timeout}"
            raise ConfigError(msg)
        if self.duration <= 0:
            msg = f"duration must be greater than 0, got: {self.duration}"
            raise ConfigError(msg)
        if self.request_interval <= 0:
            msg = f"requestInterval must be greater than 0, got: {self.request_interval}"
            raise ConfigError(msg)
        if self.batch_size <= 0:
            msg = f"batchSize must be greater than 0, got: {self.batch_size}"
            raise ConfigError(msg)
        if self.connection_pool_size < 1:
            msg = f"poolSize must be >= 1, got: {self.connection_pool_size}"
            raise ConfigError(msg)
        return self

    def with_overrides(self, **changes: Any) -> RunConfig:
        """Return a validated copy with non-None ``changes`` applied.

        Args:
            **changes: Field values keyed by RunConfig attribute name.
                ``None`` values are ignored so CLI options can be passed
                straight through.

        Raises:
            ConfigError: If the resulting configuration is invalid.
        """
        updates = {key: value for key, value in changes.items() if value is not None}
        if "base_url" in updates:
            updates["base_url"] = normalize_endpoint(updates["base_url"])
        return dataclasses.replace(self, **updates).validate()


def default_config_dict() -> dict[str, Any]:
    """Return the default configuration in its on-disk JSON shape."""
    defaults = RunConfig()
    return {key: getattr(defaults, field) for key, field in _FILE_KEYS.items()}


def _coerce(field: str, raw: Any, source: str) -> Any:
    if field in _INT_FIELDS:
        if isinstance(raw, bool) or not isinstance(raw, int | str):
            msg = f"{source} must be an integer, got: {raw!r}"
            raise ConfigError(msg)
        try:
            return int(raw)
        except ValueError:
            msg = f"{source} must be an integer, got: {raw!r}"
            raise ConfigError(msg) from None
    if field in _FLOAT_FIELDS:
        if isinstance(raw, bool) or not isinstance(raw, int | float | str):
            msg = f"{source} must be a number, got: {raw!r}"
            raise ConfigError(msg)
        try:
            return float(raw)
        except ValueError:
            msg = f"{source} must be a number, got: {raw!r}"
            raise ConfigError(msg) from None
    if not isinstance(raw, str):
        msg = f"{source} must be a string, got: {raw!r}"
        raise ConfigError(msg)
    return normalize_endpoint(raw)


def _read_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"error reading config file {path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"error parsing config file {path}: {exc}"
        raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"config file {path} must contain a JSON object"
        raise ConfigError(msg)

    unknown = sorted(set(data) - set(_FILE_KEYS))
    if unknown:
        msg = f"unknown keys in config file {path}: {', '.join(unknown)}"
        raise ConfigError(msg)

    return {_FILE_KEYS[key]: _coerce(_FILE_KEYS[key], value, key) for key, value in data.items()}


def load_config(path: Path | None = None) -> RunConfig:
    """Load and validate configuration.

    Environment variables (applied after the file):
        LOADPULSE_BASE_URL: Initial endpoint.
        LOADPULSE_TIMEOUT: Per-request timeout in seconds.
        LOADPULSE_POOL_SIZE: Connection pool size.

    Args:
        path: Optional JSON configuration file. When None, only defaults
            and environment variables are used.

    Returns:
        A validated RunConfig.

    Raises:
        ConfigError: If the file or an environment variable is invalid,
            or the merged configuration fails validation.
    """
    values: dict[str, Any] = {}
    if path is not None:
        values.update(_read_file(path))

    env_map = {
        "LOADPULSE_BASE_URL": "base_url",
        "LOADPULSE_TIMEOUT": "timeout",
        "LOADPULSE_POOL_SIZE": "connection_pool_size",
    }
    for env_name, field in env_map.items():
        raw = os.environ.get(env_name)
        if raw is not None:
            values[field] = _coerce(field, raw, env_name)

    try:
        return RunConfig(**values).validate()
    except ConfigError as exc:
        msg = f"invalid configuration: {exc}"
        raise ConfigError(msg) from exc
