"""
Config system - layered, typed configuration for a conduit server.

Merge order (later overrides earlier):
1. ConduitConfig defaults
2. YAML config file (``conduit.yaml`` when present)
3. ``.env`` file (only ``CONDUIT_*`` keys)
4. ``CONDUIT_*`` environment variables
5. Explicit overrides
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values

from .faults import ConfigurationFault

logger = logging.getLogger("conduit.config")

DEFAULT_CONFIG_FILE = "conduit.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ConduitConfig:
    """
    Typed server configuration.

    Attributes:
        mode: ``development`` (stack traces in error bodies) or ``production``
        max_forward_depth: Forwards allowed within one request
        request_timeout: Per-request deadline in seconds, None disables it
        routes_file: YAML endpoint file; None collects endpoints from the
            registered collections instead
        host: Bind address for ``conduit serve``
        port: Bind port for ``conduit serve``
        log_level: Root log level name
    """

    mode: str = "production"
    max_forward_depth: int = 10
    request_timeout: Optional[float] = None
    routes_file: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    def validate(self) -> "ConduitConfig":
        """
        Check value ranges.

        Raises:
            ConfigurationFault: On the first invalid value.
        """
        if self.mode not in ("development", "production"):
            raise ConfigurationFault(
                f"mode must be 'development' or 'production', got {self.mode!r}",
                metadata={"key": "mode"},
            )
        if not isinstance(self.max_forward_depth, int) or self.max_forward_depth < 0:
            raise ConfigurationFault(
                f"max_forward_depth must be a non-negative integer, got {self.max_forward_depth!r}",
                metadata={"key": "max_forward_depth"},
            )
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigurationFault(
                f"request_timeout must be positive, got {self.request_timeout!r}",
                metadata={"key": "request_timeout"},
            )
        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ConfigurationFault(
                f"port must be between 1 and 65535, got {self.port!r}",
                metadata={"key": "port"},
            )
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigurationFault(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}",
                metadata={"key": "log_level"},
            )
        self.log_level = str(self.log_level).upper()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


CONFIG_KEYS = frozenset(f.name for f in fields(ConduitConfig))


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage:
        config = ConfigLoader.load(path="conduit.yaml", overrides={"port": 9000})
    """

    def __init__(self, env_prefix: str = "CONDUIT_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_prefix: str = "CONDUIT_",
        env_file: Optional[str] = ".env",
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> ConduitConfig:
        """
        Load a validated ConduitConfig.

        Args:
            path: YAML config file; a missing explicit path is an error,
                the implicit ``conduit.yaml`` is optional
            env_prefix: Prefix for environment variables
            env_file: Path to .env file, skipped when missing
            overrides: Highest-precedence values (e.g. CLI options)
            environ: Environment mapping, ``os.environ`` by default

        Raises:
            ConfigurationFault: On unreadable files, unknown keys or invalid values.
        """
        loader = cls(env_prefix=env_prefix)

        if path is not None:
            loader._load_yaml_file(Path(path), required=True)
        elif Path(DEFAULT_CONFIG_FILE).exists():
            loader._load_yaml_file(Path(DEFAULT_CONFIG_FILE), required=False)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader.config_data.update({k: v for k, v in overrides.items() if v is not None})

        return loader.build()

    def build(self) -> ConduitConfig:
        unknown = sorted(set(self.config_data) - CONFIG_KEYS)
        if unknown:
            raise ConfigurationFault(
                f"Unknown configuration keys: {', '.join(unknown)}",
                metadata={"keys": unknown},
            )

        data = dict(self.config_data)
        for key in ("max_forward_depth", "port"):
            if key in data and isinstance(data[key], str):
                data[key] = self._coerce(key, data[key], int)
        timeout = data.get("request_timeout")
        if timeout is not None and not isinstance(timeout, float):
            data["request_timeout"] = self._coerce("request_timeout", timeout, float)

        config = ConduitConfig(**data).validate()
        logger.debug("Loaded configuration: %s", config.to_dict())
        return config

    def _load_yaml_file(self, path: Path, *, required: bool) -> None:
        """Load config from YAML file."""
        if not path.exists():
            if required:
                raise ConfigurationFault(f"Config file not found: {path}", metadata={"path": str(path)})
            return

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationFault(f"Invalid YAML in {path}: {e}", metadata={"path": str(path)}) from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigurationFault(
                f"Config file {path} must contain a mapping",
                metadata={"path": str(path)},
            )
        self.config_data.update(data)

    def _load_env_file(self, path: str) -> None:
        """Load ``CONDUIT_*`` keys from a .env file."""
        if not Path(path).exists():
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set(key, value)

    def _load_from_env(self, environ: Dict[str, str]) -> None:
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set(key, value)

    def _set(self, key: str, value: str) -> None:
        """CONDUIT_MAX_FORWARD_DEPTH=3 -> max_forward_depth: 3"""
        name = key[len(self.env_prefix):].lower()
        # The prefix is shared with unrelated settings (CONDUIT_API_KEY, ...)
        if name not in CONFIG_KEYS:
            logger.debug("Ignoring environment variable %s: not a configuration key", key)
            return
        self.config_data[name] = self._parse_value(value)

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("none", "null", ""):
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    @staticmethod
    def _coerce(key: str, value: Any, kind: type) -> Any:
        try:
            return kind(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationFault(
                f"{key} must be a number, got {value!r}",
                metadata={"key": key},
            ) from e
