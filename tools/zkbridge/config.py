"""
ZKBRIDGE Configuration System

Configuration with YAML files, environment variables and validation.

Configuration Sources (in order of precedence):
    1. Environment variables (ZKBRIDGE_*)
    2. Runtime overrides
    3. User config file (~/.zkbridge/config.yaml)
    4. Project config file (./zkbridge.yaml, ./config/zkbridge.yaml)
    5. Default values

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from tools.zkbridge.errors import ConfigError, ConfigValidationError

T = TypeVar("T")

_log = logging.getLogger("zkbridge.config")

VARIANT_TAGS = ("plonk", "honk", "ultra_honk", "ultra_honk_keccak")


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}", offending=value)
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce an environment string to the default's type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value)  # type: ignore
            elif target_type == float:
                return float(value)  # type: ignore
        except ValueError as e:
            raise ConfigError(
                f"Environment variable {self.env_var} has invalid value", offending=value, cause=e
            )
        return value  # type: ignore


@dataclass
class SRSConfig:
    """Configuration for SRS setup."""
    default_path: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="ZKBRIDGE_SRS_PATH",
        description="Local SRS cache file used when a call supplies no path",
    ))
    max_points: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1 << 23,
        env_var="ZKBRIDGE_SRS_MAX_POINTS",
        description="Largest SRS point count a setup call may request",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    auto_setup: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="ZKBRIDGE_SRS_AUTO_SETUP",
        description="Set up the SRS from bytecode when proving finds it missing or too small",
    ))


@dataclass
class ProvingConfig:
    """Defaults applied when a call leaves a parameter unset."""
    default_variant: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="ultra_honk",
        env_var="ZKBRIDGE_PROOF_VARIANT",
        description="Proof variant used when the caller passes none",
        validator=lambda x: x in VARIANT_TAGS,
    ))
    low_memory: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="ZKBRIDGE_LOW_MEMORY",
        description="Default low-memory flag for CLI invocations",
    ))
    recursive: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="ZKBRIDGE_RECURSIVE",
        description="Default recursion flag for CLI invocations",
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="ZKBRIDGE_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="ZKBRIDGE_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class BridgeConfig:
    """Root configuration for ZKBRIDGE."""
    srs: SRSConfig = field(default_factory=SRSConfig)
    proving: ProvingConfig = field(default_factory=ProvingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = BridgeConfig()
        self._config_paths: List[Path] = []
        self._defaults_loaded = False
        self._initialized = True

    @property
    def config(self) -> BridgeConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}", offending=str(path))

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}", offending=str(path), cause=e)

        if data:
            if not isinstance(data, dict):
                raise ConfigError(f"Configuration root must be a mapping: {path}", offending=str(path))
            self._apply_dict(data)
            self._config_paths.append(path)

    def load_defaults(self) -> None:
        """Load default configuration files if they exist. Runs once until reset()."""
        if self._defaults_loaded:
            return
        self._defaults_loaded = True
        default_paths = [
            Path("zkbridge.yaml"),
            Path("config/zkbridge.yaml"),
            Path.home() / ".zkbridge" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                try:
                    self.load_from_file(path)
                except ConfigError as e:
                    _log.warning("Skipping default config %s: %s", path, e.message)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                dotted = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {dotted}", offending=dotted)
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{dotted}.")
                else:
                    raise ConfigError(f"Config section {dotted} must be a mapping", offending=value)

        apply_to_config(self._config, data, "")

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if part.startswith("_") or not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}", offending=path)
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("srs.auto_setup", True)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}", offending=path)
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("proving.default_variant")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def reset(self) -> None:
        """Drop runtime overrides and loaded files."""
        self._config = BridgeConfig()
        self._config_paths = []
        self._defaults_loaded = False

    def validate(self) -> List[str]:
        """Validate all configuration values. Returns list of problems."""
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                except ConfigError as e:
                    errors.append(f"{path}: {e.message}")
                    return
                if obj.validator and not obj.validator(value):
                    errors.append(f"{path}: validation failed for value {value!r}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


def get_config() -> BridgeConfig:
    """Get the current ZKBRIDGE configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    return ConfigManager()
