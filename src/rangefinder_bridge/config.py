"""Configuration management for the Rangefinder Bridge."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class BleConfig:
    """Configuration for the rangefinder BLE connection."""

    device_name: str = "Rangefinder"  # advertised local name of the peripheral
    scan_timeout_secs: float = 30.0
    reconnect_delay_secs: float = 5.0


@dataclass(frozen=True)
class MappingConfig:
    """Distance to intensity mapping parameters."""

    invert: bool = True  # closer = more intense
    min_range_mm: int = 30
    max_range_mm: int = 300
    min_intensity: float = 0.0
    max_intensity: float = 1.0
    deadzone_mm: int = 500  # 0 disables
    smoothing: float = 0.3  # EMA factor, 0 = raw output


@dataclass
class ButtplugConfig:
    """Configuration for the Intiface / Buttplug toy server."""

    server_address: str = "ws://127.0.0.1:12345"
    device_index: Optional[int] = None  # None = first suitable device
    actuator_types: List[str] = field(default_factory=lambda: ["Vibrate"])
    scan_secs: float = 5.0


@dataclass
class LoggingConfig:
    """Configuration for the NDJSON status log."""

    dir: str = "./logs"
    file_prefix: str = "bridge"
    enabled: bool = True


@dataclass
class AppConfig:
    """Main application configuration."""

    ble: BleConfig = None
    mapping: MappingConfig = None
    buttplug: ButtplugConfig = None
    logging: LoggingConfig = None

    def __post_init__(self) -> None:
        if self.ble is None:
            self.ble = BleConfig()
        if self.mapping is None:
            self.mapping = MappingConfig()
        if self.buttplug is None:
            self.buttplug = ButtplugConfig()
        if self.logging is None:
            self.logging = LoggingConfig()


_SECTIONS = {
    "ble": BleConfig,
    "mapping": MappingConfig,
    "buttplug": ButtplugConfig,
    "logging": LoggingConfig,
}


def default_config() -> AppConfig:
    """Return the built-in configuration."""
    return AppConfig()


def load_config(config_path: Union[str, Path]) -> AppConfig:
    """Load and validate configuration from a YAML file with environment variable support."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_file.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError(f"Top level of {config_path} must be a mapping")

    # Process environment variable substitutions
    _substitute_env_vars(raw_config)

    config = _build_config(raw_config)

    errors = validate_config(config)
    if errors:
        raise ConfigError(f"Invalid configuration in {config_path}", errors)

    return config


def load_or_default(config_path: Union[str, Path]) -> AppConfig:
    """Load configuration, falling back to defaults when the file is missing."""
    try:
        return load_config(config_path)
    except FileNotFoundError:
        logger.warning(f"Config file {config_path} not found, using defaults")
        return default_config()


def save_default_config(config_path: Union[str, Path]) -> Path:
    """Write the default configuration as YAML and return the written path."""
    path = Path(config_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config_to_dict(default_config()), f, sort_keys=False)

    return path


def config_to_dict(config: AppConfig) -> Dict[str, Any]:
    """Convert configuration to plain dictionaries for serialization."""
    return {name: asdict(getattr(config, name)) for name in _SECTIONS}


def _build_config(raw_config: Dict[str, Any]) -> AppConfig:
    unknown = sorted(set(raw_config) - set(_SECTIONS))
    if unknown:
        raise ConfigError("Unknown configuration sections", [f"'{k}'" for k in unknown])

    config = AppConfig()
    for name, section_cls in _SECTIONS.items():
        if name not in raw_config or raw_config[name] is None:
            continue

        section_data = raw_config[name]
        if not isinstance(section_data, dict):
            raise ConfigError(f"Section '{name}' must be a mapping")

        allowed = {f.name for f in dataclasses.fields(section_cls)}
        extra = sorted(set(section_data) - allowed)
        if extra:
            raise ConfigError(f"Unknown keys in section '{name}'", [f"'{k}'" for k in extra])

        setattr(config, name, section_cls(**section_data))

    return config


def _substitute_env_vars(data: Any) -> None:
    """Recursively substitute environment variables in configuration data."""
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                data[key] = os.getenv(env_var, value)
            else:
                _substitute_env_vars(value)
    elif isinstance(data, list):
        for i, item in enumerate(data):
            if isinstance(item, str) and item.startswith("${") and item.endswith("}"):
                data[i] = os.getenv(item[2:-1], item)
            else:
                _substitute_env_vars(item)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: AppConfig) -> List[str]:
    """Validate configuration and return list of validation errors."""
    errors = []

    # BLE
    if not config.ble.device_name:
        errors.append("ble.device_name is required")
    if not _is_number(config.ble.scan_timeout_secs) or config.ble.scan_timeout_secs <= 0:
        errors.append("ble.scan_timeout_secs must be positive")
    if not _is_number(config.ble.reconnect_delay_secs) or config.ble.reconnect_delay_secs < 0:
        errors.append("ble.reconnect_delay_secs must not be negative")

    # Mapping
    mapping = config.mapping
    for name in ("min_intensity", "max_intensity", "smoothing"):
        value = getattr(mapping, name)
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            errors.append(f"mapping.{name} must be 0.0-1.0 (got {value!r})")

    ranges_ok = True
    for name in ("min_range_mm", "max_range_mm", "deadzone_mm"):
        value = getattr(mapping, name)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            errors.append(f"mapping.{name} must be a non-negative integer (got {value!r})")
            ranges_ok = False

    if ranges_ok and mapping.min_range_mm >= mapping.max_range_mm:
        errors.append(
            f"mapping.min_range_mm must be < max_range_mm "
            f"(got {mapping.min_range_mm} >= {mapping.max_range_mm})"
        )

    if not isinstance(mapping.invert, bool):
        errors.append("mapping.invert must be true or false")

    # Buttplug
    if not config.buttplug.server_address:
        errors.append("buttplug.server_address is required")
    if not config.buttplug.actuator_types:
        errors.append("buttplug.actuator_types must list at least one actuator type")
    if config.buttplug.device_index is not None and (
        not isinstance(config.buttplug.device_index, int) or config.buttplug.device_index < 0
    ):
        errors.append("buttplug.device_index must be a non-negative integer or null")
    if not _is_number(config.buttplug.scan_secs) or config.buttplug.scan_secs < 0:
        errors.append("buttplug.scan_secs must not be negative")

    return errors
