"""Configuration loading with YAML support and environment overrides."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..exceptions import ConfigError
from .schema import DEFAULT_CONFIG, deep_merge

_LOGGER = logging.getLogger(__name__)

# Config search paths (in priority order). The system-wide file is where a
# packaged install puts the default TV hostname and pre-shared key.
CONFIG_SEARCH_PATHS = [
    Path("config.yaml"),                                     # Current directory
    Path.home() / ".config" / "offscreen" / "config.yaml",  # User home
    Path("/etc/offscreen/config.yaml"),                      # System-wide
]

# Environment variable mappings
# Format: "ENV_VAR": ("section", "key", optional_converter)
ENV_MAPPINGS = {
    "OFFSCREEN_HOSTNAME": ("tv", "hostname"),
    "OFFSCREEN_PSK": ("tv", "psk"),
    "OFFSCREEN_INPUT": ("tv", "input"),
    "DISPLAY": ("screen", "display"),
    "OFFSCREEN_MANUFACTURER": ("screen", "manufacturer"),
    "OFFSCREEN_PRODUCT_CODE": ("screen", "product_code", int),
    "OFFSCREEN_LOG_LEVEL": ("options", "log_level"),
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file with environment overrides.

    Args:
        config_path: Explicit path to config file, or None to search

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigError: if an explicit config file does not exist, or a config
            file cannot be parsed
    """
    config = _deep_copy_config(DEFAULT_CONFIG)
    loaded_path = None

    search_paths: List[Path] = []
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        search_paths.append(path)
    search_paths.extend(CONFIG_SEARCH_PATHS)

    for path in search_paths:
        if path.exists():
            config = deep_merge(config, _read_yaml(path))
            loaded_path = path
            _LOGGER.debug("Loaded config from %s", path)
            break

    config = _apply_env_overrides(config)

    # Store metadata
    config["_loaded_from"] = str(loaded_path) if loaded_path else None

    return config


def apply_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Apply command-line overrides; None values leave the config untouched."""
    return deep_merge(config, overrides)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    for section in DEFAULT_CONFIG:
        value = data.get(section)
        # An empty section (all keys commented out) loads as None
        if value is not None and not isinstance(value, dict):
            raise ConfigError(f"{path}: {section} must be a mapping, got {value!r}")
    return data


def _deep_copy_config(config: Dict) -> Dict:
    """Create a deep copy of the config dict."""
    result = {}
    for key, value in config.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_config(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict) -> Dict:
    """Apply environment variable overrides to config."""
    for env_var, mapping in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if not value:
            continue

        section = mapping[0]
        key = mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str

        try:
            config.setdefault(section, {})[key] = converter(value)
        except ValueError as e:
            raise ConfigError(f"Invalid environment variable {env_var}={value!r}: {e}") from e

    return config
