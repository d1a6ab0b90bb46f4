"""Configuration management for offscreen.

Provides:
- YAML-based configuration with environment variable overrides
- Command-line overrides on top of both
- Single source of truth for all constants
"""

# Constants - single source of truth
from .constants import (
    DEFAULT_TIMEOUT,
    PSK_HEADER,
    DEFAULT_MANUFACTURER_ID,
    DEFAULT_PRODUCT_CODE,
    RANDR_EXTENSION,
    SCREENSAVER_EXTENSION,
    EDID_PROPERTY,
    EDID_PROPERTY_LENGTH,
    DEFAULT_LOG_LEVEL,
)

# Schema and validation
from .schema import (
    DEFAULT_CONFIG,
    deep_merge,
    validate_config,
)

# Configuration loading
from .loader import (
    load_config,
    apply_overrides,
    CONFIG_SEARCH_PATHS,
    ENV_MAPPINGS,
)


__all__ = [
    # Constants
    "DEFAULT_TIMEOUT",
    "PSK_HEADER",
    "DEFAULT_MANUFACTURER_ID",
    "DEFAULT_PRODUCT_CODE",
    "RANDR_EXTENSION",
    "SCREENSAVER_EXTENSION",
    "EDID_PROPERTY",
    "EDID_PROPERTY_LENGTH",
    "DEFAULT_LOG_LEVEL",
    # Schema
    "DEFAULT_CONFIG",
    "deep_merge",
    "validate_config",
    # Loader
    "load_config",
    "apply_overrides",
    "CONFIG_SEARCH_PATHS",
    "ENV_MAPPINGS",
]
