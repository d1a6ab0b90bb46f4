"""Configuration schema, defaults, and validation."""

from typing import Any, Dict, List

from ..edid import encode_manufacturer_id
from .constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_MANUFACTURER_ID,
    DEFAULT_PRODUCT_CODE,
    DEFAULT_TIMEOUT,
)


DEFAULT_CONFIG: Dict[str, Any] = {
    # Sony Bravia TV
    "tv": {
        "hostname": None,            # Required for anything talking to the TV
        "psk": None,                 # Pre-shared key, if set on the TV
        "input": None,               # Label or URI; defaults to the short hostname
        "timeout": DEFAULT_TIMEOUT,
    },

    # X server and the monitor that is the TV
    "screen": {
        "display": None,             # None uses $DISPLAY
        "manufacturer": DEFAULT_MANUFACTURER_ID,
        "product_code": DEFAULT_PRODUCT_CODE,
    },

    "options": {
        "log_level": DEFAULT_LOG_LEVEL,
    },
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries, override takes precedence.

    Args:
        base: Base dictionary
        override: Override dictionary (values take precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif value is not None:  # Don't override with None
            result[key] = value
    return result


def validate_config(config: Dict, need_tv: bool = True) -> List[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration dictionary
        need_tv: If True, a TV hostname is required

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    tv = config.get("tv", {})
    if need_tv and not tv.get("hostname"):
        errors.append("tv.hostname is required (--hostname or OFFSCREEN_HOSTNAME)")

    timeout = tv.get("timeout")
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        errors.append(f"tv.timeout must be a positive number, got {timeout!r}")

    screen = config.get("screen", {})
    manufacturer = screen.get("manufacturer")
    try:
        encode_manufacturer_id(manufacturer)
    except ValueError:
        errors.append(f"screen.manufacturer must be three uppercase letters, got {manufacturer!r}")

    product_code = screen.get("product_code")
    if not isinstance(product_code, int) or isinstance(product_code, bool) or not 0 <= product_code <= 0xFFFF:
        errors.append(f"screen.product_code must be between 0 and 65535, got {product_code!r}")

    return errors
