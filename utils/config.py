"""
Configuration management for the application.
"""

import os
import sys
import copy
import json
from pathlib import Path
import logging

from core.errors import InvalidParameter

# Default configuration
DEFAULT_CONFIG = {
    "tone": {
        "brightness_factor": 1.0,
        "contrast_offset": 0.0
    },
    "view": {
        "zoom_bounds": [0.1, 10.0],
        "wheel_zoom_step": 0.1
    },
    "hierarchy": {
        "synthesize_projection_slices": False
    },
    "loading": {
        "supported_formats": {
            "tiff": [".tif", ".tiff"],
            "hdf5": [".h5", ".hdf5"],
            "image": [".png", ".jpg", ".jpeg", ".bmp", ".gif"]
        }
    }
}


def get_config_path(custom_path=None):
    """Get the path to the configuration file."""
    if custom_path:
        return Path(custom_path)

    if sys.platform == 'win32':
        config_dir = Path(os.path.expandvars('%APPDATA%')) / "stack_composer"
    else:
        config_dir = Path(os.path.expanduser('~')) / ".stack_composer"

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / "config.json"


def load_config(custom_path=None):
    """Load configuration from file or return default if file doesn't exist."""
    logger = logging.getLogger('stack_composer')
    config_path = get_config_path(custom_path)

    # Start with default configuration
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                loaded_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading configuration: {e}")
            logger.info("Using default configuration")
            return config

        _recursive_update(config, loaded_config)
        logger.info(f"Configuration loaded from {config_path}")
    else:
        logger.info(f"Configuration file not found at {config_path}")
        logger.info("Using default configuration")

    validate_config(config)
    return config


def save_config(config, custom_path=None):
    """Save configuration to file."""
    logger = logging.getLogger('stack_composer')
    config_path = get_config_path(custom_path)

    try:
        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)
        logger.info(f"Configuration saved to {config_path}")
        return True
    except OSError as e:
        logger.error(f"Error saving configuration: {e}")
        return False


def validate_config(config):
    """Check the numeric settings the core depends on."""
    brightness = config["tone"]["brightness_factor"]
    if brightness < 0:
        raise InvalidParameter(f"tone.brightness_factor must be >= 0, got {brightness}")

    zoom_min, zoom_max = config["view"]["zoom_bounds"]
    if zoom_min <= 0 or zoom_max <= 0:
        raise InvalidParameter(f"view.zoom_bounds must be positive, got {[zoom_min, zoom_max]}")
    if zoom_min > zoom_max:
        raise InvalidParameter(f"view.zoom_bounds minimum exceeds maximum: {[zoom_min, zoom_max]}")


def _recursive_update(d, u):
    """Recursively update a nested dictionary."""
    for k, v in u.items():
        if isinstance(v, dict) and k in d and isinstance(d[k], dict):
            _recursive_update(d[k], v)
        else:
            d[k] = v


def reset_to_defaults(custom_path=None):
    """Reset configuration to defaults."""
    logger = logging.getLogger('stack_composer')
    config_path = get_config_path(custom_path)

    try:
        with open(config_path, 'w') as f:
            json.dump(DEFAULT_CONFIG, f, indent=4)
        logger.info("Configuration reset to defaults")
    except OSError as e:
        logger.error(f"Error resetting configuration: {e}")
    return copy.deepcopy(DEFAULT_CONFIG)
