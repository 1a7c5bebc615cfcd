# portsweep/config.py

"""
Configuration loader for portsweep.

Reads scan defaults from a YAML file. Values given on the command line
always take precedence over the file.
"""

import os
import yaml
from typing import Dict, Any, Optional

from .exceptions import ConfigError
from .utils import MAX_DURATION, validate_duration

DEFAULT_CONFIG_PATH = "portsweep.yaml"

# Default structure and values; a user file only needs the keys it overrides.
DEFAULT_CONFIG: Dict[str, Any] = {
    'timeout_seconds': 1.0,
    'workers': 10,
    'progress_interval_seconds': 0.1,
    'show_progress': True,
}

_HEADER = (
    "# portsweep configuration file\n"
    "# Command-line options override these settings.\n\n"
)


def save_config(config: Dict[str, Any], path: str = DEFAULT_CONFIG_PATH):
    """Saves the provided configuration dictionary as YAML."""
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(_HEADER)
            yaml.safe_dump(config, f, sort_keys=False, default_flow_style=False, indent=2)
    except OSError as e:
        raise ConfigError(f"Could not write config file '{path}': {e}") from e


def _validate(config: Dict[str, Any], path: str):
    unknown = set(config) - set(DEFAULT_CONFIG)
    if unknown:
        raise ConfigError(f"Unknown setting(s) in '{path}': {', '.join(sorted(unknown))}")

    for key in ('timeout_seconds', 'progress_interval_seconds'):
        value = config[key]
        if not validate_duration(value):
            raise ConfigError(f"'{key}' in '{path}' must be a positive number of seconds "
                              f"up to {MAX_DURATION:g} (got {value!r}).")
    workers = config['workers']
    if isinstance(workers, bool) or not isinstance(workers, int) or workers <= 0:
        raise ConfigError(f"'workers' in '{path}' must be a positive integer (got {workers!r}).")
    if not isinstance(config['show_progress'], bool):
        raise ConfigError(f"'show_progress' in '{path}' must be true or false.")


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration, merging the user's YAML file over DEFAULT_CONFIG.

    If no path is given, DEFAULT_CONFIG_PATH is used when it exists and the
    defaults are returned otherwise. An explicitly given file must exist.
    """
    config = DEFAULT_CONFIG.copy()
    if path is None:
        if not os.path.exists(DEFAULT_CONFIG_PATH):
            return config
        path = DEFAULT_CONFIG_PATH

    try:
        with open(path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file '{path}' not found.") from e
    except OSError as e:
        raise ConfigError(f"Could not read configuration file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing '{path}': {e}") from e

    if user_config is None:
        return config
    if not isinstance(user_config, dict):
        raise ConfigError(f"'{path}' must contain a mapping of settings.")

    config.update(user_config)
    _validate(config, path)
    return config
