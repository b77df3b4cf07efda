#!/usr/bin/env python3

import copy
import os
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import logging
import sys

import yaml

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr) # Default to stderr
    ]
)
logger = logging.getLogger("gemrepo")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']
ENV_PREFIX = "GEMREPO_"


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GEMREPO_CONFIG environment variable
    2. ~/.gemrepo/ directory
    """
    # Check for environment variable override
    if 'GEMREPO_CONFIG' in os.environ:
        path = Path(os.environ['GEMREPO_CONFIG'])
        if path.exists():
            return path

    gemrepo_dir = Path.home() / '.gemrepo'
    for filename in CONFIG_FILENAMES:
        path = gemrepo_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return gemrepo_dir / 'config.json'


def read_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Read one config file as written, without defaults or overrides.

    The format follows the suffix: .toml, .yaml/.yml, anything else is JSON.
    A missing file reads as an empty dict.
    """
    if not config_path.exists():
        return {}

    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
    elif suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    else:
        with open(config_path, 'r') as f:
            data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} does not hold a mapping")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from file, on top of the defaults."""
    config_path = Path(config_path) if config_path else get_config_path()

    config = get_default_config()
    try:
        config = merge_configs(config, read_config_file(config_path))
    except Exception as e:
        logger.error(f"Error loading config from {config_path}: {e}")

    return apply_env_overrides(config)


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Save configuration to file. Returns the path written.

    TOML cannot be written with tomllib, so a .toml target is saved as
    JSON next to it.

    Raises:
        OSError: If the file cannot be written
    """
    config_path = Path(config_path) if config_path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.suffix.lower() == '.toml':
        logger.warning("Writing TOML is not supported. Saving as JSON instead.")
        config_path = config_path.with_suffix('.json')

    with open(config_path, 'w') as f:
        if config_path.suffix.lower() in ('.yaml', '.yml'):
            yaml.safe_dump(config, f, default_flow_style=False)
        else:
            json.dump(config, f, indent=2)
            f.write('\n')

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def get_default_config():
    """Get default configuration."""
    return {
        "repository": {
            "uri": "~/.gemrepo/repo",  # Directory, file:// URI or http(s):// URL
        },
        "remote": {
            "timeout_seconds": 30,
            "chunk_size": 65536,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def configure_logging(config: Dict[str, Any], debug: bool = False) -> None:
    """Apply the logging section of a config to the gemrepo logger."""
    settings = config.get('logging', {})
    level_name = 'DEBUG' if debug else str(settings.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)

    logger.setLevel(level)
    fmt = settings.get('format')
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt))


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge override_config into a copy of base_config.

    Nested sections merge key by key; any other value replaces the base
    value. Neither argument is modified.
    """
    merged = copy.deepcopy(base_config)
    for key, value in override_config.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def coerce_value(raw: str, current: Any = None) -> Any:
    """
    Convert a string from the environment or command line.

    When the setting already has a value, its type wins: "5" stays a
    string for a string setting. Otherwise booleans and integers are
    recognised.
    """
    lowered = raw.lower()
    if isinstance(current, bool) or (current is None and lowered in ('true', 'false')):
        if lowered in ('true', 'yes', 'on', '1'):
            return True
        if lowered in ('false', 'no', 'off', '0'):
            return False
        raise ValueError(f"Expected a boolean, got {raw!r}")
    if isinstance(current, int) or (current is None and raw.isdigit()):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply GEMREPO_<SECTION>_<KEY> environment variables.

    Only settings present in the config are overridden; the section is
    the first underscore-separated part, the rest is the key, so
    GEMREPO_REMOTE_TIMEOUT_SECONDS=5 sets remote.timeout_seconds.
    """
    for section, settings in config.items():
        if not isinstance(settings, dict):
            continue
        for key, current in list(settings.items()):
            env_key = f"{ENV_PREFIX}{section}_{key}".upper()
            if env_key not in os.environ:
                continue
            try:
                settings[key] = coerce_value(os.environ[env_key], current)
            except ValueError as e:
                logger.warning(f"Ignoring {env_key}: {e}")

    return config


def set_config_value(config: Dict[str, Any], dotted_key: str, raw: str) -> Dict[str, Any]:
    """
    Set "section.key" in a copy of config from a string value.

    The value is coerced against the default for that key.

    Raises:
        KeyError: If the key is not a known setting
    """
    section, _, key = dotted_key.partition('.')
    defaults = get_default_config()
    if not key or section not in defaults or key not in defaults[section]:
        raise KeyError(f"Unknown config key: {dotted_key}")

    updated = copy.deepcopy(config)
    updated.setdefault(section, {})[key] = coerce_value(raw, defaults[section][key])
    return updated
