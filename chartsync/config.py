#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import logging
import sys

import yaml

from .domain.repository import RepositoryConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr)  # Default to stderr
    ]
)
logger = logging.getLogger("chartsync")

# Process-wide re-sync interval, read once at startup
RECONCILE_PERIOD_ENV = "REPOSITORY_RECONCILE_PERIOD_SECONDS"
DEFAULT_RECONCILE_PERIOD_SECONDS = 600


def get_reconcile_period(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Read the re-sync interval from the environment.

    Absent, non-numeric or non-positive values silently fall back to
    the default of 600 seconds.
    """
    if environ is None:
        environ = os.environ

    value = environ.get(RECONCILE_PERIOD_ENV)
    if value is None:
        return DEFAULT_RECONCILE_PERIOD_SECONDS
    try:
        period = int(value.strip())
    except ValueError:
        return DEFAULT_RECONCILE_PERIOD_SECONDS
    return period if period > 0 else DEFAULT_RECONCILE_PERIOD_SECONDS


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Set the level (and optionally format) of chartsync's log output."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if fmt:
        for handler in root.handlers:
            handler.setFormatter(logging.Formatter(fmt))


def get_config_dir() -> Path:
    return Path.home() / '.chartsync'


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. CHARTSYNC_CONFIG environment variable
    2. ~/.chartsync/config.{json,toml,yaml,yml}
    """
    if 'CHARTSYNC_CONFIG' in os.environ:
        return Path(os.environ['CHARTSYNC_CONFIG'])

    config_dir = get_config_dir()
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists():
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.yaml'


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    with open(config_path, 'r') as f:
        if suffix in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        return json.load(f)


def load_config():
    """Load configuration: defaults, then the config file, then environment overrides."""
    config_path = get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
            if isinstance(file_config, dict):
                config = merge_configs(config, file_config)
            else:
                logger.error(f"Ignoring {config_path}: top level is not a mapping")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    config = apply_env_overrides(config)

    return config


def save_config(config):
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            if config_path.suffix.lower() == '.toml':
                logger.warning("Writing TOML is not supported. Saving as JSON instead.")
                config_path = config_path.with_suffix('.json')
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Error saving config to {config_path}: {e}")


def get_default_config():
    """Get default configuration."""
    config_dir = get_config_dir()
    return {
        "sync": {
            "timeout_seconds": 30,
            "error_retry_seconds": 10,
        },
        "platform": {
            # Kubernetes version charts are filtered against ("" = no filtering)
            "version": "",
        },
        "database": {
            "path": str(config_dir / 'charts.db'),
        },
        "trust": {
            "config_maps_path": str(config_dir / 'configmaps.yaml'),
            "secrets_path": str(config_dir / 'secrets.yaml'),
        },
        "repositories": [],
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: CHARTSYNC_SECTION_KEY
    For example: CHARTSYNC_PLATFORM_VERSION=1.27.3
    """
    env_prefix = "CHARTSYNC_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i:i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                # Platform versions like "1.27" must stay strings
                if isinstance(current_level[matched_key], str):
                    current_level[matched_key] = value
                else:
                    current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config


def load_repositories(config: Dict[str, Any], path: Optional[Path] = None) -> List[RepositoryConfig]:
    """
    Load repository configurations.

    Args:
        config: Loaded configuration; its ``repositories`` list is used
            when no path is given
        path: Optional YAML file with one repository per document, or a
            single document holding a list

    Returns:
        RepositoryConfig objects, in file order

    Raises:
        ValueError: if an entry has no name or URL, or names repeat
    """
    if path is not None:
        with open(path, 'r') as f:
            raw: List[Any] = []
            for document in yaml.safe_load_all(f):
                if isinstance(document, list):
                    raw.extend(document)
                elif document is not None:
                    raw.append(document)
    else:
        raw = config.get('repositories') or []

    repositories = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError(f"Repository entry is not a mapping: {entry!r}")
        repository = RepositoryConfig.from_dict(entry)
        if not repository.name or not repository.url:
            raise ValueError(f"Repository entry needs a name and a url: {entry!r}")
        if repository.name in seen:
            raise ValueError(f"Duplicate repository name: {repository.name}")
        seen.add(repository.name)
        repositories.append(repository)

    return repositories
