#!/usr/bin/env -S python3 -B -u
"""
Configuration loader for mastodon cleanup.

Provides the defaults and the YAML file lookup used to build a run
configuration before command line flags are applied.
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List

from mastodon_cleanup.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'mastodon_cleanup.yaml'

KNOWN_KEYS = (
    'days',
    'container',
    'container_runtime',
    'log_path',
    'pid_file',
    'dependencies',
    'retention_days',
    'media_path',
)


def get_default_config() -> Dict[str, Any]:
    """Return the built-in configuration values."""
    return {
        'days': 30,
        'container': 'mastodon',
        'container_runtime': 'docker',
        'log_path': '/var/log/mastodon',
        'pid_file': '/tmp/mastodon-cleanup.pid',
        'dependencies': None,  # defaults to [container_runtime]
        'retention_days': 30,
        'media_path': '/live/public/system',
    }


def get_config_locations() -> List[Path]:
    """
    Configuration file locations in order of precedence.

    1. Environment variable MASTODON_CLEANUP_CONF (if set)
    2. ~/mastodon_cleanup.yaml (user's home directory)
    3. ./mastodon_cleanup.yaml (current directory)
    """
    config_files = []

    env_config = os.environ.get('MASTODON_CLEANUP_CONF')
    if env_config:
        config_files.append(Path(env_config))

    config_files.extend([
        Path.home() / CONFIG_FILE_NAME,
        Path('.') / CONFIG_FILE_NAME
    ])
    return config_files


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    with open(config_file, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}",
            config_file=str(config_file)
        )
    return data


def load_cleanup_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load cleanup configuration with proper precedence.

    An explicitly given file must exist and parse. Otherwise the first
    readable file from get_config_locations() is used; broken files there
    are skipped with a warning.

    Args:
        config_path: Optional path given on the command line

    Returns:
        Dictionary containing configuration values

    Raises:
        ConfigurationError: explicit file missing or invalid
    """
    config = get_default_config()

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}",
                                     config_file=config_path)
        try:
            file_config = _read_config_file(path)
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"Invalid configuration file: {e}",
                                     config_file=config_path, cause=e)
        config.update(_known_only(file_config, path))
        logger.debug(f"Loaded configuration from {path}")
    else:
        for config_file in get_config_locations():
            if not config_file.exists():
                continue
            try:
                file_config = _read_config_file(config_file)
            except (yaml.YAMLError, OSError, ConfigurationError) as e:
                logger.warning(f"Skipping configuration file {config_file}: {e}")
                continue
            config.update(_known_only(file_config, config_file))
            logger.debug(f"Loaded configuration from {config_file}")
            break

    _apply_env_overrides(config)

    if not config.get('dependencies'):
        config['dependencies'] = [config['container_runtime']]

    return config


def _known_only(file_config: Dict[str, Any], source: Path) -> Dict[str, Any]:
    unknown = sorted(set(file_config) - set(KNOWN_KEYS))
    if unknown:
        logger.warning(f"Ignoring unknown keys in {source}: {', '.join(unknown)}")
    return {k: v for k, v in file_config.items() if k in KNOWN_KEYS}


def _apply_env_overrides(config: Dict[str, Any]) -> None:
    container = os.environ.get('MASTODON_CLEANUP_CONTAINER')
    if container:
        config['container'] = container

    log_dir = os.environ.get('MASTODON_CLEANUP_LOGS')
    if log_dir:
        config['log_path'] = log_dir
