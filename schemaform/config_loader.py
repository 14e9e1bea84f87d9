"""
Configuration loading utilities for the schema form engine.

This module provides functionality to load and validate application
configuration, including engine settings and logging, with fallback to
defaults.
"""

import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .engine_exceptions import ConfigurationLoadError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOGGING_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}


@dataclass
class EngineSettings:
    """
    Settings consumed by the flattener and the nested creation controller.

    Attributes:
        max_depth: Maximum number of stacked nested creation contexts
        accelerated_ranking: Run the numpy bulk ranking pass after flattening
        store_references: Write {id, label, data} references into parent fields
    """
    max_depth: int = 5
    accelerated_ranking: bool = True
    store_references: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'EngineSettings':
        engine = config.get('engine', {}) or {}
        defaults = cls()
        return cls(
            max_depth=int(engine.get('max_depth', defaults.max_depth)),
            accelerated_ranking=bool(engine.get('accelerated_ranking', defaults.accelerated_ranking)),
            store_references=bool(engine.get('store_references', defaults.store_references))
        )


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        'app': {
            'name': 'Schema Form Builder',
            'version': '1.0.0',
            'debug': False,
            'schemas_dir': 'schemas'
        },
        'engine': {
            'max_depth': 5,
            'accelerated_ranking': True,
            'store_references': False
        },
        'logging': {
            'level': 'INFO',
            'format': LOG_FORMAT
        },
        'ui': {
            'page_title': 'JSON Schema Form Generator',
            'sidebar_title': 'Settings'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    A missing, empty or malformed file falls back to the defaults; problems
    are logged, never raised.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except (yaml.YAMLError, IOError, OSError) as e:
        error = ConfigurationLoadError(config_path, e)
        logger.error(error.message)
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and required fields.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'engine', 'logging', 'ui']

    for section in required_sections:
        if section not in config:
            logger.warning(f"Missing required configuration section: {section}")
            return False

    app = config.get('app', {})
    if 'name' not in app or 'version' not in app:
        logger.warning("Missing required app configuration (name or version)")
        return False

    engine = config.get('engine', {})
    if 'max_depth' in engine:
        try:
            max_depth = int(engine['max_depth'])
            if max_depth <= 0:
                logger.warning("max_depth must be positive")
                return False
        except (ValueError, TypeError):
            logger.warning("max_depth must be a valid integer")
            return False

    level = config.get('logging', {}).get('level', 'INFO')
    if not isinstance(level, str) or level.upper() not in LOGGING_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    return True


def get_config_value(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        config: Configuration dictionary
        section: Configuration section (e.g., 'engine', 'ui')
        key: Configuration key within section
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    return (config.get(section) or {}).get(key, default)


def get_engine_settings(config: Dict[str, Any]) -> EngineSettings:
    """
    Extract engine settings from complete config.

    Invalid values fall back to the default settings.
    """
    try:
        return EngineSettings.from_config(config)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to create EngineSettings: {e}")
        logger.info("Using default engine settings")
        return EngineSettings()


def get_logging_level(level_str: str) -> int:
    """Map string logging level to logging constant."""
    return LOGGING_LEVELS.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Dict[str, Any]) -> int:
    """
    Configure root logging from the `logging` section.

    Returns:
        The logging level applied
    """
    level = get_logging_level(get_config_value(config, 'logging', 'level', 'INFO'))
    log_format = get_config_value(config, 'logging', 'format', LOG_FORMAT)
    logging.basicConfig(level=level, format=log_format)
    logger.info(f"Logging configured to level: {logging.getLevelName(level)}")
    return level
