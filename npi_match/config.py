"""
Configuration utilities for NPI Match.

Provides configuration loading, defaults and validation for the registry
client, input handling and pipeline output.
"""

import logging
import yaml
from typing import Dict, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/npi_match.yaml"


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "registry": {
            "base_url": "https://npiregistry.cms.hhs.gov/api/",
            "version": "2.1",
            "limit": 20,
            "skip": 0,
            "timeout": 30,
            "rate_limit_delay": 0.5,
            "user_agent": "npi-match/1.0"
        },
        "input": {
            "required_columns": ["First Name", "Last Name", "Zip"],
            "first_name_column": "First Name",
            "last_name_column": "Last Name",
            "zip_column": "Zip"
        },
        "output": {
            "filename": "providers_with_npi_matches.csv"
        },
        "logging": {
            "level": "INFO",
            "log_dir": "logs"
        }
    }


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from YAML file, layered over the defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    defaults = get_default_config()

    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Configuration file {config_path} not found, using defaults")
            return defaults

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            logger.error(f"Configuration in {config_path} is not a mapping, using defaults")
            return defaults

        logger.info(f"Loaded configuration from {config_path}")
        return merge_configs(defaults, config)

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return defaults


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    for section in ["registry", "input", "output"]:
        if not isinstance(config.get(section), dict):
            logger.error(f"Missing required configuration section: {section}")
            return False

    registry_config = config["registry"]
    limit = registry_config.get("limit", 20)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        logger.error("registry.limit must be a positive integer")
        return False

    skip = registry_config.get("skip", 0)
    if not isinstance(skip, int) or isinstance(skip, bool) or skip < 0:
        logger.error("registry.skip must be a non-negative integer")
        return False

    delay = registry_config.get("rate_limit_delay", 0.5)
    if not isinstance(delay, (int, float)) or isinstance(delay, bool) or delay < 0:
        logger.error("registry.rate_limit_delay must be a non-negative number")
        return False

    input_config = config["input"]
    required_columns = input_config.get("required_columns", [])
    if not isinstance(required_columns, list) or not required_columns:
        logger.error("input.required_columns must be a non-empty list")
        return False

    for key in ["first_name_column", "last_name_column", "zip_column"]:
        column = input_config.get(key)
        if column not in required_columns:
            logger.error(f"input.{key} ({column}) must be one of input.required_columns")
            return False

    logger.info("Configuration validation passed")
    return True
