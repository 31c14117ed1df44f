"""
config.py
"""

import yaml
import os
from typing import Dict, Any, Optional
from utils import get_custom_logging

PTREE_SECTION = "ptree"

_UNIT_INTERVAL_KEYS = (
    'compatibility_threshold',
    'similarity_threshold',
    'outperformance_threshold',
)
_BOOL_KEYS = ('ignore_hybrids', 'simple_new_species')


def load_config(config_path: str, log_file: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file with comprehensive logging"""
    get_logger, _, PerformanceLogger = get_custom_logging()
    logger = get_logger("config", log_file)

    with PerformanceLogger(logger, "Load Config", config_path=config_path):
        logger.info("Loading configuration from: %s", config_path)

        if not os.path.exists(config_path):
            logger.error("Configuration file not found: %s", config_path)
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML configuration: %s", e, exc_info=True)
            raise

        if config is None:
            config = {}
        if isinstance(config, dict):
            logger.debug("Configuration keys: %s", list(config.keys()))

        validation_result = validate_config(config)
        if validation_result['is_valid']:
            logger.info("Configuration validation successful")
        else:
            logger.warning("Configuration validation issues found:")
            for issue in validation_result['issues']:
                logger.warning("  - %s", issue)
        for warning in validation_result['warnings']:
            logger.warning("  - %s", warning)

        return config

def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate configuration structure and values"""
    validation_result = {
        'is_valid': True,
        'issues': [],
        'warnings': []
    }

    if not isinstance(config, dict):
        validation_result['is_valid'] = False
        validation_result['issues'].append("Configuration must be a mapping")
        return validation_result

    if PTREE_SECTION not in config:
        validation_result['warnings'].append(f"Missing '{PTREE_SECTION}' section, defaults will be used")
    elif not isinstance(config[PTREE_SECTION], dict):
        validation_result['issues'].append(f"Key '{PTREE_SECTION}' must be a dictionary")
    else:
        ptree_validation = validate_ptree_config(config[PTREE_SECTION])
        validation_result['issues'].extend(ptree_validation['issues'])
        validation_result['warnings'].extend(ptree_validation['warnings'])

    validation_result['is_valid'] = len(validation_result['issues']) == 0
    return validation_result

def validate_ptree_config(ptree_config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the phylogenetic tree section"""
    validation_result = {
        'issues': [],
        'warnings': []
    }

    for key in _UNIT_INTERVAL_KEYS:
        if key in ptree_config:
            value = ptree_config[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 1:
                validation_result['issues'].append(f"{key} must be a number between 0 and 1, got: {value}")

    if 'enveloppe_size' in ptree_config:
        value = ptree_config['enveloppe_size']
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            validation_result['issues'].append(f"enveloppe_size must be a positive integer, got: {value}")

    for key in _BOOL_KEYS:
        if key in ptree_config and not isinstance(ptree_config[key], bool):
            validation_result['issues'].append(f"{key} must be a boolean, got: {ptree_config[key]}")

    known = set(_UNIT_INTERVAL_KEYS) | set(_BOOL_KEYS) | {'enveloppe_size'}
    for key in ptree_config:
        if key not in known:
            validation_result['warnings'].append(f"Unknown ptree parameter: {key}")

    return validation_result

def save_config(config: Dict[str, Any], config_path: str, log_file: Optional[str] = None) -> None:
    """Save configuration to YAML file"""
    get_logger, _, PerformanceLogger = get_custom_logging()
    logger = get_logger("config", log_file)

    with PerformanceLogger(logger, "Save Config", config_path=config_path):
        directory = os.path.dirname(config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        validation_result = validate_config(config)
        if not validation_result['is_valid']:
            logger.warning("Saving configuration with validation issues:")
            for issue in validation_result['issues']:
                logger.warning("  - %s", issue)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config, f, default_flow_style=False, indent=2, allow_unicode=True)

        logger.info("Successfully saved configuration to %s", config_path)

def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """Get configuration value using dot notation"""
    value = config
    for key in key_path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
