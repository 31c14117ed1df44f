## @file src/utils/__init__.py
# @brief Utility functions and helper modules.
#
# This package provides:
#  - custom_logging: Logging configuration and performance tracking
#  - config: YAML configuration loading and validation

# Lazy imports to prevent circular import issues
def get_custom_logging():
    """Lazy import of custom_logging functions"""
    from .custom_logging import get_logger, get_log_filename, PerformanceLogger
    return get_logger, get_log_filename, PerformanceLogger

def get_config_utils():
    """Lazy import of config functions"""
    from .config import load_config, validate_config, save_config, get_config_value
    return load_config, validate_config, save_config, get_config_value

__all__ = [
    "get_custom_logging",
    "get_config_utils",
]
