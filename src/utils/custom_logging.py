"""
custom_logging.py
"""

import os
import logging
from logging.handlers import RotatingFileHandler
import platform
import datetime
import json
import sys
import traceback
from typing import Optional

_CURRENT_LOG_FILE = None


def get_log_dir() -> str:
    """Directory holding log files (LOG_DIR env var, defaults to ./logs)"""
    log_dir = os.getenv("LOG_DIR", "logs")
    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)
    return log_dir

def get_run_id():
    """Generate a unique run ID for the current day"""
    log_index_file = os.path.join(get_log_dir(), "log_index.json")
    today = datetime.datetime.now().strftime("%Y%m%d")

    if os.path.exists(log_index_file):
        try:
            with open(log_index_file, "r") as f:
                log_data = json.load(f)
        except (json.JSONDecodeError, FileNotFoundError):
            log_data = {}
    else:
        log_data = {}

    today_run_id = log_data.get(today, 0) + 1
    log_data[today] = today_run_id

    with open(log_index_file, "w") as f:
        json.dump(log_data, f, indent=2)

    return today_run_id

def get_log_filename():
    """Generate a log filename with timestamp, run number and host"""
    global _CURRENT_LOG_FILE

    if _CURRENT_LOG_FILE is not None:
        return _CURRENT_LOG_FILE

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    run_id = get_run_id()
    machine = platform.node().split('.')[0] or "localhost"
    python_version = f"py{sys.version_info.major}.{sys.version_info.minor}"

    _CURRENT_LOG_FILE = os.path.join(
        get_log_dir(), f"{timestamp}_run{run_id}_{machine}_{python_version}_ptree.log"
    )
    return _CURRENT_LOG_FILE

def get_detailed_formatter() -> logging.Formatter:
    """Create a detailed formatter with additional context"""
    return logging.Formatter(
        "[%(asctime)s] [%(levelname)-8s] [%(name)-20s] [%(filename)s:%(lineno)d] [%(funcName)s()]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

def get_simple_formatter() -> logging.Formatter:
    """Create a simple formatter for console output"""
    return logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s",
        datefmt="%H:%M:%S"
    )

def get_logger(name: str = "ptree", log_file: Optional[str] = None) -> logging.Logger:
    """Get a configured logger with console and rotating file output"""
    logger = logging.getLogger(name)

    if logger.hasHandlers():
        return logger

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level, logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if log_file is None:
        log_file = get_log_filename()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(get_simple_formatter())
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=100_000_000,
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setFormatter(get_detailed_formatter())
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    logger.debug("Logger '%s' initialized with file: %s", name, log_file)

    return logger

class PerformanceLogger:
    """Context manager for logging operation performance"""

    def __init__(self, logger: logging.Logger, operation: str, **kwargs):
        self.logger = logger
        self.operation = operation
        self.kwargs = kwargs
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.datetime.now().timestamp()
        self.logger.debug("STARTING: %s", self.operation)
        if self.kwargs:
            self.logger.debug("PARAMETERS: %s - %s", self.operation, self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.datetime.now().timestamp() - self.start_time

        if exc_type is None:
            self.logger.info("COMPLETED: %s in %.3f seconds", self.operation, duration)
        else:
            self.logger.error("FAILED: %s after %.3f seconds - %s: %s",
                            self.operation, duration, exc_type.__name__, str(exc_val))
            self.logger.debug("Exception traceback: %s", traceback.format_exc())
        return False
