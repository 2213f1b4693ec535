"""
logging_config.py — Centralized Logging Configuration for the Storefront Client

This module configures unified logging behavior for the whole client.
It ensures that all components log messages consistently to both console and file.

Features:
    • Combined console and file logging output
    • Process ID tagging for multi-process visibility
    • Standardized log format for all modules
    • Reduced verbosity for the HTTP stack (httpx, httpcore)
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("STOREFRONT_LOG_FILE", "storefront_client.log")


def setup_logging(level=logging.INFO, log_file: str = LOG_FILE):
    """
    Configures the global logging system for the client.

    The configuration includes:
        - Log level: INFO (default)
        - Log format: timestamp, log level, process ID, and message
        - Output destinations:
            1. File: `log_file` (persistent log, STOREFRONT_LOG_FILE)
            2. Console (stdout)
        - Reduced verbosity for httpx and httpcore, which log every request at INFO
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
