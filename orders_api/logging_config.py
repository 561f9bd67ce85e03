"""
logging_config.py — Centralized Logging Configuration for the Orders API

Every module of the service logs through the same root configuration so that
function invocations, order transactions and store failures end up in one
consistent stream.

Features:
    • Console logging (stdout), compatible with the function runtime's log collector
    • Optional file logging when LOG_FILE is set
    • Process ID tagging for multi-process visibility
    • Reduced verbosity for the HTTP client libraries (httpx, httpcore)
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("LOG_FILE")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def setup_logging():
    """
    Configures the global logging system for the application.

    The configuration includes:
        - Log level: LOG_LEVEL env var (INFO by default)
        - Log format: timestamp, log level, process ID, and message
        - Output destinations:
            1. Console (stdout): real-time logs
            2. File: only when LOG_FILE is set
        - Reduced verbosity for httpx/httpcore, which otherwise log every query round trip
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(
        level=LOG_LEVEL,
        format=log_format,
        handlers=handlers,
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger for a module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)
