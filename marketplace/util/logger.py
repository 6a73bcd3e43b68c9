"""Logging utility for the marketplace core."""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "marketplace"


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance.
    
    The stdout handler is attached once to the ``marketplace`` logger; module
    loggers (``marketplace.*``) propagate to it.
    
    Args:
        name: Logger name, typically __name__ of the calling module
        level: Optional level name (e.g. "DEBUG")
        
    Returns:
        Configured logger instance
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    
    # Only configure if no handlers exist
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    
    logger = logging.getLogger(name or ROOT_LOGGER_NAME)
    if level:
        logger.setLevel(level.upper())
    
    return logger
