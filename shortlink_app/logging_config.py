"""Logging configuration for the URL shortener."""

import logging
import sys


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger.
    
    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        
    Returns:
        The configured "shortlink_app" logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    
    logger = logging.getLogger("shortlink_app")
    logger.setLevel(numeric_level)
    
    # Idempotent: the lifespan may run more than once per process in tests
    logger.handlers.clear()
    
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    return logger
