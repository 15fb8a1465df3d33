"""Logging configuration for the gateway."""

import logging
import sys
from typing import Union

LOGGER_NAME = "dify2openai"


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    
    # Clear any existing handlers
    logger.handlers.clear()
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    # Propagate so pytest's caplog and uvicorn's root handlers see records
    logger.propagate = True
    
    return logger


logger = logging.getLogger(LOGGER_NAME)
