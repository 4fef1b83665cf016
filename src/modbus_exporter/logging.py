"""
Logging configuration.

Console logging through the standard library, one logger per module.
"""

import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Initialize logging configuration.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout
    )
    # pymodbus logs every failed frame at ERROR; the exporter reports failures itself
    logging.getLogger("pymodbus").setLevel(logging.CRITICAL)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
