"""
Utilities package for the Query Service client

Contains configuration loading and logging helpers.
"""

from .logger import setup_logger, get_logger, LoggerContext, StructuredFormatter
from .config import ClientConfig

__all__ = [
    "ClientConfig",
    "setup_logger",
    "get_logger",
    "LoggerContext",
    "StructuredFormatter"
]
