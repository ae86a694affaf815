"""
Utility Module for the Supplier Template Engine.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Text folding and timestamp helpers
"""

from .logger import setup_logger, set_level, get_logger
from .helpers import (
    ensure_directory,
    get_file_extension,
    utc_now,
    normalize_text,
    compact_identifier,
)

__all__ = [
    'setup_logger',
    'set_level',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'utc_now',
    'normalize_text',
    'compact_identifier',
]
