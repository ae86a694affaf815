"""
Input Handler Module for the Supplier Template Engine.

This module provides functionality for:
    - Detecting input file types (OCR JSON vs plain text)
    - Loading and validating upstream recognizer output
    - Building DocumentInput objects for matching and extraction
"""

from .handler import InputHandler, InputResult

__all__ = ['InputHandler', 'InputResult']
