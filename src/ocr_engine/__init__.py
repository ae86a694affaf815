"""
Upstream OCR Module for the Supplier Template Engine.

This module does not recognize text. It models what the upstream
recognizer produces:
    - Flat recognized text
    - Per-token bounding boxes
    - Box-aware recognition restricted to a zone
"""

from .ocr_result import OCRResult, OCRWord, OCRLine, group_into_lines
from .region import (
    RegionText,
    RegionRecognizer,
    TokenRegionRecognizer,
    CallbackRegionRecognizer,
)

__all__ = [
    'OCRResult',
    'OCRWord',
    'OCRLine',
    'group_into_lines',
    'RegionText',
    'RegionRecognizer',
    'TokenRegionRecognizer',
    'CallbackRegionRecognizer',
]
