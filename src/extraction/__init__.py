"""
Extraction Module for the Supplier Template Engine.

This module provides:
    - DocumentInput: what is known about the document being read
    - ZoneExtractor: applies a template's zones to a document
    - find_label_near: discovers the label printed next to a zone
"""

from .document import DocumentInput
from .zone_extractor import ZoneExtractor, ExtractionReport
from .label_finder import find_label_near

__all__ = ['DocumentInput', 'ZoneExtractor', 'ExtractionReport', 'find_label_near']
