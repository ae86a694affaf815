"""
Post-Processing Module for the Supplier Template Engine.

Format-aware normalization of extracted and corrected field values.
"""

from .normalizers import DateNormalizer, AmountNormalizer, FieldNormalizer

__all__ = ['DateNormalizer', 'AmountNormalizer', 'FieldNormalizer']
