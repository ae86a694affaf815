"""
Field Schema Module for the Supplier Template Engine.

The closed set of extractable invoice fields and their value formats.
"""

from .fields import (
    FieldName,
    ValueFormat,
    FieldDefinition,
    all_fields,
    definition_of,
    format_of,
    label_of,
    color_of,
    parse_field,
)

__all__ = [
    'FieldName',
    'ValueFormat',
    'FieldDefinition',
    'all_fields',
    'definition_of',
    'format_of',
    'label_of',
    'color_of',
    'parse_field',
]
