"""
Template Store Module for the Supplier Template Engine.

This module provides:
    - Template, zone and document snapshot data classes
    - The asynchronous persistence contract
    - In-memory and SQLite backends
"""

from .models import (
    FieldZone,
    DetectedZone,
    SupplierTemplate,
    DocumentCorrection,
    normalize_supplier_name,
    zones_to_dict,
    zones_from_dict,
)
from .store import TemplateStore, InMemoryTemplateStore
from .sqlite_store import SQLiteTemplateStore

__all__ = [
    'FieldZone',
    'DetectedZone',
    'SupplierTemplate',
    'DocumentCorrection',
    'normalize_supplier_name',
    'zones_to_dict',
    'zones_from_dict',
    'TemplateStore',
    'InMemoryTemplateStore',
    'SQLiteTemplateStore',
]
