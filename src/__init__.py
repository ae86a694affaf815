"""
Supplier Template Engine - Source Package.

Learns, per supplier and per account, where each invoice field sits on
the page, and reuses those zones on later invoices of the same supplier.

Modules:
    - geometry: Normalized bounding boxes
    - schema: Extractable fields and value formats
    - templates: Template data model and persistence
    - ocr_engine: Upstream recognizer output (tokens, regions)
    - input_handler: Loading OCR output files
    - matching: Template identification
    - extraction: Zone-based extraction with label-scan fallback
    - postprocessor: Value normalization
    - annotator: Manual correction workflow and template promotion
    - feedback: Template usage statistics
    - engine: End-to-end orchestration

Architecture:
    OCR output → Match → Extract → Review (annotator) → Save / Promote
                                                     ↓
                                               Usage feedback
"""

__version__ = "1.0.0"

__all__ = [
    'geometry',
    'schema',
    'templates',
    'ocr_engine',
    'input_handler',
    'matching',
    'extraction',
    'postprocessor',
    'annotator',
    'feedback',
    'engine',
    'utils',
]
