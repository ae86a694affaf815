"""
Annotator Module for the Supplier Template Engine.

This module provides:
    - The annotator state machine (pure reducer)
    - AnnotationSession / AnnotationDraft for one open document
    - AnnotationService for saving drafts and promoting templates
"""

from .state_machine import (
    AnnotatorPhase,
    AnnotatorState,
    SelectField,
    PointerDown,
    PointerMove,
    PointerUp,
    Commit,
    Discard,
    RemoveZone,
    SetValue,
    accepts,
    reduce,
)
from .session import AnnotationDraft, AnnotationSession
from .service import AnnotationService, SaveResult

__all__ = [
    'AnnotatorPhase',
    'AnnotatorState',
    'SelectField',
    'PointerDown',
    'PointerMove',
    'PointerUp',
    'Commit',
    'Discard',
    'RemoveZone',
    'SetValue',
    'accepts',
    'reduce',
    'AnnotationDraft',
    'AnnotationSession',
    'AnnotationService',
    'SaveResult',
]
