"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the supplier
template engine. Using specific exceptions allows for better error
handling and more informative error messages.

"Nothing found" outcomes (no matching template, ambiguous match, missing
field value, degraded extraction) are NOT exceptions: they are returned
as data by the matcher and extractor.

Exception Hierarchy:
    TemplateEngineError (base)
    ├── ValidationError
    ├── TemplateNotFoundError
    ├── AnnotationStateError
    ├── InputError
    │   ├── DocumentNotFoundError
    │   └── CorruptedFileError
    └── StorageError
"""


class TemplateEngineError(Exception):
    """
    Base exception for all template engine errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(TemplateEngineError):
    """
    Raised when a value is rejected at the boundary where it is built.

    Covers malformed bounding boxes (negative size, non-finite numbers),
    unknown field names and template promotion without a usable
    identification pattern.

    Example:
        >>> raise ValidationError("width", -0.2, "must be non-negative")
    """

    def __init__(self, field: str, value, reason: str = None):
        message = f"Validation failed for field '{field}'"
        if reason:
            message = f"{message}: {reason}"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)
        self.field = field
        self.value = value
        self.reason = reason


class TemplateNotFoundError(TemplateEngineError):
    """Raised when a template id does not exist for the requesting owner."""

    def __init__(self, template_id: str):
        message = f"Template not found: {template_id}"
        details = {"template_id": template_id}
        super().__init__(message, details)
        self.template_id = template_id


class AnnotationStateError(TemplateEngineError):
    """Raised by strict annotation helpers when an event is invalid for the phase."""

    def __init__(self, phase: str, event: str):
        message = f"Cannot apply '{event}' while annotator is '{phase}'"
        details = {"phase": phase, "event": event}
        super().__init__(message, details)


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(TemplateEngineError):
    """Base exception for upstream OCR input errors."""
    pass


class DocumentNotFoundError(InputError):
    """Raised when an OCR input file cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when an OCR input file appears to be corrupted or unreadable."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class UnsupportedFileTypeError(InputError):
    """Raised when an input file type is not supported."""

    def __init__(self, file_type: str, supported_types: list = None):
        supported = supported_types or []
        message = f"Unsupported file type: {file_type}. Supported: {', '.join(sorted(supported))}"
        details = {"file_type": file_type, "supported_types": supported}
        super().__init__(message, details)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(TemplateEngineError):
    """Raised when the persistence backend fails. Never retried by the engine."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Storage operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'TemplateEngineError',
    'ValidationError',
    'TemplateNotFoundError',
    'AnnotationStateError',
    'InputError',
    'DocumentNotFoundError',
    'CorruptedFileError',
    'UnsupportedFileTypeError',
    'StorageError',
]
