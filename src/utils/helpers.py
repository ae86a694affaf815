"""
Helper Utilities Module.

This module provides common utility functions used throughout the
template engine. Functions here should be generic and reusable
across different modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - utc_now: Timezone-aware current timestamp
    - parse_timestamp / format_timestamp: ISO-8601 conversions
    - normalize_text: Case/accent/whitespace folding for matching
    - compact_identifier: Strip separators from tax ids
    - generate_id: New random identifier
"""

import re
import unicodedata
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Union, Optional


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs")
        PosixPath('outputs')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath.

    Returns the extension in lowercase, including the dot.
    Returns empty string if no extension exists.

    Example:
        >>> get_file_extension("scan.JSON")
        ".json"
    """
    return Path(filepath).suffix.lower()


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO-8601, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Naive values are assumed to be UTC so that stored timestamps always
    compare with each other.

    Example:
        >>> parse_timestamp("2026-01-21T14:30:22+00:00").year
        2026
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def fold_accents(text: str) -> str:
    """Remove diacritics ("Échéance" -> "Echeance")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: Optional[str], strip_accents: bool = True) -> str:
    """
    Fold text for case-insensitive, whitespace-tolerant comparison.

    All whitespace runs (including newlines) collapse to one space.

    Example:
        >>> normalize_text("  ACME\\n  Corp ")
        "acme corp"
    """
    if not text:
        return ""
    value = text
    if strip_accents:
        value = fold_accents(value)
    return " ".join(value.casefold().split())


def compact_identifier(text: Optional[str]) -> str:
    """
    Reduce an identifier to its letters and digits, upper-cased.

    Example:
        >>> compact_identifier("123 456 789 00012")
        "12345678900012"
    """
    if not text:
        return ""
    return re.sub(r"[\W_]+", "", text).upper()


def generate_id() -> str:
    """Generate a new random identifier."""
    return str(uuid.uuid4())
