"""
OCR Result Data Classes.

This module defines the shape in which the upstream recognizer hands its
output to the template engine. The engine never performs recognition: it
only reads text and per-token bounding boxes produced elsewhere.

Classes:
    OCRWord: Individual token with a pixel bounding box
    OCRLine: Line of text containing multiple tokens
    OCRResult: Complete recognizer output for a document
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple
import json

from src.geometry import BoundingBox
from src.utils.exceptions import ValidationError


@dataclass
class OCRWord:
    """
    Represents a single word/token recognized upstream.

    Attributes:
        text: The recognized text content
        bbox: Bounding box as (x1, y1, x2, y2) in pixels
        confidence: Recognizer confidence score (0-100)
        page: Zero-based page index
        line_index: Index of the line this word belongs to, -1 if unknown

    Example:
        >>> word = OCRWord(text="Total", bbox=(100, 50, 200, 80), confidence=95.5)
    """
    text: str
    bbox: Tuple[int, int, int, int]  # (x1, y1, x2, y2)
    confidence: float = 0.0
    page: int = 0
    line_index: int = -1

    @property
    def x1(self) -> int:
        return self.bbox[0]

    @property
    def y1(self) -> int:
        return self.bbox[1]

    @property
    def x2(self) -> int:
        return self.bbox[2]

    @property
    def y2(self) -> int:
        return self.bbox[3]

    @property
    def center_y(self) -> float:
        return (self.y1 + self.y2) / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'bbox': list(self.bbox),
            'confidence': self.confidence,
            'page': self.page,
            'line_index': self.line_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OCRWord':
        bbox = data.get('bbox')
        if not bbox or len(bbox) != 4:
            raise ValidationError("bbox", bbox, "expected [x1, y1, x2, y2]")
        return cls(
            text=str(data.get('text', '')),
            bbox=tuple(bbox),
            confidence=float(data.get('confidence') or 0.0),
            page=int(data.get('page') or 0),
            line_index=int(data.get('line_index', -1)),
        )

    def __repr__(self) -> str:
        return f"OCRWord('{self.text}', bbox={self.bbox}, conf={self.confidence:.1f})"


@dataclass
class OCRLine:
    """
    Represents a line of text containing multiple words.

    Example:
        >>> line = OCRLine(words=[word1, word2])
        >>> print(line.text)
        "Total TTC 152,40 €"
    """
    words: List[OCRWord] = field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(word.text for word in self.words)

    @property
    def average_confidence(self) -> float:
        if not self.words:
            return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)


def group_into_lines(words: List[OCRWord]) -> List[OCRLine]:
    """
    Group words into reading-order lines.

    Words carrying a line index are grouped by (page, line index); the
    others are grouped by vertical overlap. Lines are ordered top to
    bottom and words left to right.
    """
    if not words:
        return []

    ordered = sorted(words, key=lambda w: (w.page, w.center_y, w.x1))
    groups: List[List[OCRWord]] = []

    for word in ordered:
        current = groups[-1] if groups else None
        if current and current[0].page == word.page and _same_line(current, word):
            current.append(word)
        else:
            groups.append([word])

    lines = []
    for group in groups:
        group.sort(key=lambda w: w.x1)
        lines.append(OCRLine(words=group))
    return lines


def _same_line(line_words: List[OCRWord], word: OCRWord) -> bool:
    """True when `word` belongs to the line formed by `line_words`."""
    known = [w.line_index for w in line_words if w.line_index >= 0]
    if known and word.line_index >= 0:
        return word.line_index == known[0]

    top = min(w.y1 for w in line_words)
    bottom = max(w.y2 for w in line_words)
    return top <= word.center_y <= bottom


@dataclass
class OCRResult:
    """
    Complete upstream recognizer output for one document.

    Attributes:
        words: All tokens with pixel bounding boxes
        image_width: Width of the rendered page in pixels
        image_height: Height of the rendered page in pixels
        flat_text: Plain text, when the recognizer supplied it directly
        engine: Name of the upstream recognizer
        metadata: Additional metadata dictionary

    Example:
        >>> result = OCRResult.from_dict(json.load(fh))
        >>> print(result.text)
    """
    words: List[OCRWord] = field(default_factory=list)
    image_width: int = 0
    image_height: int = 0
    flat_text: Optional[str] = None
    engine: str = "unknown"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_boxes(self) -> bool:
        """True when per-token geometry can be used."""
        return bool(self.words) and self.image_width > 0 and self.image_height > 0

    @property
    def lines(self) -> List[OCRLine]:
        return group_into_lines(self.words)

    @property
    def text(self) -> str:
        """
        Full text content.

        Returns the upstream flat text when given, otherwise the tokens
        joined line by line.
        """
        if self.flat_text is not None:
            return self.flat_text
        return '\n'.join(line.text for line in self.lines)

    @property
    def average_confidence(self) -> float:
        if not self.words:
            return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)

    def word_box(self, word: OCRWord) -> BoundingBox:
        """Normalized box of a token."""
        return BoundingBox.from_pixels(
            word.bbox, self.image_width, self.image_height, page=word.page
        )

    def is_empty(self) -> bool:
        return not self.words and not self.flat_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'image_width': self.image_width,
            'image_height': self.image_height,
            'engine': self.engine,
            'words': [w.to_dict() for w in self.words],
            'metadata': self.metadata,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OCRResult':
        """
        Build a result from the upstream JSON format.

        Raises:
            ValidationError: If a token is malformed.
        """
        return cls(
            words=[OCRWord.from_dict(w) for w in data.get('words') or []],
            image_width=int(data.get('image_width') or 0),
            image_height=int(data.get('image_height') or 0),
            flat_text=data.get('text'),
            engine=data.get('engine', 'unknown'),
            metadata=data.get('metadata') or {},
        )

    def __repr__(self) -> str:
        return (
            f"OCRResult(words={len(self.words)}, "
            f"confidence={self.average_confidence:.1f}%)"
        )
