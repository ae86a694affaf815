"""
Document Input Module.

What the extractor knows about the document being read: its flat text
and, when the upstream recognizer provides them, token boxes or a
box-aware recognizer.
"""

from dataclasses import dataclass
from typing import Optional

from src.ocr_engine import OCRResult, RegionRecognizer, TokenRegionRecognizer


@dataclass
class DocumentInput:
    """
    One document as handed over by the upstream recognizer.

    Attributes:
        text: Flat recognized text ("" when only tokens are given)
        ocr_result: Tokens with pixel boxes, if available
        recognizer: Explicit box-aware recognizer, if available
        document_id: Identifier of the document record

    Example:
        >>> DocumentInput(text="ACME SAS\\nTotal TTC : 152,40 €")
        >>> DocumentInput(ocr_result=ocr_result, document_id="doc-42")
    """
    text: str = ""
    ocr_result: Optional[OCRResult] = None
    recognizer: Optional[RegionRecognizer] = None
    document_id: Optional[str] = None

    @property
    def full_text(self) -> str:
        """Flat text, rebuilt from tokens when not supplied directly."""
        if self.text:
            return self.text
        if self.ocr_result is not None:
            return self.ocr_result.text
        return ""

    @property
    def is_box_aware(self) -> bool:
        return self.region_recognizer() is not None

    def region_recognizer(self) -> Optional[RegionRecognizer]:
        """The box-aware recognizer to use, or None for the fallback path."""
        if self.recognizer is not None:
            return self.recognizer
        if self.ocr_result is not None and self.ocr_result.has_boxes:
            return TokenRegionRecognizer(self.ocr_result)
        return None
