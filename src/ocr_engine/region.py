"""
Region Recognizer Module.

Box-aware access to upstream recognition: given a normalized zone, return
the text found inside it and the recognizer's own score. The extractor
uses this path whenever one is available and falls back to label scanning
over flat text otherwise.

Two adapters are provided:
    TokenRegionRecognizer: reads tokens already recognized with pixel boxes
    CallbackRegionRecognizer: delegates to a caller-supplied function that
                              re-runs recognition on the cropped zone
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from config import get_config
from src.geometry import BoundingBox, overlap_fraction
from src.utils.logger import get_logger
from .ocr_result import OCRResult, group_into_lines

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegionText:
    """
    Text recognized inside one zone.

    Attributes:
        text: Recognized text, verbatim
        confidence: Recognizer score scaled to 0-1
    """
    text: str
    confidence: float


class RegionRecognizer(ABC):
    """Interface of a box-aware upstream recognizer."""

    @abstractmethod
    def recognize(self, box: BoundingBox) -> Optional[RegionText]:
        """
        Recognize the text confined to `box`.

        Returns:
            RegionText, or None when the zone holds no text.
        """


class TokenRegionRecognizer(RegionRecognizer):
    """
    Box-aware recognition over tokens the upstream OCR already produced.

    A token belongs to a zone when at least `min_overlap` of its area lies
    inside the zone on the same page. Tokens are read line by line, left
    to right; the confidence is the mean token confidence (0-100 -> 0-1).

    Example:
        >>> recognizer = TokenRegionRecognizer(ocr_result)
        >>> recognizer.recognize(BoundingBox(0.7, 0.9, 0.2, 0.03))
        RegionText(text='152,40 €', confidence=0.93)
    """

    def __init__(self, ocr_result: OCRResult, min_overlap: Optional[float] = None) -> None:
        self.ocr_result = ocr_result
        self.min_overlap = (
            min_overlap if min_overlap is not None
            else get_config("extraction.token_overlap", 0.5)
        )

    def recognize(self, box: BoundingBox) -> Optional[RegionText]:
        if not self.ocr_result.has_boxes:
            return None

        page = box.page if box.page is not None else 0
        inside = [
            word for word in self.ocr_result.words
            if word.page == page
            and word.text.strip()
            and overlap_fraction(self.ocr_result.word_box(word), box) >= self.min_overlap
        ]
        if not inside:
            return None

        lines = group_into_lines(inside)
        text = '\n'.join(line.text for line in lines)
        confidence = sum(w.confidence for w in inside) / len(inside) / 100.0

        logger.debug(f"{len(inside)} tokens inside zone {box.to_dict()}")
        return RegionText(text=text, confidence=confidence)


class CallbackRegionRecognizer(RegionRecognizer):
    """
    Adapter over a caller-supplied function re-running recognition on a zone.

    The function receives the normalized box and returns either None, a
    string (scored `default_confidence`) or a (text, score) tuple with the
    score on a 0-1 scale.
    """

    def __init__(
        self,
        func: Callable[[BoundingBox], Union[None, str, Tuple[str, float]]],
        default_confidence: float = 1.0
    ) -> None:
        self.func = func
        self.default_confidence = default_confidence

    def recognize(self, box: BoundingBox) -> Optional[RegionText]:
        output = self.func(box)
        if output is None:
            return None
        if isinstance(output, tuple):
            text, confidence = output
        else:
            text, confidence = output, self.default_confidence
        return RegionText(text=str(text), confidence=float(confidence))
