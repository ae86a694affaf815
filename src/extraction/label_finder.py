"""
Label Finder Module.

Discovers the literal label printed next to a zone ("Total TTC",
"N° Facture"...) from upstream token boxes. Labels found this way are
stored as a template's label patterns and drive the flat-text fallback
on later documents.
"""

import re
from typing import List, Optional

from src.geometry import BoundingBox
from src.ocr_engine import OCRResult, OCRWord
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Largest horizontal gap (page fraction) inside one label
MAX_WORD_GAP = 0.04
MAX_LABEL_WORDS = 4


def find_label_near(ocr_result: Optional[OCRResult], box: BoundingBox) -> Optional[str]:
    """
    Find the label printed left of the zone, or just above it.

    Args:
        ocr_result: Upstream tokens with boxes.
        box: The zone whose label is wanted.

    Returns:
        The label text with trailing separators removed, or None.

    Example:
        >>> find_label_near(ocr_result, BoundingBox(0.7, 0.9, 0.2, 0.03))
        "Total TTC"
    """
    if ocr_result is None or not ocr_result.has_boxes:
        return None

    page = box.page if box.page is not None else 0
    tokens = [
        (word, ocr_result.word_box(word))
        for word in ocr_result.words
        if word.page == page and word.text.strip()
    ]

    label = _label_left_of(tokens, box) or _label_above(tokens, box)
    if label:
        logger.debug(f"Label near zone {box.to_dict()}: '{label}'")
    return label


def _clean(words: List[OCRWord]) -> Optional[str]:
    text = ' '.join(w.text for w in words)
    text = re.sub(r'[\s:=#\-–]+$', '', text).strip()
    return text or None


def _label_left_of(tokens, box: BoundingBox) -> Optional[str]:
    row = [
        (word, word_box) for word, word_box in tokens
        if box.y <= word_box.center[1] <= box.bottom
        and word_box.right <= box.x + MAX_WORD_GAP / 2
    ]
    if not row:
        return None

    row.sort(key=lambda item: item[1].x, reverse=True)
    picked = [row[0]]
    for word, word_box in row[1:]:
        if len(picked) >= MAX_LABEL_WORDS:
            break
        if picked[-1][1].x - word_box.right > MAX_WORD_GAP:
            break
        picked.append((word, word_box))

    # Label must sit close to the zone
    if box.x - picked[0][1].right > MAX_WORD_GAP * 2:
        return None

    picked.reverse()
    return _clean([word for word, _ in picked])


def _label_above(tokens, box: BoundingBox) -> Optional[str]:
    reach = max(box.height * 2, 0.02)
    above = [
        (word, word_box) for word, word_box in tokens
        if box.y - reach <= word_box.bottom <= box.y + box.height / 2
        and word_box.center[1] < box.y
        and word_box.right >= box.x and word_box.x <= box.right
    ]
    if not above:
        return None

    # Keep the closest line only
    closest_bottom = max(word_box.bottom for _, word_box in above)
    line = [
        (word, word_box) for word, word_box in above
        if closest_bottom - word_box.bottom <= box.height
    ]
    line.sort(key=lambda item: item[1].x)
    return _clean([word for word, _ in line[:MAX_LABEL_WORDS]])
