"""
Zone Extractor Module.

This module applies a supplier template to one document and returns a
value and a confidence for every field the template defines.

Approach:
    Box-aware path: when the upstream recognizer can read text confined to
    a zone, the zone's text is taken verbatim and scored by the
    recognizer itself.

    Fallback path: with flat text only, the field's label patterns are
    searched in the text and the characters following the first hit (up
    to the end of the line or a bounded window) become the value, at a
    fixed lower confidence. The report is flagged as degraded.

The extractor is a pure function of (template, document): no storage,
no network, no mutation of the template.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional, Pattern, Tuple

from config import get_config
from src.ocr_engine import RegionRecognizer
from src.postprocessor import FieldNormalizer
from src.schema import FieldName, all_fields, definition_of
from src.templates.models import DetectedZone, FieldZone, SupplierTemplate, is_manual_label
from src.utils.logger import get_logger
from .document import DocumentInput

logger = get_logger(__name__)

# Separators printed between a label and its value
_LEADING_SEPARATORS = re.compile(r'^[\s:=#\-–—]*')


@dataclass
class ExtractionReport:
    """
    Values read from one document with one template.

    Attributes:
        template_id: Template that was applied
        supplier_name: Supplier of that template
        zones: Field -> DetectedZone, one entry per template field
        degraded: True when the flat-text fallback path was used
        document_id: Document the values were read from

    Example:
        >>> report = extractor.extract(template, document)
        >>> report.zones[FieldName.TOTAL_TTC].value
        "152,40 €"
    """
    template_id: str
    supplier_name: str
    zones: Dict[FieldName, DetectedZone] = field(default_factory=dict)
    degraded: bool = False
    document_id: Optional[str] = None

    def values(self) -> Dict[FieldName, Optional[str]]:
        """Field -> verbatim value."""
        return {name: zone.value for name, zone in self.zones.items()}

    def normalized_values(
        self,
        normalizer: Optional[FieldNormalizer] = None
    ) -> Dict[FieldName, Optional[str]]:
        """Field -> value normalized for its format."""
        normalizer = normalizer or FieldNormalizer()
        return {
            name: normalizer.normalize(name, zone.value)
            for name, zone in self.zones.items()
        }

    @property
    def missing_fields(self) -> List[FieldName]:
        return [name for name, zone in self.zones.items() if not zone.found]

    @property
    def average_confidence(self) -> float:
        found = [zone.confidence for zone in self.zones.values() if zone.found]
        return sum(found) / len(found) if found else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'template_id': self.template_id,
            'supplier_name': self.supplier_name,
            'document_id': self.document_id,
            'degraded': self.degraded,
            'zones': {name.value: zone.to_dict() for name, zone in self.zones.items()},
            'average_confidence': self.average_confidence,
        }


class ZoneExtractor:
    """
    Projects a template's zones onto a document.

    Attributes:
        fallback_confidence: Fixed confidence of label-scan values
        fallback_window: Maximum characters taken after a label

    Example:
        >>> extractor = ZoneExtractor()
        >>> report = extractor.extract(template, DocumentInput(text=ocr_text))
        >>> report.degraded
        True
    """

    def __init__(
        self,
        fallback_confidence: Optional[float] = None,
        fallback_window: Optional[int] = None
    ) -> None:
        self.fallback_confidence = float(
            fallback_confidence if fallback_confidence is not None
            else get_config("extraction.fallback.confidence", 0.5)
        )
        self.fallback_window = int(
            fallback_window if fallback_window is not None
            else get_config("extraction.fallback.window", 80)
        )

    def extract(self, template: SupplierTemplate, document: DocumentInput) -> ExtractionReport:
        """
        Extract every field the template defines.

        Args:
            template: Selected supplier template.
            document: Recognized document.

        Returns:
            ExtractionReport with an entry for every template field; a
            field with nothing found has value None and confidence 0.
        """
        recognizer = document.region_recognizer()
        text = document.full_text

        zones: Dict[FieldName, DetectedZone] = {}
        for field_name in template.fields:
            field_zone = template.field_zones[field_name]
            if recognizer is not None:
                zones[field_name] = self._extract_box_aware(field_zone, recognizer)
            else:
                zones[field_name] = self._extract_by_label(
                    field_name, field_zone, text, self._foreign_labels(field_name, template)
                )

        report = ExtractionReport(
            template_id=template.id,
            supplier_name=template.supplier_name,
            zones=zones,
            degraded=recognizer is None,
            document_id=document.document_id,
        )

        if report.degraded:
            logger.warning(
                f"Degraded extraction for '{template.supplier_name}': "
                f"no box-aware recognition, label scan used"
            )
        logger.info(
            f"Extracted {len(zones) - len(report.missing_fields)}/{len(zones)} fields "
            f"with template '{template.supplier_name}'"
        )
        return report

    def _extract_box_aware(
        self,
        field_zone: FieldZone,
        recognizer: RegionRecognizer
    ) -> DetectedZone:
        region = recognizer.recognize(field_zone.zone)
        value = region.text.strip() if region is not None else ""

        if not value:
            return DetectedZone(zone=field_zone.zone, value=None, confidence=0.0)

        return DetectedZone(
            zone=field_zone.zone,
            value=value,
            raw_text=region.text,
            confidence=max(0.0, region.confidence),
            label_found=self._first_real_label(field_zone.label_patterns),
        )

    def _extract_by_label(
        self,
        field_name: FieldName,
        field_zone: FieldZone,
        text: str,
        foreign_labels: Iterable[str] = ()
    ) -> DetectedZone:
        hit = self.scan_for_label(text, self._labels_for(field_name, field_zone), foreign_labels)
        if hit is None:
            logger.debug(f"No label found for {field_name.value}")
            return DetectedZone(zone=field_zone.zone, value=None, confidence=0.0)

        label, value, raw = hit
        return DetectedZone(
            zone=field_zone.zone,
            value=value,
            raw_text=raw,
            confidence=self.fallback_confidence,
            label_found=label,
        )

    @staticmethod
    def _labels_for(field_name: FieldName, field_zone: FieldZone) -> List[str]:
        """Template label patterns first, then the schema's generic aliases."""
        labels = [p for p in field_zone.label_patterns if not is_manual_label(p)]
        labels.extend(definition_of(field_name).aliases)
        return labels

    @classmethod
    def _foreign_labels(cls, field_name: FieldName, template: SupplierTemplate) -> List[str]:
        """Labels that belong to the other fields of the schema and template."""
        labels = []
        for other in all_fields():
            if other is field_name:
                continue
            field_zone = template.field_zones.get(other)
            if field_zone is not None:
                labels.extend(cls._labels_for(other, field_zone))
            else:
                labels.extend(definition_of(other).aliases)
        return labels

    @staticmethod
    def _first_real_label(patterns: Iterable[str]) -> Optional[str]:
        for pattern in patterns:
            if not is_manual_label(pattern):
                return pattern
        return None

    def scan_for_label(
        self,
        text: str,
        labels: Iterable[str],
        foreign_labels: Iterable[str] = ()
    ) -> Optional[Tuple[str, str, str]]:
        """
        Find the value printed after the first label found in the text.

        Labels are tried in order; each is matched case-insensitively as a
        whole word, with any whitespace run between its words. An
        occurrence lying inside a longer foreign label ("TVA" within
        "Taux TVA") is not a hit. A label whose first hit is followed by
        nothing on the same line is skipped.

        Returns:
            (label, value, raw_text) or None.

        Example:
            >>> extractor.scan_for_label("Total TTC : 152,40 €\\n", ["Total TTC"])
            ("Total TTC", "152,40 €", "Total TTC : 152,40 €")
        """
        if not text:
            return None

        foreign_spans = [
            match.span()
            for pattern in filter(None, map(_label_pattern, foreign_labels))
            for match in pattern.finditer(text)
        ]

        for label in labels:
            pattern = _label_pattern(label)
            if pattern is None:
                continue
            match = next(
                (m for m in pattern.finditer(text) if not _shadowed(m.span(), foreign_spans)),
                None,
            )
            if match is None:
                continue

            tail = text[match.end():match.end() + self.fallback_window]
            tail = tail.split('\n', 1)[0].split('\r', 1)[0]
            value = _LEADING_SEPARATORS.sub('', tail).strip()
            if not value:
                continue

            raw = (match.group(0) + tail).strip()
            return label, value, raw

        return None


def _label_pattern(label: str) -> Optional[Pattern]:
    """Whole-word, whitespace-tolerant, case-insensitive pattern for a label."""
    words = label.split()
    if not words:
        return None
    body = r'\s+'.join(re.escape(w) for w in words)
    # Word boundaries only where the label itself starts/ends with a word character
    prefix = r'(?<!\w)' if re.match(r'\w', words[0]) else ''
    suffix = r'(?!\w)' if re.search(r'\w$', words[-1]) else ''
    return re.compile(prefix + body + suffix, re.IGNORECASE)


def _shadowed(span: Tuple[int, int], foreign_spans: List[Tuple[int, int]]) -> bool:
    start, end = span
    return any(
        s <= start and end <= e and (e - s) > (end - start)
        for s, e in foreign_spans
    )
