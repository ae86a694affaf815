"""
Template Data Classes.

This module defines the persisted and transient data structures of the
template engine:

Classes:
    FieldZone: Binding of one field to one page zone inside a template
    SupplierTemplate: Reusable per-supplier set of field zones
    DetectedZone: Result of applying a zone to one specific document
    DocumentCorrection: Document-level snapshot written by the annotator

Every box stored in a FieldZone or DetectedZone is clamped to the page
at construction, so an out-of-range box can never be persisted.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional

from config import get_config
from src.geometry import BoundingBox, clamp
from src.schema import FieldName, ValueFormat, parse_field
from src.utils.exceptions import ValidationError
from src.utils.helpers import (
    compact_identifier,
    format_timestamp,
    generate_id,
    normalize_text,
    parse_timestamp,
    utc_now,
)


def _unit_interval(name: str, value: Any) -> float:
    """Validate a confidence score and clamp it into [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ValidationError(name, value, "must be a number")
    return min(1.0, max(0.0, float(value)))


def _unique(values) -> List[str]:
    """Drop blanks and duplicates (case-insensitive), keeping order."""
    seen = set()
    result = []
    for value in values or []:
        if value is None:
            continue
        text = str(value).strip()
        key = normalize_text(text)
        if not text or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


# Marker written by older versions of the annotation UI
LEGACY_MANUAL_LABELS = ("Défini manuellement",)


def manual_label() -> str:
    """label_found value of a hand-drawn zone."""
    return get_config("annotator.manual_label", "manually defined")


def is_manual_label(label: Optional[str]) -> bool:
    """True for the marker of hand-drawn zones, which is not a real label."""
    if not label:
        return False
    key = normalize_text(label)
    return key in {normalize_text(manual_label())} | {
        normalize_text(legacy) for legacy in LEGACY_MANUAL_LABELS
    }


def normalize_supplier_name(name: Optional[str]) -> str:
    """
    Upsert key of a supplier name.

    Example:
        >>> normalize_supplier_name("  Leroy  Merlin ")
        "leroy merlin"
    """
    return normalize_text(name)


@dataclass
class FieldZone:
    """
    Where one field lives on a supplier's invoices.

    Attributes:
        zone: Normalized bounding box (clamped to the page)
        label_patterns: Literal labels observed near the zone, used only
                        as auxiliary hints
        value_format: Expected value format
        confidence: 1.0 for hand-drawn zones, detector score otherwise
    """
    zone: BoundingBox
    label_patterns: List[str] = field(default_factory=list)
    value_format: ValueFormat = ValueFormat.TEXT
    confidence: float = 1.0

    def __post_init__(self):
        if not isinstance(self.zone, BoundingBox):
            raise ValidationError("zone", self.zone, "must be a BoundingBox")
        self.zone = clamp(self.zone)
        self.value_format = ValueFormat.parse(self.value_format)
        self.confidence = _unit_interval("confidence", self.confidence)
        self.label_patterns = _unique(self.label_patterns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'zone': self.zone.to_dict(),
            'label_patterns': list(self.label_patterns),
            'value_format': self.value_format.value,
            'confidence': self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldZone':
        return cls(
            zone=BoundingBox.from_dict(data.get('zone')),
            label_patterns=data.get('label_patterns') or [],
            value_format=data.get('value_format', ValueFormat.TEXT.value),
            confidence=data.get('confidence', 1.0),
        )


@dataclass
class DetectedZone:
    """
    Runtime result of applying a zone to one document.

    Not part of a template: persisted only as a snapshot on the document
    it was computed for.

    Attributes:
        zone: Normalized bounding box the value was read from
        value: Extracted (or user-entered) value, None when nothing found
        raw_text: Text the value was taken from, when it differs
        confidence: Trust in the value (0-1); 0 when value is None
        label_found: Label that led to the value, or the manual marker
    """
    zone: BoundingBox
    value: Optional[str] = None
    raw_text: Optional[str] = None
    confidence: float = 0.0
    label_found: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.zone, BoundingBox):
            raise ValidationError("zone", self.zone, "must be a BoundingBox")
        self.zone = clamp(self.zone)
        self.confidence = _unit_interval("confidence", self.confidence)
        if self.value is not None:
            self.value = str(self.value)

    @property
    def found(self) -> bool:
        """True when a non-empty value was extracted."""
        return self.value is not None and self.value != ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'zone': self.zone.to_dict(),
            'value': self.value,
            'raw_text': self.raw_text,
            'confidence': self.confidence,
            'label_found': self.label_found,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DetectedZone':
        value = data.get('value')
        return cls(
            zone=BoundingBox.from_dict(data.get('zone')),
            value=None if value is None else str(value),
            raw_text=data.get('raw_text'),
            confidence=data.get('confidence') or 0.0,
            label_found=data.get('label_found'),
        )


def zones_to_dict(zones: Dict[FieldName, DetectedZone]) -> Dict[str, Dict[str, Any]]:
    """Serialize a field -> DetectedZone map keyed by field value."""
    return {field_name.value: zone.to_dict() for field_name, zone in zones.items()}


def zones_from_dict(data: Optional[Dict[str, Any]]) -> Dict[FieldName, DetectedZone]:
    """Parse a stored snapshot, rejecting unknown field names."""
    return {
        parse_field(key): DetectedZone.from_dict(value)
        for key, value in (data or {}).items()
    }


@dataclass
class SupplierTemplate:
    """
    Persisted, reusable extraction template for one supplier of one account.

    Attributes:
        owner: Account the template belongs to (never shared)
        supplier_name: Display name; its normalized form is the upsert key
        supplier_tax_id: SIRET or equivalent, when known
        field_zones: Field -> FieldZone map
        identification_patterns: Literal strings recognizing the supplier
        times_used: Number of automatic extraction attempts
        success_rate: Share (0-100) of fields accepted without correction
        last_used_at: Time of the last automatic use
        id: Template identifier
        created_at / updated_at: Lifecycle timestamps

    Example:
        >>> template = SupplierTemplate(owner="acc-1", supplier_name="Acme")
        >>> template.identification_patterns
        ['Acme']
    """
    owner: str
    supplier_name: str
    supplier_tax_id: Optional[str] = None
    field_zones: Dict[FieldName, FieldZone] = field(default_factory=dict)
    identification_patterns: List[str] = field(default_factory=list)
    times_used: int = 0
    success_rate: Optional[float] = None
    last_used_at: Optional[datetime] = None
    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.owner:
            raise ValidationError("owner", self.owner, "template must have an owner")

        self.supplier_name = (self.supplier_name or "").strip()
        self.supplier_tax_id = (self.supplier_tax_id or "").strip() or None
        self.field_zones = {
            parse_field(name): zone for name, zone in (self.field_zones or {}).items()
        }

        patterns = list(self.identification_patterns or [])
        if not patterns:
            patterns = [self.supplier_name, self.supplier_tax_id]
        self.identification_patterns = _unique(patterns)

        if isinstance(self.times_used, bool) or not isinstance(self.times_used, int) or self.times_used < 0:
            raise ValidationError("times_used", self.times_used, "must be a non-negative integer")

        if self.success_rate is None:
            self.success_rate = float(get_config("feedback.default_success_rate", 100.0))
        self.success_rate = min(100.0, max(0.0, float(self.success_rate)))

        self.created_at = parse_timestamp(self.created_at) or utc_now()
        self.updated_at = parse_timestamp(self.updated_at) or self.created_at
        self.last_used_at = parse_timestamp(self.last_used_at)

    @property
    def normalized_name(self) -> str:
        """Owner-scoped upsert key."""
        return normalize_supplier_name(self.supplier_name)

    @property
    def compact_tax_id(self) -> str:
        """Tax id without separators, "" when unknown."""
        return compact_identifier(self.supplier_tax_id)

    @property
    def fields(self) -> List[FieldName]:
        """Fields this template defines, in canonical order."""
        return [name for name in FieldName if name in self.field_zones]

    def replace_zones(self, zones: Dict[FieldName, FieldZone]) -> None:
        """
        Replace the whole field map.

        Zones are never merged field by field: a field that is not in
        `zones` disappears from the template.
        """
        self.field_zones = {parse_field(name): zone for name, zone in zones.items()}
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for serialization."""
        return {
            'id': self.id,
            'owner': self.owner,
            'supplier_name': self.supplier_name,
            'supplier_name_normalized': self.normalized_name,
            'supplier_tax_id': self.supplier_tax_id,
            'field_zones': {
                name.value: zone.to_dict() for name, zone in self.field_zones.items()
            },
            'identification_patterns': list(self.identification_patterns),
            'times_used': self.times_used,
            'success_rate': self.success_rate,
            'last_used_at': format_timestamp(self.last_used_at),
            'created_at': format_timestamp(self.created_at),
            'updated_at': format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SupplierTemplate':
        """
        Create SupplierTemplate from dictionary.

        Raises:
            ValidationError: If a zone or field name is malformed.
        """
        kwargs = dict(
            owner=data.get('owner'),
            supplier_name=data.get('supplier_name'),
            supplier_tax_id=data.get('supplier_tax_id'),
            field_zones={
                key: FieldZone.from_dict(value)
                for key, value in (data.get('field_zones') or {}).items()
            },
            identification_patterns=data.get('identification_patterns') or [],
            times_used=int(data.get('times_used') or 0),
            success_rate=data.get('success_rate'),
            last_used_at=data.get('last_used_at'),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )
        if data.get('id'):
            kwargs['id'] = data['id']
        return cls(**kwargs)

    def __repr__(self) -> str:
        return (
            f"SupplierTemplate({self.supplier_name!r}, "
            f"fields={len(self.field_zones)}, "
            f"used={self.times_used}, "
            f"success={self.success_rate:.0f}%)"
        )


@dataclass
class DocumentCorrection:
    """
    Document-level result of an annotation session.

    Persisted against the document regardless of template promotion, so a
    document keeps the zones that produced its values even if the
    template later changes.
    """
    document_id: str
    owner: str
    values: Dict[FieldName, Optional[str]] = field(default_factory=dict)
    normalized_values: Dict[FieldName, Optional[str]] = field(default_factory=dict)
    zones: Dict[FieldName, DetectedZone] = field(default_factory=dict)
    template_id: Optional[str] = None
    zones_validated: bool = True
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'owner': self.owner,
            'values': {k.value: v for k, v in self.values.items()},
            'normalized_values': {k.value: v for k, v in self.normalized_values.items()},
            'detected_zones': zones_to_dict(self.zones),
            'template_id': self.template_id,
            'zones_validated': self.zones_validated,
            'updated_at': format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentCorrection':
        return cls(
            document_id=data['document_id'],
            owner=data.get('owner') or "",
            values={parse_field(k): v for k, v in (data.get('values') or {}).items()},
            normalized_values={
                parse_field(k): v for k, v in (data.get('normalized_values') or {}).items()
            },
            zones=zones_from_dict(data.get('detected_zones')),
            template_id=data.get('template_id'),
            zones_validated=bool(data.get('zones_validated', True)),
            updated_at=parse_timestamp(data.get('updated_at')) or utc_now(),
        )

