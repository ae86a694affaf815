"""
Annotation Persistence Module.

Saves an annotation draft: the document always keeps its values and zone
snapshot, and on request the zones are promoted into the owner's template
for the draft's supplier (created or updated by normalized name).
"""

from dataclasses import dataclass
from typing import Dict, Optional, Any

from src.extraction import find_label_near
from src.postprocessor import FieldNormalizer
from src.schema import FieldName, format_of
from src.templates.models import (
    DetectedZone,
    DocumentCorrection,
    FieldZone,
    SupplierTemplate,
    is_manual_label,
    normalize_supplier_name,
)
from src.templates.store import TemplateStore
from src.utils.exceptions import TemplateNotFoundError, ValidationError
from src.utils.logger import get_logger
from .session import AnnotationDraft

logger = get_logger(__name__)


@dataclass
class SaveResult:
    """
    Outcome of AnnotationService.save.

    Attributes:
        document: Stored document snapshot
        template: Promoted template, None when no promotion was requested
        created: True when the template did not exist before
    """
    document: DocumentCorrection
    template: Optional[SupplierTemplate] = None
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document': self.document.to_dict(),
            'template': self.template.to_dict() if self.template else None,
            'created': self.created,
        }


class AnnotationService:
    """
    Persists drafts and promotes them to templates.

    Example:
        >>> service = AnnotationService(store)
        >>> result = await service.save(session.draft, create_template=True)
        >>> result.template.supplier_name
        "ACME SAS"
    """

    def __init__(self, store: TemplateStore, normalizer: Optional[FieldNormalizer] = None) -> None:
        self.store = store
        self.normalizer = normalizer or FieldNormalizer()

    async def save(self, draft: AnnotationDraft, create_template: bool = False) -> SaveResult:
        """
        Persist a draft, optionally promoting its zones to a template.

        The supplier name is checked before anything is written, so a
        rejected promotion leaves the store untouched.

        Args:
            draft: Draft to persist.
            create_template: Create or update the supplier's template.

        Returns:
            SaveResult with the stored document and template.

        Raises:
            ValidationError: If create_template is set and the draft has
                             no supplier name.
            StorageError: If the store fails; nothing is retried.
        """
        if create_template and not draft.supplier_name:
            raise ValidationError(
                FieldName.SUPPLIER_NAME.value,
                draft.supplier_name,
                "a supplier name is required to save a template",
            )

        template = None
        created = False
        if create_template:
            template, created = await self._build_template(draft)

        values = draft.values
        normalized = {name: self.normalizer.normalize(name, value) for name, value in values.items()}

        document = await self.store.attach_zones_to_document(
            draft.document_id,
            draft.zones,
            values=values,
            normalized_values=normalized,
            owner=draft.owner,
            template_id=template.id if template else draft.template_id,
        )
        logger.info(f"Saved {len(document.zones)} zones on document {draft.document_id}")

        if template is not None:
            template = await self.store.upsert_template(template)
            logger.info(
                f"{'Created' if created else 'Updated'} template '{template.supplier_name}' "
                f"with {len(template.field_zones)} fields"
            )

        return SaveResult(document=document, template=template, created=created)

    async def _build_template(self, draft: AnnotationDraft):
        """The template the draft promotes to, and whether it is new."""
        field_zones = {
            name: self._field_zone(name, zone, draft)
            for name, zone in draft.zones.items()
        }

        key = normalize_supplier_name(draft.supplier_name)
        existing = next(
            (t for t in await self.store.list_templates(draft.owner) if t.normalized_name == key),
            None,
        )

        if existing is None:
            return SupplierTemplate(
                owner=draft.owner,
                supplier_name=draft.supplier_name,
                supplier_tax_id=draft.supplier_tax_id,
                field_zones=field_zones,
                times_used=0,
            ), True

        existing.replace_zones(field_zones)
        existing.supplier_name = draft.supplier_name
        if draft.supplier_tax_id:
            existing.supplier_tax_id = draft.supplier_tax_id
        existing.identification_patterns = _merge_patterns(
            existing.identification_patterns,
            [draft.supplier_name, draft.supplier_tax_id],
        )
        return existing, False

    @staticmethod
    def _field_zone(name: FieldName, zone: DetectedZone, draft: AnnotationDraft) -> FieldZone:
        labels = []
        label = find_label_near(draft.ocr_result, zone.zone)
        if label:
            labels.append(label)
        elif zone.label_found and not is_manual_label(zone.label_found):
            labels.append(zone.label_found)

        return FieldZone(
            zone=zone.zone,
            label_patterns=labels,
            value_format=format_of(name),
            confidence=zone.confidence or 1.0,
        )

    async def delete_template(self, template_id: str, owner: str) -> None:
        """
        Delete one of the owner's templates. Irreversible.

        Documents keep the zone snapshots they were saved with.

        Raises:
            TemplateNotFoundError: If no template of this owner has that id.
        """
        template = await self.store.get_template(template_id)
        if template is None or template.owner != owner:
            raise TemplateNotFoundError(template_id)

        await self.store.delete_template(template_id)
        logger.info(f"Deleted template '{template.supplier_name}' ({template_id})")


def _merge_patterns(existing, extra):
    """Existing patterns first, then new non-blank ones not already present."""
    seen = {normalize_supplier_name(p) for p in existing}
    merged = list(existing)
    for pattern in extra:
        if pattern and normalize_supplier_name(pattern) not in seen:
            seen.add(normalize_supplier_name(pattern))
            merged.append(pattern)
    return merged
