"""
Template Store Module.

This module defines the persistence contract of the template engine and
an in-memory implementation of it. The engine never assumes a storage
technology: these coroutines are its entire persistence contract.

All operations are coroutines so that callers await I/O at the boundary
before invoking the (synchronous) matcher and extractor.

Concurrent writers are last-writer-wins: two sessions saving the same
template silently overwrite each other's zones. There is no optimistic
locking and no merge.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from src.schema import FieldName
from src.utils.logger import get_logger
from src.utils.helpers import utc_now
from .models import DetectedZone, DocumentCorrection, SupplierTemplate

logger = get_logger(__name__)


class TemplateStore(ABC):
    """
    Keyed store for supplier templates and document zone snapshots.

    Implementations must return detached copies: mutating a returned
    template has no effect until it is passed to `upsert_template`.
    """

    @abstractmethod
    async def list_templates(self, owner: str) -> List[SupplierTemplate]:
        """All templates belonging to `owner`."""

    @abstractmethod
    async def get_template(self, template_id: str) -> Optional[SupplierTemplate]:
        """A template by id, or None."""

    @abstractmethod
    async def upsert_template(self, template: SupplierTemplate) -> SupplierTemplate:
        """Insert or fully replace a template (last writer wins)."""

    @abstractmethod
    async def delete_template(self, template_id: str) -> bool:
        """Delete a template. Irreversible. Returns False if it did not exist."""

    @abstractmethod
    async def attach_zones_to_document(
        self,
        document_id: str,
        zones: Dict[FieldName, DetectedZone],
        values: Optional[Dict[FieldName, Optional[str]]] = None,
        normalized_values: Optional[Dict[FieldName, Optional[str]]] = None,
        owner: str = "",
        template_id: Optional[str] = None,
    ) -> DocumentCorrection:
        """Persist a zone snapshot (and field values) against one document."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[DocumentCorrection]:
        """The last snapshot attached to a document, or None."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryTemplateStore(TemplateStore):
    """
    Dictionary-backed store.

    Objects are serialized on the way in and out, so callers always get
    detached copies, like from a real backend.

    Example:
        >>> store = InMemoryTemplateStore()
        >>> await store.upsert_template(template)
        >>> await store.list_templates("acc-1")
    """

    def __init__(self) -> None:
        self._templates: Dict[str, dict] = {}
        self._documents: Dict[str, dict] = {}

    async def list_templates(self, owner: str) -> List[SupplierTemplate]:
        return [
            SupplierTemplate.from_dict(data)
            for data in self._templates.values()
            if data['owner'] == owner
        ]

    async def get_template(self, template_id: str) -> Optional[SupplierTemplate]:
        data = self._templates.get(template_id)
        return SupplierTemplate.from_dict(data) if data else None

    async def upsert_template(self, template: SupplierTemplate) -> SupplierTemplate:
        # Same (owner, name) under another id is replaced, like a unique index
        stale = [
            template_id for template_id, data in self._templates.items()
            if template_id != template.id
            and data['owner'] == template.owner
            and data['supplier_name_normalized'] == template.normalized_name
        ]
        for template_id in stale:
            del self._templates[template_id]

        self._templates[template.id] = template.to_dict()
        logger.debug(f"Stored template {template.id} ({template.supplier_name})")
        return SupplierTemplate.from_dict(self._templates[template.id])

    async def delete_template(self, template_id: str) -> bool:
        return self._templates.pop(template_id, None) is not None

    async def attach_zones_to_document(
        self,
        document_id: str,
        zones: Dict[FieldName, DetectedZone],
        values: Optional[Dict[FieldName, Optional[str]]] = None,
        normalized_values: Optional[Dict[FieldName, Optional[str]]] = None,
        owner: str = "",
        template_id: Optional[str] = None,
    ) -> DocumentCorrection:
        correction = DocumentCorrection(
            document_id=document_id,
            owner=owner,
            values=dict(values or {}),
            normalized_values=dict(normalized_values or {}),
            zones=dict(zones),
            template_id=template_id,
            updated_at=utc_now(),
        )
        self._documents[document_id] = correction.to_dict()
        return DocumentCorrection.from_dict(self._documents[document_id])

    async def get_document(self, document_id: str) -> Optional[DocumentCorrection]:
        data = self._documents.get(document_id)
        return DocumentCorrection.from_dict(data) if data else None
