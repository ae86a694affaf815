"""
Template Engine Module.

Orchestrates one document's trip through the engine:

    load templates -> match -> extract -> review (annotator) -> save
                                                 ↓
                                           usage feedback

Storage I/O happens here, at the boundary; matching, extraction and the
feedback math stay synchronous and pure.

Usage:
    engine = TemplateEngine(SQLiteTemplateStore())
    result = await engine.process("acc-1", document)
    draft = await engine.open_draft("acc-1", result, document)
    ...  # user edits through an AnnotationSession
    await engine.complete_review(draft, result.report, create_template=True)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional

from src.annotator import AnnotationDraft, AnnotationService, SaveResult
from src.extraction import DocumentInput, ExtractionReport, ZoneExtractor
from src.feedback import UsageFeedback
from src.matching import MatchCandidate, MatchOutcome, MatchResult, TemplateMatcher
from src.templates import SupplierTemplate, TemplateStore
from src.utils.exceptions import TemplateNotFoundError, ValidationError
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EngineResult:
    """
    Result of processing one document.

    Attributes:
        document_id: Document record id
        match: Matching outcome
        report: Extraction report, None unless a template was applied
    """
    document_id: Optional[str]
    match: MatchResult
    report: Optional[ExtractionReport] = None

    @property
    def outcome(self) -> MatchOutcome:
        return self.match.outcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'match': self.match.to_dict(),
            'extraction': self.report.to_dict() if self.report else None,
        }


class TemplateEngine:
    """
    Supplier template engine facade.

    Attributes:
        store: Persistence backend
        matcher: Template matcher
        extractor: Zone extractor
        feedback: Usage statistics
        annotations: Draft persistence and template promotion
    """

    def __init__(
        self,
        store: TemplateStore,
        matcher: Optional[TemplateMatcher] = None,
        extractor: Optional[ZoneExtractor] = None,
        feedback: Optional[UsageFeedback] = None,
        annotations: Optional[AnnotationService] = None
    ) -> None:
        self.store = store
        self.matcher = matcher or TemplateMatcher()
        self.extractor = extractor or ZoneExtractor()
        self.feedback = feedback or UsageFeedback()
        self.annotations = annotations or AnnotationService(store)

    async def process(
        self,
        owner: str,
        document: DocumentInput,
        template_id: Optional[str] = None
    ) -> EngineResult:
        """
        Match a document and, when exactly one template applies, extract it.

        Args:
            owner: Account the document belongs to.
            document: Recognized document.
            template_id: Template chosen by the user (resolves an ambiguous
                         match or overrides matching).

        Raises:
            TemplateNotFoundError: If `template_id` is not one of the
                                   owner's templates.
        """
        templates = await self.store.list_templates(owner)
        match = self.matcher.match(document.full_text, templates, owner=owner)

        if template_id is not None:
            match = await self._select(owner, match, template_id)

        if not match.is_match:
            return EngineResult(document_id=document.document_id, match=match)

        report = self.extractor.extract(match.template, document)
        return EngineResult(document_id=document.document_id, match=match, report=report)

    async def _select(self, owner: str, match: MatchResult, template_id: str) -> MatchResult:
        try:
            return match.select(template_id)
        except KeyError:
            pass

        template = await self.store.get_template(template_id)
        if template is None or template.owner != owner:
            raise TemplateNotFoundError(template_id)

        logger.info(f"Template '{template.supplier_name}' applied by explicit choice")
        return MatchResult(
            outcome=MatchOutcome.MATCHED,
            candidate=MatchCandidate(template=template),
            candidates=list(match.candidates),
        )

    async def open_draft(
        self,
        owner: str,
        result: EngineResult,
        document: DocumentInput
    ) -> AnnotationDraft:
        """
        Draft for reviewing a processed document.

        Pre-filled with the extraction when a template was applied,
        otherwise with the document's previously saved zones and values.
        """
        document_id = result.document_id or document.document_id
        if not document_id:
            raise ValidationError("document_id", document_id, "a document id is required to annotate")

        if result.report is not None:
            return AnnotationDraft.from_report(
                result.report, owner, ocr_result=document.ocr_result, document_id=document_id
            )

        previous = await self.store.get_document(document_id)
        if previous is not None:
            return AnnotationDraft.from_correction(previous, ocr_result=document.ocr_result)
        return AnnotationDraft.create(document_id, owner, ocr_result=document.ocr_result)

    async def complete_review(
        self,
        draft: AnnotationDraft,
        report: Optional[ExtractionReport] = None,
        create_template: bool = False,
        now: Optional[datetime] = None
    ) -> SaveResult:
        """
        Save a reviewed draft and fold the review into template statistics.

        The usage sample is taken against the template as it was when the
        values were extracted, before any promotion replaces its zones.

        Raises:
            ValidationError: If create_template is set without a supplier name.
            StorageError: Propagated unchanged from the store.
        """
        if create_template and not draft.supplier_name:
            raise ValidationError(
                "supplier_name", draft.supplier_name, "a supplier name is required to save a template"
            )

        if report is not None:
            await self.record_usage(report, draft.values, now=now)

        return await self.annotations.save(draft, create_template=create_template)

    async def record_usage(
        self,
        report: ExtractionReport,
        final_values,
        now: Optional[datetime] = None
    ) -> Optional[SupplierTemplate]:
        """Record a reviewed extraction against its template."""
        template = await self.store.get_template(report.template_id)
        if template is None:
            logger.warning(f"Template {report.template_id} no longer exists; usage not recorded")
            return None

        self.feedback.record(template, report, final_values, now=now)
        return await self.store.upsert_template(template)

    async def record_unreviewed(
        self,
        report: ExtractionReport,
        now: Optional[datetime] = None
    ) -> Optional[SupplierTemplate]:
        """Count an automatic extraction nobody reviewed (rate unchanged)."""
        template = await self.store.get_template(report.template_id)
        if template is None:
            logger.warning(f"Template {report.template_id} no longer exists; usage not recorded")
            return None

        self.feedback.record_attempt(template, now=now)
        return await self.store.upsert_template(template)
