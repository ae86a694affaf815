"""End-to-end tests of the engine facade."""

import asyncio

import pytest

from conftest import OWNER
from src.annotator import AnnotationSession
from src.engine import TemplateEngine
from src.extraction import DocumentInput
from src.matching import MatchOutcome
from src.schema import FieldName
from src.templates import SupplierTemplate
from src.utils.exceptions import TemplateNotFoundError, ValidationError


def test_process_matched_document(store, acme_template, ocr_result):
    asyncio.run(store.upsert_template(acme_template))
    engine = TemplateEngine(store)

    result = asyncio.run(engine.process(OWNER, DocumentInput(ocr_result=ocr_result, document_id="doc-1")))

    assert result.outcome is MatchOutcome.MATCHED
    assert result.report.values()[FieldName.TOTAL_TTC] == "152,40 €"
    assert result.to_dict()["extraction"]["template_id"] == acme_template.id


def test_process_without_template(store, ocr_result):
    result = asyncio.run(TemplateEngine(store).process(OWNER, DocumentInput(ocr_result=ocr_result)))
    assert result.outcome is MatchOutcome.NO_TEMPLATE
    assert result.report is None


def test_ambiguous_match_is_not_extracted(store):
    acme = SupplierTemplate(owner=OWNER, supplier_name="Acme", identification_patterns=["Acme"])
    acme_corp = SupplierTemplate(owner=OWNER, supplier_name="Acme Corp")
    asyncio.run(store.upsert_template(acme))
    asyncio.run(store.upsert_template(acme_corp))
    engine = TemplateEngine(store)
    document = DocumentInput(text="ACME CORP\nTotal TTC : 5,00")

    result = asyncio.run(engine.process(OWNER, document))
    assert result.outcome is MatchOutcome.AMBIGUOUS
    assert result.report is None

    chosen = asyncio.run(engine.process(OWNER, document, template_id=acme_corp.id))
    assert chosen.outcome is MatchOutcome.MATCHED
    assert chosen.report.template_id == acme_corp.id


def test_explicit_template_must_belong_to_owner(store, acme_template):
    asyncio.run(store.upsert_template(acme_template))
    engine = TemplateEngine(store)
    with pytest.raises(TemplateNotFoundError):
        asyncio.run(engine.process("acc-2", DocumentInput(text="ACME SAS"), template_id=acme_template.id))


def test_first_document_then_reuse(store, ocr_result):
    """A supplier's first invoice is annotated by hand, the second is extracted."""
    engine = TemplateEngine(store)
    document = DocumentInput(ocr_result=ocr_result, document_id="doc-1")

    result = asyncio.run(engine.process(OWNER, document))
    assert result.outcome is MatchOutcome.NO_TEMPLATE

    session = AnnotationSession(asyncio.run(engine.open_draft(OWNER, result, document)))
    session.set_value("supplier_name", "ACME SAS")
    session.set_value("total_ttc", "152,40 €")
    session.draw("total_ttc", (0.75, 0.895), (0.88, 0.935))
    session.commit()
    saved = asyncio.run(engine.complete_review(session.draft, result.report, create_template=True))
    assert saved.created

    second = DocumentInput(ocr_result=ocr_result, document_id="doc-2")
    reused = asyncio.run(engine.process(OWNER, second))
    assert reused.outcome is MatchOutcome.MATCHED
    assert reused.report.values() == {FieldName.TOTAL_TTC: "152,40 €"}

    draft = asyncio.run(engine.open_draft(OWNER, reused, second))
    asyncio.run(engine.complete_review(draft, reused.report))

    template = asyncio.run(store.get_template(saved.template.id))
    assert template.times_used == 1
    assert template.success_rate == 100.0
    assert template.last_used_at is not None


def test_review_with_corrections_lowers_rate(store, acme_template, ocr_result):
    asyncio.run(store.upsert_template(acme_template))
    engine = TemplateEngine(store)
    document = DocumentInput(ocr_result=ocr_result, document_id="doc-1")

    result = asyncio.run(engine.process(OWNER, document))
    session = AnnotationSession(asyncio.run(engine.open_draft(OWNER, result, document)))
    session.set_value("total_ttc", "125,40 €")
    asyncio.run(engine.complete_review(session.draft, result.report))

    template = asyncio.run(store.get_template(acme_template.id))
    assert template.times_used == 1
    assert template.success_rate == 50.0
    stored = asyncio.run(store.get_document("doc-1"))
    assert stored.values[FieldName.TOTAL_TTC] == "125,40 €"
    assert stored.template_id == acme_template.id


def test_review_promotion_without_name_writes_nothing(store, acme_template, ocr_result):
    asyncio.run(store.upsert_template(acme_template))
    engine = TemplateEngine(store)
    document = DocumentInput(ocr_result=ocr_result, document_id="doc-1")
    result = asyncio.run(engine.process(OWNER, document))
    draft = asyncio.run(engine.open_draft(OWNER, result, document))

    with pytest.raises(ValidationError):
        asyncio.run(engine.complete_review(draft, result.report, create_template=True))

    assert asyncio.run(store.get_template(acme_template.id)).times_used == 0
    assert asyncio.run(store.get_document("doc-1")) is None


def test_open_draft_reopens_saved_document(store, ocr_result):
    engine = TemplateEngine(store)
    document = DocumentInput(ocr_result=ocr_result, document_id="doc-1")
    result = asyncio.run(engine.process(OWNER, document))

    session = AnnotationSession(asyncio.run(engine.open_draft(OWNER, result, document)))
    session.set_value("invoice_number", "F-2024-001")
    asyncio.run(engine.complete_review(session.draft))

    reopened = asyncio.run(engine.open_draft(OWNER, result, document))
    assert reopened.values[FieldName.INVOICE_NUMBER] == "F-2024-001"


def test_open_draft_needs_document_id(store):
    engine = TemplateEngine(store)
    document = DocumentInput(text="x")
    result = asyncio.run(engine.process(OWNER, document))
    with pytest.raises(ValidationError):
        asyncio.run(engine.open_draft(OWNER, result, document))


def test_record_unreviewed(store, acme_template, ocr_result):
    asyncio.run(store.upsert_template(acme_template))
    engine = TemplateEngine(store)
    result = asyncio.run(engine.process(OWNER, DocumentInput(ocr_result=ocr_result)))

    template = asyncio.run(engine.record_unreviewed(result.report))
    assert template.times_used == 1
    assert template.success_rate == 100.0

    asyncio.run(store.delete_template(acme_template.id))
    assert asyncio.run(engine.record_unreviewed(result.report)) is None
