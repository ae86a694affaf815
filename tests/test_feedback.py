"""Tests for template usage statistics."""

from datetime import datetime, timezone

import pytest

from conftest import OWNER
from src.extraction import DocumentInput, ZoneExtractor
from src.feedback import UsageFeedback
from src.schema import FieldName
from src.templates import SupplierTemplate
from src.utils.exceptions import ValidationError

NOW = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


def test_all_fields_kept(acme_template, ocr_result):
    report = ZoneExtractor().extract(acme_template, DocumentInput(ocr_result=ocr_result))
    final = {"invoice_number": "F-2024-001", "total_ttc": "152.40"}

    UsageFeedback().record(acme_template, report, final, now=NOW)

    assert acme_template.times_used == 1
    assert acme_template.success_rate == 100.0
    assert acme_template.last_used_at == NOW


def test_sample_counts_corrected_fields(acme_template):
    extracted = {FieldName.INVOICE_NUMBER: "F-2024-001", FieldName.TOTAL_TTC: "152,40 €"}
    final = {FieldName.INVOICE_NUMBER: "F-2024-001", FieldName.TOTAL_TTC: "125,40 €"}
    assert UsageFeedback().sample(acme_template, extracted, final) == 50.0


def test_running_mean(acme_template):
    feedback = UsageFeedback()
    extracted = {"invoice_number": "F-1", "total_ttc": "10,00"}

    feedback.record(acme_template, extracted, {"invoice_number": "F-1", "total_ttc": "10,00"})
    feedback.record(acme_template, extracted, {"invoice_number": "F-2", "total_ttc": "11,00"})
    feedback.record(acme_template, extracted, {"invoice_number": "F-1", "total_ttc": "11,00"})

    assert acme_template.times_used == 3
    assert acme_template.success_rate == pytest.approx((100 + 0 + 50) / 3)


def test_exponential_smoothing(acme_template):
    acme_template.times_used = 4
    acme_template.success_rate = 80.0
    feedback = UsageFeedback(ewma_alpha=0.5)

    feedback.record(
        acme_template,
        {"invoice_number": "A", "total_ttc": "1"},
        {"invoice_number": "B", "total_ttc": "2"},
    )
    assert acme_template.success_rate == pytest.approx(40.0)
    assert acme_template.times_used == 5


def test_invalid_alpha():
    with pytest.raises(ValidationError):
        UsageFeedback(ewma_alpha=1.5)


def test_missing_value_left_empty_counts_as_kept(acme_template):
    extracted = {FieldName.INVOICE_NUMBER: None, FieldName.TOTAL_TTC: "152,40 €"}
    assert UsageFeedback().sample(acme_template, extracted, {"total_ttc": "152,40 €"}) == 100.0
    assert UsageFeedback().sample(acme_template, extracted, {
        "invoice_number": "F-9", "total_ttc": "152,40 €",
    }) == 50.0


def test_template_without_zones():
    template = SupplierTemplate(owner=OWNER, supplier_name="Empty")
    UsageFeedback().record(template, {}, {"total_ttc": "1,00"})
    assert template.success_rate == 100.0
    assert template.times_used == 1


def test_rate_stays_in_bounds(acme_template):
    feedback = UsageFeedback()
    for _ in range(5):
        feedback.record(acme_template, {"total_ttc": "1"}, {"total_ttc": "2", "invoice_number": "X"})
        assert 0.0 <= acme_template.success_rate <= 100.0
    assert acme_template.success_rate == 0.0


def test_record_attempt_keeps_rate(acme_template):
    acme_template.success_rate = 75.0
    UsageFeedback().record_attempt(acme_template, now=datetime(2026, 2, 1, 12, 0))
    assert acme_template.times_used == 1
    assert acme_template.success_rate == 75.0
    assert acme_template.last_used_at == NOW
