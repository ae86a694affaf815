"""Tests for format-aware value normalization."""

import pytest

from src.postprocessor import AmountNormalizer, DateNormalizer, FieldNormalizer
from src.schema import FieldName, ValueFormat


@pytest.mark.parametrize("raw, expected", [
    ("15/01/2026", "2026-01-15"),
    ("15.01.2026", "2026-01-15"),
    ("2026-01-15", "2026-01-15"),
    ("15 janvier 2026", "2026-01-15"),
    ("1er février 2026", "2026-02-01"),
    ("Date : 03/02/2026", "2026-02-03"),
])
def test_dates(raw, expected):
    assert DateNormalizer().normalize(raw) == expected


def test_unparseable_date():
    assert DateNormalizer().normalize("pas une date") is None
    assert DateNormalizer().normalize("") is None


@pytest.mark.parametrize("raw, expected", [
    ("152,40 €", "152.40"),
    ("1 234,56 €", "1234.56"),
    ("$1,234.56", "1234.56"),
    ("1.234,56 EUR", "1234.56"),
    ("20 %", "20.00"),
    ("5,5%", "5.50"),
    ("152,40 (dont TVA 25,40)", "152.40"),
])
def test_amounts(raw, expected):
    assert AmountNormalizer().normalize(raw) == expected


def test_amount_without_number():
    assert AmountNormalizer().normalize("gratuit") is None
    assert AmountNormalizer().to_float("152,40 €") == pytest.approx(152.4)


class TestFieldNormalizer:

    def test_by_field_format(self):
        normalizer = FieldNormalizer()
        assert normalizer.normalize(FieldName.TOTAL_TTC, "152,40 €") == "152.40"
        assert normalizer.normalize(FieldName.SUPPLIER_SIRET, "123 456 789 00012") == "12345678900012"
        assert normalizer.normalize(FieldName.INVOICE_NUMBER, " f-2024  001 ") == "F-2024 001"
        assert normalizer.normalize(FieldName.SUPPLIER_NAME, " ACME \n SAS ") == "ACME SAS"
        assert normalizer.normalize(FieldName.DESCRIPTION, "   ") is None
        assert normalizer.normalize(FieldName.DESCRIPTION, None) is None

    def test_normalize_as(self):
        assert FieldNormalizer().normalize_as(ValueFormat.DATE, "15/01/2026") == "2026-01-15"

    def test_same_value(self):
        normalizer = FieldNormalizer()
        assert normalizer.same_value(FieldName.TOTAL_TTC, "152,40 €", "152.40")
        assert not normalizer.same_value(FieldName.TOTAL_TTC, "152,40 €", "125,40 €")
        assert normalizer.same_value(FieldName.INVOICE_DATE, "15/01/2026", "2026-01-15")
        assert normalizer.same_value(FieldName.SUPPLIER_NAME, "Acme SAS", "ACME  SAS")
        assert normalizer.same_value(FieldName.TOTAL_HT, None, "")
        assert not normalizer.same_value(FieldName.TOTAL_HT, None, "10,00")
