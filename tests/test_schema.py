"""Tests for the field schema."""

import pytest

from src.schema import (
    FieldName,
    ValueFormat,
    all_fields,
    definition_of,
    format_of,
    label_of,
    color_of,
    parse_field,
)
from src.utils.exceptions import ValidationError


def test_canonical_order():
    assert all_fields()[0] is FieldName.SUPPLIER_NAME
    assert all_fields()[-1] is FieldName.DESCRIPTION
    assert len(all_fields()) == 10


def test_every_field_has_a_definition():
    for name in all_fields():
        definition = definition_of(name)
        assert definition.name is name
        assert definition.label
        assert color_of(name).startswith("#")
        assert definition.aliases


@pytest.mark.parametrize("name, expected", [
    (FieldName.SUPPLIER_SIRET, ValueFormat.ID_NUMBER),
    (FieldName.INVOICE_NUMBER, ValueFormat.ALPHANUMERIC),
    (FieldName.INVOICE_DATE, ValueFormat.DATE),
    (FieldName.TOTAL_TTC, ValueFormat.CURRENCY),
    (FieldName.TVA_RATE, ValueFormat.CURRENCY),
    (FieldName.DESCRIPTION, ValueFormat.TEXT),
])
def test_value_formats(name, expected):
    assert format_of(name) is expected


def test_labels():
    assert label_of(FieldName.TOTAL_TTC) == "Total TTC"
    assert label_of("due_date") == "Échéance"


def test_parse_field():
    assert parse_field("total_ttc") is FieldName.TOTAL_TTC
    assert parse_field(" invoice_date ") is FieldName.INVOICE_DATE
    assert parse_field(FieldName.TVA_RATE) is FieldName.TVA_RATE


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        parse_field("iban")
    assert excinfo.value.field == "field"


def test_legacy_siret_format_tag():
    assert ValueFormat.parse("siret") is ValueFormat.ID_NUMBER
    assert ValueFormat.parse("Currency") is ValueFormat.CURRENCY
    with pytest.raises(ValidationError):
        ValueFormat.parse("percentage")
