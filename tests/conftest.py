"""Shared fixtures for the template engine tests."""

import pytest

from config import ConfigurationManager
from src.geometry import BoundingBox
from src.ocr_engine import OCRResult, OCRWord
from src.schema import FieldName, ValueFormat
from src.templates import FieldZone, SupplierTemplate, InMemoryTemplateStore, SQLiteTemplateStore

OWNER = "acc-1"

TOTAL_TTC_ZONE = BoundingBox(x=0.75, y=0.895, width=0.13, height=0.04)
INVOICE_NUMBER_ZONE = BoundingBox(x=0.75, y=0.095, width=0.16, height=0.04)


@pytest.fixture(autouse=True)
def reset_config(monkeypatch):
    """Every test starts from config/settings.yaml."""
    monkeypatch.delenv("INVOICE_TEMPLATES_CONFIG", raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


def _word(text, x1, y1, x2, y2, confidence=90.0):
    return OCRWord(text=text, bbox=(x1, y1, x2, y2), confidence=confidence)


@pytest.fixture
def ocr_result():
    """A 1000x1000 px page of an ACME SAS invoice."""
    return OCRResult(
        words=[
            _word("ACME", 50, 30, 150, 60),
            _word("SAS", 160, 30, 220, 60),
            _word("SIRET", 50, 70, 120, 95),
            _word("12345678900012", 130, 70, 300, 95),
            _word("Facture", 600, 100, 700, 130),
            _word("N°", 710, 100, 740, 130),
            _word("F-2024-001", 760, 100, 900, 130),
            _word("Total", 600, 900, 660, 930),
            _word("TTC", 665, 900, 710, 930),
            _word("152,40", 760, 900, 850, 930),
            _word("€", 855, 900, 870, 930),
        ],
        image_width=1000,
        image_height=1000,
        engine="test",
    )


@pytest.fixture
def flat_text():
    return (
        "ACME SAS\n"
        "SIRET 123 456 789 00012\n"
        "Facture N° F-2024-001\n"
        "Date : 15/01/2026\n"
        "Total TTC : 152,40 €\n"
    )


@pytest.fixture
def acme_template():
    return SupplierTemplate(
        owner=OWNER,
        supplier_name="ACME SAS",
        supplier_tax_id="123 456 789 00012",
        field_zones={
            FieldName.INVOICE_NUMBER: FieldZone(
                zone=INVOICE_NUMBER_ZONE,
                label_patterns=["Facture N°"],
                value_format=ValueFormat.ALPHANUMERIC,
            ),
            FieldName.TOTAL_TTC: FieldZone(
                zone=TOTAL_TTC_ZONE,
                label_patterns=["Total TTC"],
                value_format=ValueFormat.CURRENCY,
            ),
        },
    )


@pytest.fixture
def memory_store():
    return InMemoryTemplateStore()


@pytest.fixture
def sqlite_store(tmp_path):
    return SQLiteTemplateStore(str(tmp_path / "templates.db"))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Both store backends, for contract tests."""
    if request.param == "memory":
        return InMemoryTemplateStore()
    return SQLiteTemplateStore(str(tmp_path / "templates.db"))
