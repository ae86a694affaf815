"""
Field Schema Module.

This module defines the fixed, closed catalog of fields the engine can
extract from a supplier invoice. Fixing the field set lets the matcher
and extractor be written once for every supplier, and keeps template
statistics comparable across suppliers.

The schema is process-wide constant data and is not user-editable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union

from src.utils.exceptions import ValidationError


class FieldName(str, Enum):
    """Extractable invoice fields, in canonical display order."""
    SUPPLIER_NAME = "supplier_name"
    SUPPLIER_SIRET = "supplier_siret"
    INVOICE_NUMBER = "invoice_number"
    INVOICE_DATE = "invoice_date"
    DUE_DATE = "due_date"
    TOTAL_HT = "total_ht"
    TVA_AMOUNT = "tva_amount"
    TVA_RATE = "tva_rate"
    TOTAL_TTC = "total_ttc"
    DESCRIPTION = "description"

    def __str__(self) -> str:
        return self.value


class ValueFormat(str, Enum):
    """Expected shape of a field's value."""
    TEXT = "text"
    DATE = "date"
    CURRENCY = "currency"
    ALPHANUMERIC = "alphanumeric"
    ID_NUMBER = "id-number"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Union[str, 'ValueFormat']) -> 'ValueFormat':
        """
        Parse a format tag, accepting the legacy "siret" tag.

        Raises:
            ValidationError: If the tag is unknown.
        """
        if isinstance(value, cls):
            return value
        tag = str(value).strip().lower()
        if tag == "siret":
            return cls.ID_NUMBER
        try:
            return cls(tag)
        except ValueError:
            raise ValidationError("value_format", value, "unknown value format")


@dataclass(frozen=True)
class FieldDefinition:
    """
    Static description of one field.

    Attributes:
        name: Field identifier
        label: Human label shown in the annotation UI
        value_format: Expected value format
        color: Default overlay color (pass-through for the UI)
        aliases: Generic label strings printed next to this field on
                 invoices, used as last-resort hints
    """
    name: FieldName
    label: str
    value_format: ValueFormat
    color: str
    aliases: Tuple[str, ...] = ()


_DEFINITIONS: Dict[FieldName, FieldDefinition] = {
    FieldName.SUPPLIER_NAME: FieldDefinition(
        FieldName.SUPPLIER_NAME, "Fournisseur", ValueFormat.TEXT, "#3b82f6",
        ("Fournisseur", "Emetteur", "Vendeur"),
    ),
    FieldName.SUPPLIER_SIRET: FieldDefinition(
        FieldName.SUPPLIER_SIRET, "SIRET", ValueFormat.ID_NUMBER, "#6366f1",
        ("SIRET", "N° SIRET", "SIREN"),
    ),
    FieldName.INVOICE_NUMBER: FieldDefinition(
        FieldName.INVOICE_NUMBER, "N° Facture", ValueFormat.ALPHANUMERIC, "#8b5cf6",
        ("N° Facture", "Facture N°", "Numéro de facture", "Facture", "Invoice No"),
    ),
    FieldName.INVOICE_DATE: FieldDefinition(
        FieldName.INVOICE_DATE, "Date facture", ValueFormat.DATE, "#a855f7",
        ("Date de facture", "Date facture", "Date d'émission", "Date"),
    ),
    FieldName.DUE_DATE: FieldDefinition(
        FieldName.DUE_DATE, "Échéance", ValueFormat.DATE, "#d946ef",
        ("Date d'échéance", "Échéance", "A payer avant le"),
    ),
    FieldName.TOTAL_HT: FieldDefinition(
        FieldName.TOTAL_HT, "Total HT", ValueFormat.CURRENCY, "#22c55e",
        ("Total HT", "Montant HT", "Sous-total HT"),
    ),
    FieldName.TVA_AMOUNT: FieldDefinition(
        FieldName.TVA_AMOUNT, "TVA", ValueFormat.CURRENCY, "#84cc16",
        ("Montant TVA", "Total TVA", "TVA"),
    ),
    # Rates are numeric values parsed like amounts
    FieldName.TVA_RATE: FieldDefinition(
        FieldName.TVA_RATE, "Taux TVA", ValueFormat.CURRENCY, "#eab308",
        ("Taux TVA", "Taux de TVA", "Taux"),
    ),
    FieldName.TOTAL_TTC: FieldDefinition(
        FieldName.TOTAL_TTC, "Total TTC", ValueFormat.CURRENCY, "#ef4444",
        ("Total TTC", "Montant TTC", "Net à payer", "Total à payer"),
    ),
    FieldName.DESCRIPTION: FieldDefinition(
        FieldName.DESCRIPTION, "Description", ValueFormat.TEXT, "#64748b",
        ("Description", "Désignation", "Objet"),
    ),
}


def all_fields() -> List[FieldName]:
    """All fields in canonical order."""
    return list(FieldName)


def definition_of(field: FieldName) -> FieldDefinition:
    """Full static definition of a field."""
    return _DEFINITIONS[parse_field(field)]


def format_of(field: FieldName) -> ValueFormat:
    """Expected value format of a field."""
    return definition_of(field).value_format


def label_of(field: FieldName) -> str:
    """Human label of a field."""
    return definition_of(field).label


def color_of(field: FieldName) -> str:
    """Default overlay color of a field."""
    return definition_of(field).color


def parse_field(value: Union[str, FieldName]) -> FieldName:
    """
    Convert a field key into a FieldName.

    Raises:
        ValidationError: If the key is not part of the schema.

    Example:
        >>> parse_field("total_ttc")
        <FieldName.TOTAL_TTC: 'total_ttc'>
    """
    if isinstance(value, FieldName):
        return value
    try:
        return FieldName(str(value).strip())
    except ValueError:
        raise ValidationError("field", value, "unknown field name")
