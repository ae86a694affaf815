"""Tests for template identification."""

from datetime import datetime, timezone

import pytest

from conftest import OWNER
from src.matching import MatchOutcome, TemplateMatcher
from src.templates import SupplierTemplate


def _template(name, patterns=None, tax_id=None, success_rate=None, last_used_at=None, owner=OWNER):
    return SupplierTemplate(
        owner=owner,
        supplier_name=name,
        supplier_tax_id=tax_id,
        identification_patterns=patterns or [],
        success_rate=success_rate,
        last_used_at=last_used_at,
    )


def test_no_template():
    result = TemplateMatcher().match("Facture Dupont SARL", [_template("Acme")])
    assert result.outcome is MatchOutcome.NO_TEMPLATE
    assert result.is_no_template
    assert result.template is None
    assert result.candidates == []


def test_no_templates_at_all():
    assert TemplateMatcher().match("anything", []).is_no_template


def test_case_accent_and_whitespace_insensitive():
    template = _template("Société  Générale")
    result = TemplateMatcher().match("FACTURE\nSOCIETE\n  GENERALE", [template])
    assert result.is_match
    assert result.template.id == template.id
    assert result.candidate.matched_patterns == ["Société  Générale"]


def test_accent_folding_can_be_disabled():
    template = _template("Société Générale")
    assert TemplateMatcher(fold_accents=False).match("SOCIETE GENERALE", [template]).is_no_template


def test_ambiguous_when_tied():
    acme = _template("Acme", patterns=["Acme"])
    acme_corp = _template("Acme Corp", patterns=["Acme Corp"])
    result = TemplateMatcher().match("ACME CORP - Facture 42", [acme, acme_corp])

    assert result.outcome is MatchOutcome.AMBIGUOUS
    assert result.template is None
    assert {c.template.id for c in result.candidates} == {acme.id, acme_corp.id}


def test_ambiguity_resolved_by_user():
    acme = _template("Acme", patterns=["Acme"])
    acme_corp = _template("Acme Corp", patterns=["Acme Corp"])
    result = TemplateMatcher().match("ACME CORP", [acme, acme_corp])

    chosen = result.select(acme_corp.id)
    assert chosen.is_match
    assert chosen.template.id == acme_corp.id
    with pytest.raises(KeyError):
        result.select("unknown")


def test_tax_id_hit_wins():
    plain = _template("Acme", patterns=["Acme"], success_rate=100)
    with_tax_id = _template("Acme Corp", patterns=["Acme"], tax_id="123 456 789 00012", success_rate=10)
    result = TemplateMatcher().match("ACME - SIRET 123.456.789.00012", [plain, with_tax_id])

    assert result.is_match
    assert result.template.id == with_tax_id.id
    assert result.candidate.tax_id_hit
    assert len(result.candidates) == 2


def test_success_rate_then_recency():
    older = datetime(2026, 1, 1, tzinfo=timezone.utc)
    newer = datetime(2026, 3, 1, tzinfo=timezone.utc)
    low = _template("Acme A", patterns=["Acme"], success_rate=60)
    high_old = _template("Acme B", patterns=["Acme"], success_rate=90, last_used_at=older)
    high_new = _template("Acme C", patterns=["Acme"], success_rate=90, last_used_at=newer)

    result = TemplateMatcher().match("acme", [low, high_old, high_new])
    assert result.template.id == high_new.id
    assert [c.template.id for c in result.candidates] == [high_new.id, high_old.id, low.id]


def test_other_owners_are_ignored():
    theirs = _template("Acme", owner="acc-2")
    assert TemplateMatcher().match("Acme", [theirs], owner=OWNER).is_no_template
    assert TemplateMatcher().match("Acme", [theirs]).is_match


def test_deterministic():
    templates = [
        _template("Acme", patterns=["Acme"]),
        _template("Acme Corp", patterns=["Acme Corp"]),
        _template("Dupont", patterns=["Dupont"], tax_id="552 100 554 00019"),
    ]
    text = "Dupont SARL - SIRET 55210055400019 - livraison Acme Corp"
    matcher = TemplateMatcher()
    first = matcher.match(text, templates).to_dict()
    assert all(matcher.match(text, list(reversed(templates))).to_dict() == first for _ in range(3))
    assert first["outcome"] == "matched"


def test_tax_id_identifies_whatever_its_spacing():
    template = _template("ACME SAS", tax_id="123 456 789 00012")
    assert template.identification_patterns == ["ACME SAS", "123 456 789 00012"]

    result = TemplateMatcher().match("Facture - SIRET 12345678900012", [template])

    assert result.is_match
    assert result.template.id == template.id
    assert result.candidate.tax_id_hit
    assert result.candidate.matched_patterns == ["123 456 789 00012"]


def test_partial_tax_id_is_not_a_match():
    template = _template("ACME SAS", tax_id="123 456 789 00012")
    assert TemplateMatcher().match("SIREN 123 456 789", [template]).is_no_template
