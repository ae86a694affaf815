"""
Template Matcher Module.

This module decides which stored supplier template, if any, applies to a
newly recognized document.

Approach:
    Identification stays intentionally simple: literal substring search of
    each template's identification patterns in the document text, compared
    case-insensitively with whitespace runs collapsed. A false positive
    silently applies the wrong zones and overwrites correct values, so no
    fuzzy matching is done.

Ranking:
    1. Templates whose supplier tax id appears in the text
    2. Higher success rate
    3. More recently used
    Several templates sharing the best rank are reported as ambiguous and
    are never auto-selected.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from config import get_config
from src.templates.models import SupplierTemplate
from src.utils.helpers import compact_identifier, normalize_text
from src.utils.logger import get_logger

logger = get_logger(__name__)

_NEVER_USED = datetime.min.replace(tzinfo=timezone.utc)


class MatchOutcome(str, Enum):
    """Outcome of a matching attempt. All three are normal results."""
    MATCHED = "matched"
    NO_TEMPLATE = "no_template"
    AMBIGUOUS = "ambiguous"


@dataclass
class MatchCandidate:
    """
    A template whose identification patterns were found in the document.

    Attributes:
        template: The matching template
        matched_patterns: Patterns found in the text
        tax_id_hit: Whether the supplier tax id was found in the text
    """
    template: SupplierTemplate
    matched_patterns: List[str] = field(default_factory=list)
    tax_id_hit: bool = False

    @property
    def rank(self) -> Tuple[bool, float, datetime]:
        """Sort key: higher is better."""
        return (
            self.tax_id_hit,
            self.template.success_rate,
            self.template.last_used_at or _NEVER_USED,
        )

    def to_dict(self) -> Dict:
        return {
            'template_id': self.template.id,
            'supplier_name': self.template.supplier_name,
            'matched_patterns': list(self.matched_patterns),
            'tax_id_hit': self.tax_id_hit,
            'success_rate': self.template.success_rate,
        }


@dataclass
class MatchResult:
    """
    Result of matching one document against an account's templates.

    Attributes:
        outcome: MATCHED, NO_TEMPLATE or AMBIGUOUS
        candidate: The selected candidate when MATCHED
        candidates: Tied best candidates when AMBIGUOUS, every matching
                    candidate (best first) otherwise

    Example:
        >>> result = matcher.match(text, templates)
        >>> if result.is_match:
        ...     extractor.extract(result.template, document)
        >>> elif result.is_ambiguous:
        ...     ask_user(result.candidates)
    """
    outcome: MatchOutcome
    candidate: Optional[MatchCandidate] = None
    candidates: List[MatchCandidate] = field(default_factory=list)

    @property
    def template(self) -> Optional[SupplierTemplate]:
        return self.candidate.template if self.candidate else None

    @property
    def is_match(self) -> bool:
        return self.outcome is MatchOutcome.MATCHED

    @property
    def is_ambiguous(self) -> bool:
        return self.outcome is MatchOutcome.AMBIGUOUS

    @property
    def is_no_template(self) -> bool:
        return self.outcome is MatchOutcome.NO_TEMPLATE

    def select(self, template_id: str) -> 'MatchResult':
        """
        Resolve an ambiguous result with the candidate a user picked.

        Raises:
            KeyError: If `template_id` is not among the candidates.
        """
        for candidate in self.candidates:
            if candidate.template.id == template_id:
                return MatchResult(
                    outcome=MatchOutcome.MATCHED,
                    candidate=candidate,
                    candidates=list(self.candidates),
                )
        raise KeyError(template_id)

    def to_dict(self) -> Dict:
        return {
            'outcome': self.outcome.value,
            'template_id': self.template.id if self.template else None,
            'candidates': [c.to_dict() for c in self.candidates],
        }


class TemplateMatcher:
    """
    Finds the template matching a document's recognized text.

    Pure and deterministic: the same text and template set always give
    the same result.

    Example:
        >>> matcher = TemplateMatcher()
        >>> result = matcher.match(ocr_text, templates, owner="acc-1")
        >>> result.outcome
        <MatchOutcome.MATCHED: 'matched'>
    """

    def __init__(self, fold_accents: Optional[bool] = None) -> None:
        self.fold_accents = (
            fold_accents if fold_accents is not None
            else get_config("matching.fold_accents", True)
        )

    def match(
        self,
        document_text: str,
        templates: Sequence[SupplierTemplate],
        owner: Optional[str] = None
    ) -> MatchResult:
        """
        Match a document against templates.

        Args:
            document_text: Recognized text of the new document.
            templates: Candidate templates (usually one account's set).
            owner: When given, templates of other owners are ignored.

        Returns:
            MatchResult; never raises for "nothing found".
        """
        text = normalize_text(document_text, self.fold_accents)
        compact_text = compact_identifier(document_text)

        candidates = []
        for template in templates:
            if owner is not None and template.owner != owner:
                continue
            candidate = self._evaluate(template, text, compact_text)
            if candidate is not None:
                candidates.append(candidate)

        if not candidates:
            logger.info("No template matched the document")
            return MatchResult(outcome=MatchOutcome.NO_TEMPLATE)

        candidates.sort(key=self._order_key)
        best_rank = candidates[0].rank
        best = [c for c in candidates if c.rank == best_rank]

        if len(best) > 1:
            logger.warning(
                "Ambiguous template match: "
                + ", ".join(c.template.supplier_name for c in best)
            )
            return MatchResult(outcome=MatchOutcome.AMBIGUOUS, candidates=best)

        logger.info(
            f"Matched template '{best[0].template.supplier_name}' "
            f"(patterns: {best[0].matched_patterns}, tax id hit: {best[0].tax_id_hit})"
        )
        return MatchResult(
            outcome=MatchOutcome.MATCHED,
            candidate=best[0],
            candidates=candidates,
        )

    def _evaluate(
        self,
        template: SupplierTemplate,
        text: str,
        compact_text: str
    ) -> Optional[MatchCandidate]:
        """
        Test one template's patterns against the folded text.

        The supplier tax id identifies the template on its own, whatever
        spacing or punctuation the document prints it with.
        """
        matched = []
        for pattern in template.identification_patterns:
            needle = normalize_text(pattern, self.fold_accents)
            if needle and needle in text:
                matched.append(pattern)

        tax_id = template.compact_tax_id
        tax_id_hit = bool(tax_id) and tax_id in compact_text
        if tax_id_hit and template.supplier_tax_id not in matched:
            matched.append(template.supplier_tax_id)

        if not matched:
            return None

        return MatchCandidate(
            template=template,
            matched_patterns=matched,
            tax_id_hit=tax_id_hit,
        )

    @staticmethod
    def _order_key(candidate: MatchCandidate):
        # Best rank first; name and id only fix the listing order
        tax_id_hit, success_rate, last_used = candidate.rank
        return (
            not tax_id_hit,
            -success_rate,
            -last_used.timestamp(),
            candidate.template.normalized_name,
            candidate.template.id,
        )
