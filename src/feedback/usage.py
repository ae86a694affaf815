"""
Usage Feedback Module.

Updates a template's usage statistics after an automatic extraction has
been reviewed. The success rate is the share of the template's fields
whose extracted value the user kept, averaged over uses.
"""

from datetime import datetime
from typing import Dict, Mapping, Optional, Union

from config import get_config
from src.extraction import ExtractionReport
from src.postprocessor import FieldNormalizer
from src.schema import FieldName, parse_field
from src.templates.models import SupplierTemplate
from src.utils.exceptions import ValidationError
from src.utils.helpers import parse_timestamp, utc_now
from src.utils.logger import get_logger

logger = get_logger(__name__)

Values = Mapping[Union[FieldName, str], Optional[str]]


class UsageFeedback:
    """
    Success-rate bookkeeping for templates.

    Attributes:
        ewma_alpha: Smoothing factor in (0, 1]; None keeps the running mean
        normalizer: Comparison of extracted and final values

    Example:
        >>> feedback = UsageFeedback()
        >>> feedback.record(template, report, {"total_ttc": "152.40"})
        >>> template.times_used
        1
    """

    def __init__(
        self,
        ewma_alpha: Optional[float] = None,
        normalizer: Optional[FieldNormalizer] = None
    ) -> None:
        if ewma_alpha is None:
            ewma_alpha = get_config("feedback.ewma_alpha", None)
        if ewma_alpha is not None and not 0.0 < float(ewma_alpha) <= 1.0:
            raise ValidationError("ewma_alpha", ewma_alpha, "must be in (0, 1]")
        self.ewma_alpha = float(ewma_alpha) if ewma_alpha is not None else None
        self.normalizer = normalizer or FieldNormalizer()

    def sample(
        self,
        template: SupplierTemplate,
        extracted: Union[ExtractionReport, Values],
        final_values: Values
    ) -> float:
        """
        Share (0-100) of the template's fields kept unchanged by the user.

        A field counts as kept when its extracted and final values are equal
        after format-aware normalization. A field the extractor found nothing
        for counts as kept only if the user left it empty too.
        """
        fields = template.fields
        if not fields:
            return 100.0

        extracted_values = _as_values(extracted)
        final = _as_values(final_values)

        kept = sum(
            1 for name in fields
            if self.normalizer.same_value(name, extracted_values.get(name), final.get(name))
        )
        return 100.0 * kept / len(fields)

    def record(
        self,
        template: SupplierTemplate,
        extracted: Union[ExtractionReport, Values],
        final_values: Values,
        now: Optional[datetime] = None
    ) -> SupplierTemplate:
        """
        Fold one reviewed document into the template's statistics.

        Call once per document. The template is updated in place and
        returned; persisting it is the caller's job.

        Args:
            template: Template that produced `extracted`.
            extracted: ExtractionReport or field -> value map.
            final_values: Values after the user's review.
            now: Usage timestamp (defaults to the current UTC time).
        """
        sample = self.sample(template, extracted, final_values)
        previous_uses = template.times_used

        if previous_uses == 0:
            rate = sample
        elif self.ewma_alpha is not None:
            rate = self.ewma_alpha * sample + (1.0 - self.ewma_alpha) * template.success_rate
        else:
            rate = (template.success_rate * previous_uses + sample) / (previous_uses + 1)

        template.success_rate = min(100.0, max(0.0, rate))
        self.record_attempt(template, now)

        logger.info(
            f"Template '{template.supplier_name}': sample {sample:.0f}%, "
            f"success rate {template.success_rate:.1f}% over {template.times_used} uses"
        )
        return template

    def record_attempt(
        self,
        template: SupplierTemplate,
        now: Optional[datetime] = None
    ) -> SupplierTemplate:
        """Count an automatic use without a review (rate unchanged)."""
        template.times_used += 1
        template.last_used_at = parse_timestamp(now) or utc_now()
        return template


def _as_values(values) -> Dict[FieldName, Optional[str]]:
    if isinstance(values, ExtractionReport):
        return values.values()
    return {parse_field(name): value for name, value in (values or {}).items()}
