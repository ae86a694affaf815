"""
Data Normalizers Module.

This module turns the verbatim text read from a zone into a canonical
value according to the field's value format:
    - date: ISO date (day-first, as printed on French invoices)
    - currency: decimal string ("152,40 €" -> "152.40")
    - id-number: digits only
    - alphanumeric: upper-cased, whitespace-collapsed
    - text: whitespace-collapsed

Normalized values are stored next to the verbatim values on the document
and are used to decide whether a user actually corrected a field.
"""

import re
from datetime import datetime
from typing import Optional, Union

from dateutil import parser as date_parser

from config import get_config
from src.schema import FieldName, ValueFormat, format_of
from src.utils.logger import get_logger

logger = get_logger(__name__)


class DateNormalizer:
    """
    Normalizes date strings to a standard format.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("15/01/2026")
        "2026-01-15"
        >>> normalizer.normalize("15 janvier 2026")
        "2026-01-15"
    """

    FRENCH_MONTHS = {
        'janvier': 'January', 'fevrier': 'February', 'février': 'February',
        'mars': 'March', 'avril': 'April', 'mai': 'May', 'juin': 'June',
        'juillet': 'July', 'aout': 'August', 'août': 'August',
        'septembre': 'September', 'octobre': 'October', 'novembre': 'November',
        'decembre': 'December', 'décembre': 'December',
    }

    def __init__(self) -> None:
        self.output_format = get_config("postprocessing.date.output_format", "%Y-%m-%d")
        self.dayfirst = get_config("postprocessing.date.dayfirst", True)
        self.input_formats = get_config(
            "postprocessing.date.input_formats",
            ["%d/%m/%Y", "%d/%m/%y", "%d-%m-%Y", "%d.%m.%Y", "%Y-%m-%d", "%d %B %Y"]
        )

    def normalize(self, date_str: str) -> Optional[str]:
        """
        Normalize a date string to the configured output format.

        Returns:
            Normalized date string, or None if parsing fails.
        """
        if not date_str:
            return None

        date_str = self._clean_date_string(date_str)

        parsed_date = self._try_explicit_formats(date_str)
        if parsed_date is None:
            parsed_date = self._try_dateutil_parser(date_str)

        if parsed_date is None:
            logger.debug(f"Could not parse date: {date_str}")
            return None
        return parsed_date.strftime(self.output_format)

    def _clean_date_string(self, date_str: str) -> str:
        date_str = ' '.join(date_str.split())

        date_str = re.sub(r'^(?:date\s*:|le|du)\s+', '', date_str, flags=re.IGNORECASE)

        # "1er janvier" -> "1 janvier"
        date_str = re.sub(r'\b(\d{1,2})(er|st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)

        lowered = date_str.lower()
        for french, english in self.FRENCH_MONTHS.items():
            if french in lowered:
                date_str = re.sub(french, english, date_str, flags=re.IGNORECASE)
                break

        return date_str.strip()

    def _try_explicit_formats(self, date_str: str) -> Optional[datetime]:
        for fmt in self.input_formats:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue
        return None

    def _try_dateutil_parser(self, date_str: str) -> Optional[datetime]:
        try:
            return date_parser.parse(date_str, dayfirst=self.dayfirst, fuzzy=True)
        except (ValueError, OverflowError):
            return None


class AmountNormalizer:
    """
    Normalizes currency/amount strings to a fixed-decimal string.

    Handles currency symbols, percent signs, thousand separators
    (space, dot or comma) and both decimal conventions.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.normalize("1 234,56 €")
        "1234.56"
        >>> normalizer.normalize("$1,234.56")
        "1234.56"
    """

    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '%']
    CURRENCY_CODES = ['EUR', 'USD', 'GBP', 'CHF', 'TTC', 'HT']

    def __init__(self) -> None:
        self.decimals = int(get_config("postprocessing.amount.decimals", 2))

    def normalize(self, amount_str: str) -> Optional[str]:
        """
        Normalize an amount string.

        Returns:
            Normalized amount string or None when no number is present.
        """
        if not amount_str:
            return None

        amount_str = self._clean_amount_string(amount_str)
        if not amount_str:
            return None

        amount_str = self._handle_separators(amount_str)

        try:
            value = float(amount_str)
        except ValueError:
            logger.debug(f"Could not parse amount: {amount_str}")
            return None
        return f"{value:.{self.decimals}f}"

    def _clean_amount_string(self, amount_str: str) -> str:
        for symbol in self.CURRENCY_SYMBOLS:
            amount_str = amount_str.replace(symbol, '')
        for code in self.CURRENCY_CODES:
            amount_str = re.sub(rf'\b{code}\b', '', amount_str, flags=re.IGNORECASE)

        # Keep the first number-like run only ("152,40 (dont TVA 25,40)")
        match = re.search(r'-?\d[\d\s.,  ]*', amount_str)
        if not match:
            return ''
        return re.sub(r'[\s  ]', '', match.group(0)).rstrip('.,')

    def _handle_separators(self, amount_str: str) -> str:
        """Resolve which of '.' and ',' is the decimal separator."""
        last_dot = amount_str.rfind('.')
        last_comma = amount_str.rfind(',')

        if last_dot >= 0 and last_comma >= 0:
            if last_comma > last_dot:
                return amount_str.replace('.', '').replace(',', '.')
            return amount_str.replace(',', '')

        if last_comma >= 0:
            after = amount_str[last_comma + 1:]
            if amount_str.count(',') == 1 and len(after) != 3:
                return amount_str.replace(',', '.')
            return amount_str.replace(',', '')

        if last_dot >= 0 and amount_str.count('.') > 1:
            return amount_str.replace('.', '')

        return amount_str

    def to_float(self, amount_str: str) -> Optional[float]:
        normalized = self.normalize(amount_str)
        return float(normalized) if normalized is not None else None


class FieldNormalizer:
    """
    Format-aware normalization of field values.

    Example:
        >>> normalizer = FieldNormalizer()
        >>> normalizer.normalize(FieldName.TOTAL_TTC, "152,40 €")
        "152.40"
        >>> normalizer.normalize(FieldName.SUPPLIER_SIRET, "123 456 789 00012")
        "12345678900012"
    """

    def __init__(self) -> None:
        self.date_normalizer = DateNormalizer()
        self.amount_normalizer = AmountNormalizer()

    def normalize_as(self, value_format: ValueFormat, value: Optional[str]) -> Optional[str]:
        """Normalize a raw value for an explicit format."""
        if value is None:
            return None
        text = ' '.join(str(value).split())
        if not text:
            return None

        if value_format is ValueFormat.DATE:
            return self.date_normalizer.normalize(text)
        if value_format is ValueFormat.CURRENCY:
            return self.amount_normalizer.normalize(text)
        if value_format is ValueFormat.ID_NUMBER:
            digits = re.sub(r'\D', '', text)
            return digits or None
        if value_format is ValueFormat.ALPHANUMERIC:
            return text.upper()
        return text

    def normalize(self, field_name: Union[FieldName, str], value: Optional[str]) -> Optional[str]:
        """Normalize a raw value according to the field's schema format."""
        return self.normalize_as(format_of(field_name), value)

    def same_value(
        self,
        field_name: Union[FieldName, str],
        left: Optional[str],
        right: Optional[str]
    ) -> bool:
        """
        Whether two values are equal once normalized.

        Falls back to case-insensitive comparison of the collapsed text
        when a value cannot be parsed in its format.
        """
        left_norm = self.normalize(field_name, left)
        right_norm = self.normalize(field_name, right)

        if left_norm is None or right_norm is None:
            left_text = ' '.join(str(left or '').split()).casefold()
            right_text = ' '.join(str(right or '').split()).casefold()
            return left_text == right_text
        if format_of(field_name) is ValueFormat.TEXT:
            return left_norm.casefold() == right_norm.casefold()
        return left_norm == right_norm
