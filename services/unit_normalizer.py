"""Unit normalization for free-text ingredient quantities.

Turns an ``(amount, unit)`` pair produced by the generator into a numeric
amount and a canonical unit string. Units are only cleaned up (case and
whitespace); grams are never converted to cups or the other way round,
because there is no reliable density for arbitrary ingredients. Quantities
in different units are therefore simply incomparable.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from core.logger import get_logger

logger = get_logger("services.unit_normalizer")

UNICODE_FRACTIONS = {
    "½": 0.5, "⅓": 1 / 3, "⅔": 2 / 3, "¼": 0.25, "¾": 0.75,
    "⅕": 0.2, "⅖": 0.4, "⅗": 0.6, "⅘": 0.8, "⅙": 1 / 6, "⅚": 5 / 6,
    "⅛": 0.125, "⅜": 0.375, "⅝": 0.625, "⅞": 0.875,
}

_DECIMAL = re.compile(r"^\d+(?:\.\d+)?$|^\.\d+$")
_FRACTION = re.compile(r"^(\d+)\s*/\s*(\d+)$")
_MIXED = re.compile(r"^(\d+)\s+(\d+)\s*/\s*(\d+)$")
_UNICODE_MIXED = re.compile(r"^(\d*)\s*([" + "".join(UNICODE_FRACTIONS) + r"])$")


@dataclass(frozen=True)
class NormalizedQuantity:
    amount: float
    unit: str


@dataclass(frozen=True)
class NotNumeric:
    """The amount could not be read as a number ("a pinch", "to taste", "1-2")."""

    raw_amount: str
    unit: str


class UnitNormalizer:
    """Parses free-text amounts and canonicalizes unit strings."""

    def parse_amount(self, amount: Union[str, int, float, None]) -> Optional[float]:
        """Parse an amount into a float, or None when it is not a plain number.

        Accepts integers, decimals, ``1/2``, ``1 1/2``, ``½`` and ``1½``.
        """
        if amount is None or isinstance(amount, bool):
            return None
        if isinstance(amount, (int, float)):
            return float(amount)

        text = " ".join(str(amount).split())
        if not text:
            return None

        if _DECIMAL.match(text):
            return float(text)

        mixed = _MIXED.match(text)
        if mixed:
            whole, num, denom = (int(g) for g in mixed.groups())
            if denom == 0:
                return None
            return whole + num / denom

        fraction = _FRACTION.match(text)
        if fraction:
            num, denom = (int(g) for g in fraction.groups())
            if denom == 0:
                return None
            return num / denom

        vulgar = _UNICODE_MIXED.match(text)
        if vulgar:
            whole = int(vulgar.group(1)) if vulgar.group(1) else 0
            return whole + UNICODE_FRACTIONS[vulgar.group(2)]

        return None

    def canonical_unit(self, unit: Optional[str]) -> str:
        """Lower-case and trim a unit, collapsing inner whitespace."""
        if unit is None:
            return ""
        return " ".join(str(unit).lower().split())

    def normalize(self, amount, unit) -> Union[NormalizedQuantity, NotNumeric]:
        """Normalize an ``(amount, unit)`` pair.

        Returns:
            `NormalizedQuantity` when the amount is numeric, else `NotNumeric`.
        """
        canonical = self.canonical_unit(unit)
        value = self.parse_amount(amount)
        if value is None:
            logger.debug("Amount not numeric: %r %r", amount, unit)
            return NotNumeric(raw_amount="" if amount is None else str(amount), unit=canonical)
        return NormalizedQuantity(amount=value, unit=canonical)


def format_amount(value: float) -> str:
    """Render a number for display or prompts: at most two decimals, no trailing zeros."""
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")


# export singleton
unit_normalizer = UnitNormalizer()
__all__ = ["UnitNormalizer", "NormalizedQuantity", "NotNumeric", "format_amount", "unit_normalizer"]
