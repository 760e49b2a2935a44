"""
Measurement Normalizer - single gateway for every room dimension.

Turns heterogeneous length inputs into a canonical Decimal with one
fractional digit. Accepted forms:
- Plain decimals: 12, "12.5", " 7.25 "
- Feet and inches: 12'6", 12 ft 6 in, 12 feet 6 inches, 12-6"
- Feet only with a marker: 12', 12 ft
- Inches only: 30", 30 in
- Already-numeric values (int, float, Decimal)

Hard rules:
1. Results are rounded half away from zero to one decimal place
2. A rounded value of exactly 0 is absence and is returned as None
3. Negative inputs are clamped to zero (and therefore become None)
4. Values above MAX_LENGTH are implausible and are returned as None
5. Malformed input returns None - this module never raises
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)


RawLength = Union[str, int, float, Decimal, None]

TENTH = Decimal("0.1")
INCHES_PER_FOOT = Decimal(12)

# Largest accepted dimension; keeps area products well inside the decimal context
MAX_LENGTH = Decimal("100000")


# =============================================================================
# PATTERNS
# =============================================================================

_NUMBER = r"\d+(?:\.\d*)?|\.\d+"
_FOOT_MARK = r"(?:feet|foot|ft\.?|'|’|′)"
_INCH_MARK = r"(?:inches|inch|in\.?|''|’’|\"|”|″)"

# "12.5", "-3"
PLAIN_PATTERN = re.compile(rf"^(?P<sign>[+-]?)\s*(?P<value>{_NUMBER})$")

# "12'6\"", "12 ft 6 in", "12-6\"", "12 6\"" (feet unmarked needs a separator)
FEET_INCHES_PATTERN = re.compile(
    rf"^(?P<sign>[+-]?)\s*(?P<feet>{_NUMBER})"
    rf"(?:\s*{_FOOT_MARK}\s*-?\s*|\s*-\s*|\s+)"
    rf"(?P<inches>{_NUMBER})\s*{_INCH_MARK}$",
    re.IGNORECASE,
)

# "12'", "12 feet"
FEET_ONLY_PATTERN = re.compile(
    rf"^(?P<sign>[+-]?)\s*(?P<feet>{_NUMBER})\s*{_FOOT_MARK}$",
    re.IGNORECASE,
)

# "30\"", "30 inches"
INCHES_ONLY_PATTERN = re.compile(
    rf"^(?P<sign>[+-]?)\s*(?P<inches>{_NUMBER})\s*{_INCH_MARK}$",
    re.IGNORECASE,
)


# =============================================================================
# ROUNDING
# =============================================================================

def round_tenth(value: Decimal) -> Optional[Decimal]:
    """
    Clamp negatives to zero, round half away from zero to one decimal,
    and map an exact zero to None.
    """
    if value < 0:
        value = Decimal(0)
    rounded = value.quantize(TENTH, rounding=ROUND_HALF_UP)
    if rounded == 0:
        return None
    return rounded


# =============================================================================
# PARSING
# =============================================================================

def _signed(sign: str, value: Decimal) -> Decimal:
    return -value if sign == "-" else value


def _parse_text(text: str) -> Optional[Decimal]:
    """Parse a textual length into feet-or-plain units, unrounded."""
    s = text.strip()
    if not s:
        return None

    match = PLAIN_PATTERN.match(s)
    if match:
        return _signed(match.group("sign"), Decimal(match.group("value")))

    match = FEET_INCHES_PATTERN.match(s)
    if match:
        feet = Decimal(match.group("feet"))
        inches = Decimal(match.group("inches"))
        return _signed(match.group("sign"), feet + inches / INCHES_PER_FOOT)

    match = FEET_ONLY_PATTERN.match(s)
    if match:
        return _signed(match.group("sign"), Decimal(match.group("feet")))

    match = INCHES_ONLY_PATTERN.match(s)
    if match:
        return _signed(match.group("sign"), Decimal(match.group("inches")) / INCHES_PER_FOOT)

    return None


def _to_decimal(raw: RawLength) -> Optional[Decimal]:
    # bool is an int subclass; True is not a length
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        # repr keeps the shortest round-tripping form, so 0.15 stays 0.15
        return Decimal(repr(raw))
    if isinstance(raw, str):
        return _parse_text(raw)
    return None


def parse_length(raw: RawLength) -> Optional[Decimal]:
    """
    Normalize a raw length input to a canonical Decimal or None.

    Args:
        raw: Text such as "12'6\"" or "7.25", or a numeric value

    Returns:
        Positive Decimal with exactly one fractional digit, or None when the
        input is missing, malformed, negative, above MAX_LENGTH or rounds
        to zero
    """
    value = _to_decimal(raw)
    if value is None:
        if raw not in (None, ""):
            logger.debug(f"Unparseable length input: {raw!r}")
        return None
    if value > MAX_LENGTH:
        logger.debug(f"Length out of range: {raw!r}")
        return None
    return round_tenth(value)
