"""
Cell-level validation shared by the statistics and chart-preparation services.

Every "is this a usable number / is this cell empty" decision goes through
here so the services do not repeat ad hoc NaN and infinity checks.
"""
import math
import re
import warnings
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional

import pandas as pd

NUMERIC_LITERAL = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
LEADING_NUMBER = re.compile(r'^(-?\d+(\.\d+)?)')

# Words pandas resolves against the wall clock
RELATIVE_DATE_WORDS = frozenset({'now', 'today', 'tomorrow', 'yesterday'})

_FIXED_POINT = Context(prec=400)


def is_missing(value: Any) -> bool:
    """A cell is missing when it is absent, None or an empty string."""
    if value is None or value == '':
        return True
    return isinstance(value, float) and math.isnan(value)


def is_number(value: Any) -> bool:
    """True for real int/float cells. Booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    if not is_number(value):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:  # int beyond float range
        return False


def coerce_number(text: str) -> Any:
    """
    Convert a raw CSV field to int/float when it is a complete finite
    numeric literal, otherwise return it unchanged.
    """
    if not NUMERIC_LITERAL.match(text):
        return text
    number = float(text)
    if not math.isfinite(number):
        return text
    if re.fullmatch(r'[+-]?\d+', text):
        return int(text)
    return number


def to_finite_number(value: Any) -> Optional[float]:
    """
    Numeric view of a cell: numbers pass through, numeric strings are parsed,
    anything else (including empty cells and non-finite values) is None.
    """
    if is_missing(value) or isinstance(value, bool):
        return None
    if is_number(value):
        return float(value) if is_finite_number(value) else None
    if isinstance(value, str):
        text = value.strip()
        if NUMERIC_LITERAL.match(text):
            number = float(text)
            return number if math.isfinite(number) else None
    return None


def finite_or(value: float, default: float = 0.0) -> float:
    """Replace NaN/Infinity with a safe default before it reaches output."""
    return value if math.isfinite(value) else default


def to_fixed(value: float, digits: int) -> str:
    """
    Fixed-point text with halves rounded away from zero, so 2.25 -> '2.3'
    and 0.125 -> '0.13' (Python's format rounds those halves to even).
    """
    if not math.isfinite(value):
        return f"{value:.{digits}f}"
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP, context=_FIXED_POINT))


def round_half_up(value: float, digits: int) -> float:
    return float(to_fixed(value, digits))


def numeric_values(rows: Iterable[dict], column: str) -> List[float]:
    """All number cells of a column, in row order."""
    return [row.get(column) for row in rows if is_finite_number(row.get(column))]


def format_label(value: Any) -> str:
    """
    String form of a cell as it appears in labels and example values.
    Whole floats render without the trailing '.0'.
    """
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def leading_number(label: str) -> Optional[float]:
    """Numeric token at the start of a label, e.g. '10 - 20' -> 10.0."""
    match = LEADING_NUMBER.match(label)
    return float(match.group(1)) if match else None


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Best-effort date parse; None when the text is not a date."""
    if is_missing(value) or is_number(value) or isinstance(value, bool):
        return None
    if str(value).strip().lower() in RELATIVE_DATE_WORDS:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter('ignore')
        try:
            parsed = pd.to_datetime(str(value), errors='coerce')
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed
