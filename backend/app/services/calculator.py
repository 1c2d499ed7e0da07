import math
from typing import Sequence
from app.core.schemas import Row
from app.core.values import numeric_values, to_fixed

NOT_AVAILABLE = 'N/A'


def format_number(value: float) -> str:
    """Thousands separators, up to three decimals, no trailing zeros."""
    if not math.isfinite(value):
        return '0'
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip('0').rstrip('.')


def calculate_metric(rows: Sequence[Row], column: str, operation: str) -> str:
    """
    Reduce one column to a dashboard tile value.

    'count' is the number of rows; the other operations use only the
    column's numeric cells and return 'N/A' when there are none.
    """
    if operation == 'count':
        return format_number(len(rows))

    values = numeric_values(rows, column)
    if not values:
        return NOT_AVAILABLE

    if operation == 'sum':
        return format_number(math.fsum(values))
    if operation == 'mean':
        mean = math.fsum(values) / len(values)
        return to_fixed(mean, 2) if math.isfinite(mean) else '0'
    if operation == 'max':
        return format_number(max(values))
    if operation == 'min':
        return format_number(min(values))
    return NOT_AVAILABLE
