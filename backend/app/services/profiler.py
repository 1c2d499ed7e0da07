import logging
import numpy as np
from typing import Any, Dict, List, Optional, Sequence
from app.core.schemas import ColumnProfile, ColumnType, SemanticType, Row
from app.core.values import is_missing, is_number, is_finite_number, format_label, parse_date

logger = logging.getLogger(__name__)

# Header keywords for semantic roles, matched case-insensitively as substrings
ID_KEYWORDS = ('id', 'uuid', 'index')
CURRENCY_KEYWORDS = ('price', 'cost', 'salary', 'revenue', 'amount', 'total', 'sales')
GEOGRAPHIC_KEYWORDS = ('lat', 'lon', 'zip', 'coordinate')
TEMPORAL_KEYWORDS = ('date', 'time', 'year', 'month', 'day', 'timestamp')

CATEGORICAL_MAX_DISTINCT = 20
EXAMPLE_COUNT = 5


def detect_semantic_type(header: str, column_type: ColumnType) -> SemanticType:
    """
    Guess the real-world role of a column from its header.

    ID wins over everything; Currency and Geographic only apply to numeric
    columns; Date columns are always Temporal.
    """
    lower_header = header.lower()

    if any(k in lower_header for k in ID_KEYWORDS):
        return SemanticType.ID

    if column_type == ColumnType.NUMERIC:
        if any(k in lower_header for k in CURRENCY_KEYWORDS):
            return SemanticType.CURRENCY
        if any(k in lower_header for k in GEOGRAPHIC_KEYWORDS):
            return SemanticType.GEOGRAPHIC

    if column_type == ColumnType.DATE or any(k in lower_header for k in TEMPORAL_KEYWORDS):
        return SemanticType.TEMPORAL

    return SemanticType.GENERAL


def calculate_stats(values: Sequence[float]) -> Dict[str, float]:
    """Min, max, mean and population standard deviation (divisor n)."""
    if len(values) == 0:
        return {'min': 0.0, 'max': 0.0, 'mean': 0.0, 'std': 0.0}
    arr = np.asarray(values, dtype=float)
    return {
        'min': float(arr.min()),
        'max': float(arr.max()),
        'mean': float(arr.mean()),
        'std': float(arr.std(ddof=0)),
    }


def infer_column_type(all_numeric: bool, distinct_values: List[Any]) -> ColumnType:
    """
    Numeric -> Categorical -> Text, then Text is promoted to Date when the
    first distinct value parses as a date. Only that one sample is checked.
    """
    if all_numeric and distinct_values:
        return ColumnType.NUMERIC
    if 0 < len(distinct_values) < CATEGORICAL_MAX_DISTINCT:
        return ColumnType.CATEGORICAL
    if distinct_values and parse_date(distinct_values[0]) is not None:
        return ColumnType.DATE
    return ColumnType.TEXT


def profile_column(rows: Sequence[Row], name: str) -> ColumnProfile:
    missing = 0
    # keyed on (is_bool, value) so True and 1 stay distinct
    distinct: Dict[Any, Any] = {}
    numeric_values: List[float] = []
    all_numeric = True

    for row in rows:
        value = row.get(name)
        if is_missing(value):
            missing += 1
            continue
        distinct.setdefault((isinstance(value, bool), value), value)
        if not is_number(value):
            all_numeric = False
        elif is_finite_number(value):
            numeric_values.append(value)

    distinct_values = list(distinct.values())
    column_type = infer_column_type(all_numeric, distinct_values)
    stats: Dict[str, Optional[float]] = {}
    if column_type == ColumnType.NUMERIC:
        stats = calculate_stats(numeric_values)

    return ColumnProfile(
        name=name,
        type=column_type,
        semantic_type=detect_semantic_type(name, column_type),
        missing_count=missing,
        unique_count=len(distinct_values),
        example_values=[format_label(v) for v in distinct_values[:EXAMPLE_COUNT]],
        **stats
    )


def profile_columns(rows: Sequence[Row], headers: Optional[List[str]] = None) -> List[ColumnProfile]:
    """Profile every header in order. Headers default to the first row's keys."""
    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    profiles = [profile_column(rows, header) for header in headers]
    logger.debug(
        "Profiled columns: " + ", ".join(f"{p.name}={p.type.value}/{p.semantic_type.value}" for p in profiles)
    )
    return profiles
