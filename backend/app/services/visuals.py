"""
Chart data preparation.

Turns the raw row set plus a chart configuration into an axis-ready series:

- scatter: raw points, truncated to the first 500 complete rows
- pie: frequency of each x value, top 10 slices
- bar / line: grouped by x with numeric binning for high-cardinality numeric
  axes, top-N collapsing for high-cardinality categorical axes, mean (numeric)
  or frequency (categorical) per value column, and a label-aware sort

Every function here is pure: rows are never modified and series are never
cached between calls.
"""
import logging
import re
import unicodedata
from collections import Counter
from functools import cmp_to_key, lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple
from app.core.schemas import ChartConfig, Row
from app.core.performance import track_performance
from app.core.values import (
    is_missing,
    is_number,
    to_finite_number,
    finite_or,
    format_label,
    leading_number,
    parse_date,
    round_half_up,
    to_fixed,
)

logger = logging.getLogger(__name__)

SCATTER_LIMIT = 500
PIE_LIMIT = 10
BIN_COUNT = 10
BINNING_MIN_DISTINCT = 20  # numeric axes with more distinct values get binned
TOP_N_MIN_DISTINCT = 25  # categorical axes with more distinct values get collapsed
TOP_N = 20
UNKNOWN_LABEL = 'Unknown'
OTHERS_LABEL = 'Others'
PIE_EXCLUDED = {'', 'null', 'undefined'}
# Labels sorted after every other label, in this order
TRAILING_LABELS = {UNKNOWN_LABEL: 1, OTHERS_LABEL: 2}

_DIGIT_RUN = re.compile(r'(\d+)')


def is_numeric_column(rows: Sequence[Row], key: str) -> bool:
    """A column counts as numeric for charting when any row holds a number."""
    return any(is_number(row.get(key)) for row in rows)


def _distinct_key(value: Any) -> Tuple[bool, bool, Any]:
    return isinstance(value, str), isinstance(value, bool), value


def format_bin_edge(value: float) -> str:
    if value == 0:
        value = 0.0  # avoid "-0"
    return to_fixed(value, 0) if float(value).is_integer() else to_fixed(value, 1)


def prepare_scatter(rows: Sequence[Row], config: ChartConfig) -> List[Dict[str, Any]]:
    points = []
    for row in rows:
        if to_finite_number(row.get(config.x_axis_key)) is None:
            continue
        if any(to_finite_number(row.get(k)) is None for k in config.data_keys):
            continue
        points.append(dict(row))
        if len(points) == SCATTER_LIMIT:
            break
    return points


def prepare_pie(rows: Sequence[Row], config: ChartConfig) -> List[Dict[str, Any]]:
    counts: Counter = Counter()
    for row in rows:
        key = format_label(row.get(config.x_axis_key))
        if key not in PIE_EXCLUDED:
            counts[key] += 1
    # most_common keeps first-seen order among equal counts
    return [{'name': name, 'value': value} for name, value in counts.most_common(PIE_LIMIT)]


def bin_labels(values: Sequence[Any]) -> Optional[List[str]]:
    """
    Equal-width range labels ("start - end") for each value, or None when
    the axis has no spread. Values that are not numbers become 'Unknown'.
    """
    numbers = [n for n in (to_finite_number(v) for v in values) if n is not None]
    if not numbers:
        return None
    low, high = min(numbers), max(numbers)
    if low == high:
        return None

    bin_size = (high - low) / BIN_COUNT
    labels = []
    for value in values:
        number = to_finite_number(value)
        if number is None:
            labels.append(UNKNOWN_LABEL)
            continue
        index = min(int((number - low) // bin_size), BIN_COUNT - 1)
        start = low + index * bin_size
        end = low + (index + 1) * bin_size
        labels.append(f"{format_bin_edge(start)} - {format_bin_edge(end)}")
    return labels


def collapse_top_n(labels: Sequence[str]) -> List[str]:
    """Keep the most frequent labels, relabel the rest as 'Others'."""
    top = {label for label, _ in Counter(labels).most_common(TOP_N)}
    return [label if label in top else OTHERS_LABEL for label in labels]


def _natural_key(text: str) -> List[Tuple[int, Any]]:
    folded = unicodedata.normalize('NFKD', text.casefold())
    folded = ''.join(ch for ch in folded if not unicodedata.combining(ch))
    parts = []
    for token in _DIGIT_RUN.split(folded):
        if not token:
            continue
        parts.append((0, int(token)) if token.isdigit() else (1, token))
    return parts


@lru_cache(maxsize=4096)
def _label_timestamp(label: str) -> Optional[int]:
    parsed = parse_date(label)
    return parsed.value if parsed is not None else None


def compare_labels(a: str, b: str) -> int:
    """
    'Unknown' then 'Others' go last; otherwise numeric by leading number,
    then chronological, then natural case-insensitive text order. Equal
    leading numbers (e.g. ISO dates in the same year) fall through.
    """
    rank_a, rank_b = TRAILING_LABELS.get(a, 0), TRAILING_LABELS.get(b, 0)
    if rank_a or rank_b:
        return (rank_a > rank_b) - (rank_a < rank_b)

    num_a, num_b = leading_number(a), leading_number(b)
    if num_a is not None and num_b is not None and num_a != num_b:
        return (num_a > num_b) - (num_a < num_b)

    date_a, date_b = _label_timestamp(a), _label_timestamp(b)
    if date_a is not None and date_b is not None:
        return (date_a > date_b) - (date_a < date_b)

    key_a, key_b = _natural_key(a), _natural_key(b)
    return (key_a > key_b) - (key_a < key_b)


def prepare_grouped(rows: Sequence[Row], config: ChartConfig) -> List[Dict[str, Any]]:
    x_key = config.x_axis_key
    y_keys = config.data_keys

    working = [row for row in rows if not is_missing(row.get(x_key))]
    x_values = [row[x_key] for row in working]
    distinct_x = len({_distinct_key(v) for v in x_values})
    x_numeric = is_numeric_column(rows, x_key)

    labels = [format_label(v) for v in x_values]
    if x_numeric and distinct_x > BINNING_MIN_DISTINCT:
        binned = bin_labels(x_values)
        if binned is not None:
            labels = binned
    elif not x_numeric and distinct_x > TOP_N_MIN_DISTINCT:
        labels = collapse_top_n(labels)

    groups: Dict[str, List[Row]] = {}
    for label, row in zip(labels, working):
        groups.setdefault(label, []).append(row)

    numeric_y = {key: is_numeric_column(rows, key) for key in y_keys}
    records = []
    for label, members in groups.items():
        record: Dict[str, Any] = {x_key: label}
        if not y_keys:
            record['count'] = len(members)
        for key in y_keys:
            if numeric_y[key]:
                total = sum(to_finite_number(m.get(key)) or 0.0 for m in members)
                record[key] = round_half_up(finite_or(total / len(members)), 2)
            else:
                record[key] = len(members)
        records.append(record)

    records.sort(key=cmp_to_key(lambda a, b: compare_labels(a[x_key], b[x_key])))
    return records


@track_performance("prepare_visual_data")
def prepare_visual_data(rows: Sequence[Row], config: ChartConfig) -> List[Dict[str, Any]]:
    """Shape rows into the series a chart of the given kind can plot directly."""
    if config.type == 'scatter':
        series = prepare_scatter(rows, config)
    elif config.type == 'pie':
        series = prepare_pie(rows, config)
    else:
        series = prepare_grouped(rows, config)

    logger.debug(f"Prepared {config.type} chart '{config.id}': {len(series)} records from {len(rows)} rows")
    return series
