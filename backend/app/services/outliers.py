import logging
from typing import List, Optional, Sequence, Tuple
from app.core.schemas import ColumnProfile, Row
from app.core.values import is_finite_number, numeric_values
from app.services.narrative import modeling_columns

logger = logging.getLogger(__name__)

MAX_OUTLIERS = 50  # display cap
IQR_MULTIPLIER = 1.5


def iqr_bounds(values: Sequence[float]) -> Optional[Tuple[float, float]]:
    """
    Tukey fences using floor-indexed quartiles (no interpolation).

    Returns None for an empty column.
    """
    if not values:
        return None
    ordered = sorted(values)
    n = len(ordered)
    q1 = ordered[int(n * 0.25)]
    q3 = ordered[int(n * 0.75)]
    iqr = q3 - q1
    return q1 - IQR_MULTIPLIER * iqr, q3 + IQR_MULTIPLIER * iqr


def find_outliers(rows: Sequence[Row], profiles: Sequence[ColumnProfile]) -> List[Row]:
    """
    Rows with at least one numeric, non-ID value outside its column's IQR
    fences. Each row appears once, in first-flagged order, at most 50 rows.
    """
    seen = set()
    outliers: List[Row] = []

    for column in modeling_columns(profiles):
        bounds = iqr_bounds(numeric_values(rows, column.name))
        if bounds is None:
            continue
        lower, upper = bounds
        flagged = 0
        for row in rows:
            value = row.get(column.name)
            if not is_finite_number(value) or lower <= value <= upper:
                continue
            flagged += 1
            if id(row) not in seen:
                seen.add(id(row))
                outliers.append(row)
        if flagged:
            logger.debug(f"{column.name}: {flagged} values outside [{lower:.4g}, {upper:.4g}]")

    return outliers[:MAX_OUTLIERS]
