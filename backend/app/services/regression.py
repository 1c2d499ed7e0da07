import logging
import numpy as np
from typing import Optional, Sequence
from app.core.schemas import RegressionResult, TrendPoint, Row
from app.core.values import is_finite_number, to_fixed

logger = logging.getLogger(__name__)

ZERO_TOLERANCE = 1e-12


def _is_zero(value: float, scale: float) -> bool:
    return abs(value) <= ZERO_TOLERANCE * max(1.0, scale)


def calculate_regression(rows: Sequence[Row], x_col: str, y_col: str) -> Optional[RegressionResult]:
    """
    Ordinary least squares fit of y on x with R² and a two-point trendline.

    Returns None when there are fewer than two complete points, when x is
    constant, or when y is constant but the fit still leaves residuals.
    A constant y that the line reproduces exactly reports R² = 1.
    """
    points = [
        (row[x_col], row[y_col]) for row in rows
        if is_finite_number(row.get(x_col)) and is_finite_number(row.get(y_col))
    ]
    if len(points) < 2:
        logger.debug(f"Regression {x_col} -> {y_col} unavailable: {len(points)} complete points")
        return None

    xs = np.array([p[0] for p in points], dtype=float)
    ys = np.array([p[1] for p in points], dtype=float)
    n = len(points)

    sum_x, sum_y = xs.sum(), ys.sum()
    sum_xy = (xs * ys).sum()
    sum_xx = (xs * xs).sum()
    sum_yy = (ys * ys).sum()

    denominator = n * sum_xx - sum_x * sum_x
    if _is_zero(denominator, n * sum_xx):
        logger.debug(f"Regression {x_col} -> {y_col} unavailable: constant x")
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    ss_tot = sum_yy - (sum_y * sum_y) / n
    ss_res = float(((ys - (slope * xs + intercept)) ** 2).sum())

    if _is_zero(ss_tot, sum_yy):
        if not _is_zero(ss_res, sum_yy):
            logger.debug(f"Regression {x_col} -> {y_col} unavailable: zero variance in y with residuals")
            return None
        r_squared = 1.0
    else:
        r_squared = 1 - ss_res / ss_tot

    min_x, max_x = float(xs.min()), float(xs.max())

    return RegressionResult(
        x_column=x_col,
        y_column=y_col,
        slope=float(slope),
        intercept=float(intercept),
        r_squared=float(r_squared),
        equation=f"y = {to_fixed(slope, 2)}x + {to_fixed(intercept, 2)}",
        trendline=[
            TrendPoint(x=min_x, y=float(slope * min_x + intercept)),
            TrendPoint(x=max_x, y=float(slope * max_x + intercept)),
        ]
    )
