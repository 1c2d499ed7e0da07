"""
Correlation-driven narrative and model selection.

Finds the strongest linear relationship between numeric columns, decides
whether it is worth a regression, picks the column for the Monte Carlo risk
simulation and writes the plain-language insight sentences.
"""
import logging
import pandas as pd
from typing import List, Optional, Sequence, Tuple
from app.core.schemas import ColumnProfile, ColumnType, SemanticType, Row
from app.core.values import is_finite_number, to_fixed

logger = logging.getLogger(__name__)

REGRESSION_THRESHOLD = 0.5


def modeling_columns(profiles: Sequence[ColumnProfile]) -> List[ColumnProfile]:
    """Numeric columns that are not identifiers, in header order."""
    return [
        p for p in profiles
        if p.type == ColumnType.NUMERIC and p.semantic_type != SemanticType.ID
    ]


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r; 0.0 when undefined (mismatched, too short, or zero variance)."""
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    corr = pd.Series(x, dtype=float).corr(pd.Series(y, dtype=float))
    if pd.isna(corr):
        return 0.0
    return float(corr)


def _paired_values(rows: Sequence[Row], col_a: str, col_b: str) -> Tuple[List[float], List[float]]:
    xs, ys = [], []
    for row in rows:
        a, b = row.get(col_a), row.get(col_b)
        if is_finite_number(a) and is_finite_number(b):
            xs.append(a)
            ys.append(b)
    return xs, ys


def find_strongest_correlation(
    rows: Sequence[Row],
    columns: Sequence[ColumnProfile]
) -> Optional[Tuple[str, str, float]]:
    """
    Scan every unordered pair and return (col_a, col_b, r) with the largest
    |r|. Ties keep the first pair found; a zero correlation is never chosen.
    """
    best: Optional[Tuple[str, str, float]] = None
    max_corr = 0.0

    for i in range(len(columns)):
        for j in range(i + 1, len(columns)):
            col_a, col_b = columns[i].name, columns[j].name
            corr = pearson_correlation(*_paired_values(rows, col_a, col_b))
            if abs(corr) > abs(max_corr):
                max_corr = corr
                best = (col_a, col_b, corr)

    return best


def correlation_sentence(col_a: str, col_b: str, corr: float) -> str:
    direction = 'increases' if corr > 0 else 'decreases'
    return (
        f'Strongest Relationship: "{col_a}" {direction} as "{col_b}" increases '
        f'(Correlation: {to_fixed(corr, 2)})'
    )


def regression_candidate(strongest: Optional[Tuple[str, str, float]]) -> Optional[Tuple[str, str]]:
    """(x, y) for the regression engine when the relationship is strong enough."""
    if strongest and abs(strongest[2]) > REGRESSION_THRESHOLD:
        return strongest[0], strongest[1]
    return None


def select_monte_carlo_candidate(columns: Sequence[ColumnProfile]) -> Optional[ColumnProfile]:
    """First currency column, otherwise the most volatile one."""
    for column in columns:
        if column.semantic_type == SemanticType.CURRENCY:
            return column
    ranked = sorted(columns, key=lambda c: c.std or 0.0, reverse=True)
    return ranked[0] if ranked else None


def build_narrative(
    profiles: Sequence[ColumnProfile],
    strongest: Optional[Tuple[str, str, float]],
    outlier_count: int
) -> List[str]:
    insights: List[str] = []

    if strongest:
        insights.append(correlation_sentence(*strongest))

    date_col = next((p for p in profiles if p.semantic_type == SemanticType.TEMPORAL), None)
    if date_col:
        insights.append(
            f'Temporal Context: Dataset contains time-series data based on "{date_col.name}". '
            f'Recommended: Time-series forecasting.'
        )

    money_col = next((p for p in profiles if p.semantic_type == SemanticType.CURRENCY), None)
    if money_col and money_col.mean:
        insights.append(
            f'Financial Context: "{money_col.name}" detected. Average Value: {to_fixed(money_col.mean, 2)}.'
        )

    if outlier_count > 0:
        insights.append(
            f'Anomaly Detection: Found {outlier_count} potential outliers using IQR method.'
        )

    return insights
