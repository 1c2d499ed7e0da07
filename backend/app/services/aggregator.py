import logging
import numpy as np
from typing import Optional, Sequence
from app.core.schemas import AdvancedStats, DatasetStats, Row
from app.core.performance import track_performance
from app.services.profiler import profile_columns
from app.services.narrative import (
    modeling_columns,
    find_strongest_correlation,
    regression_candidate,
    select_monte_carlo_candidate,
    build_narrative,
)
from app.services.regression import calculate_regression
from app.services.monte_carlo import run_monte_carlo
from app.services.outliers import find_outliers

logger = logging.getLogger(__name__)


@track_performance("profile_dataset")
def profile_dataset(rows: Sequence[Row], rng: Optional[np.random.Generator] = None) -> DatasetStats:
    """
    Build the statistics snapshot for a parsed dataset: column profiles,
    outliers, narrative insights and the optional regression / Monte Carlo
    results. An empty dataset short-circuits to an empty snapshot.
    """
    if len(rows) == 0:
        return DatasetStats(row_count=0, column_profiles=[], outliers=[], narrative_insights=[])

    profiles = profile_columns(rows)
    candidates = modeling_columns(profiles)

    strongest = find_strongest_correlation(rows, candidates)

    regression = None
    pair = regression_candidate(strongest)
    if pair:
        regression = calculate_regression(rows, *pair)

    monte_carlo = None
    mc_column = select_monte_carlo_candidate(candidates)
    if mc_column:
        monte_carlo = run_monte_carlo(rows, mc_column.name, rng=rng)

    outliers = find_outliers(rows, profiles)
    insights = build_narrative(profiles, strongest, len(outliers))

    logger.info(
        f"Profiled dataset: {len(rows)} rows, {len(profiles)} columns, "
        f"{len(outliers)} outliers, regression={'yes' if regression else 'no'}, "
        f"monte_carlo={'yes' if monte_carlo else 'no'}"
    )

    return DatasetStats(
        row_count=len(rows),
        column_profiles=profiles,
        outliers=outliers,
        narrative_insights=insights,
        advanced_stats=AdvancedStats(regression=regression, monte_carlo=monte_carlo)
    )
