"""
Parametric Monte Carlo risk simulation.

The source column is approximated by a normal distribution with the column's
mean and population standard deviation; 1000 draws give a P10/P50/P90 band.
"""
import logging
import numpy as np
from typing import Optional, Sequence
from app.core.schemas import MonteCarloResult, Row
from app.core.values import numeric_values
from app.services.profiler import calculate_stats

logger = logging.getLogger(__name__)

ITERATIONS = 1000
MIN_VALUES = 10


def box_muller(rng: np.random.Generator, size: int) -> np.ndarray:
    """Standard normal draws from two independent uniforms per sample."""
    u1 = 1.0 - rng.random(size)  # (0, 1], keeps log() finite
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def run_monte_carlo(
    rows: Sequence[Row],
    column: str,
    rng: Optional[np.random.Generator] = None
) -> Optional[MonteCarloResult]:
    values = numeric_values(rows, column)
    if len(values) < MIN_VALUES:
        logger.debug(f"Monte Carlo on {column} unavailable: {len(values)} numeric values")
        return None

    stats = calculate_stats(values)
    mean, std = stats['mean'], stats['std']
    if not mean or not std:
        logger.debug(f"Monte Carlo on {column} unavailable: mean={mean}, std={std}")
        return None

    if rng is None:
        rng = np.random.default_rng()

    simulations = np.sort(mean + box_muller(rng, ITERATIONS) * std)

    return MonteCarloResult(
        column=column,
        p10=float(simulations[int(0.1 * ITERATIONS)]),
        p50=float(simulations[int(0.5 * ITERATIONS)]),
        p90=float(simulations[int(0.9 * ITERATIONS)]),
        iterations=ITERATIONS,
        mean=mean,
        std=std
    )
