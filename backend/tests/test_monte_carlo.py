"""
Unit tests for the Monte Carlo risk simulation.
"""
import numpy as np
import pytest
from app.services.monte_carlo import ITERATIONS, box_muller, run_monte_carlo


def values(*numbers, name='Revenue'):
    return [{name: n} for n in numbers]


@pytest.mark.unit
def test_percentiles_are_ordered():
    rows = values(*range(10, 30))
    result = run_monte_carlo(rows, 'Revenue', rng=np.random.default_rng(7))

    assert result is not None
    assert result.iterations == ITERATIONS
    assert result.p10 <= result.p50 <= result.p90
    assert result.mean == pytest.approx(19.5)


@pytest.mark.unit
def test_seeded_runs_are_reproducible():
    """The same generator seed gives identical results."""
    rows = values(*range(1, 21))
    first = run_monte_carlo(rows, 'Revenue', rng=np.random.default_rng(42))
    second = run_monte_carlo(rows, 'Revenue', rng=np.random.default_rng(42))
    assert first == second


@pytest.mark.unit
def test_percentiles_near_normal_quantiles():
    """With many draws P50 sits near the mean and P10/P90 near ±1.28 std."""
    rows = values(*range(100, 200))
    result = run_monte_carlo(rows, 'Revenue', rng=np.random.default_rng(0))
    assert result.p50 == pytest.approx(result.mean, abs=0.2 * result.std)
    assert result.p10 == pytest.approx(result.mean - 1.2816 * result.std, abs=0.25 * result.std)
    assert result.p90 == pytest.approx(result.mean + 1.2816 * result.std, abs=0.25 * result.std)


@pytest.mark.unit
def test_too_few_values():
    """Fewer than ten numeric values means no simulation."""
    assert run_monte_carlo(values(*range(1, 10)), 'Revenue') is None


@pytest.mark.unit
def test_non_numeric_cells_do_not_count():
    rows = values(*range(1, 10)) + values('x', '', None)
    assert run_monte_carlo(rows, 'Revenue') is None


@pytest.mark.unit
def test_zero_std_or_zero_mean():
    assert run_monte_carlo(values(*([5] * 12)), 'Revenue') is None
    assert run_monte_carlo(values(*([-1, 1] * 6)), 'Revenue') is None


@pytest.mark.unit
def test_box_muller_is_standard_normal():
    draws = box_muller(np.random.default_rng(1), 20000)
    assert draws.shape == (20000,)
    assert np.all(np.isfinite(draws))
    assert abs(draws.mean()) < 0.05
    assert abs(draws.std() - 1.0) < 0.05
