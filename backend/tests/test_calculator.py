"""
Unit tests for metric tile values.
"""
import pytest
from app.services.calculator import NOT_AVAILABLE, calculate_metric, format_number


ROWS = [
    {'amount': 1200, 'note': 'a'},
    {'amount': 300.5, 'note': 'b'},
    {'amount': 'pending', 'note': 'c'},
    {'amount': 500, 'note': ''},
]


@pytest.mark.unit
def test_count_is_row_count():
    """count ignores the column and counts rows."""
    assert calculate_metric(ROWS, 'amount', 'count') == '4'
    assert calculate_metric(ROWS, 'missing', 'count') == '4'


@pytest.mark.unit
def test_sum_uses_numeric_cells_only():
    assert calculate_metric(ROWS, 'amount', 'sum') == '2,000.5'


@pytest.mark.unit
def test_mean_two_decimals():
    assert calculate_metric(ROWS, 'amount', 'mean') == '666.83'
    assert calculate_metric([{'v': 10}, {'v': 30}], 'v', 'mean') == '20.00'


@pytest.mark.unit
def test_max_and_min():
    assert calculate_metric(ROWS, 'amount', 'max') == '1,200'
    assert calculate_metric(ROWS, 'amount', 'min') == '300.5'


@pytest.mark.unit
def test_not_available_without_numbers():
    assert calculate_metric(ROWS, 'note', 'sum') == NOT_AVAILABLE
    assert calculate_metric([], 'amount', 'mean') == NOT_AVAILABLE
    assert calculate_metric([], 'amount', 'count') == '0'


@pytest.mark.unit
def test_format_number():
    assert format_number(1234567) == '1,234,567'
    assert format_number(1234.5678) == '1,234.568'
    assert format_number(-0.25) == '-0.25'
    assert format_number(float('nan')) == '0'


@pytest.mark.unit
def test_mean_rounds_halves_up():
    assert calculate_metric([{'v': 0.25}, {'v': 0}], 'v', 'mean') == '0.13'
