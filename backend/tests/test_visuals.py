"""
Unit tests for chart data preparation.
"""
import copy
import pytest
from app.core.schemas import ChartConfig
from app.services.visuals import (
    OTHERS_LABEL,
    SCATTER_LIMIT,
    UNKNOWN_LABEL,
    bin_labels,
    compare_labels,
    format_bin_edge,
    prepare_visual_data,
)


def chart(chart_type, x, keys=()):
    return ChartConfig(id='c1', title='Test', type=chart_type, xAxisKey=x, dataKeys=list(keys))


@pytest.mark.unit
def test_chart_config_accepts_both_spellings():
    by_alias = ChartConfig(id='a', title='t', type='bar', xAxisKey='x', dataKeys=['y'])
    by_name = ChartConfig(id='a', title='t', type='bar', x_axis_key='x', data_keys=['y'])
    assert by_alias == by_name


@pytest.mark.unit
def test_scatter_keeps_complete_numeric_rows():
    rows = [{'x': 1, 'y': 2}, {'x': 'a', 'y': 3}, {'x': 4, 'y': None}, {'x': '5', 'y': 6}]
    series = prepare_visual_data(rows, chart('scatter', 'x', ['y']))
    assert series == [{'x': 1, 'y': 2}, {'x': '5', 'y': 6}]


@pytest.mark.unit
def test_scatter_truncated():
    rows = [{'x': i, 'y': i} for i in range(SCATTER_LIMIT + 100)]
    series = prepare_visual_data(rows, chart('scatter', 'x', ['y']))
    assert len(series) == SCATTER_LIMIT
    assert series[-1] == {'x': SCATTER_LIMIT - 1, 'y': SCATTER_LIMIT - 1}


@pytest.mark.unit
def test_pie_top_slices_and_exclusions():
    """Counts per x value, top ten, placeholder labels dropped."""
    values = ['a'] * 5 + ['b'] * 3 + ['', None, 'undefined'] + [f"k{i}" for i in range(12)]
    rows = [{'cat': v} for v in values]
    series = prepare_visual_data(rows, chart('pie', 'cat'))

    assert len(series) == 10
    assert series[0] == {'name': 'a', 'value': 5}
    assert series[1] == {'name': 'b', 'value': 3}
    names = {s['name'] for s in series}
    assert not names & {'', 'null', 'undefined', 'None'}
    # equal counts keep first-seen order
    assert [s['name'] for s in series[2:]] == [f"k{i}" for i in range(8)]


@pytest.mark.unit
def test_bar_mean_per_group():
    rows = [
        {'region': 'North', 'sales': 10},
        {'region': 'South', 'sales': 5},
        {'region': 'North', 'sales': 20},
        {'region': '', 'sales': 100},
    ]
    series = prepare_visual_data(rows, chart('bar', 'region', ['sales']))
    assert series == [
        {'region': 'North', 'sales': 15.0},
        {'region': 'South', 'sales': 5.0},
    ]


@pytest.mark.unit
def test_bar_mean_counts_non_numbers_as_zero():
    """Non-numeric cells in a numeric column add 0 but still count toward the group size."""
    rows = [{'g': 'a', 'v': 10}, {'g': 'a', 'v': 'oops'}, {'g': 'a', 'v': 5}]
    series = prepare_visual_data(rows, chart('bar', 'g', ['v']))
    assert series == [{'g': 'a', 'v': 5.0}]


@pytest.mark.unit
def test_bar_mean_rounded_to_two_decimals():
    rows = [{'g': 'a', 'v': 1}, {'g': 'a', 'v': 1}, {'g': 'a', 'v': 2}]
    assert prepare_visual_data(rows, chart('bar', 'g', ['v']))[0]['v'] == 1.33


@pytest.mark.unit
def test_bar_frequency_for_text_values():
    rows = [{'g': 'a', 'label': 'x'}, {'g': 'a', 'label': 'y'}, {'g': 'b', 'label': 'z'}]
    series = prepare_visual_data(rows, chart('bar', 'g', ['label']))
    assert series == [{'g': 'a', 'label': 2}, {'g': 'b', 'label': 1}]


@pytest.mark.unit
def test_bar_without_value_keys_counts_rows():
    rows = [{'g': 'b'}, {'g': 'a'}, {'g': 'b'}]
    series = prepare_visual_data(rows, chart('bar', 'g'))
    assert series == [{'g': 'a', 'count': 1}, {'g': 'b', 'count': 2}]


@pytest.mark.unit
def test_numeric_axis_binned_into_ten_ranges():
    """More than twenty distinct numbers on x are grouped into equal-width bins."""
    rows = [{'age': a, 'score': 1} for a in range(0, 100)]
    series = prepare_visual_data(rows, chart('bar', 'age', ['score']))

    assert len(series) == 10
    assert series[0]['age'] == '0 - 9.9'
    assert series[1]['age'] == '9.9 - 19.8'
    assert series[-1]['age'] == '89.1 - 99'
    assert all(s['score'] == 1.0 for s in series)


@pytest.mark.unit
def test_binning_puts_text_in_unknown_bin():
    rows = [{'x': i} for i in range(30)] + [{'x': 'n/a'}]
    series = prepare_visual_data(rows, chart('bar', 'x'))
    assert series[-1] == {'x': UNKNOWN_LABEL, 'count': 1}
    assert sum(s['count'] for s in series) == 31


@pytest.mark.unit
def test_low_cardinality_numeric_axis_not_binned():
    rows = [{'x': i % 5} for i in range(50)]
    series = prepare_visual_data(rows, chart('bar', 'x'))
    assert [s['x'] for s in series] == ['0', '1', '2', '3', '4']


@pytest.mark.unit
def test_high_cardinality_text_axis_collapsed():
    """More than 25 distinct categories keep the top 20 and merge the rest."""
    rows = []
    for i in range(30):
        rows.extend({'city': f"City {i}"} for _ in range(30 - i))
    series = prepare_visual_data(rows, chart('bar', 'city'))

    labels = [s['city'] for s in series]
    assert len(series) == 21
    assert labels[-1] == OTHERS_LABEL
    assert 'City 0' in labels and 'City 19' in labels and 'City 20' not in labels
    others = series[-1]['count']
    assert others == sum(30 - i for i in range(20, 30))


@pytest.mark.unit
def test_line_sorted_chronologically():
    rows = [{'when': d, 'v': 1} for d in ['2024-03-01', '2024-01-15', '2023-12-31']]
    series = prepare_visual_data(rows, chart('line', 'when', ['v']))
    assert [s['when'] for s in series] == ['2023-12-31', '2024-01-15', '2024-03-01']


@pytest.mark.unit
def test_compare_labels_rules():
    assert compare_labels(UNKNOWN_LABEL, 'a') == 1
    assert compare_labels('a', OTHERS_LABEL) == -1
    assert compare_labels(UNKNOWN_LABEL, OTHERS_LABEL) == -1
    assert compare_labels(OTHERS_LABEL, OTHERS_LABEL) == 0
    assert compare_labels('10 - 20', '9 - 10') == 1
    assert compare_labels('Jan 5, 2024', 'Feb 1, 2023') == 1
    assert compare_labels('item2', 'Item10') == -1
    assert compare_labels('apple', 'Banana') == -1


@pytest.mark.unit
def test_sort_is_natural_for_text():
    rows = [{'name': n} for n in ['file10', 'file2', 'File1']]
    series = prepare_visual_data(rows, chart('bar', 'name'))
    assert [s['name'] for s in series] == ['File1', 'file2', 'file10']


@pytest.mark.unit
def test_bin_labels_no_spread():
    assert bin_labels([5, 5, 5]) is None
    assert bin_labels(['a', 'b']) is None


@pytest.mark.unit
def test_format_bin_edge():
    assert format_bin_edge(10.0) == '10'
    assert format_bin_edge(2.25) == '2.3'
    assert format_bin_edge(-2.25) == '-2.3'
    assert format_bin_edge(-0.0) == '0'


@pytest.mark.unit
def test_rows_are_not_modified():
    rows = [{'g': 'a', 'v': 1}, {'g': 'b', 'v': 'x'}]
    before = copy.deepcopy(rows)
    for kind in ('bar', 'line', 'pie', 'scatter'):
        prepare_visual_data(rows, chart(kind, 'g', ['v']))
    assert rows == before


@pytest.mark.unit
def test_empty_rows():
    for kind in ('bar', 'line', 'pie', 'scatter'):
        assert prepare_visual_data([], chart(kind, 'x', ['y'])) == []


@pytest.mark.unit
def test_pie_keeps_category_spelled_none():
    rows = [{'discount': 'None'}, {'discount': 'None'}, {'discount': '10%'}, {'discount': None}]
    series = prepare_visual_data(rows, chart('pie', 'discount'))
    assert series == [{'name': 'None', 'value': 2}, {'name': '10%', 'value': 1}]


@pytest.mark.unit
def test_bar_mean_rounds_halves_up():
    rows = [{'g': 'a', 'v': 0.25}, {'g': 'a', 'v': 0}]
    assert prepare_visual_data(rows, chart('bar', 'g', ['v']))[0]['v'] == 0.13


@pytest.mark.unit
def test_unknown_sorts_before_others():
    labels = ['Others', 'b', 'Unknown', 'a']
    rows = [{'x': label} for label in labels]
    series = prepare_visual_data(rows, chart('bar', 'x'))
    assert [s['x'] for s in series] == ['a', 'b', 'Unknown', 'Others']


@pytest.mark.unit
def test_relative_date_words_sort_as_text():
    assert compare_labels('today', 'now') == 1
    assert compare_labels('now', 'today') == -1


@pytest.mark.unit
def test_prepare_is_repeatable():
    """The same rows and chart always give the same series."""
    rows = [{'v': i * 1.5, 'w': i % 7} for i in range(40)] + [{'v': 'n/a', 'w': 1}]
    config = chart('bar', 'v', ['w'])
    first = prepare_visual_data(rows, config)
    assert len(first) == 11
    assert prepare_visual_data(rows, config) == first
    assert prepare_visual_data(rows, chart('pie', 'w')) == prepare_visual_data(rows, chart('pie', 'w'))
