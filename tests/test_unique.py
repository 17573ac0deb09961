import math

import pytest

from cocbs.unique import unique_vector


@pytest.mark.parametrize(
    "values",
    [
        [3.0, 1.0, 2.0, 1.0],
        [5.0, 5.0, 5.0],
        [-2.5, 7.0, -2.5, 0.0, 7.0, 1.5],
        [9.0],
    ],
)
def test_matches_sorted_set_for_plain_values(values):
    assert unique_vector(values) == sorted(set(values))


def test_empty_input_gives_empty_result():
    assert unique_vector([]) == []


def test_infinities_collapse_to_one_each():
    result = unique_vector([math.inf, 1.0, -math.inf, math.inf, -math.inf, 2.0])
    assert result[0] == -math.inf
    assert result[-1] == math.inf
    assert result.count(math.inf) == 1
    assert result.count(-math.inf) == 1
    assert result[1:-1] == [1.0, 2.0]


def test_every_nan_is_kept_at_the_end():
    result = unique_vector([math.nan, 2.0, math.nan, 1.0, 2.0])
    assert result[:2] == [1.0, 2.0]
    assert len(result) == 4
    assert all(math.isnan(v) for v in result[2:])


def test_result_is_strictly_increasing_without_nans():
    values = [4.0, -1.0, 3.0, 3.0, 0.5, -1.0, 10.0]
    result = unique_vector(values)
    assert all(a < b for a, b in zip(result, result[1:]))


def test_adjacent_doubles_beyond_tolerance_stay_distinct():
    above_one = math.nextafter(1.0, 2.0)
    result = unique_vector([above_one, 1.0])
    assert result == [1.0, above_one]


def test_integer_input_is_accepted():
    assert unique_vector([2, 1, 2]) == [1.0, 2.0]