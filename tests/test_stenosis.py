import math

import pytest

from Model.stenosis import StenosisResult, compute_stenosis, format_percent


def test_equal_calibers_give_full_percentages():
    assert compute_stenosis([10, 10, 10]) == StenosisResult(100.0, 100.0)


@pytest.mark.parametrize("lengths", [[4, 10, 10], [10, 4, 10], [10, 10, 4]])
def test_narrowest_is_compared_to_references(lengths):
    result = compute_stenosis(lengths)
    assert result.diameter == pytest.approx(40.0)
    assert result.area == pytest.approx(16.0)


def test_unequal_references():
    result = compute_stenosis([3.0, 6.0, 4.0])
    assert result.diameter == pytest.approx(2 * 3 / 10 * 100)
    expected_area = 2 * math.pi * 1.5 ** 2 / (math.pi * 2 ** 2 + math.pi * 3 ** 2) * 100
    assert result.area == pytest.approx(expected_area)


@pytest.mark.parametrize("lengths", [[], [5], [5, 6], [1, 2, 3, 4]])
def test_needs_exactly_three_lengths(lengths):
    assert compute_stenosis(lengths) is None


def test_zero_references_give_none():
    assert compute_stenosis([0, 0, 0]) is None


def test_accepts_generators():
    assert compute_stenosis(v for v in (10, 10, 10)).diameter == pytest.approx(100.0)


def test_format_percent():
    assert format_percent(None) == "-"
    assert format_percent(40) == "40.00%"
    assert format_percent(33.33333) == "33.33%"
