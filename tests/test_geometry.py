import math

import pytest

from Model.geometry import (
    LineKind, Point, compute_slope, fluid_line, pixel_line, round_half_up, walk_pixels, with_endpoints
)


def test_pixel_line_example():
    line = pixel_line((0, 0), (5, 2))
    assert line.slope == (1.0, pytest.approx(0.4))
    assert line.path == ((0, 0), (1, 0), (2, 1), (3, 1), (4, 2), (5, 2))
    assert line.length == pytest.approx(5.3852, abs=1e-4)


@pytest.mark.parametrize("start,end", [
    ((0, 0), (5, 2)),
    ((3.2, 7.9), (-4.4, 1.1)),
    ((10, 10), (10.3, 2.6)),
    ((0.5, 0.5), (7.5, 9.5)),
    ((1, 1), (1, 1)),
])
def test_length_is_euclidean_for_both_kinds(start, end):
    expected = math.sqrt((end[0] - start[0]) ** 2 + (end[1] - start[1]) ** 2)
    assert fluid_line(start, end).length == pytest.approx(expected)
    assert pixel_line(start, end).length == pytest.approx(expected)


@pytest.mark.parametrize("start,end", [
    ((0, 0), (5, 2)),
    ((3.2, 7.9), (-4.4, 1.1)),
    ((10, 10), (10.3, 2.6)),
    ((0, 0), (0.3, 0.2)),
    ((0, 0), (0.1, 3)),
])
def test_pixel_path_endpoints_and_no_repeats(start, end):
    path = pixel_line(start, end).path
    assert path[0] == (round_half_up(start[0]), round_half_up(start[1]))
    assert path[-1] == (round_half_up(end[0]), round_half_up(end[1]))
    assert all(a != b for a, b in zip(path, path[1:]))


def test_slope_dominant_axis():
    assert compute_slope(Point(0, 0), Point(-4, 2)) == (-1.0, 0.5)
    assert compute_slope(Point(0, 0), Point(2, -4)) == (0.5, -1.0)
    # ties step the y axis
    assert compute_slope(Point(0, 0), Point(3, 3)) == (1.0, 1.0)
    assert compute_slope(Point(1, 1), Point(1, 1)) == (0.0, 0.0)


def test_walk_zero_length_visits_single_pixel():
    assert list(walk_pixels(Point(2.4, 3.6), Point(2.4, 3.6))) == [(2, 4)]


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(-0.5) == 0
    assert round_half_up(1.49) == 1


def test_fluid_line_has_no_path():
    line = fluid_line((0, 0), (3, 4))
    assert line.kind is LineKind.FLUID
    assert line.path == ()
    assert line.length == 5.0


def test_lines_are_immutable_values():
    line = pixel_line((0, 0), (4, 0))
    with pytest.raises(AttributeError):
        line.start = Point(1, 1)
    moved = with_endpoints(line, (0, 0), (6, 0))
    assert moved.kind is LineKind.PIXEL
    assert moved.length == 6.0
    assert line.length == 4.0
