"""
Tests for the pure numeric GCODE helpers (arc geometry, splitting, formatting).
"""

import math

import numpy as np
import pytest

from gcodexform.gcode.utils import (
    arc_segment_count,
    arc_sweep,
    calculate_distance,
    format_gcode_number,
    ijk_to_center,
    interpolate_arc,
    quantize,
    radius_to_center,
    split_into_segments,
)
from gcodexform.utils.errors import GeometryError

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "value, decimals, expected",
    [
        (1.0, 4, "1"),
        (2.5, 4, "2.5"),
        (1.23456, 4, "1.2346"),
        (-0.00001, 4, "0"),
        (-1.5, 4, "-1.5"),
        (10.0, 0, "10"),
        (0.126, 2, "0.13"),
    ],
)
def test_format_gcode_number(value, decimals, expected):
    assert format_gcode_number(value, decimals) == expected


def test_distance():
    assert calculate_distance((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)


def test_ijk_to_center():
    assert ijk_to_center((1, 2), (3, -1)) == (4, 1)


class TestRadiusToCenter:
    def test_short_clockwise_arc_centre_is_on_the_right(self):
        cx, cy = radius_to_center((0, 0), (10, 0), 10, clockwise=True)
        assert cx == pytest.approx(5)
        assert cy == pytest.approx(-math.sqrt(75))

    def test_short_counter_clockwise_arc_centre_is_on_the_left(self):
        cx, cy = radius_to_center((0, 0), (10, 0), 10, clockwise=False)
        assert cy == pytest.approx(math.sqrt(75))

    def test_negative_radius_selects_long_arc(self):
        cx, cy = radius_to_center((0, 0), (10, 0), -10, clockwise=True)
        assert cy == pytest.approx(math.sqrt(75))

    def test_semicircle(self):
        assert radius_to_center((0, 0), (10, 0), 5, clockwise=True) == pytest.approx((5, 0))

    def test_small_overshoot_within_tolerance(self):
        assert radius_to_center((0, 0), (10.001, 0), 5, clockwise=True, tolerance=0.01) == pytest.approx((5.0005, 0))

    @pytest.mark.parametrize(
        "start, end, radius",
        [
            ((0, 0), (10, 0), 0.0),  # zero radius
            ((0, 0), (0, 0), 5.0),  # full circle has no unique centre
            ((0, 0), (20, 0), 5.0),  # radius too small
        ],
    )
    def test_degenerate(self, start, end, radius):
        with pytest.raises(GeometryError):
            radius_to_center(start, end, radius, clockwise=True)


class TestSweep:
    def test_quarter_turn(self):
        start_angle, sweep = arc_sweep((1, 0), (0, 1), (0, 0), clockwise=False)
        assert start_angle == pytest.approx(0)
        assert sweep == pytest.approx(math.pi / 2)

    def test_clockwise_goes_the_long_way(self):
        _, sweep = arc_sweep((1, 0), (0, 1), (0, 0), clockwise=True)
        assert sweep == pytest.approx(-3 * math.pi / 2)

    def test_coincident_points_are_a_full_turn(self):
        _, sweep = arc_sweep((1, 0), (1, 0), (0, 0), clockwise=False)
        assert sweep == pytest.approx(2 * math.pi)

    def test_extra_turns(self):
        _, sweep = arc_sweep((1, 0), (1, 0), (0, 0), clockwise=True, turns=3)
        assert sweep == pytest.approx(-6 * math.pi)


class TestSegmentCount:
    def test_chord_error_formula(self):
        # 2 * acos(1 - 0.1 / 5) ~= 0.4007 rad per segment
        assert arc_segment_count(5, math.pi, 0.1) == 8

    def test_angle_cap(self):
        assert arc_segment_count(5, math.pi, 1.0) == 3
        assert arc_segment_count(5, math.pi, 1.0, max_angle=math.radians(7)) == 26

    def test_tolerance_larger_than_radius(self):
        assert arc_segment_count(0.01, math.pi, 1.0) == 1

    def test_full_turn_never_collapses(self):
        assert arc_segment_count(0.04, 2 * math.pi, 0.1) == 3
        assert arc_segment_count(0.04, -2 * math.pi, 0.1) == 3

    def test_tolerance_must_be_positive(self):
        with pytest.raises(ValueError):
            arc_segment_count(5, math.pi, 0)


class TestInterpolateArc:
    def test_semicircle_fidelity(self):
        points = interpolate_arc((0, 0), (10, 0), (5, 0), clockwise=True, tolerance=0.1)
        assert points.shape == (8, 2)
        # Exact declared end point
        assert tuple(points[-1]) == (10.0, 0.0)
        radii = np.hypot(points[:, 0] - 5, points[:, 1])
        np.testing.assert_allclose(radii, 5.0)
        # Clockwise from (0, 0) about (5, 0) passes above the centre
        assert np.all(points[:-1, 1] > 0)
        # Chord midpoints stay within tolerance of the arc
        path = np.vstack([[0.0, 0.0], points])
        mids = (path[1:] + path[:-1]) / 2
        assert np.all(5.0 - np.hypot(mids[:, 0] - 5, mids[:, 1]) <= 0.1 + 1e-9)

    def test_full_circle(self):
        points = interpolate_arc((5, 0), (5, 0), (0, 0), clockwise=False, tolerance=0.01)
        assert len(points) == arc_segment_count(5, 2 * math.pi, 0.01)
        assert tuple(points[-1]) == (5.0, 0.0)
        np.testing.assert_allclose(np.hypot(points[:, 0], points[:, 1]), 5.0)

    def test_helix_interpolates_extra_axes(self):
        points = interpolate_arc((0, 0, 0, 0), (10, 0, 4, 90), (5, 0), clockwise=True, tolerance=0.1)
        assert tuple(points[-1]) == (10.0, 0.0, 4.0, 90.0)
        assert np.all(np.diff(points[:, 2]) > 0)
        np.testing.assert_allclose(points[:, 3], points[:, 2] * 22.5)

    def test_spiral_within_radius_tolerance(self):
        points = interpolate_arc((0, 0), (10.004, 0), (5, 0), clockwise=True, tolerance=0.1, radius_tolerance=0.01)
        assert tuple(points[-1]) == (10.004, 0.0)

    def test_radius_mismatch(self):
        with pytest.raises(GeometryError):
            interpolate_arc((0, 0), (12, 0), (5, 0), clockwise=True, tolerance=0.1)

    def test_zero_radius(self):
        with pytest.raises(GeometryError):
            interpolate_arc((0, 0), (1, 0), (0, 0), clockwise=True, tolerance=0.1)


def test_split_into_segments():
    points = split_into_segments((0, 0, 0), (30, 0, 0), 10)
    assert points.shape == (3, 3)
    np.testing.assert_allclose(points[:, 0], [10, 20, 30])
    assert tuple(points[-1]) == (30.0, 0.0, 0.0)


def test_split_short_move_is_single_point():
    points = split_into_segments((0, 0, 0), (3, 4, 0), 10)
    assert points.shape == (1, 3)


def test_quantize_keeps_last_row_exact():
    points = np.array([[1.234567, 2.0], [3.333333333, 4.0]])
    out = quantize(points, 3)
    assert tuple(out[0]) == pytest.approx((1.235, 2.0))
    assert tuple(out[-1]) == (3.333333333, 4.0)


def test_quantize_relative_to_origin():
    out = quantize(np.array([[0.11111, 0.0], [1.0, 1.0]]), 2, origin=[0.005, 0.0])
    assert out[0, 0] - 0.005 == pytest.approx(0.11)
