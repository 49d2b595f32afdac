"""Tests for the coordinate mapper, line rasterizer and color helpers."""

import pytest

from snapink.editor.geometry import (
    Point,
    Rect,
    Size,
    line_points,
    linear_to_srgb,
    map_to_image,
    normalize_rect,
    srgb_to_linear,
)


class TestMapToImage:
    def test_scales_up_to_true_size(self):
        result = map_to_image(Point(50, 50), Size(100, 100), Size(200, 200))
        assert result == Point(100, 100)

    def test_axes_scale_independently(self):
        result = map_to_image(Point(30, 40), Size(60, 200), Size(120, 100))
        assert result.x == pytest.approx(60)
        assert result.y == pytest.approx(20)

    def test_no_clamping(self):
        result = map_to_image(Point(-10, 150), Size(100, 100), Size(200, 200))
        assert result == Point(-20, 300)


class TestLinePoints:
    def test_horizontal_segment(self):
        assert line_points(0, 0, 5, 0) == [(0, 0), (1, 0), (2, 0), (3, 0), (4, 0), (5, 0)]

    def test_vertical_segment_backwards(self):
        assert line_points(2, 3, 2, 0) == [(2, 3), (2, 2), (2, 1), (2, 0)]

    def test_single_point(self):
        assert line_points(7, 7, 7, 7) == [(7, 7)]

    def test_diagonal(self):
        assert line_points(0, 0, 3, 3) == [(0, 0), (1, 1), (2, 2), (3, 3)]

    @pytest.mark.parametrize("end", [(10, 3), (-4, 9), (3, -10), (-7, -2)])
    def test_endpoints_included_without_gaps(self, end):
        points = line_points(0, 0, *end)

        assert points[0] == (0, 0)
        assert points[-1] == end
        assert len(points) == len(set(points))
        assert len(points) == max(abs(end[0]), abs(end[1])) + 1
        for (x0, y0), (x1, y1) in zip(points, points[1:]):
            assert abs(x1 - x0) <= 1 and abs(y1 - y0) <= 1


class TestNormalizeRect:
    def test_forward_drag(self):
        assert normalize_rect(Point(10, 10), Point(110, 60)) == Rect(10, 10, 100, 50)

    def test_reversed_drag_flips_to_top_left(self):
        rect = normalize_rect(Point(110, 60), Point(10, 10))
        assert rect == Rect(10, 10, 100, 50)
        assert (rect.right, rect.bottom) == (110, 60)


class TestColorConversion:
    def test_extremes(self):
        assert linear_to_srgb((0.0, 1.0, -0.5)) == (0, 255, 0)

    def test_default_pen_color(self):
        assert linear_to_srgb((0.9, 0.3, 0.24)) == (243, 148, 133)

    def test_round_trip_is_close(self):
        back = linear_to_srgb(srgb_to_linear((200, 100, 30)))
        for expected, actual in zip((200, 100, 30), back):
            assert abs(expected - actual) <= 1
