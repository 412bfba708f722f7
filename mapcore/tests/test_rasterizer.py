"""Tests for services/rasterizer.py — scanline polygon fill."""

from __future__ import annotations

import pytest

RED = (255, 0, 0)


def _rows(figure):
    """Map y -> sorted x values of a figure."""
    rows = {}
    for (x, y), _ in figure:
        rows.setdefault(y, []).append(x)
    return {y: sorted(xs) for y, xs in rows.items()}


class TestRgbaColor:
    """Test fill color blending."""

    def test_opaque(self):
        from services.rasterizer import RgbaColor
        assert RgbaColor.from_color(RED, 1.0) == RgbaColor(255, 0, 0, 255)

    def test_half_opacity(self):
        from services.rasterizer import RgbaColor
        assert RgbaColor.from_color((10, 20, 30), 0.5).a == 128

    def test_opacity_clamped(self):
        from services.rasterizer import RgbaColor
        assert RgbaColor.from_color(RED, 2.0).a == 255
        assert RgbaColor.from_color(RED, -1.0).a == 0

    def test_extra_channels_ignored(self):
        from services.rasterizer import RgbaColor
        assert RgbaColor.from_color((1, 2, 3, 4), 1.0).as_tuple() == (1, 2, 3, 255)


class TestPoint:
    """Test pixel point validation."""

    def test_float_rejected(self):
        from services.rasterizer import Point
        with pytest.raises(TypeError):
            Point(1.5, 2)


class TestFillContour:
    """Test scanline filling of edge streams."""

    def test_rectangle_fills_inclusive_block(self, rectangle_edges):
        from services.rasterizer import fill_contour
        figure = fill_contour(rectangle_edges, RED, 1.0)
        expected = {(x, y) for x in range(11) for y in range(6)}
        assert {xy for xy, _ in figure} == expected
        assert len(figure) == 66

    def test_rectangle_boundary_rows(self, rectangle_edges):
        from services.rasterizer import fill_contour
        rows = _rows(fill_contour(rectangle_edges, RED, 1.0))
        assert rows[0] == list(range(11))
        assert rows[5] == list(range(11))

    def test_rectangle_edge_order_irrelevant(self, rectangle_edges):
        from services.rasterizer import fill_contour
        forward = fill_contour(rectangle_edges, RED, 1.0)
        backward = fill_contour(list(reversed(rectangle_edges)), RED, 1.0)
        assert forward == backward

    def test_every_pixel_has_fill_color(self, rectangle_edges):
        from services.rasterizer import RgbaColor, fill_contour
        figure = fill_contour(rectangle_edges, (0, 128, 255), 0.5)
        expected = RgbaColor.from_color((0, 128, 255), 0.5)
        assert all(color == expected for _, color in figure)

    def test_single_point_polygon_is_empty(self):
        from services.rasterizer import fill_contour
        edges = [((3, 3), (3, 3))] * 4
        assert len(fill_contour(edges, RED, 1.0)) == 0

    def test_no_edges(self):
        from services.rasterizer import fill_contour
        assert len(fill_contour([], RED, 1.0)) == 0

    def test_single_edge_is_dropped(self):
        from services.rasterizer import fill_contour
        # One crossing per row: the orphan edge is dropped, not an error
        assert len(fill_contour([((0, 0), (0, 5))], RED, 1.0)) == 0

    def test_idempotent(self, diamond_points):
        from services.rasterizer import fill_contour, polygon_edges
        edges = polygon_edges(diamond_points)
        assert fill_contour(edges, RED, 0.7) == fill_contour(edges, RED, 0.7)

    def test_accepts_generator(self, rectangle_edges):
        from services.rasterizer import fill_contour
        figure = fill_contour((edge for edge in rectangle_edges), RED, 1.0)
        assert len(figure) == 66

    def test_diamond_top_vertex_poisoned(self, diamond_points):
        from services.rasterizer import fill_contour, polygon_edges
        rows = _rows(fill_contour(polygon_edges(diamond_points), RED, 1.0))
        # Both edges leave the top vertex downwards: no crossing on row 0
        assert 0 not in rows
        assert rows[3] == list(range(2, 9))
        assert rows[5] == list(range(11))
        assert rows[7] == list(range(2, 9))
        # Both edges arrive at the bottom vertex: it pairs with itself
        assert rows[10] == [5]

    def test_hole_left_empty(self):
        from services.rasterizer import fill_polygons
        outer = [(0, 0), (10, 0), (10, 10), (0, 10)]
        hole = [(3, 3), (7, 3), (7, 7), (3, 7)]
        figure = fill_polygons([outer, hole], RED, 1.0)
        assert (5, 5) not in figure
        assert (1, 5) in figure
        assert (9, 5) in figure
        assert _rows(figure)[5] == [0, 1, 2, 3, 7, 8, 9, 10]

    def test_shallow_edge_spans_whole_row_run(self):
        from services.rasterizer import fill_contour
        # A near-horizontal edge visits several columns on the same row
        edges = [((0, 0), (8, 2)), ((8, 2), (0, 4)), ((0, 4), (0, 0))]
        rows = _rows(fill_contour(edges, RED, 1.0))
        assert rows[2] == list(range(9))


class TestPolygonEdges:
    """Test cyclic edge construction."""

    def test_closes_loop(self):
        from services.rasterizer import Point, polygon_edges
        edges = polygon_edges([(0, 0), (4, 0), (4, 4)])
        assert len(edges) == 3
        assert edges[-1] == (Point(4, 4), Point(0, 0))

    def test_too_few_points(self):
        from services.rasterizer import polygon_edges
        assert polygon_edges([(1, 1)]) == []
        assert polygon_edges([]) == []

    def test_explicitly_closed_ring_fills_the_same(self, diamond_points):
        from services.rasterizer import fill_contour, polygon_edges
        open_ring = fill_contour(polygon_edges(diamond_points), RED, 1.0)
        closed_ring = fill_contour(polygon_edges(diamond_points + diamond_points[:1]), RED, 1.0)
        assert open_ring == closed_ring


class TestFigure:
    """Test the sparse pixel map."""

    def test_bounding_box(self, rectangle_edges):
        from services.rasterizer import fill_contour
        assert fill_contour(rectangle_edges, RED, 1.0).bounding_box() == (0, 0, 10, 5)

    def test_empty_bounding_box(self):
        from services.rasterizer import Figure
        assert Figure().bounding_box() is None

    def test_to_array_clips(self, rectangle_edges):
        from services.rasterizer import fill_contour
        canvas = fill_contour(rectangle_edges, RED, 1.0).to_array(8, 4)
        assert canvas.shape == (4, 8, 4)
        assert canvas.dtype.name == "uint8"
        assert (canvas[..., 3] == 255).all()
        assert tuple(canvas[0, 0]) == (255, 0, 0, 255)

    def test_to_array_transparent_background(self, diamond_points):
        from services.rasterizer import fill_polygons
        canvas = fill_polygons([diamond_points], RED, 1.0).to_array(12, 12)
        assert tuple(canvas[0, 0]) == (0, 0, 0, 0)
        assert tuple(canvas[5, 5]) == (255, 0, 0, 255)

    def test_to_image(self, rectangle_edges):
        from services.rasterizer import fill_contour
        image = fill_contour(rectangle_edges, RED, 1.0).to_image(20, 10)
        assert image.mode == "RGBA"
        assert image.size == (20, 10)
        assert image.getpixel((10, 5)) == (255, 0, 0, 255)
        assert image.getpixel((11, 5)) == (0, 0, 0, 0)


class TestFillStyled:
    """Test named fill styles."""

    def test_water_style(self, diamond_points):
        from config import FILL_STYLES
        from services.rasterizer import RgbaColor, fill_styled
        figure = fill_styled([diamond_points], "water")
        style = FILL_STYLES["water"]
        assert figure.get(5, 5) == RgbaColor.from_color(style["color"], style["opacity"])

    def test_unknown_style(self, diamond_points):
        from services.rasterizer import fill_styled
        with pytest.raises(KeyError):
            fill_styled([diamond_points], "lava")
