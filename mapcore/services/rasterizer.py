"""
Scanline polygon fill.

Rasterizes polygon contours given as a stream of (start, end) point pairs
in device pixel space:
- Every edge is walked with an integer Bresenham line
- Per scanline, the column span each edge covers is recorded
- Edges touching a scanline at a local y-extremum are "poisoned" and left
  out, so tangent vertices do not flip the inside/outside state
- Remaining edges are sorted by column and filled pairwise
- Horizontal edges are filled along their whole length, so flat top and
  bottom boundary rows are part of the area

The output Figure is a sparse pixel map; compositing several figures and
encoding images is left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np
from PIL import Image

from config import DEFAULT_OPACITY, FILL_STYLES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """Integer pixel position."""
    x: int
    y: int

    def __post_init__(self):
        if not isinstance(self.x, (int, np.integer)) or not isinstance(self.y, (int, np.integer)):
            raise TypeError(f"Point coordinates must be integers, got ({self.x!r}, {self.y!r})")


@dataclass(frozen=True)
class RgbaColor:
    """8-bit RGBA color with straight (non-premultiplied) alpha."""
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def from_color(cls, color: Sequence[int], opacity: float) -> "RgbaColor":
        """
        Build the fill color for one fill pass.

        Args:
            color: (r, g, b) channels in 0-255
            opacity: Blend factor, clamped to [0, 1]
        """
        r, g, b = (max(0, min(255, int(c))) for c in color[:3])
        alpha = int(round(max(0.0, min(1.0, float(opacity))) * 255))
        return cls(r, g, b, alpha)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


class Figure:
    """Sparse (x, y) -> RgbaColor pixel map produced by one fill pass."""

    def __init__(self):
        self._pixels: dict[tuple[int, int], RgbaColor] = {}

    def add(self, x: int, y: int, color: RgbaColor) -> None:
        self._pixels[(x, y)] = color

    def get(self, x: int, y: int) -> Optional[RgbaColor]:
        return self._pixels.get((x, y))

    def __len__(self) -> int:
        return len(self._pixels)

    def __contains__(self, xy) -> bool:
        return tuple(xy) in self._pixels

    def __iter__(self) -> Iterator[tuple[tuple[int, int], RgbaColor]]:
        return iter(sorted(self._pixels.items()))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Figure):
            return NotImplemented
        return self._pixels == other._pixels

    def bounding_box(self) -> Optional[tuple[int, int, int, int]]:
        """Return (x_min, y_min, x_max, y_max) of the filled pixels, or None if empty."""
        if not self._pixels:
            return None
        xs = [x for x, _ in self._pixels]
        ys = [y for _, y in self._pixels]
        return (min(xs), min(ys), max(xs), max(ys))

    def to_array(self, width: int, height: int) -> np.ndarray:
        """
        Render the figure onto a transparent canvas.

        Pixels outside the canvas are clipped.

        Returns:
            uint8 array of shape (height, width, 4).
        """
        canvas = np.zeros((height, width, 4), dtype=np.uint8)
        for (x, y), color in self._pixels.items():
            if 0 <= x < width and 0 <= y < height:
                canvas[y, x] = color.as_tuple()
        return canvas

    def to_image(self, width: int, height: int) -> Image.Image:
        """RGBA PIL image of the figure, ready for compositing by the caller."""
        return Image.fromarray(self.to_array(width, height))


# ---------------------------------------------------------------------------
# Edge rasterization
# ---------------------------------------------------------------------------

@dataclass
class Edge:
    """Column span one input edge covers on one scanline."""
    x_min: int
    x_max: int
    is_poisoned: bool


# y -> edge index -> Edge
EdgesByY = dict[int, dict[int, Edge]]


def _draw_line(edge_idx: int, p1: Point, p2: Point, y_to_edges: EdgesByY) -> None:
    """
    Walk one edge with Bresenham's algorithm and record its spans.

    See http://members.chello.at/~easyfilter/bresenham.html
    """
    dx = abs(p2.x - p1.x)
    dy = -abs(p2.y - p1.y)
    sx = 1 if p1.x < p2.x else -1
    sy = 1 if p1.y < p2.y else -1

    err = dx + dy
    x, y = p1.x, p1.y

    while True:
        is_start = x == p1.x and y == p1.y
        is_end = x == p2.x and y == p2.y

        if is_start:
            is_poisoned = p1.y <= p2.y
        elif is_end:
            is_poisoned = p2.y <= p1.y
        else:
            is_poisoned = False

        row = y_to_edges.setdefault(y, {})
        edge = row.get(edge_idx)
        if edge is None:
            row[edge_idx] = Edge(x, x, is_poisoned)
        else:
            edge.x_min = min(edge.x_min, x)
            edge.x_max = max(edge.x_max, x)
            edge.is_poisoned |= is_poisoned

        if is_end:
            break

        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x += sx
        if e2 <= dx:
            err += dx
            y += sy


def _as_point(p) -> Point:
    return p if isinstance(p, Point) else Point(*p)


def fill_contour(
    edges: Iterable[tuple[Point, Point]],
    color: Sequence[int],
    opacity: float,
) -> Figure:
    """
    Scanline-fill the area enclosed by a set of contour edges.

    Args:
        edges: (start, end) point pairs in pixel space, in any order. Points
            may be Point instances or (x, y) integer tuples.
        color: (r, g, b) fill color
        opacity: Blend factor in [0, 1]

    Returns:
        Figure with every filled pixel set to the blended fill color.
    """
    figure = Figure()
    y_to_edges: EdgesByY = {}
    horizontal_spans: list[tuple[int, int, int]] = []
    fill_color = RgbaColor.from_color(color, opacity)

    for idx, (p1, p2) in enumerate(edges):
        p1, p2 = _as_point(p1), _as_point(p2)
        _draw_line(idx, p1, p2, y_to_edges)
        if p1.y == p2.y and p1.x != p2.x:
            horizontal_spans.append((p1.y, min(p1.x, p2.x), max(p1.x, p2.x)))

    for y, row in y_to_edges.items():
        good_edges = sorted(
            (e for e in row.values() if not e.is_poisoned),
            key=lambda e: e.x_min,
        )

        if len(good_edges) % 2:
            logger.debug(f"Scanline {y}: dropping unpaired edge at x={good_edges[-1].x_min}")

        for e1, e2 in zip(good_edges[0::2], good_edges[1::2]):
            for x in range(e1.x_min, e2.x_max + 1):
                figure.add(x, y, fill_color)

    # Flat boundary rows are poisoned at both ends; they belong to the area
    for y, x_min, x_max in horizontal_spans:
        for x in range(x_min, x_max + 1):
            figure.add(x, y, fill_color)

    return figure


# ---------------------------------------------------------------------------
# Contour helpers
# ---------------------------------------------------------------------------

def polygon_edges(points: Sequence) -> list[tuple[Point, Point]]:
    """
    Turn a cyclic point sequence into contour edges.

    The last point is joined back to the first; a repeated closing point
    only adds a zero-length edge, which is poisoned and never filled.
    """
    pts = [_as_point(p) for p in points]
    if len(pts) < 2:
        return []
    return [(pts[i], pts[(i + 1) % len(pts)]) for i in range(len(pts))]


def fill_polygons(
    polygons: Iterable[Sequence],
    color: Sequence[int],
    opacity: float,
) -> Figure:
    """
    Fill several contours in a single pass.

    Holes are cut out by the even-odd pairing, so an outer ring and its
    inner rings should be passed together.
    """
    edges: list[tuple[Point, Point]] = []
    for points in polygons:
        edges.extend(polygon_edges(points))
    return fill_contour(edges, color, opacity)


def fill_styled(polygons: Iterable[Sequence], style_name: str) -> Figure:
    """
    Fill contours with a named style from FILL_STYLES.

    Raises:
        KeyError: If the style is not configured
    """
    style = FILL_STYLES[style_name]
    return fill_polygons(polygons, style["color"], style.get("opacity", DEFAULT_OPACITY))
