"""
Shared test fixtures for the ring assembly and rasterization test suite.

Provides synthetic test data (segments, Overpass elements, contours)
so that unit tests can run without OSM extracts or heavy dependencies.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the mapcore directory is on sys.path so service imports work
MAPCORE_DIR = Path(__file__).parent.parent
if str(MAPCORE_DIR) not in sys.path:
    sys.path.insert(0, str(MAPCORE_DIR))


class FakeJob:
    """Collects add_log() calls the way a generation job would."""

    def __init__(self):
        self.logs = []

    def add_log(self, message: str, level: str = "info"):
        self.logs.append((level, message))


@pytest.fixture
def fake_job():
    return FakeJob()


# ---------------------------------------------------------------------------
# Segment fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def seg():
    """
    Factory for segments between numbered nodes.

    Node n sits at lat=n, lon=n/2, so equal ids mean equal positions.
    """
    from services.ring_assembler import NodeDesc, NodeDescPair

    def _make(id1: int, id2: int, is_inner: bool = False) -> NodeDescPair:
        return NodeDescPair(
            NodeDesc.from_coords(id1, float(id1), id1 / 2),
            NodeDesc.from_coords(id2, float(id2), id2 / 2),
            is_inner,
        )

    return _make


@pytest.fixture
def triangle_segments(seg):
    return [seg(1, 2), seg(2, 3), seg(3, 1)]


@pytest.fixture
def open_segments(seg):
    """Two segments that share no endpoint."""
    return [seg(1, 2), seg(3, 4)]


# ---------------------------------------------------------------------------
# Overpass element fixtures
# ---------------------------------------------------------------------------

def _node(node_id, lat, lon):
    return {"type": "node", "id": node_id, "lat": lat, "lon": lon}


@pytest.fixture
def lake_with_island_elements():
    """
    Overpass ``out body`` elements for a square lake with a square island,
    one broken multipolygon and one non-multipolygon relation.
    """
    return [
        # Outer square
        _node(1, 0.0, 0.0),
        _node(2, 0.0, 10.0),
        _node(3, 10.0, 10.0),
        _node(4, 10.0, 0.0),
        # Island
        _node(5, 3.0, 3.0),
        _node(6, 3.0, 7.0),
        _node(7, 7.0, 7.0),
        _node(8, 7.0, 3.0),
        {"type": "way", "id": 100, "nodes": [1, 2, 3, 4, 1], "tags": {}},
        {"type": "way", "id": 101, "nodes": [5, 6, 7, 8, 5], "tags": {}},
        {"type": "way", "id": 102, "nodes": [1, 2], "tags": {}},
        {
            "type": "relation",
            "id": 1000,
            "members": [
                {"type": "way", "ref": 100, "role": "outer"},
                {"type": "way", "ref": 101, "role": "inner"},
                {"type": "way", "ref": 999, "role": "outer"},
                {"type": "node", "ref": 1, "role": "label"},
            ],
            "tags": {"type": "multipolygon", "natural": "water", "name": "Test Lake"},
        },
        {
            "type": "relation",
            "id": 1001,
            "members": [{"type": "way", "ref": 102, "role": "outer"}],
            "tags": {"type": "multipolygon", "landuse": "forest"},
        },
        {
            "type": "relation",
            "id": 1002,
            "members": [{"type": "way", "ref": 100, "role": ""}],
            "tags": {"type": "route", "route": "hiking"},
        },
    ]


# ---------------------------------------------------------------------------
# Contour fixtures (pixel space)
# ---------------------------------------------------------------------------

@pytest.fixture
def rectangle_edges():
    """Edges of the rectangle (0,0)-(10,0)-(10,5)-(0,5)-(0,0)."""
    return [
        ((0, 0), (10, 0)),
        ((10, 0), (10, 5)),
        ((10, 5), (0, 5)),
        ((0, 5), (0, 0)),
    ]


@pytest.fixture
def diamond_points():
    return [(5, 0), (10, 5), (5, 10), (0, 5)]
