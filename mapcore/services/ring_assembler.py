"""
Multipolygon ring assembly.

Rebuilds closed polygon rings from the unordered, undirected segments of a
multipolygon relation:
- Endpoints are matched by the exact bit pattern of their coordinates
  (no float tolerance)
- Inner and outer segments never join the same ring
- Rings are grown with an iterative depth-first search that provisionally
  includes a segment and rolls it back when the branch cannot close

A relation whose segments cannot be fully partitioned into closed rings of
at least MIN_RING_SEGMENTS segments is rejected as a whole with
ReconstructionFailure; callers drop it and move on to the next relation.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional, Sequence

from config import MIN_RING_SEGMENTS

logger = logging.getLogger(__name__)

# (lat bits, lon bits) of a node position
NodePos = tuple[int, int]

# Node ids in walk order; the last node implicitly connects back to the first
Polygon = list[int]

# Segment indices in walk order
Ring = list[int]


def float_bits(value: float) -> int:
    """Return the raw IEEE-754 bit pattern of a double as an unsigned int."""
    return struct.unpack("<Q", struct.pack("<d", value))[0]


def position_key(lat: float, lon: float) -> NodePos:
    """Exact identity of a coordinate pair, safe for hashing and equality."""
    return (float_bits(lat), float_bits(lon))


@dataclass(frozen=True)
class NodeDesc:
    """Segment endpoint: node id plus the bit-exact key of its position."""
    id: int
    pos: NodePos

    @classmethod
    def from_coords(cls, node_id: int, lat: float, lon: float) -> "NodeDesc":
        return cls(node_id, position_key(lat, lon))


@dataclass(frozen=True)
class NodeDescPair:
    """Undirected relation segment between two consecutive way nodes."""
    node1: NodeDesc
    node2: NodeDesc
    is_inner: bool = False


class ReconstructionFailure(Exception):
    """The segments of a relation do not form a set of closed rings."""

    def __init__(self, relation_id: int, complete_rings: int, unmatched_segments: int):
        self.relation_id = relation_id
        self.complete_rings = complete_rings
        self.unmatched_segments = unmatched_segments
        super().__init__(
            f"Relation #{relation_id} is not a valid multipolygon "
            f"(built {complete_rings} complete rings, but "
            f"{unmatched_segments} segments are unmatched)"
        )


# ---------------------------------------------------------------------------
# Adjacency
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConnectedSegment:
    """Adjacency entry: a segment seen from one of its endpoints."""
    other_side: NodePos
    segment_index: int
    is_inner: bool


SegmentConnections = dict[NodePos, list[ConnectedSegment]]


def get_connections(segments: Sequence[NodeDescPair]) -> SegmentConnections:
    """
    Index every segment under both of its endpoint positions.

    Entries are registered in segment order, node1 side first, which fixes
    the exploration order of the ring search.
    """
    connections: SegmentConnections = {}
    for idx, seg in enumerate(segments):
        connections.setdefault(seg.node1.pos, []).append(
            ConnectedSegment(seg.node2.pos, idx, seg.is_inner)
        )
        connections.setdefault(seg.node2.pos, []).append(
            ConnectedSegment(seg.node1.pos, idx, seg.is_inner)
        )
    return connections


# ---------------------------------------------------------------------------
# Ring search
# ---------------------------------------------------------------------------

class CurrentRing:
    """Backtracking state of the ring being grown from one seed segment."""

    def __init__(self, available: list[bool], start_idx: int, start_segment: NodeDescPair):
        self.available = available
        self.used_segments: Ring = [start_idx]
        self.used_vertices: set[NodePos] = {start_segment.node1.pos, start_segment.node2.pos}
        self.first_pos = start_segment.node1.pos
        self.is_inner = start_segment.is_inner

    def include_segment(self, seg: ConnectedSegment) -> None:
        self.available[seg.segment_index] = False
        self.used_segments.append(seg.segment_index)
        self.used_vertices.add(seg.other_side)

    def exclude_segment(self, seg: ConnectedSegment) -> None:
        self.available[seg.segment_index] = True
        self.used_segments.pop()
        self.used_vertices.discard(seg.other_side)

    def is_closed_by(self, seg: ConnectedSegment) -> bool:
        return seg.other_side == self.first_pos and len(self.used_segments) >= MIN_RING_SEGMENTS

    def can_extend_with(self, seg: ConnectedSegment) -> bool:
        if seg.is_inner != self.is_inner or not self.available[seg.segment_index]:
            return False
        return seg.other_side not in self.used_vertices or seg.other_side == self.first_pos


# Search stack actions
_ROOT, _INCLUDE, _EXCLUDE = range(3)


def _push_next_segments(
    from_pos: NodePos,
    connections: SegmentConnections,
    ring: CurrentRing,
    stack: list[tuple[int, Optional[ConnectedSegment]]],
) -> None:
    # Pushed in reverse so that the first registered segment is popped first
    for seg in reversed(connections.get(from_pos, ())):
        if ring.can_extend_with(seg):
            stack.append((_EXCLUDE, seg))
            stack.append((_INCLUDE, seg))


def _find_ring_from(last_pos: NodePos, connections: SegmentConnections, ring: CurrentRing) -> bool:
    """Depth-first search for a path from last_pos back to the ring start."""
    stack: list[tuple[int, Optional[ConnectedSegment]]] = [(_ROOT, None)]

    while stack:
        action, seg = stack.pop()
        if action == _ROOT:
            _push_next_segments(last_pos, connections, ring, stack)
        elif action == _INCLUDE:
            ring.include_segment(seg)
            if ring.is_closed_by(seg):
                return True
            _push_next_segments(seg.other_side, connections, ring, stack)
        else:
            ring.exclude_segment(seg)

    return False


def _find_ring(
    segments: Sequence[NodeDescPair],
    connections: SegmentConnections,
    available: list[bool],
) -> Optional[Ring]:
    """Close one ring from the lowest-indexed seed that allows it."""
    for start_idx, start_segment in enumerate(segments):
        if not available[start_idx]:
            continue

        available[start_idx] = False
        ring = CurrentRing(available, start_idx, start_segment)
        if _find_ring_from(start_segment.node2.pos, connections, ring):
            return ring.used_segments

        available[start_idx] = True

    return None


def find_rings(relation_id: int, segments: Sequence[NodeDescPair]) -> list[Ring]:
    """
    Partition relation segments into closed rings.

    Args:
        relation_id: Relation id, used only in diagnostics
        segments: Segments of every member way of the relation

    Returns:
        Rings as lists of segment indices, in the order they were closed

    Raises:
        ReconstructionFailure: If some segments cannot be placed on a ring
    """
    connections = get_connections(segments)
    available = [True] * len(segments)
    unmatched_count = len(segments)
    rings: list[Ring] = []

    while unmatched_count > 0:
        ring = _find_ring(segments, connections, available)
        if ring is None:
            failure = ReconstructionFailure(relation_id, len(rings), unmatched_count)
            logger.warning(str(failure))
            raise failure
        unmatched_count -= len(ring)
        rings.append(ring)

    return rings


def ring_to_polygon(segments: Sequence[NodeDescPair], ring: Ring) -> Polygon:
    """
    Walk a ring's shared endpoints into a node id sequence.

    The closing segment is not walked: it only leads back to the first node.
    """
    polygon: Polygon = [segments[ring[0]].node1.id]
    for segment_index in ring[:-1]:
        seg = segments[segment_index]
        polygon.append(seg.node2.id if polygon[-1] == seg.node1.id else seg.node1.id)
    return polygon


def assemble_rings(relation_id: int, segments: Sequence[NodeDescPair]) -> list[Polygon]:
    """
    Recover every polygon of a multipolygon relation.

    Args:
        relation_id: Relation id, used only in diagnostics
        segments: Segments of every member way, tagged inner/outer

    Returns:
        One node id sequence per ring

    Raises:
        ReconstructionFailure: If the relation is malformed; no partial
            result is produced
    """
    rings = find_rings(relation_id, segments)
    logger.debug(f"Relation #{relation_id}: assembled {len(rings)} rings from {len(segments)} segments")
    return [ring_to_polygon(segments, ring) for ring in rings]
