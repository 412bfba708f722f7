"""
In-memory OSM entity import.

Collects nodes, ways and multipolygon relations (Overpass JSON elements or
direct calls) and turns each multipolygon relation into polygons:
- Global OSM ids are translated to dense local ids
- Way node references to unknown nodes are skipped, and a node pair that
  doubles back over an already seen pair is removed
- Every member way contributes one segment per consecutive node pair,
  tagged inner/outer from the member role
- Relations whose rings cannot be assembled are logged and dropped; the
  import carries on with the next relation

Tags are stored verbatim and never interpreted, except for the
``type=multipolygon`` selector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, Iterable, Optional, TypeVar

from config import INNER_ROLE, MULTIPOLYGON_TAG, PROGRESS_LOG_INTERVAL
from services.ring_assembler import (
    NodeDesc,
    NodeDescPair,
    Polygon,
    ReconstructionFailure,
    Ring,
    find_rings,
    ring_to_polygon,
)
from services.utils.parallel import find_relation_rings

logger = logging.getLogger(__name__)

RawTags = dict[str, str]

E = TypeVar("E")


@dataclass
class RawNode:
    global_id: int
    lat: float
    lon: float
    tags: RawTags = field(default_factory=dict)


@dataclass
class RawWay:
    global_id: int
    node_ids: list[int] = field(default_factory=list)  # local node ids
    tags: RawTags = field(default_factory=dict)


@dataclass
class RelationWayRef:
    way_id: int  # local way id
    is_inner: bool


@dataclass
class RawRelation:
    global_id: int
    way_refs: list[RelationWayRef] = field(default_factory=list)
    tags: RawTags = field(default_factory=dict)

    def is_multipolygon(self) -> bool:
        key, value = MULTIPOLYGON_TAG
        return self.tags.get(key) == value


@dataclass
class Multipolygon:
    """Assembled relation: indices into the importer's polygon storage."""
    global_id: int
    polygon_ids: list[int] = field(default_factory=list)
    tags: RawTags = field(default_factory=dict)


class EntityStorage(Generic[E]):
    """Append-only entity list addressable by global OSM id."""

    def __init__(self):
        self._global_id_to_local_id: dict[int, int] = {}
        self.entities: list[E] = []

    def add(self, global_id: int, entity: E) -> int:
        local_id = len(self.entities)
        self._global_id_to_local_id[global_id] = local_id
        self.entities.append(entity)
        return local_id

    def translate_id(self, global_id: int) -> Optional[int]:
        return self._global_id_to_local_id.get(global_id)

    def get(self, global_id: int) -> Optional[E]:
        local_id = self.translate_id(global_id)
        return None if local_id is None else self.entities[local_id]

    def __len__(self) -> int:
        return len(self.entities)


def dedupe_node_refs(refs: list[int]) -> list[int]:
    """
    Drop node references that retrace an already used node pair.

    A pair counts as used in either direction, so a way running A-B-A keeps
    only A-B.
    """
    if not refs:
        return []

    seen_pairs: set[tuple[int, int]] = set()
    result = [refs[0]]
    for prev, cur in zip(refs, refs[1:]):
        if (cur, prev) in seen_pairs or (prev, cur) in seen_pairs:
            continue
        seen_pairs.add((cur, prev))
        result.append(cur)
    return result


def relation_to_segments(
    relation: RawRelation,
    nodes: EntityStorage[RawNode],
    ways: EntityStorage[RawWay],
) -> list[NodeDescPair]:
    """Split every member way of a relation into node-pair segments."""
    def node_desc(local_node_id: int) -> NodeDesc:
        node = nodes.entities[local_node_id]
        return NodeDesc.from_coords(local_node_id, node.lat, node.lon)

    segments = []
    for way_ref in relation.way_refs:
        way = ways.entities[way_ref.way_id]
        for prev, cur in zip(way.node_ids, way.node_ids[1:]):
            segments.append(NodeDescPair(node_desc(prev), node_desc(cur), way_ref.is_inner))
    return segments


class Importer:
    """
    Accumulates OSM entities and the multipolygons built from them.

    Nodes must be added before the ways that reference them, and ways
    before their relations (the usual OSM file order).
    """

    def __init__(self, job=None, progress_interval: int = PROGRESS_LOG_INTERVAL):
        self.job = job
        self.progress_interval = progress_interval
        self.node_storage: EntityStorage[RawNode] = EntityStorage()
        self.way_storage: EntityStorage[RawWay] = EntityStorage()
        self.polygon_storage: list[Polygon] = []
        self.polygon_is_inner: list[bool] = []
        self.multipolygon_storage: EntityStorage[Multipolygon] = EntityStorage()
        self.failed_relations: list[int] = []
        self._elem_count = 0

    # -- entities --------------------------------------------------------

    def add_node(self, global_id: int, lat: float, lon: float, tags: Optional[RawTags] = None) -> RawNode:
        node = RawNode(global_id, float(lat), float(lon), dict(tags or {}))
        self.node_storage.add(global_id, node)
        self._count_element()
        return node

    def add_way(self, global_id: int, node_refs: Iterable[int], tags: Optional[RawTags] = None) -> RawWay:
        node_ids = []
        for ref in node_refs:
            local_id = self.node_storage.translate_id(ref)
            if local_id is not None:
                node_ids.append(local_id)
        way = RawWay(global_id, dedupe_node_refs(node_ids), dict(tags or {}))
        self.way_storage.add(global_id, way)
        self._count_element()
        return way

    def build_relation(
        self,
        global_id: int,
        members: Iterable[dict],
        tags: Optional[RawTags] = None,
    ) -> RawRelation:
        """
        Resolve relation members into way references.

        Args:
            global_id: OSM relation id
            members: Overpass-style member dicts {"type", "ref", "role"};
                only way members that were already imported are kept
            tags: Relation tags
        """
        relation = RawRelation(global_id, tags=dict(tags or {}))
        for member in members:
            if member.get("type") != "way":
                continue
            local_id = self.way_storage.translate_id(member.get("ref"))
            if local_id is not None:
                is_inner = member.get("role", "") == INNER_ROLE
                relation.way_refs.append(RelationWayRef(local_id, is_inner))
        return relation

    def add_relation(
        self,
        global_id: int,
        members: Iterable[dict],
        tags: Optional[RawTags] = None,
    ) -> Optional[Multipolygon]:
        """
        Import one relation, assembling its rings right away.

        Returns:
            The stored Multipolygon, or None if the relation is not a
            multipolygon or its rings could not be assembled.
        """
        relation = self.build_relation(global_id, members, tags)
        if not relation.is_multipolygon():
            return None

        segments = relation_to_segments(relation, self.node_storage, self.way_storage)
        try:
            rings = find_rings(relation.global_id, segments)
        except ReconstructionFailure as e:
            self._record_failure(e.relation_id)
            return None

        multipolygon = self._store_multipolygon(relation, segments, rings)
        self._count_element()
        return multipolygon

    def import_elements(self, elements: Iterable[dict], workers: Optional[int] = None) -> None:
        """
        Import Overpass JSON elements (``out body`` format).

        Nodes and ways are stored as they come; multipolygon relations are
        collected and assembled in one parallel batch at the end.

        Args:
            elements: The "elements" list of an Overpass response
            workers: Threads for ring assembly (default: MAPCORE_WORKERS)
        """
        pending: list[tuple[RawRelation, list[NodeDescPair]]] = []

        for element in elements:
            elem_type = element.get("type")
            tags = element.get("tags", {})
            if elem_type == "node":
                self.add_node(element["id"], element["lat"], element["lon"], tags)
            elif elem_type == "way":
                self.add_way(element["id"], element.get("nodes", []), tags)
            elif elem_type == "relation":
                relation = self.build_relation(element["id"], element.get("members", []), tags)
                if relation.is_multipolygon():
                    segments = relation_to_segments(relation, self.node_storage, self.way_storage)
                    pending.append((relation, segments))

        results = find_relation_rings(
            ((rel.global_id, segs) for rel, segs in pending),
            workers=workers,
            job=self.job,
        )
        for (relation, segments), rings in zip(pending, results):
            if rings is None:
                self._record_failure(relation.global_id)
                continue
            self._store_multipolygon(relation, segments, rings)
            self._count_element()

        self.log_stats()

    # -- storage ---------------------------------------------------------

    def _store_multipolygon(
        self,
        relation: RawRelation,
        segments: list[NodeDescPair],
        rings: list[Ring],
    ) -> Multipolygon:
        multipolygon = Multipolygon(relation.global_id, tags=relation.tags)
        for ring in rings:
            multipolygon.polygon_ids.append(len(self.polygon_storage))
            self.polygon_storage.append(ring_to_polygon(segments, ring))
            self.polygon_is_inner.append(segments[ring[0]].is_inner)
        self.multipolygon_storage.add(relation.global_id, multipolygon)
        return multipolygon

    def _record_failure(self, relation_id: int) -> None:
        self.failed_relations.append(relation_id)
        logger.debug(f"Dropped relation #{relation_id}")

    def _count_element(self) -> None:
        self._elem_count += 1
        if self.progress_interval and self._elem_count % self.progress_interval == 0:
            self.log_stats()

    def log_stats(self) -> None:
        message = (
            f"Got {len(self.node_storage)} nodes, {len(self.way_storage)} ways and "
            f"{len(self.multipolygon_storage)} multipolygon relations so far"
        )
        logger.info(message)
        if self.job:
            self.job.add_log(message, "info")

    def node_coords(self, polygon: Polygon) -> list[tuple[float, float]]:
        """(lat, lon) of every node of a stored polygon, for projection."""
        return [
            (self.node_storage.entities[node_id].lat, self.node_storage.entities[node_id].lon)
            for node_id in polygon
        ]
