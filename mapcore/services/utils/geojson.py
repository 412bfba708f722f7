"""
GeoJSON export of assembled multipolygons.

Common patterns for turning assembled rings into GeoJSON features:
coordinate lookup, ring closing, hole assignment and winding order.
"""

from __future__ import annotations

import logging

from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import mapping
from shapely.geometry.polygon import orient

logger = logging.getLogger(__name__)


def close_ring(coords: list[list[float]]) -> list[list[float]]:
    """
    Ensure a coordinate ring is closed (first point == last point).

    If the ring is already closed, returns it unchanged.
    If not, appends a copy of the first point.
    """
    if coords and coords[0] != coords[-1]:
        coords.append(coords[0])
    return coords


def polygon_coords(polygon: list[int], node_storage) -> list[list[float]]:
    """
    Look up the [lng, lat] coordinates of a polygon's nodes.

    Args:
        polygon: Local node ids in walk order (open ring)
        node_storage: EntityStorage of RawNode

    Returns:
        Closed ring of [lng, lat] pairs
    """
    ring = []
    for node_id in polygon:
        node = node_storage.entities[node_id]
        ring.append([node.lon, node.lat])
    return close_ring(ring)


def make_polygon_or_multi(shells: list[ShapelyPolygon]) -> dict:
    """
    Construct a GeoJSON Polygon or MultiPolygon geometry from shells with holes.

    Shells are oriented counter-clockwise and holes clockwise (RFC 7946).
    """
    oriented = [orient(shell, sign=1.0) for shell in shells]
    if len(oriented) == 1:
        return mapping(oriented[0])
    return {
        "type": "MultiPolygon",
        "coordinates": [mapping(poly)["coordinates"] for poly in oriented],
    }


def multipolygon_to_geojson(
    multipolygon,
    polygon_storage: list[list[int]],
    polygon_is_inner: list[bool],
    node_storage,
) -> dict | None:
    """
    Convert an assembled multipolygon to a GeoJSON Feature.

    Every inner ring is attached as a hole to the first outer ring that
    contains it. Inner rings outside every outer ring are dropped.

    Args:
        multipolygon: Multipolygon record (global_id, polygon_ids, tags)
        polygon_storage: Node id sequences indexed by polygon id
        polygon_is_inner: Inner flag per polygon id
        node_storage: EntityStorage of RawNode

    Returns:
        GeoJSON Feature dict, or None if the relation has no outer ring
    """
    outers: list[list[list[float]]] = []
    inners: list[list[list[float]]] = []
    for polygon_id in multipolygon.polygon_ids:
        ring = polygon_coords(polygon_storage[polygon_id], node_storage)
        (inners if polygon_is_inner[polygon_id] else outers).append(ring)

    if not outers:
        logger.debug(f"Relation #{multipolygon.global_id} has no outer ring, skipping GeoJSON export")
        return None

    outer_shapes = [ShapelyPolygon(ring) for ring in outers]
    holes: list[list[list[list[float]]]] = [[] for _ in outers]
    for ring in inners:
        inner_shape = ShapelyPolygon(ring)
        for idx, outer_shape in enumerate(outer_shapes):
            if outer_shape.contains(inner_shape.representative_point()):
                holes[idx].append(ring)
                break
        else:
            logger.debug(
                f"Relation #{multipolygon.global_id}: inner ring outside every outer ring dropped"
            )

    shells = [ShapelyPolygon(outer, hole_rings) for outer, hole_rings in zip(outers, holes)]

    return {
        "type": "Feature",
        "geometry": make_polygon_or_multi(shells),
        "properties": {"osm_id": multipolygon.global_id, **multipolygon.tags},
    }
