"""
Multi-threaded batch ring assembly.

Each ring search keeps its working state (adjacency map, availability
flags, search stack) local to one call and shares nothing with other
calls. Relations can therefore be handed to separate threads and stay
isolated from one another. The search itself is pure Python and holds the
GIL, so the pool does not make CPU-bound assembly faster; it lets many
relations be dispatched as independent jobs with one result slot each.

This module provides:
- find_relation_rings: rings (segment indices) of many relations
- assemble_relations: polygons (node ids) of many relations

Results line up with the input: entry i belongs to relation i, and a
malformed relation leaves None in its slot. Relation ids are used only for
diagnostics and may repeat.

Usage:
    from services.utils.parallel import assemble_relations

    polygons = assemble_relations(relation_segments, workers=4)
    for (relation_id, _), relation_polygons in zip(relation_segments, polygons):
        if relation_polygons is None:
            continue  # malformed, already logged
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Sequence

from config import ASSEMBLY_WORKERS
from services.ring_assembler import (
    NodeDescPair,
    Polygon,
    ReconstructionFailure,
    Ring,
    find_rings,
    ring_to_polygon,
)

logger = logging.getLogger(__name__)


def _try_find_rings(relation_id: int, segments: Sequence[NodeDescPair]) -> Optional[list[Ring]]:
    try:
        return find_rings(relation_id, segments)
    except ReconstructionFailure:
        return None


def find_relation_rings(
    relations: Iterable[tuple[int, Sequence[NodeDescPair]]],
    workers: Optional[int] = None,
    job=None,
) -> list[Optional[list[Ring]]]:
    """
    Find the rings of many relations on a thread pool.

    Args:
        relations: (relation_id, segments) pairs
        workers: Number of threads (default: MAPCORE_WORKERS). 1 runs inline.
        job: Optional job object with add_log(message, level) for progress

    Returns:
        One entry per input pair, in input order: the relation's rings, or
        None if it is malformed.
    """
    if workers is None:
        workers = ASSEMBLY_WORKERS

    relations = list(relations)

    if workers <= 1 or len(relations) < 2:
        results = [_try_find_rings(rel_id, segs) for rel_id, segs in relations]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_try_find_rings, rel_id, segs) for rel_id, segs in relations]
            results = [future.result() for future in futures]

    dropped = sum(1 for rings in results if rings is None)
    assembled = len(results) - dropped

    logger.info(
        f"Assembled {assembled} of {len(relations)} multipolygon relations "
        f"({dropped} dropped as malformed, {workers} workers)"
    )
    if job:
        if dropped:
            job.add_log(f"Ring assembly: {assembled} relations, {dropped} dropped", "warning")
        else:
            job.add_log(f"✓ Ring assembly: {assembled} relations", "success")

    return results


def assemble_relations(
    relations: Iterable[tuple[int, Sequence[NodeDescPair]]],
    workers: Optional[int] = None,
    job=None,
) -> list[Optional[list[Polygon]]]:
    """
    Assemble the polygons of many relations on a thread pool.

    Same as find_relation_rings, but every ring is walked into a node id
    sequence using the segments of its own input entry.
    """
    relations = list(relations)
    results = find_relation_rings(relations, workers=workers, job=job)
    return [
        None if rings is None else [ring_to_polygon(segments, ring) for ring in rings]
        for (_, segments), rings in zip(relations, results)
    ]
