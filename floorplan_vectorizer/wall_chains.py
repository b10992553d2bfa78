"""
Wall Chain Builder
===================
Turns the planar graph into ordered point chains for downstream spline
building: one closed chain along the outer boundary, then one open
two-point chain per internal connection.
"""

import logging
from typing import Dict, List, Sequence, Set, Tuple
from dataclasses import dataclass, field

from .centerline import Vec3, extract_centerlines
from .config import DEFAULT_CAPTURE_SIZE, DEFAULT_CONNECTION_THRESHOLD
from .pipeline import PolygonEntry
from .room_detection import Connection, ExtractionResult, extract_room_outlines

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class ChainResult:
    """Ordered chain of world points."""
    points: List[Vec3] = field(default_factory=list)
    thickness: float = 0.1
    is_exterior: bool = False
    is_closed: bool = False


def build_outer_boundary(
    outer_ids: Set[int], connections: Dict[int, Connection], positions: Dict[int, Vec3]
) -> ChainResult:
    """Walk the outer boundary connections junction by junction."""
    adjacency: Dict[int, List[int]] = {}
    thicknesses = []

    for conn_id in sorted(outer_ids):
        conn = connections.get(conn_id)
        if conn is None:
            continue
        adjacency.setdefault(conn.junction_a, []).append(conn.junction_b)
        adjacency.setdefault(conn.junction_b, []).append(conn.junction_a)
        thicknesses.append(conn.thickness)

    thickness = sum(thicknesses) / len(thicknesses) if thicknesses else 0.1
    chain = ChainResult(thickness=thickness, is_exterior=True, is_closed=True)
    if not adjacency:
        return chain

    visited = set()
    current = next(iter(adjacency))
    while current is not None:
        visited.add(current)
        if current in positions:
            chain.points.append(positions[current])
        current = next((n for n in adjacency[current] if n not in visited), None)

    return chain


def build_chains(extraction: ExtractionResult) -> List[ChainResult]:
    """
    Chains from a planar-graph extraction, each connection used exactly once.

    Returns:
        The closed exterior chain first (when it has at least 3 points),
        then one open chain per internal connection
    """
    positions = {j.id: j.position for j in extraction.junctions}
    connections = {c.id: c for c in extraction.connections}
    outer_ids = extraction.outer_boundary_connection_ids
    chains = []

    if outer_ids:
        outer = build_outer_boundary(outer_ids, connections, positions)
        if len(outer.points) >= 3:
            chains.append(outer)
            logger.info(f"Outer boundary: {len(outer.points)} points from {len(outer_ids)} connections")

    internal = 0
    for conn in extraction.connections:
        if conn.id in outer_ids:
            continue
        if conn.junction_a not in positions or conn.junction_b not in positions:
            continue
        chains.append(ChainResult(
            points=[positions[conn.junction_a], positions[conn.junction_b]],
            thickness=conn.thickness
        ))
        internal += 1

    logger.info(f"Built {len(chains)} chains ({internal} internal walls)")
    return chains


def build_chains_from_walls(
    entries: Sequence[PolygonEntry],
    capture_size: Tuple[float, float] = DEFAULT_CAPTURE_SIZE,
    connection_threshold: float = DEFAULT_CONNECTION_THRESHOLD
) -> List[ChainResult]:
    """Centerlines, planar graph and chains in one call."""
    segments = extract_centerlines(entries, capture_size)
    if not segments:
        return []
    return build_chains(extract_room_outlines(segments, connection_threshold))
