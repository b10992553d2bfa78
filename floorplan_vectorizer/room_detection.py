"""
Room Outline Extraction Module
===============================
Planar-graph vectorization of wall centerlines:
1. Split segments at interior crossings
2. Weld nearby endpoints into junctions (union-find)
3. Junction adjacency with per-edge thickness
4. Manhattan snapping of junction positions
5. Half-edge face tracing over angle-sorted neighbors
6. Stub stripping and signed-area classification (rooms vs. exterior)
7. Connections, outer boundary and uncovered segments
"""

import cv2
import math
import numpy as np
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass, field

from .centerline import WallSegment, Vec3
from .config import DEFAULT_CONNECTION_THRESHOLD, MIN_FACE_AREA, MANHATTAN_SNAP_PASSES

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


Edge = Tuple[int, int]

_PARAM_EPS = 1e-9
_DET_EPS = 1e-10
_DEFAULT_THICKNESS = 0.1


@dataclass
class JunctionPoint:
    """Welded cluster of segment endpoints."""
    id: int
    position: Vec3


@dataclass
class Connection:
    """Undirected graph edge between two junctions."""
    id: int
    junction_a: int
    junction_b: int
    thickness: float


@dataclass
class IntersectionPoint:
    """Interior crossing of two input segments."""
    position: Vec3
    segment_a: int
    segment_b: int
    t_a: float
    t_b: float


@dataclass
class RoomOutline:
    """Closed face of the wall graph."""
    points: List[Vec3]
    is_exterior: bool = False
    thickness: float = _DEFAULT_THICKNESS
    junction_ids: List[int] = field(default_factory=list)

    @property
    def area(self) -> float:
        return abs(signed_area(self.points))


@dataclass
class ExtractionResult:
    """Everything the planar-graph pass produces."""
    rooms: List[RoomOutline] = field(default_factory=list)
    junctions: List[JunctionPoint] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    outer_boundary_connection_ids: Set[int] = field(default_factory=set)
    intersections: List[IntersectionPoint] = field(default_factory=list)
    uncovered_segment_indices: List[int] = field(default_factory=list)
    segments: List[WallSegment] = field(default_factory=list)
    segment_sources: List[int] = field(default_factory=list)
    dead_end_junction_ids: List[int] = field(default_factory=list)

    @property
    def exterior(self) -> Optional[RoomOutline]:
        for room in self.rooms:
            if room.is_exterior:
                return room
        return None

    @property
    def interior_rooms(self) -> List[RoomOutline]:
        return [r for r in self.rooms if not r.is_exterior]

    def junction_degrees(self) -> Dict[int, int]:
        degrees = {j.id: 0 for j in self.junctions}
        for c in self.connections:
            degrees[c.junction_a] += 1
            degrees[c.junction_b] += 1
        return degrees

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'rooms': [
                {
                    'points': [list(p) for p in r.points],
                    'is_exterior': r.is_exterior,
                    'thickness': r.thickness,
                    'junction_ids': list(r.junction_ids)
                }
                for r in self.rooms
            ],
            'junctions': [{'id': j.id, 'position': list(j.position)} for j in self.junctions],
            'connections': [
                {'id': c.id, 'junction_a': c.junction_a, 'junction_b': c.junction_b,
                 'thickness': c.thickness}
                for c in self.connections
            ],
            'outer_boundary_connection_ids': sorted(self.outer_boundary_connection_ids),
            'intersections': [
                {'position': list(i.position), 'segment_a': i.segment_a,
                 'segment_b': i.segment_b, 't_a': i.t_a, 't_b': i.t_b}
                for i in self.intersections
            ],
            'uncovered_segment_indices': list(self.uncovered_segment_indices),
            'dead_end_junction_ids': list(self.dead_end_junction_ids)
        }


def edge_key(a: int, b: int) -> Edge:
    return (a, b) if a < b else (b, a)


def signed_area(points: Sequence[Vec3]) -> float:
    """Signed area in the x-z plane; counter-clockwise is positive."""
    if len(points) < 3:
        return 0.0
    contour = np.array([[p[0], p[2]] for p in points], dtype=np.float32)
    return float(cv2.contourArea(contour, oriented=True))


def _dist_sq(a: Vec3, b: Vec3) -> float:
    return (a[0] - b[0]) ** 2 + (a[2] - b[2]) ** 2


def _lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t, a[2] + (b[2] - a[2]) * t)


def segment_crossing(s1: WallSegment, s2: WallSegment) -> Optional[Tuple[float, float]]:
    """Parameters (t, u) of a strictly interior crossing, or None."""
    p, r = s1.start, (s1.end[0] - s1.start[0], s1.end[2] - s1.start[2])
    q, s = s2.start, (s2.end[0] - s2.start[0], s2.end[2] - s2.start[2])

    denom = r[0] * s[1] - r[1] * s[0]
    if abs(denom) < _DET_EPS:
        return None

    qp = (q[0] - p[0], q[2] - p[2])
    t = (qp[0] * s[1] - qp[1] * s[0]) / denom
    u = (qp[0] * r[1] - qp[1] * r[0]) / denom

    if _PARAM_EPS < t < 1.0 - _PARAM_EPS and _PARAM_EPS < u < 1.0 - _PARAM_EPS:
        return t, u
    return None


def find_intersections(segments: Sequence[WallSegment], tolerance: float) -> List[IntersectionPoint]:
    """Pairwise interior crossings that are not within tolerance of an endpoint."""
    tol_sq = tolerance * tolerance
    intersections = []

    for i in range(len(segments)):
        if segments[i].length == 0:
            continue
        for j in range(i + 1, len(segments)):
            if segments[j].length == 0:
                continue
            params = segment_crossing(segments[i], segments[j])
            if params is None:
                continue

            t, u = params
            position = _lerp(segments[i].start, segments[i].end, t)
            endpoints = (segments[i].start, segments[i].end, segments[j].start, segments[j].end)
            if any(_dist_sq(position, e) < tol_sq for e in endpoints):
                continue

            intersections.append(IntersectionPoint(position, i, j, t, u))

    return intersections


def split_segments(
    segments: Sequence[WallSegment], intersections: Sequence[IntersectionPoint]
) -> Tuple[List[WallSegment], List[int]]:
    """
    Split every segment at its crossings.

    Returns:
        (pieces, source index of each piece), pieces ordered along each source
    """
    cuts: Dict[int, List[Tuple[float, Vec3]]] = {}
    for ip in intersections:
        cuts.setdefault(ip.segment_a, []).append((ip.t_a, ip.position))
        cuts.setdefault(ip.segment_b, []).append((ip.t_b, ip.position))

    pieces = []
    sources = []
    for index, segment in enumerate(segments):
        start = segment.start
        for _, position in sorted(cuts.get(index, []), key=lambda c: c[0]):
            pieces.append(WallSegment(start, position, segment.thickness))
            sources.append(index)
            start = position
        pieces.append(WallSegment(start, segment.end, segment.thickness))
        sources.append(index)

    return pieces, sources


def _find(parent: List[int], i: int) -> int:
    while parent[i] != i:
        parent[i] = parent[parent[i]]
        i = parent[i]
    return i


def _union(parent: List[int], a: int, b: int) -> None:
    ra, rb = _find(parent, a), _find(parent, b)
    if ra != rb:
        parent[ra] = rb


def weld_endpoints(segments: Sequence[WallSegment], tolerance: float) -> Tuple[List[Vec3], List[int]]:
    """
    Cluster endpoints closer than tolerance.

    Returns:
        (junction centroids, junction id of each endpoint); endpoint 2*s is
        the start of segment s, 2*s+1 its end
    """
    endpoints = []
    for s in segments:
        endpoints.extend((s.start, s.end))

    tol_sq = tolerance * tolerance
    parent = list(range(len(endpoints)))
    for i in range(len(endpoints)):
        for j in range(i + 1, len(endpoints)):
            if _dist_sq(endpoints[i], endpoints[j]) < tol_sq:
                _union(parent, i, j)

    root_to_id: Dict[int, int] = {}
    members: List[List[int]] = []
    endpoint_junction = []
    for i in range(len(endpoints)):
        root = _find(parent, i)
        if root not in root_to_id:
            root_to_id[root] = len(members)
            members.append([])
        members[root_to_id[root]].append(i)
        endpoint_junction.append(root_to_id[root])

    positions = []
    for group in members:
        n = float(len(group))
        positions.append((
            sum(endpoints[k][0] for k in group) / n,
            sum(endpoints[k][1] for k in group) / n,
            sum(endpoints[k][2] for k in group) / n,
        ))

    return positions, endpoint_junction


def snap_to_manhattan(positions: List[Vec3], adjacency: Sequence[Set[int]], passes: int) -> None:
    """Make both ends of every edge share x or z, whichever differs less."""
    for _ in range(passes):
        for v in range(len(positions)):
            for u in sorted(adjacency[v]):
                if u <= v:
                    continue
                pv, pu = positions[v], positions[u]
                if abs(pv[0] - pu[0]) < abs(pv[2] - pu[2]):
                    avg_x = (pv[0] + pu[0]) * 0.5
                    positions[v] = (avg_x, pv[1], pv[2])
                    positions[u] = (avg_x, pu[1], pu[2])
                else:
                    avg_z = (pv[2] + pu[2]) * 0.5
                    positions[v] = (pv[0], pv[1], avg_z)
                    positions[u] = (pu[0], pu[1], avg_z)


def prune_dead_ends(adjacency: Sequence[Set[int]]) -> List[int]:
    """Repeatedly remove degree-1 junctions from a copy; returns the removed ids."""
    adjacency = [set(n) for n in adjacency]
    removed = []
    changed = True
    while changed:
        changed = False
        for v in range(len(adjacency)):
            if len(adjacency[v]) == 1:
                for neighbor in adjacency[v]:
                    adjacency[neighbor].discard(v)
                adjacency[v].clear()
                removed.append(v)
                changed = True
    return sorted(removed)


def strip_stubs(face: List[int]) -> List[int]:
    """Remove out-and-back excursions (p[i] == p[i+2], with wrap-around)."""
    face = list(face)
    changed = True
    while changed and len(face) >= 3:
        changed = False
        n = len(face)
        for i in range(n):
            if face[i] == face[(i + 2) % n]:
                drop = {(i + 1) % n, (i + 2) % n}
                face = [v for k, v in enumerate(face) if k not in drop]
                changed = True
                break
    return face


def trace_faces(positions: Sequence[Vec3], adjacency: Sequence[Set[int]]) -> List[List[int]]:
    """Follow every half-edge cycle; walks of at least 3 vertices are faces."""
    sorted_neighbors = []
    for v, neighbors in enumerate(adjacency):
        center = positions[v]
        sorted_neighbors.append(sorted(
            neighbors,
            key=lambda n: (math.atan2(positions[n][2] - center[2], positions[n][0] - center[0]), n)
        ))

    next_edge: Dict[Edge, Edge] = {}
    for v, neighbors in enumerate(sorted_neighbors):
        for i, u in enumerate(neighbors):
            w = neighbors[i - 1]
            next_edge[(u, v)] = (v, w)

    visited: Set[Edge] = set()
    faces = []
    for start in next_edge:
        if start in visited:
            continue
        face = []
        current = start
        while current not in visited:
            visited.add(current)
            face.append(current[0])
            current = next_edge[current]
        if len(face) >= 3:
            faces.append(face)

    return faces


class RoomOutlineExtractor:
    """
    Builds the junction/connection graph of wall centerlines and extracts
    its faces as room outlines.
    """

    def __init__(
        self,
        connection_threshold: float = DEFAULT_CONNECTION_THRESHOLD,
        min_face_area: float = MIN_FACE_AREA,
        snap_passes: int = MANHATTAN_SNAP_PASSES
    ):
        """
        Initialize the extractor.

        Args:
            connection_threshold: Weld distance between endpoints (metres)
            min_face_area: Faces below this absolute area are ignored (m^2)
            snap_passes: Manhattan snapping passes over all edges
        """
        if connection_threshold <= 0:
            raise ValueError(f"Connection threshold must be positive, got {connection_threshold}")
        self.connection_threshold = connection_threshold
        self.min_face_area = min_face_area
        self.snap_passes = snap_passes

    def build_adjacency(
        self, segments: Sequence[WallSegment], endpoint_junction: Sequence[int], junction_count: int
    ) -> Tuple[List[Set[int]], Dict[Edge, float], List[Optional[Edge]]]:
        """
        Undirected adjacency from the welded segments.

        Returns:
            (adjacency, thickness per edge in first-seen order, edge of each
            segment or None for collapsed segments)
        """
        adjacency: List[Set[int]] = [set() for _ in range(junction_count)]
        edge_thickness: Dict[Edge, float] = {}
        segment_edges: List[Optional[Edge]] = []

        for s, segment in enumerate(segments):
            a, b = endpoint_junction[2 * s], endpoint_junction[2 * s + 1]
            if a == b:
                segment_edges.append(None)
                continue

            adjacency[a].add(b)
            adjacency[b].add(a)
            key = edge_key(a, b)
            segment_edges.append(key)

            if key in edge_thickness:
                edge_thickness[key] = (edge_thickness[key] + segment.thickness) * 0.5
            else:
                edge_thickness[key] = segment.thickness

        return adjacency, edge_thickness, segment_edges

    def classify_faces(
        self, faces: Sequence[List[int]], positions: Sequence[Vec3], edge_thickness: Dict[Edge, float]
    ) -> List[RoomOutline]:
        """Area-filter faces; the most negative one becomes the exterior, reversed."""
        outlines = []
        exterior_index = -1
        most_negative = 0.0

        for face in faces:
            points = [positions[v] for v in face]
            face_area = signed_area(points)
            if abs(face_area) < self.min_face_area:
                continue

            thicknesses = [
                edge_thickness[edge_key(face[i], face[(i + 1) % len(face)])]
                for i in range(len(face))
                if edge_key(face[i], face[(i + 1) % len(face)]) in edge_thickness
            ]
            thickness = sum(thicknesses) / len(thicknesses) if thicknesses else _DEFAULT_THICKNESS

            if face_area < most_negative:
                most_negative = face_area
                exterior_index = len(outlines)
            outlines.append(RoomOutline(points, False, thickness, list(face)))

        if exterior_index >= 0:
            exterior = outlines[exterior_index]
            exterior.is_exterior = True
            exterior.points.reverse()
            exterior.junction_ids.reverse()

            exterior_set = set(exterior.junction_ids)
            outlines = [
                o for o in outlines
                if o.is_exterior or set(o.junction_ids) != exterior_set
            ]

        return outlines

    def extract(self, segments: Sequence[WallSegment]) -> ExtractionResult:
        """
        Complete planar-graph extraction.

        Args:
            segments: Wall centerlines in world coordinates

        Returns:
            ExtractionResult
        """
        segments = list(segments)

        # Step 1: Split at interior crossings
        intersections = find_intersections(segments, self.connection_threshold)
        pieces, sources = split_segments(segments, intersections)
        if intersections:
            logger.info(f"Split {len(segments)} segments into {len(pieces)} at {len(intersections)} crossings")

        # Step 2: Weld endpoints into junctions
        positions, endpoint_junction = weld_endpoints(pieces, self.connection_threshold)

        # Step 3: Adjacency
        adjacency, edge_thickness, segment_edges = self.build_adjacency(
            pieces, endpoint_junction, len(positions)
        )

        # Step 4: Manhattan snap
        snap_to_manhattan(positions, adjacency, self.snap_passes)

        result = ExtractionResult(
            junctions=[JunctionPoint(i, p) for i, p in enumerate(positions)],
            intersections=intersections,
            segments=pieces,
            segment_sources=sources,
            dead_end_junction_ids=prune_dead_ends(adjacency)
        )

        edge_ids: Dict[Edge, int] = {}
        for key, thickness in edge_thickness.items():
            edge_ids[key] = len(result.connections)
            result.connections.append(Connection(edge_ids[key], key[0], key[1], thickness))

        if len(pieces) < 3:
            logger.warning(f"Only {len(pieces)} wall segments, no rooms can be traced")
            result.uncovered_segment_indices = list(range(len(pieces)))
            return result

        # Step 5: Faces
        faces = [strip_stubs(f) for f in trace_faces(positions, adjacency)]
        faces = [f for f in faces if len(f) >= 3]
        result.rooms = self.classify_faces(faces, positions, edge_thickness)

        # Step 6: Outer boundary and coverage (all traced faces, before the area filter)
        covered: Set[Edge] = {
            edge_key(face[i], face[(i + 1) % len(face)]) for face in faces for i in range(len(face))
        }
        exterior = result.exterior
        if exterior is not None:
            ids = exterior.junction_ids
            for i in range(len(ids)):
                key = edge_key(ids[i], ids[(i + 1) % len(ids)])
                if key in edge_ids:
                    result.outer_boundary_connection_ids.add(edge_ids[key])

        result.uncovered_segment_indices = [
            s for s, key in enumerate(segment_edges) if key is None or key not in covered
        ]

        logger.info(
            f"Extracted {len(result.junctions)} junctions, {len(result.connections)} connections, "
            f"{len(result.interior_rooms)} rooms, {len(result.uncovered_segment_indices)} uncovered segments"
        )
        return result


def extract_room_outlines(
    segments: Sequence[WallSegment],
    tolerance: float = DEFAULT_CONNECTION_THRESHOLD,
    **kwargs
) -> ExtractionResult:
    """
    Convenience function for room outline extraction.

    Args:
        segments: Wall centerlines in world coordinates
        tolerance: Weld distance between endpoints (metres)
        **kwargs: Additional parameters for RoomOutlineExtractor

    Returns:
        ExtractionResult
    """
    extractor = RoomOutlineExtractor(connection_threshold=tolerance, **kwargs)
    return extractor.extract(segments)
