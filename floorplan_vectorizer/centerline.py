"""
Centerline Extraction Module
=============================
Converts normalized wall rectangles into axis-snapped world-space segments.

World space is metres on the y = 0 plane, centered on the capture area:
normalized x maps to world x, normalized y maps (flipped) to world z.
"""

import math
import logging
from typing import List, Sequence, Tuple
from dataclasses import dataclass

from .config import DEFAULT_CAPTURE_SIZE
from .pipeline import PolygonEntry, StructureCategory

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


Vec3 = Tuple[float, float, float]


@dataclass
class WallSegment:
    """Wall centerline in world coordinates."""
    start: Vec3
    end: Vec3
    thickness: float

    @property
    def length(self) -> float:
        return math.dist(self.start, self.end)

    @property
    def is_horizontal(self) -> bool:
        return abs(self.end[0] - self.start[0]) >= abs(self.end[2] - self.start[2])


def _midpoint(a: Vec3, b: Vec3) -> Vec3:
    return ((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5, (a[2] + b[2]) * 0.5)


def to_world(vertex: Sequence[float], capture_size: Tuple[float, float]) -> Vec3:
    """Normalized (u, v) to world (x, 0, z)."""
    width, height = capture_size
    return (vertex[0] * width - width * 0.5, 0.0, (1.0 - vertex[1]) * height - height * 0.5)


def extract_centerline(
    wall: PolygonEntry, capture_size: Tuple[float, float] = DEFAULT_CAPTURE_SIZE
) -> WallSegment:
    """
    Centerline of a 4-vertex wall polygon.

    The shorter of edges 0-1 and 1-2 is the cross-section and gives the
    thickness; the segment joins the midpoints of the two short edges, so it
    runs along the long sides. Both endpoints are then snapped onto the
    coordinate (x or z) that differs least.
    """
    if capture_size[0] <= 0 or capture_size[1] <= 0:
        raise ValueError(f"Capture size must be positive, got {capture_size}")
    if len(wall.vertices) != 4:
        raise ValueError(f"Wall polygon needs 4 vertices, got {len(wall.vertices)}")

    pts = [to_world(v, capture_size) for v in wall.vertices]

    edge01 = math.dist(pts[0], pts[1])
    edge12 = math.dist(pts[1], pts[2])

    if edge01 <= edge12:
        mid_a = _midpoint(pts[0], pts[1])
        mid_b = _midpoint(pts[2], pts[3])
        thickness = edge01
    else:
        mid_a = _midpoint(pts[1], pts[2])
        mid_b = _midpoint(pts[3], pts[0])
        thickness = edge12

    dx = abs(mid_a[0] - mid_b[0])
    dz = abs(mid_a[2] - mid_b[2])

    if dx < dz:
        avg_x = (mid_a[0] + mid_b[0]) * 0.5
        mid_a = (avg_x, mid_a[1], mid_a[2])
        mid_b = (avg_x, mid_b[1], mid_b[2])
    else:
        avg_z = (mid_a[2] + mid_b[2]) * 0.5
        mid_a = (mid_a[0], mid_a[1], avg_z)
        mid_b = (mid_b[0], mid_b[1], avg_z)

    return WallSegment(start=mid_a, end=mid_b, thickness=thickness)


def extract_centerlines(
    entries: Sequence[PolygonEntry], capture_size: Tuple[float, float] = DEFAULT_CAPTURE_SIZE
) -> List[WallSegment]:
    """Centerlines of the wall entries; doors and windows are ignored."""
    segments = [
        extract_centerline(entry, capture_size)
        for entry in entries
        if entry.category == StructureCategory.WALL
    ]
    logger.info(f"Extracted {len(segments)} wall centerlines")
    return segments
