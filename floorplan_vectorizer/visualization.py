"""
Debug Rendering
================
Draws extraction results into BGR images for inspection.
"""

import cv2
import numpy as np
from typing import Optional, Sequence, Tuple

from .config import DEFAULT_CAPTURE_SIZE
from .pipeline import PolygonResult, StructureCategory
from .room_detection import ExtractionResult


CATEGORY_COLORS = {
    StructureCategory.WALL: (200, 200, 200),   # Light gray
    StructureCategory.DOOR: (0, 165, 255),     # Orange
    StructureCategory.WINDOW: (255, 200, 0),   # Light blue
}


def _to_pixels(vertices: Sequence[Sequence[float]], shape: Tuple[int, int]) -> np.ndarray:
    height, width = shape[:2]
    pts = np.array([[v[0] * (width - 1), v[1] * (height - 1)] for v in vertices])
    return np.round(pts).astype(np.int32)


def world_to_pixel(
    position: Sequence[float], shape: Tuple[int, int],
    capture_size: Tuple[float, float] = DEFAULT_CAPTURE_SIZE
) -> Tuple[int, int]:
    """World (x, y, z) back to pixel (col, row) inside an image of the given shape."""
    height, width = shape[:2]
    u = (position[0] + capture_size[0] * 0.5) / capture_size[0]
    v = 1.0 - (position[2] + capture_size[1] * 0.5) / capture_size[1]
    return int(round(u * (width - 1))), int(round(v * (height - 1)))


def polygons_to_image(result: PolygonResult, shape: Optional[Tuple[int, int]] = None, fill: bool = True) -> np.ndarray:
    """
    Draw classified polygons.

    Args:
        result: Pipeline output
        shape: Image shape (height, width), defaults to the source size
        fill: Fill polygons instead of outlining them

    Returns:
        Image with polygons drawn
    """
    if shape is None:
        shape = (result.height, result.width)
    img = np.zeros((shape[0], shape[1], 3), dtype=np.uint8)

    # Walls first so openings stay visible
    ordered = sorted(result.polygons, key=lambda p: p.category != StructureCategory.WALL)
    for entry in ordered:
        pts = _to_pixels(entry.vertices, shape)
        color = CATEGORY_COLORS[entry.category]
        if fill:
            cv2.fillPoly(img, [pts], color)
        else:
            cv2.polylines(img, [pts], True, color, 1)

    return img


def outlines_to_image(
    extraction: ExtractionResult,
    shape: Tuple[int, int],
    capture_size: Tuple[float, float] = DEFAULT_CAPTURE_SIZE,
    thickness: int = 2
) -> np.ndarray:
    """
    Draw the planar graph: rooms filled, connections as lines, junctions as dots.
    Outer boundary connections are drawn in red.
    """
    img = np.full((shape[0], shape[1], 3), 255, dtype=np.uint8)

    for i, room in enumerate(extraction.interior_rooms):
        pts = np.array([world_to_pixel(p, shape, capture_size) for p in room.points], dtype=np.int32)
        hue = int(179 * i / max(len(extraction.interior_rooms), 1))
        color = cv2.cvtColor(np.uint8([[[hue, 80, 230]]]), cv2.COLOR_HSV2BGR)[0, 0]
        cv2.fillPoly(img, [pts], tuple(int(c) for c in color))

    positions = {j.id: j.position for j in extraction.junctions}
    for conn in extraction.connections:
        color = (0, 0, 255) if conn.id in extraction.outer_boundary_connection_ids else (0, 0, 0)
        cv2.line(
            img,
            world_to_pixel(positions[conn.junction_a], shape, capture_size),
            world_to_pixel(positions[conn.junction_b], shape, capture_size),
            color, thickness
        )

    for junction in extraction.junctions:
        cv2.circle(img, world_to_pixel(junction.position, shape, capture_size), thickness + 1, (255, 0, 0), -1)

    return img
