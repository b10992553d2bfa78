"""
Geometry Primitives
====================
Pure helpers shared by the polygon extraction stages:
1. Bresenham rasterization
2. Line / polygon axis classification
3. Line-line intersection with a degenerate fallback
4. Axis-aligned containment, overlap and IoU
5. Statistical mode of integer-rounded values

Points are indexable as (x, y). Polygons are 4x2 integer arrays ordered
up-left, up-right, down-right, down-left.
"""

import math
import numpy as np
from typing import List, Sequence, Tuple


Point = Sequence[int]


def bresenham_line(x0: int, y0: int, x1: int, y1: int) -> List[Tuple[int, int]]:
    """
    Rasterize a line into pixel coordinates.

    Returns:
        List of (row, col) pairs, both endpoints included
    """
    dx = x1 - x0
    dy = y1 - y0
    xsign = 1 if dx > 0 else -1
    ysign = 1 if dy > 0 else -1
    dx = abs(dx)
    dy = abs(dy)

    if dx > dy:
        xx, xy, yx, yy = xsign, 0, 0, ysign
    else:
        dx, dy = dy, dx
        xx, xy, yx, yy = 0, ysign, xsign, 0

    D = 2 * dy - dx
    y = 0
    pixels = []
    for x in range(dx + 1):
        pixels.append((y0 + x * xy + y * yy, x0 + x * xx + y * yx))
        if D >= 0:
            y += 1
            D -= 2 * dx
        D += 2 * dy

    return pixels


def calc_line_dim(points: Sequence[Point], line: Sequence[int]) -> int:
    """Returns 0 for a horizontal line, 1 for a vertical one."""
    p1 = points[line[0]]
    p2 = points[line[1]]
    return 0 if p2[0] - p1[0] > p2[1] - p1[1] else 1


def calc_polygon_dim(polygon: np.ndarray) -> int:
    """Returns 0 for a horizontal rectangle, 1 for a vertical one."""
    x1, x2 = polygon[0][0], polygon[1][0]
    y1, y2 = polygon[0][1], polygon[2][1]
    return 0 if abs(x2 - x1) > abs(y2 - y1) else 1


def get_wall_length(points: Sequence[Point], idx1: int, idx2: int) -> float:
    p1 = points[idx1]
    p2 = points[idx2]
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def get_intersect(p11: Point, p12: Point, p21: Point, p22: Point) -> Tuple[int, int]:
    """
    Intersection of line (p11, p12) with line (p21, p22), rounded to pixels.

    A degenerate second line returns its single point. Near-parallel lines
    fall back to the midpoint of p11 and p21.
    """
    if p21[0] == p22[0] and p21[1] == p22[1]:
        return int(p21[0]), int(p21[1])

    x1, y1 = float(p11[0]), float(p11[1])
    x2, y2 = float(p12[0]), float(p12[1])
    x3, y3 = float(p21[0]), float(p21[1])
    x4, y4 = float(p22[0]), float(p22[1])

    a = x1 * y2 - y1 * x2
    b = x3 * y4 - y3 * x4
    c = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)

    if abs(c) < 1e-10:
        return int((p11[0] + p21[0]) / 2.0), int((p11[1] + p21[1]) / 2.0)

    px = int(round((a * (x3 - x4) - (x1 - x2) * b) / c))
    py = int(round((a * (y3 - y4) - (y1 - y2) * b) / c))
    return px, py


def point_inside_polygon(p: Point, polygon: np.ndarray) -> bool:
    """Axis-aligned rectangle containment, borders included."""
    x, y = p[0], p[1]
    return (x >= polygon[0][0] and x >= polygon[3][0] and
            x <= polygon[1][0] and x <= polygon[2][0] and
            y >= polygon[0][1] and y >= polygon[1][1] and
            y <= polygon[2][1] and y <= polygon[3][1])


def points_in_polygon(p1: Point, p2: Point, polygon: np.ndarray) -> bool:
    return point_inside_polygon(p1, polygon) and point_inside_polygon(p2, polygon)


def bounding_box(polygon: np.ndarray) -> Tuple[int, int, int, int]:
    """Returns (x_min, x_max, y_min, y_max)."""
    polygon = np.asarray(polygon)
    return (int(polygon[:, 0].min()), int(polygon[:, 0].max()),
            int(polygon[:, 1].min()), int(polygon[:, 1].max()))


def range_overlap(a_min: int, a_max: int, b_min: int, b_max: int) -> bool:
    return a_min <= b_max and b_min <= a_max


def rectangles_overlap(r1: np.ndarray, r2: np.ndarray) -> bool:
    x1_min, x1_max, y1_min, y1_max = bounding_box(r1)
    x2_min, x2_max, y2_min, y2_max = bounding_box(r2)
    return (range_overlap(x1_min, x1_max, x2_min, x2_max) and
            range_overlap(y1_min, y1_max, y2_min, y2_max))


def rectangle_size(r: np.ndarray) -> int:
    x_min, x_max, y_min, y_max = bounding_box(r)
    return (x_max - x_min) * (y_max - y_min)


def box_diagonal(x_min: int, x_max: int, y_min: int, y_max: int) -> float:
    return math.sqrt((x_max - x_min) ** 2 + (y_max - y_min) ** 2)


def polygon_intersection(
    x_min: int, x_max: int, y_min: int, y_max: int,
    x_min_label: int, x_max_label: int, y_min_label: int, y_max_label: int
) -> float:
    """Diagonal length of the overlap of two axis-aligned boxes (0 when disjoint)."""
    if (x_max > x_min_label and x_max_label > x_min and
            y_max > y_min_label and y_max_label > y_min):
        return box_diagonal(
            max(x_min, x_min_label), min(x_max, x_max_label),
            max(y_min, y_min_label), min(y_max, y_max_label)
        )
    return 0.0


def polygon_iou(r1: np.ndarray, r2: np.ndarray) -> float:
    """
    Bounding-box IoU using diagonal lengths in place of areas.

    Overlap thresholds downstream are calibrated against this measure,
    so it is not a true area ratio.
    """
    x1_min, x1_max, y1_min, y1_max = bounding_box(r1)
    x2_min, x2_max, y2_min, y2_max = bounding_box(r2)

    intersection = polygon_intersection(
        x1_min, x1_max, y1_min, y1_max,
        x2_min, x2_max, y2_min, y2_max
    )
    union = (box_diagonal(x1_min, x1_max, y1_min, y1_max) +
             box_diagonal(x2_min, x2_max, y2_min, y2_max) - intersection)
    return intersection / union if union > 0 else 0.0


def stats_mode(values: Sequence[float]) -> int:
    """Most frequent integer-rounded value; ties resolve to the smallest value."""
    if len(values) == 0:
        return 0
    rounded = np.rint(np.asarray(values, dtype=float)).astype(int)
    uniques, counts = np.unique(rounded, return_counts=True)
    return int(uniques[np.argmax(counts)])


def pixel_class_map(segmentation: np.ndarray) -> np.ndarray:
    """Argmax over the channel axis of a (C, H, W) array."""
    return np.argmax(segmentation, axis=0)


def clip_polygon(polygon: np.ndarray, max_width: int, max_height: int) -> np.ndarray:
    polygon[:, 0] = np.clip(polygon[:, 0], 0, max_width)
    polygon[:, 1] = np.clip(polygon[:, 1], 0, max_height)
    return polygon


def evidence_in_box(
    segmentation: np.ndarray, classes: Sequence[int],
    x1: int, x2: int, y1: int, y2: int
) -> np.ndarray:
    """Per-class evidence summed over the inclusive box, clipped to the image."""
    _, height, width = segmentation.shape
    r0, r1 = max(0, y1), min(y2, height - 1)
    c0, c1 = max(0, x1), min(x2, width - 1)
    if r1 < r0 or c1 < c0:
        return np.zeros(len(classes))
    return segmentation[list(classes), r0:r1 + 1, c0:c1 + 1].sum(axis=(1, 2))
