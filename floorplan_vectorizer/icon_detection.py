"""
Icon Detection Module
======================
Fixture and furniture rectangles from icon corner heat maps:
1. Icon corner peaks (channels 17-20)
2. Per-direction neighbor maps between corners
3. Right/down/left/up chains closing into quadrilaterals
4. Dropping enclosing candidates
5. Classification from icon segmentation evidence
"""

import numpy as np
from typing import List, Dict, Sequence, Set, Tuple
from dataclasses import dataclass
import logging

from .geometry import evidence_in_box
from .heatmap import ConfidencePoint, extract_channel_peaks
from .point_analysis import (
    point_orientations, opposite_orientation, orientation_line_dim,
    calc_search_window, in_window
)
from .opening_detection import DetectedPolygon
from .config import ICON_HEATMAP_ORDER, ICON_BACKGROUND

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Direction walked from each corner of a candidate: right, down, left, up
CHAIN_ORDER = (1, 2, 3, 0)


@dataclass
class IconCandidate:
    """Point indices of the four corners plus the mean corner confidence."""
    top_left: int
    top_right: int
    bottom_left: int
    bottom_right: int
    score: float

    @property
    def corners(self) -> Tuple[int, int, int, int]:
        return (self.top_left, self.top_right, self.bottom_left, self.bottom_right)


def icon_bbox(icon: IconCandidate, points: Sequence[ConfidencePoint]) -> Tuple[int, int, int, int]:
    """Returns (x1, x2, y1, y2) averaged from the paired corners."""
    tl, tr = points[icon.top_left], points[icon.top_right]
    bl, br = points[icon.bottom_left], points[icon.bottom_right]
    x1 = (tl.x + bl.x) // 2
    x2 = (tr.x + br.x) // 2
    y1 = (tl.y + tr.y) // 2
    y2 = (bl.y + br.y) // 2
    return x1, x2, y1, y2


def get_icon_area(icon: IconCandidate, points: Sequence[ConfidencePoint]) -> int:
    x1, x2, y1, y2 = icon_bbox(icon, points)
    return (x2 - x1) * (y2 - y1)


def icons_same_corner(icon1: IconCandidate, icon2: IconCandidate) -> bool:
    return any(a == b for a, b in zip(icon1.corners, icon2.corners))


def drop_big_icons(icons: List[IconCandidate], points: Sequence[ConfidencePoint]) -> List[IconCandidate]:
    """Of two candidates sharing a corner in the same position, keep the smaller."""
    bad: Set[int] = set()
    remaining: Dict[int, None] = {}  # insertion-ordered set

    for i in range(len(icons)):
        for j in range(i + 1, len(icons)):
            if i not in bad and j not in bad and icons_same_corner(icons[i], icons[j]):
                area1 = get_icon_area(icons[i], points)
                area2 = get_icon_area(icons[j], points)
                good, worse = (i, j) if area1 <= area2 else (j, i)
                remaining.setdefault(good)
                bad.add(worse)
            else:
                for k in (i, j):
                    if k not in bad:
                        remaining.setdefault(k)

    if icons and not remaining and not bad:
        remaining = dict.fromkeys(range(len(icons)))

    return [icons[i] for i in remaining if i not in bad]


def find_icons(
    points: Sequence[ConfidencePoint],
    gap: int,
    width: int,
    height: int,
    min_distance_only: bool = True,
    max_length_x: int = 10000,
    max_length_y: int = 10000
) -> List[IconCandidate]:
    """
    Find quadrilaterals of icon corners.

    Neighbors are searched per allowed direction among later points only and
    recorded in both directions. A neighbor must be at least gap pixels
    away along the direction and further along it than across it.

    Args:
        points: Icon corner peaks
        gap: Perpendicular slack and minimum side length
        width, height: Image size
        min_distance_only: Keep only the closest neighbor per direction
        max_length_x, max_length_y: Maximum side lengths

    Returns:
        Candidates in discovery order
    """
    neighbor_map: List[Dict[int, List[int]]] = [
        {o: [] for o in point_orientations(p)} for p in points
    ]

    for point_index, point in enumerate(points):
        for orientation in point_orientations(point):
            opposite = opposite_orientation(orientation)
            line_dim = orientation_line_dim(orientation)
            ranges = calc_search_window(point, orientation, gap, width, height)
            max_length = max_length_x if line_dim == 0 else max_length_y

            candidates = []
            min_distance = max(width, height)
            min_distance_neighbor = -1

            for neighbor_index in range(point_index + 1, len(points)):
                neighbor = points[neighbor_index]
                if opposite not in point_orientations(neighbor):
                    continue
                if not in_window(neighbor, ranges):
                    continue

                abs_dim_dist = abs(neighbor[line_dim] - point[line_dim])
                abs_other_dist = abs(neighbor[1 - line_dim] - point[1 - line_dim])
                if abs_dim_dist < max(abs_other_dist, gap) or abs_dim_dist > max_length:
                    continue

                if min_distance_only:
                    if abs_dim_dist < min_distance:
                        min_distance = abs_dim_dist
                        min_distance_neighbor = neighbor_index
                else:
                    candidates.append(neighbor_index)

            if min_distance_only and min_distance_neighbor >= 0:
                candidates.append(min_distance_neighbor)

            for neighbor_index in candidates:
                neighbor_map[point_index][orientation].append(neighbor_index)
                neighbor_map[neighbor_index][opposite].append(point_index)

    icons = []
    right, down, left, up = CHAIN_ORDER
    closing = opposite_orientation(up)

    for p1, directions in enumerate(neighbor_map):
        if right not in directions or closing not in directions:
            continue
        p4_candidates = directions[closing]

        for p2 in directions[right]:
            for p3 in neighbor_map[p2].get(down, []):
                for p4 in neighbor_map[p3].get(left, []):
                    if p4 in p4_candidates:
                        score = sum(points[k].confidence for k in (p1, p2, p3, p4)) / 4.0
                        icons.append(IconCandidate(p1, p2, p4, p3, score))

    return icons


class IconDetector:
    """
    Detects icon rectangles from the icon corner heat maps and classifies
    them with the icon segmentation evidence.
    """

    def __init__(
        self,
        threshold: float = 0.5,
        gap: int = 10,
        max_num_points: int = 100,
        min_distance_only: bool = True
    ):
        """
        Initialize icon detector.

        Args:
            threshold: Minimum heat map value for an icon corner
            gap: Perpendicular slack and minimum side length
            max_num_points: Peak cap per heat map channel
            min_distance_only: Keep only the closest neighbor per direction
        """
        self.threshold = threshold
        self.gap = gap
        self.max_num_points = max_num_points
        self.min_distance_only = min_distance_only

    def classify(self, icon: IconCandidate, points: Sequence[ConfidencePoint], icon_seg: np.ndarray) -> Tuple[int, float]:
        """Class with the most positive evidence inside the bbox, and its per-pixel probability."""
        x1, x2, y1, y2 = icon_bbox(icon, points)
        sums = evidence_in_box(icon_seg, range(icon_seg.shape[0]), x1, x2, y1, y2)

        best_class = int(np.argmax(sums))
        best_sum = float(sums[best_class])
        if best_sum <= 0:
            return ICON_BACKGROUND, 0.0

        area = max(get_icon_area(icon, points), 1)
        return best_class, best_sum / area

    def detect(self, heatmaps: np.ndarray, icon_seg: np.ndarray) -> List[DetectedPolygon]:
        """
        Complete icon detection pipeline.

        Args:
            heatmaps: (21, H, W) heat maps
            icon_seg: (11, H, W) icon segmentation evidence

        Returns:
            Icon rectangles tagged with their non-background class
        """
        _, height, width = icon_seg.shape

        points = extract_channel_peaks(
            heatmaps, ICON_HEATMAP_ORDER, 1, self.max_num_points, self.threshold,
            close_point_suppression=True, gap=self.gap
        )
        icons = find_icons(points, self.gap, width, height, min_distance_only=self.min_distance_only)
        logger.info(f"Found {len(points)} icon corners, {len(icons)} candidate icons")

        icons = drop_big_icons(icons, points)

        detections = []
        for icon in icons:
            icon_class, prob = self.classify(icon, points, icon_seg)
            if icon_class == ICON_BACKGROUND:
                continue

            x1, x2, y1, y2 = icon_bbox(icon, points)
            polygon = np.array([[x1, y1], [x2, y1], [x2, y2], [x1, y2]], dtype=int)
            detections.append(DetectedPolygon(polygon, 'icon', icon_class, prob))

        logger.info(f"Detected {len(detections)} icons")
        return detections


def detect_icons(heatmaps: np.ndarray, icon_seg: np.ndarray, **kwargs) -> List[DetectedPolygon]:
    """
    Convenience function for icon detection.

    Args:
        heatmaps: (21, H, W) heat maps
        icon_seg: (11, H, W) icon segmentation evidence
        **kwargs: Parameters for IconDetector

    Returns:
        List of icon detections
    """
    detector = IconDetector(**kwargs)
    return detector.detect(heatmaps, icon_seg)
