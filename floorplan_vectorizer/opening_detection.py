"""
Opening Detection Module
=========================
Doors and windows placed on detected walls:
1. Opening corner peaks restricted to a wall raster
2. Corner pairing into opening lines
3. Snapping opening lines onto structurally complete wall lines
4. Projection onto wall rectangles
5. Door/window classification from icon evidence
6. Overlap removal
"""

import cv2
import numpy as np
from typing import List, Tuple, Dict, Any, Sequence
from dataclasses import dataclass, field
import logging

from .geometry import (
    calc_line_dim, calc_polygon_dim, get_intersect, points_in_polygon,
    bounding_box, rectangles_overlap, rectangle_size, evidence_in_box
)
from .heatmap import ConfidencePoint, extract_channel_peaks
from .point_analysis import calc_point_info
from .wall_detection import WallDetectionResult, WallLine
from .config import OPENING_HEATMAP_ORDER, ICON_WINDOW, ICON_DOOR

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class DetectedPolygon:
    """A pixel rectangle tagged as a wall or as an icon of some class."""
    polygon: np.ndarray
    kind: str  # "wall" or "icon"
    class_id: int
    prob: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind,
            'class': self.class_id,
            'prob': self.prob,
            'polygon': self.polygon.tolist()
        }


@dataclass
class OpeningDetectionResult:
    """Opening rectangles plus the corner lines they were built from."""
    openings: List[DetectedPolygon] = field(default_factory=list)
    points: List[ConfidencePoint] = field(default_factory=list)
    lines: List[Tuple[int, int]] = field(default_factory=list)
    line_types: List[Tuple[int, float]] = field(default_factory=list)  # (class, evidence)


def draw_line_mask(
    points: Sequence[ConfidencePoint], lines: Sequence[WallLine],
    height: int, width: int, line_width: int = 5
) -> np.ndarray:
    """Rasterize lines as filled strips of half-width line_width."""
    mask = np.zeros((height, width), dtype=np.uint8)

    for line in lines:
        p1, p2 = points[line[0]], points[line[1]]
        line_dim = calc_line_dim(points, line)
        fixed_value = int(round((p1[1 - line_dim] + p2[1 - line_dim]) / 2.0))
        min_value = min(p1[line_dim], p2[line_dim])
        max_value = max(p1[line_dim], p2[line_dim])

        if line_dim == 0:
            top_left = (min_value, fixed_value - line_width)
            bottom_right = (max_value, fixed_value + line_width)
        else:
            top_left = (fixed_value - line_width, min_value)
            bottom_right = (fixed_value + line_width, max_value)
        cv2.rectangle(mask, top_left, bottom_right, 1, thickness=-1)

    return mask.astype(np.float32)


def remove_overlapping_openings(
    detections: List[DetectedPolygon],
    opening_classes: Sequence[int],
    same_class_only: bool = False
) -> List[DetectedPolygon]:
    """
    Of two overlapping openings keep the larger; equal sizes keep the more
    probable one. Walls and other icon classes pass through untouched.
    """
    def is_opening(d: DetectedPolygon) -> bool:
        return d.kind == 'icon' and d.class_id in opening_classes

    keep = [True] * len(detections)

    for i, di in enumerate(detections):
        if not is_opening(di):
            continue
        for j, dj in enumerate(detections):
            if i == j or not keep[j] or not is_opening(dj):
                continue
            if same_class_only and di.class_id != dj.class_id:
                continue
            if np.array_equal(di.polygon, dj.polygon):
                continue
            if not rectangles_overlap(dj.polygon, di.polygon):
                continue

            size_i = rectangle_size(di.polygon)
            size_j = rectangle_size(dj.polygon)
            if size_i == size_j:
                if dj.prob > di.prob:
                    keep[i] = False
                    break
            elif size_i < size_j:
                keep[i] = False
                break

    return [d for d, k in zip(detections, keep) if k]


class OpeningDetector:
    """
    Detects door and window rectangles lying on detected walls.
    """

    def __init__(
        self,
        threshold: float = 0.5,
        opening_classes: Sequence[int] = (ICON_WINDOW, ICON_DOOR),
        gap: int = 10,
        max_num_points: int = 100,
        line_width: int = 5,
        min_distance_only: bool = True
    ):
        """
        Initialize opening detector.

        Args:
            threshold: Minimum heat map value for an opening corner
            opening_classes: Icon segmentation classes that are openings
            gap: Perpendicular slack when pairing corners
            max_num_points: Peak cap per heat map channel
            line_width: Half-width of the wall raster
            min_distance_only: Pair each corner with its closest partner only
        """
        self.threshold = threshold
        self.opening_classes = tuple(opening_classes)
        self.gap = gap
        self.max_num_points = max_num_points
        self.line_width = line_width
        self.min_distance_only = min_distance_only

    def classify_lines(
        self, points: Sequence[ConfidencePoint], lines: Sequence[Tuple[int, int]], icon_seg: np.ndarray
    ) -> List[Tuple[int, float]]:
        """Opening class with the most icon evidence along each line."""
        _, height, width = icon_seg.shape
        classes = list(self.opening_classes)
        line_types = []

        for line in lines:
            p, n = points[line[0]], points[line[1]]
            line_dim = calc_line_dim(points, line)
            fixed_value = int(round((p[1 - line_dim] + n[1 - line_dim]) / 2.0))
            fixed_value = min(max(fixed_value, 0), (height if line_dim == 0 else width) - 1)
            start = min(p[line_dim], n[line_dim])
            stop = max(p[line_dim], n[line_dim])

            if line_dim == 0:
                span = icon_seg[classes, fixed_value, max(start, 0):min(stop, width - 1) + 1]
            else:
                span = icon_seg[classes, max(start, 0):min(stop, height - 1) + 1, fixed_value]
            sums = span.sum(axis=1)
            best = int(np.argmax(sums))
            line_types.append((classes[best], float(sums[best])))

        return line_types

    def complete_wall_lines(self, wall_result: WallDetectionResult) -> List[WallLine]:
        """Wall lines whose both junctions connect in every direction their type expects."""
        graph = wall_result.point_graph
        valid = {
            i for i, point in enumerate(wall_result.points)
            if i < len(graph.orientation_lines)
            and graph.connected_orientations(i) == point.point_type + 1
        }
        return [l for l in wall_result.lines if l[0] in valid and l[1] in valid]

    def find_line_map_single(
        self, points: Sequence[ConfidencePoint], lines: Sequence[Tuple[int, int]],
        wall_points: Sequence[ConfidencePoint], wall_lines: Sequence[WallLine],
        height: int, width: int
    ) -> List[int]:
        """Index of the closest parallel, overlapping wall line per opening line (-1 if none)."""
        min_overlap = self.gap / 2.0
        line_map = []

        for line in lines:
            line_dim = calc_line_dim(points, line)
            min_distance = max(width, height)
            best = -1

            for wall_index, wall_line in enumerate(wall_lines):
                if calc_line_dim(wall_points, wall_line) != line_dim:
                    continue

                min_value = max(points[line[0]][line_dim], wall_points[wall_line[0]][line_dim])
                max_value = min(points[line[1]][line_dim], wall_points[wall_line[1]][line_dim])
                if max_value - min_value < min_overlap:
                    continue

                fixed_1 = (points[line[0]][1 - line_dim] + points[line[1]][1 - line_dim]) / 2.0
                fixed_2 = (wall_points[wall_line[0]][1 - line_dim] + wall_points[wall_line[1]][1 - line_dim]) / 2.0
                distance = abs(fixed_2 - fixed_1)
                if distance < min_distance:
                    min_distance = distance
                    best = wall_index

            line_map.append(best)

        return line_map

    def adjust_door_points(
        self, points: List[ConfidencePoint], lines: Sequence[Tuple[int, int]],
        wall_points: Sequence[ConfidencePoint], wall_lines: Sequence[WallLine],
        line_map: Sequence[int]
    ) -> List[ConfidencePoint]:
        """Move opening endpoints onto the perpendicular coordinate of their wall line."""
        points = list(points)
        for line, wall_index in zip(lines, line_map):
            if wall_index < 0:
                continue
            line_dim = calc_line_dim(points, line)
            wall_line = wall_lines[wall_index]
            fixed_value = int((wall_points[wall_line[0]][1 - line_dim] +
                               wall_points[wall_line[1]][1 - line_dim]) / 2.0)
            field_name = 'y' if line_dim == 0 else 'x'
            for point_index in line[:2]:
                points[point_index] = points[point_index]._replace(**{field_name: fixed_value})
        return points

    def extract_opening_polygons(
        self, wall_polygons: Sequence[np.ndarray], points: Sequence[ConfidencePoint],
        lines: Sequence[Tuple[int, int]], height: int, width: int
    ) -> List[np.ndarray]:
        """Project each opening line onto every parallel wall rectangle containing it."""
        openings = []

        for pol in wall_polygons:
            polygon_dim = calc_polygon_dim(pol)
            for line in lines:
                p1, p2 = points[line[0]], points[line[1]]
                dim = calc_line_dim(points, line)
                if polygon_dim != dim or not points_in_polygon(p1, p2, pol):
                    continue

                if dim == 0:
                    up_left = get_intersect(pol[0], pol[1], (p1.x, p1.y), (p1.x, 0))
                    up_right = get_intersect(pol[0], pol[1], (p2.x, p2.y), (p2.x, 0))
                    down_right = get_intersect(pol[3], pol[2], (p2.x, p2.y), (p2.x, height - 1))
                    down_left = get_intersect(pol[3], pol[2], (p1.x, p1.y), (p1.x, height - 1))
                else:
                    up_left = get_intersect(pol[0], pol[3], (p1.x, p1.y), (0, p1.y))
                    up_right = get_intersect(pol[1], pol[2], (p1.x, p1.y), (width - 1, p1.y))
                    down_right = get_intersect(pol[1], pol[2], (p2.x, p2.y), (width - 1, p2.y))
                    down_left = get_intersect(pol[0], pol[3], (p2.x, p2.y), (0, p2.y))

                openings.append(np.array([up_left, up_right, down_right, down_left], dtype=int))

        return openings

    def get_opening_types(self, polygons: Sequence[np.ndarray], icon_seg: np.ndarray) -> List[DetectedPolygon]:
        """Door or window by the icon evidence inside each opening's box."""
        classes = [c for c in self.opening_classes if c < icon_seg.shape[0]]
        detections = []

        for pol in polygons:
            if not classes:
                detections.append(DetectedPolygon(pol, 'icon', 0, 0.0))
                continue

            x1, x2, y1, y2 = bounding_box(pol)
            sums = evidence_in_box(icon_seg, classes, x1, x2, y1, y2)
            best = int(np.argmax(sums))
            area = abs(y2 - y1) * abs(x2 - x1)
            prob = float(sums[best] / area) if area > 0 else 0.0
            detections.append(DetectedPolygon(pol, 'icon', classes[best], prob))

        return detections

    def detect(
        self, heatmaps: np.ndarray, wall_result: WallDetectionResult, icon_seg: np.ndarray
    ) -> OpeningDetectionResult:
        """
        Complete opening detection pipeline.

        Args:
            heatmaps: (21, H, W) heat maps
            wall_result: Output of WallDetector.detect
            icon_seg: (11, H, W) icon segmentation evidence

        Returns:
            OpeningDetectionResult with rectangles tagged by icon class
        """
        _, height, width = heatmaps.shape
        wall_mask = draw_line_mask(wall_result.points, wall_result.lines, height, width, self.line_width)

        points = extract_channel_peaks(
            heatmaps, OPENING_HEATMAP_ORDER, 0, self.max_num_points, self.threshold,
            gap=self.gap, mask=wall_mask
        )
        graph = calc_point_info(
            points, self.gap, width, height,
            min_distance_only=self.min_distance_only, double_direction=True
        )
        lines = graph.lines
        logger.info(f"Found {len(points)} opening corners, {len(lines)} opening lines")

        line_types = self.classify_lines(points, lines, icon_seg)
        for line, (line_class, evidence) in zip(lines, line_types):
            logger.debug(f"Opening line {line}: class {line_class}, evidence {evidence:.2f}")

        wall_lines = self.complete_wall_lines(wall_result)
        if lines and wall_lines:
            line_map = self.find_line_map_single(
                points, lines, wall_result.points, wall_lines, height, width
            )
            points = self.adjust_door_points(points, lines, wall_result.points, wall_lines, line_map)

        polygons = self.extract_opening_polygons(wall_result.polygons, points, lines, height, width)
        detections = self.get_opening_types(polygons, icon_seg)
        detections = remove_overlapping_openings(detections, self.opening_classes, same_class_only=True)

        logger.info(f"Detected {len(detections)} openings")
        return OpeningDetectionResult(
            openings=detections, points=points, lines=list(lines), line_types=line_types
        )


def detect_openings(
    heatmaps: np.ndarray, wall_result: WallDetectionResult, icon_seg: np.ndarray, **kwargs
) -> OpeningDetectionResult:
    """
    Convenience function for opening detection.

    Args:
        heatmaps: (21, H, W) heat maps
        wall_result: Output of WallDetector.detect
        icon_seg: (11, H, W) icon segmentation evidence
        **kwargs: Parameters for OpeningDetector

    Returns:
        OpeningDetectionResult
    """
    detector = OpeningDetector(**kwargs)
    return detector.detect(heatmaps, wall_result, icon_seg)
