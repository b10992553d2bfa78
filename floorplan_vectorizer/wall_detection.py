"""
Wall Detection Module
======================
Wall rectangles from junction heat maps and room segmentation:
1. Junction peaks per heat map channel
2. Candidate lines between compatible junctions
3. Segmentation-based filtering and long-wall dropping
4. Manhattan alignment of connected walls
5. Thickness measurement and rectangle construction
6. Corner fixing and overlap removal
"""

import numpy as np
from typing import Dict, List, Tuple, Optional, Sequence, Set
from dataclasses import dataclass, field
import logging

from .geometry import (
    bresenham_line, calc_line_dim, calc_polygon_dim, get_wall_length,
    pixel_class_map, stats_mode, clip_polygon, bounding_box, box_diagonal, polygon_iou
)
from .heatmap import ConfidencePoint, extract_local_max
from .point_analysis import PointGraph, calc_point_info
from .config import ROOM_WALL, ROOM_RAILING

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


WallLine = Tuple[int, int, int]  # (point index, point index, room class)


@dataclass
class WallRectangle:
    """A wall as a 4-vertex pixel rectangle with its measured thickness."""
    polygon: np.ndarray
    line: WallLine
    thickness: float

    @property
    def wall_class(self) -> int:
        return self.line[2]

    @property
    def dim(self) -> int:
        return calc_polygon_dim(self.polygon)


@dataclass
class WallDetectionResult:
    """Wall rectangles plus the point data the opening stage reuses."""
    walls: List[WallRectangle] = field(default_factory=list)
    points: List[ConfidencePoint] = field(default_factory=list)
    lines: List[WallLine] = field(default_factory=list)
    point_graph: PointGraph = field(default_factory=PointGraph)

    @property
    def polygons(self) -> List[np.ndarray]:
        return [w.polygon for w in self.walls]


def walls_same_corner(wall1: WallLine, wall2: WallLine, points: Sequence[ConfidencePoint]) -> bool:
    if calc_line_dim(points, wall1) != calc_line_dim(points, wall2):
        return False
    return wall1[0] == wall2[0] or wall1[1] == wall2[1]


def drop_long_walls(walls: List[WallLine], points: Sequence[ConfidencePoint]) -> List[WallLine]:
    """Of two same-axis walls leaving the same corner, keep the shorter."""
    bad: Set[int] = set()
    remaining: Dict[int, None] = {}  # insertion-ordered set

    for i in range(len(walls)):
        for j in range(i + 1, len(walls)):
            if i not in bad and j not in bad and walls_same_corner(walls[i], walls[j], points):
                len1 = get_wall_length(points, walls[i][0], walls[i][1])
                len2 = get_wall_length(points, walls[j][0], walls[j][1])
                good, worse = (i, j) if len1 <= len2 else (j, i)
                remaining.setdefault(good)
                bad.add(worse)
            else:
                for k in (i, j):
                    if k not in bad:
                        remaining.setdefault(k)

    if walls and not remaining and not bad:
        remaining = dict.fromkeys(range(len(walls)))

    return [walls[i] for i in remaining if i not in bad]


def get_connected_walls(walls: Sequence[WallLine]) -> List[Set[int]]:
    """Group walls sharing any endpoint; returns point-index sets."""
    remaining = list(walls)
    connected = []

    while remaining:
        wall = remaining.pop(0)
        indices = {wall[0], wall[1]}
        i = 0
        while i < len(remaining):
            candidate = {remaining[i][0], remaining[i][1]}
            if indices & candidate:
                indices |= candidate
                remaining.pop(i)
                i = 0
            else:
                i += 1
        connected.append(indices)

    return connected


def points_to_manhattan(
    connected_walls: Sequence[Set[int]], points: Sequence[ConfidencePoint], line_dim: int
) -> List[ConfidencePoint]:
    """Set coordinate line_dim of every point in a group to the group average."""
    new_points = list(points)
    field_name = 'x' if line_dim == 0 else 'y'

    for group in connected_walls:
        new_coord = int(round(sum(points[i][line_dim] for i in group) / len(group)))
        for i in group:
            new_points[i] = new_points[i]._replace(**{field_name: new_coord})

    return new_points


def _run_length(flags: np.ndarray) -> int:
    """Number of leading True values."""
    blocked = np.flatnonzero(~flags)
    return int(blocked[0]) if len(blocked) else len(flags)


class WallDetector:
    """
    Extracts wall rectangles from the 13 wall junction heat maps and the
    room segmentation evidence.
    """

    def __init__(
        self,
        threshold: float = 0.5,
        wall_classes: Sequence[int] = (ROOM_WALL, ROOM_RAILING),
        gap: int = 10,
        max_num_points: int = 100,
        overlap_threshold: float = 0.4
    ):
        """
        Initialize wall detector.

        Args:
            threshold: Minimum heat map value for a junction peak
            wall_classes: Room segmentation classes counted as wall
            gap: Perpendicular slack when pairing junctions
            max_num_points: Peak cap per heat map channel
            overlap_threshold: IoU above which parallel walls are deduplicated
        """
        self.threshold = threshold
        self.wall_classes = tuple(wall_classes)
        self.gap = gap
        self.max_num_points = max_num_points
        self.overlap_threshold = overlap_threshold

    def extract_points(self, wall_heatmaps: np.ndarray) -> List[ConfidencePoint]:
        """Channel i yields points of type i // 4, sub-index i % 4."""
        points = []
        for i in range(wall_heatmaps.shape[0]):
            points.extend(extract_local_max(
                wall_heatmaps[i], self.max_num_points, (i // 4, i % 4),
                self.threshold, close_point_suppression=True
            ))
        return points

    def filter_by_segmentation(
        self, lines: Sequence[Tuple[int, int]], points: Sequence[ConfidencePoint], room_seg: np.ndarray
    ) -> List[WallLine]:
        """Keep lines whose dominant room class along the path is a wall class."""
        _, height, width = room_seg.shape
        good_lines = []

        for i1, i2 in lines:
            pixels = np.array(bresenham_line(points[i1].x, points[i1].y, points[i2].x, points[i2].y))
            rows = np.clip(pixels[:, 0], 0, height - 1)
            cols = np.clip(pixels[:, 1], 0, width - 1)
            segment = int(np.argmax(room_seg[:, rows, cols].sum(axis=1)))

            if segment in self.wall_classes:
                good_lines.append((i1, i2, segment))

        return good_lines

    def get_wall_lines(
        self, wall_heatmaps: np.ndarray, room_seg: np.ndarray
    ) -> Tuple[List[WallLine], List[ConfidencePoint], PointGraph]:
        """
        Junction peaks joined into filtered, Manhattan-aligned wall lines.

        Returns:
            Tuple of (wall lines, aligned points, point graph of the raw lines)
        """
        _, height, width = room_seg.shape

        points = self.extract_points(wall_heatmaps)
        graph = calc_point_info(points, self.gap, width, height)
        logger.info(f"Found {len(points)} wall junctions, {len(graph.lines)} candidate lines")

        lines = self.filter_by_segmentation(graph.lines, points, room_seg)
        lines = drop_long_walls(lines, points)

        v_walls = [l for l in lines if calc_line_dim(points, l) == 1]
        h_walls = [l for l in lines if calc_line_dim(points, l) == 0]

        points = points_to_manhattan(get_connected_walls(v_walls), points, 0)
        points = points_to_manhattan(get_connected_walls(h_walls), points, 1)

        logger.info(f"Kept {len(lines)} wall lines ({len(h_walls)} horizontal, {len(v_walls)} vertical)")
        return lines, points, graph

    def extract_wall_polygon(
        self, wall: WallLine, points: Sequence[ConfidencePoint], is_wall: np.ndarray
    ) -> Optional[WallRectangle]:
        """
        Build the wall rectangle around a line.

        Thickness is the mode of the wall-class run lengths measured
        perpendicular to the line at every rasterized pixel.
        """
        max_height, max_width = is_wall.shape
        x1, y1 = points[wall[0]].x, points[wall[0]].y
        x2, y2 = points[wall[1]].x, points[wall[1]].y
        w_dim = calc_line_dim(points, wall)

        widths = []
        for row, col in bresenham_line(x1, y1, x2, y2):
            row = min(max(row, 0), max_height - 1)
            col = min(max(col, 0), max_width - 1)
            if w_dim == 1:
                w_pos = _run_length(is_wall[row, col + 1:])
                w_neg = _run_length(is_wall[row, :col][::-1])
            else:
                w_pos = _run_length(is_wall[row + 1:, col])
                w_neg = _run_length(is_wall[:row, col][::-1])
            widths.append(w_pos + w_neg + 1)

        if not widths:
            return None

        wall_width = stats_mode(widths)
        if w_dim == 1:
            wall_width = min(wall_width, y2 - y1)
        else:
            wall_width = min(wall_width, x2 - x1)

        w_delta = int(wall_width / 2.0)
        if w_delta == 0:
            return None

        if w_dim == 1:
            polygon = np.array([
                [x1 - w_delta, y1],  # up-left
                [x1 + w_delta, y1],  # up-right
                [x2 + w_delta, y2],  # down-right
                [x2 - w_delta, y2],  # down-left
            ], dtype=int)
        else:
            polygon = np.array([
                [x1, y1 - w_delta],
                [x2, y2 - w_delta],
                [x2, y2 + w_delta],
                [x1, y1 + w_delta],
            ], dtype=int)

        clip_polygon(polygon, max_width, max_height)
        return WallRectangle(polygon=polygon, line=wall, thickness=float(wall_width))

    def fix_wall_corners(self, walls: List[WallRectangle], points: Sequence[ConfidencePoint]) -> None:
        """Make horizontal and vertical rectangles meeting at a junction share corners."""
        lines = [w.line for w in walls]
        dims = [calc_line_dim(points, line) for line in lines]

        for i in range(len(points)):
            right = left = up = down = None
            for j, (p1, p2, _) in enumerate(lines):
                if dims[j] == 0:
                    if p1 == i:
                        right = j
                    elif p2 == i:
                        left = j
                else:
                    if p1 == i:
                        down = j
                    elif p2 == i:
                        up = j

            verticals = [k for k in (down, up) if k is not None]
            horizontals = [k for k in (left, right) if k is not None]

            if right is not None and verticals:
                new_x = min(walls[k].polygon[0, 0] for k in verticals)
                walls[right].polygon[[0, 3], 0] = new_x

            if left is not None and verticals:
                new_x = max(walls[k].polygon[1, 0] for k in verticals)
                walls[left].polygon[[1, 2], 0] = new_x

            if up is not None and horizontals:
                candidates = []
                if left is not None:
                    candidates.append(walls[left].polygon[3, 1])
                if right is not None:
                    candidates.append(walls[right].polygon[0, 1])
                walls[up].polygon[[2, 3], 1] = min(candidates)

            if down is not None and horizontals:
                candidates = []
                if left is not None:
                    candidates.append(walls[left].polygon[2, 1])
                if right is not None:
                    candidates.append(walls[right].polygon[0, 1])
                walls[down].polygon[[0, 1], 1] = max(candidates)

    def remove_overlapping_walls(self, walls: List[WallRectangle]) -> List[WallRectangle]:
        """Drop the smaller of two parallel walls whose boxes overlap beyond the threshold."""
        to_remove = set()

        for i in range(len(walls)):
            size_i = box_diagonal(*bounding_box(walls[i].polygon))
            for j in range(i + 1, len(walls)):
                if walls[i].dim != walls[j].dim:
                    continue
                if polygon_iou(walls[i].polygon, walls[j].polygon) > self.overlap_threshold:
                    if size_i < box_diagonal(*bounding_box(walls[j].polygon)):
                        to_remove.add(i)
                    else:
                        to_remove.add(j)

        if to_remove:
            logger.info(f"Removed {len(to_remove)} overlapping walls")
        return [w for i, w in enumerate(walls) if i not in to_remove]

    def detect(self, wall_heatmaps: np.ndarray, room_seg: np.ndarray) -> WallDetectionResult:
        """
        Complete wall detection pipeline.

        Args:
            wall_heatmaps: (13, H, W) junction heat maps
            room_seg: (12, H, W) room segmentation evidence

        Returns:
            WallDetectionResult with rectangles aligned to their lines
        """
        lines, points, graph = self.get_wall_lines(wall_heatmaps, room_seg)
        is_wall = np.isin(pixel_class_map(room_seg), self.wall_classes)

        walls = []
        for line in lines:
            wall = self.extract_wall_polygon(line, points, is_wall)
            if wall is not None:
                walls.append(wall)

        self.fix_wall_corners(walls, points)
        walls = self.remove_overlapping_walls(walls)

        logger.info(f"Final wall count: {len(walls)}")
        return WallDetectionResult(
            walls=walls,
            points=points,
            lines=[w.line for w in walls],
            point_graph=graph
        )


def detect_walls(wall_heatmaps: np.ndarray, room_seg: np.ndarray, **kwargs) -> WallDetectionResult:
    """
    Convenience function for wall detection.

    Args:
        wall_heatmaps: (13, H, W) junction heat maps
        room_seg: (12, H, W) room segmentation evidence
        **kwargs: Parameters for WallDetector

    Returns:
        WallDetectionResult
    """
    detector = WallDetector(**kwargs)
    return detector.detect(wall_heatmaps, room_seg)
