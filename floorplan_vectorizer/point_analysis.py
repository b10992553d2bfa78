"""
Point Connectivity Analysis
============================
Connects typed heat map peaks into axis-aligned candidate lines.

Each peak type allows lines in a fixed subset of the four directions
(0=up, 1=right, 2=down, 3=left). Two peaks are paired when one looks
towards the other and the other looks back.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .heatmap import ConfidencePoint


# (point_type, sub_index) -> allowed directions
POINT_ORIENTATIONS: Tuple[Tuple[Tuple[int, ...], ...], ...] = (
    ((2,), (3,), (0,), (1,)),                                    # corner
    ((0, 3), (0, 1), (1, 2), (2, 3)),                            # T / L
    ((1, 2, 3), (0, 2, 3), (0, 1, 3), (0, 1, 2)),                # three-way
    ((0, 1, 2, 3),),                                             # cross
)


def point_orientations(point: ConfidencePoint) -> Tuple[int, ...]:
    return POINT_ORIENTATIONS[point.point_type][point.sub_index]


def opposite_orientation(orientation: int) -> int:
    return (orientation + 2) % 4


def orientation_line_dim(orientation: int) -> int:
    """Up/down lines are vertical (1), left/right lines horizontal (0)."""
    return 1 if orientation in (0, 2) else 0


def orientation_ranges(width: int, height: int) -> Tuple[Tuple[int, int, int, int], ...]:
    """
    Seed search windows (x_min, y_min, x_max, y_max) per direction.

    Each window is anchored at the image edge the direction points to and is
    widened around the point in calc_search_window.
    """
    return (
        (width, 0, 0, 0),
        (width, height, width, 0),
        (width, height, 0, height),
        (0, height, 0, 0),
    )


def calc_search_window(
    point: Sequence[int], orientation: int, gap: int, width: int, height: int
) -> List[int]:
    ranges = list(orientation_ranges(width, height)[orientation])
    deltas = [0, 0]
    if orientation_line_dim(orientation) == 1:
        deltas[0] = gap
    else:
        deltas[1] = gap

    for c in range(2):
        ranges[c] = min(ranges[c], point[c] - deltas[c])
        ranges[c + 2] = max(ranges[c + 2], point[c] + deltas[c])
    return ranges


def in_window(point: Sequence[int], ranges: Sequence[int]) -> bool:
    return all(ranges[c] <= point[c] <= ranges[c + 2] for c in range(2))


@dataclass
class PointGraph:
    """Candidate lines and per-point bookkeeping."""
    lines: List[Tuple[int, int]] = field(default_factory=list)
    orientation_lines: List[Dict[int, List[int]]] = field(default_factory=list)
    neighbors: List[List[int]] = field(default_factory=list)

    def connected_orientations(self, point_index: int) -> int:
        """Number of allowed directions that received at least one line."""
        return sum(1 for lines in self.orientation_lines[point_index].values() if lines)


def calc_point_info(
    points: Sequence[ConfidencePoint],
    gap: int,
    width: int,
    height: int,
    min_distance_only: bool = False,
    double_direction: bool = False
) -> PointGraph:
    """
    Pair compatible points into lines.

    Args:
        points: Typed peaks
        gap: Perpendicular slack of the search window
        width, height: Image size
        min_distance_only: Keep only the closest neighbor per direction
        double_direction: Scan every other point, not just later ones,
            without recording an undirected line twice

    Returns:
        PointGraph with lines ordered so the point with the smaller x+y comes first
    """
    graph = PointGraph(
        orientation_lines=[{o: [] for o in point_orientations(p)} for p in points],
        neighbors=[[] for _ in points]
    )
    seen = set()

    for point_index, point in enumerate(points):
        for orientation in point_orientations(point):
            opposite = opposite_orientation(orientation)
            line_dim = orientation_line_dim(orientation)
            ranges = calc_search_window(point, orientation, gap, width, height)

            neighbor_points = []
            min_distance = max(width, height)
            min_distance_neighbor = -1

            for neighbor_index, neighbor in enumerate(points):
                if neighbor_index == point_index:
                    continue
                if not double_direction and neighbor_index < point_index:
                    continue
                if opposite not in point_orientations(neighbor):
                    continue
                if not in_window(neighbor, ranges):
                    continue

                abs_dim_dist = abs(neighbor[line_dim] - point[line_dim])
                abs_other_dist = abs(neighbor[1 - line_dim] - point[1 - line_dim])
                if abs_dim_dist < max(abs_other_dist, 1):
                    continue

                if min_distance_only:
                    if abs_dim_dist < min_distance:
                        min_distance = abs_dim_dist
                        min_distance_neighbor = neighbor_index
                else:
                    neighbor_points.append(neighbor_index)

            if min_distance_only and min_distance_neighbor >= 0:
                neighbor_points.append(min_distance_neighbor)

            for neighbor_index in neighbor_points:
                key = (min(point_index, neighbor_index), max(point_index, neighbor_index))
                if double_direction and key in seen:
                    continue
                seen.add(key)

                line_index = len(graph.lines)
                graph.orientation_lines[point_index][orientation].append(line_index)
                graph.orientation_lines[neighbor_index][opposite].append(line_index)
                graph.neighbors[point_index].append(neighbor_index)
                graph.neighbors[neighbor_index].append(point_index)

                neighbor = points[neighbor_index]
                if point.x + point.y < neighbor.x + neighbor.y:
                    graph.lines.append((point_index, neighbor_index))
                else:
                    graph.lines.append((neighbor_index, point_index))

    return graph
