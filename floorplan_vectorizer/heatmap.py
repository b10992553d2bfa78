"""
Heatmap Peak Extraction Module
===============================
Iterative non-maximum suppression over a 2D confidence map:
1. Pick the global maximum
2. Flood-fill away its monotonically decreasing neighborhood
3. Optionally clear a square window around it
"""

import numpy as np
from typing import List, NamedTuple, Optional, Sequence, Tuple
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ConfidencePoint(NamedTuple):
    """A heat map peak tagged with its junction type."""
    x: int
    y: int
    point_type: int  # 0=corner, 1=T, 2=three-way, 3=cross
    sub_index: int
    confidence: float


_NEIGHBOR_DELTAS = ((-1, 0), (1, 0), (0, -1), (0, 1))


def maximum_suppression(mask: np.ndarray, x: int, y: int, threshold: float) -> None:
    """
    Zero, in place, every cell reachable from (x, y) through 4-connected
    steps that never climb and never drop to the threshold.
    """
    height, width = mask.shape
    visited = np.zeros(mask.shape, dtype=bool)
    visited[y, x] = True
    stack = [(x, y, np.inf)]

    while stack:
        cx, cy, value = stack.pop()
        for dx, dy in _NEIGHBOR_DELTAS:
            nx, ny = cx + dx, cy + dy
            if nx < 0 or ny < 0 or nx >= width or ny >= height or visited[ny, nx]:
                continue
            neighbor_value = mask[ny, nx]
            if threshold < neighbor_value <= value:
                visited[ny, nx] = True
                stack.append((nx, ny, neighbor_value))

    mask[visited] = 0


def extract_local_max(
    heatmap: np.ndarray,
    num_points: int,
    info: Tuple[int, int],
    threshold: float = 0.5,
    close_point_suppression: bool = False,
    gap: int = 10
) -> List[ConfidencePoint]:
    """
    Extract up to num_points peaks from a heat map.

    Args:
        heatmap: (H, W) confidence map, left untouched
        num_points: Maximum number of peaks
        info: (point_type, sub_index) stamped on every peak
        threshold: Peaks must be strictly above this value
        close_point_suppression: Also clear a (2*gap+1) square around each peak
        gap: Half-size of the suppression window

    Returns:
        Peaks in extraction order (descending confidence)
    """
    mask = np.array(heatmap, dtype=np.float32, copy=True)
    height, width = mask.shape
    points = []

    for _ in range(num_points):
        flat_index = int(np.argmax(mask))
        y, x = divmod(flat_index, width)
        value = float(mask[y, x])

        if value <= threshold:
            break

        points.append(ConfidencePoint(x, y, info[0], info[1], value))
        maximum_suppression(mask, x, y, threshold)

        if close_point_suppression:
            mask[max(y - gap, 0):min(y + gap, height - 1) + 1,
                 max(x - gap, 0):min(x + gap, width - 1) + 1] = 0

    return points


def extract_channel_peaks(
    heatmaps: np.ndarray,
    channels: Sequence[int],
    point_type: int,
    num_points: int,
    threshold: float,
    close_point_suppression: bool = False,
    gap: int = 10,
    mask: Optional[np.ndarray] = None
) -> List[ConfidencePoint]:
    """
    Run peak extraction over several heat map channels.

    The k-th listed channel yields points with sub-index k. When a mask is
    given, each channel is multiplied by it before extraction.
    """
    points = []
    for sub_index, channel in enumerate(channels):
        heatmap = heatmaps[channel]
        if mask is not None:
            heatmap = heatmap * mask
        points.extend(extract_local_max(
            heatmap, num_points, (point_type, sub_index), threshold,
            close_point_suppression=close_point_suppression, gap=gap
        ))

    logger.debug(f"Extracted {len(points)} peaks from channels {list(channels)}")
    return points
