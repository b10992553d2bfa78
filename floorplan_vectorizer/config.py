"""
Configuration Module
=====================
Channel layout of the network output and the tunable parameters shared by
the polygon extraction and planar-graph stages.
"""

from dataclasses import dataclass, asdict
from typing import Tuple, Dict, Any


# =============================================================================
# NETWORK OUTPUT LAYOUT
# =============================================================================

HEATMAP_CHANNELS = 21
ROOM_CHANNELS = 12
ICON_CHANNELS = 11
TOTAL_CHANNELS = HEATMAP_CHANNELS + ROOM_CHANNELS + ICON_CHANNELS

# Heat map channels 0-12 hold wall junctions (4 corner, 4 T, 4 three-way, 1 cross)
WALL_HEATMAP_SLICE = slice(0, 13)

# Opening corners (channels 13-16) and icon corners (channels 17-20),
# listed in the order that maps to sub-indices 0..3
OPENING_HEATMAP_ORDER = (15, 14, 16, 13)
ICON_HEATMAP_ORDER = (20, 19, 17, 18)

# Room segmentation classes
ROOM_BACKGROUND = 0
ROOM_WALL = 2
ROOM_RAILING = 8

# Icon segmentation classes
ICON_BACKGROUND = 0
ICON_WINDOW = 1
ICON_DOOR = 2


# =============================================================================
# WORLD / GRAPH DEFAULTS
# =============================================================================

DEFAULT_CAPTURE_SIZE = (7.0, 7.0)  # meters
DEFAULT_CONNECTION_THRESHOLD = 0.3  # meters
MIN_FACE_AREA = 0.01  # square meters
MANHATTAN_SNAP_PASSES = 3


@dataclass
class PostProcessingConfig:
    """Parameters for polygon extraction from the network output."""
    threshold: float = 0.5
    wall_classes: Tuple[int, ...] = (ROOM_WALL, ROOM_RAILING)
    window_classes: Tuple[int, ...] = (ICON_WINDOW,)
    door_classes: Tuple[int, ...] = (ICON_DOOR,)
    gap: int = 10
    max_num_points: int = 100
    line_width: int = 5  # half-width of the wall raster used to mask openings
    wall_overlap_threshold: float = 0.4
    icon_min_distance_only: bool = True
    opening_min_distance_only: bool = True

    @property
    def opening_classes(self) -> Tuple[int, ...]:
        return tuple(self.window_classes) + tuple(self.door_classes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
