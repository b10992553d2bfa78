"""
Polygon Extraction Pipeline
============================
Main entry point for turning network output into classified polygons.
Combines wall, icon and opening detection, then normalizes the result.
"""

import numpy as np
import logging
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field

from .config import (
    PostProcessingConfig, HEATMAP_CHANNELS, ROOM_CHANNELS, ICON_CHANNELS,
    WALL_HEATMAP_SLICE
)
from .wall_detection import WallDetector
from .opening_detection import OpeningDetector, DetectedPolygon, remove_overlapping_openings
from .icon_detection import IconDetector

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class StructureCategory(Enum):
    """Output taxonomy of the extracted polygons."""
    WALL = "wall"
    DOOR = "door"
    WINDOW = "window"


@dataclass(frozen=True)
class PolygonEntry:
    """Exactly four vertices normalized to [0, 1] and their category."""
    vertices: Tuple[Tuple[float, float], ...]
    category: StructureCategory

    def __post_init__(self):
        if len(self.vertices) != 4:
            raise ValueError(f"PolygonEntry needs exactly 4 vertices, got {len(self.vertices)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'vertices': [list(v) for v in self.vertices]
        }


@dataclass
class PolygonResult:
    """Polygons extracted from one network output."""
    polygons: List[PolygonEntry] = field(default_factory=list)
    width: int = 0
    height: int = 0

    def by_category(self, category: StructureCategory) -> List[PolygonEntry]:
        return [p for p in self.polygons if p.category == category]

    def category_counts(self) -> Dict[str, int]:
        counts = {}
        for p in self.polygons:
            counts[p.category.value] = counts.get(p.category.value, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'width': self.width,
            'height': self.height,
            'counts': self.category_counts(),
            'polygons': [p.to_dict() for p in self.polygons]
        }


def validate_network_output(heatmaps: np.ndarray, rooms: np.ndarray, icons: np.ndarray) -> Tuple[int, int]:
    """
    Check the channel counts and spatial sizes of the three arrays.

    Returns:
        (height, width) shared by all three arrays
    """
    for name, array, channels in (
        ('heatmaps', heatmaps, HEATMAP_CHANNELS),
        ('rooms', rooms, ROOM_CHANNELS),
        ('icons', icons, ICON_CHANNELS),
    ):
        if array.ndim != 3:
            raise ValueError(f"{name} must be a 3D (C, H, W) array, got shape {array.shape}")
        if array.shape[0] != channels:
            raise ValueError(f"{name} must have {channels} channels, got {array.shape[0]}")

    height, width = icons.shape[1:]
    if height == 0 or width == 0:
        raise ValueError(f"Empty spatial size {icons.shape[1:]}")
    for name, array in (('heatmaps', heatmaps), ('rooms', rooms)):
        if array.shape[1:] != (height, width):
            raise ValueError(
                f"{name} spatial size {array.shape[1:]} does not match icons {(height, width)}"
            )

    return height, width


def normalize_polygon(polygon: np.ndarray, width: int, height: int) -> Tuple[Tuple[float, float], ...]:
    """Pixel vertices to [0, 1], rounded to six decimals."""
    scale = np.array([width, height], dtype=float)
    normalized = np.clip(np.round(np.asarray(polygon, dtype=float) / scale, 6), 0.0, 1.0)
    return tuple((float(x), float(y)) for x, y in normalized)


class FloorPlanPostProcessor:
    """
    Complete polygon extraction pipeline.
    """

    def __init__(self, config: Optional[PostProcessingConfig] = None):
        """
        Initialize the post-processor.

        Args:
            config: Detection parameters (defaults when omitted)
        """
        self.config = config or PostProcessingConfig()

        self.wall_detector = WallDetector(
            threshold=self.config.threshold,
            wall_classes=self.config.wall_classes,
            gap=self.config.gap,
            max_num_points=self.config.max_num_points,
            overlap_threshold=self.config.wall_overlap_threshold
        )
        self.icon_detector = IconDetector(
            threshold=self.config.threshold,
            gap=self.config.gap,
            max_num_points=self.config.max_num_points,
            min_distance_only=self.config.icon_min_distance_only
        )
        self.opening_detector = OpeningDetector(
            threshold=self.config.threshold,
            opening_classes=self.config.opening_classes,
            gap=self.config.gap,
            max_num_points=self.config.max_num_points,
            line_width=self.config.line_width,
            min_distance_only=self.config.opening_min_distance_only
        )

    def categorize(self, detection: DetectedPolygon) -> Optional[StructureCategory]:
        if detection.kind == 'wall':
            return StructureCategory.WALL
        if detection.kind == 'icon':
            if detection.class_id in self.config.window_classes:
                return StructureCategory.WINDOW
            if detection.class_id in self.config.door_classes:
                return StructureCategory.DOOR
        return None

    def process(self, heatmaps: np.ndarray, rooms: np.ndarray, icons: np.ndarray) -> PolygonResult:
        """
        Extract classified polygons.

        Args:
            heatmaps: (21, H, W) sigmoid-activated heat maps
            rooms: (12, H, W) softmax room evidence
            icons: (11, H, W) softmax icon evidence

        Returns:
            PolygonResult with normalized coordinates
        """
        height, width = validate_network_output(heatmaps, rooms, icons)
        logger.info(f"Post-processing {width}x{height} network output")

        # Step 1: Walls
        logger.info("Step 1: Detecting walls...")
        wall_result = self.wall_detector.detect(heatmaps[WALL_HEATMAP_SLICE], rooms)

        # Step 2: Icons
        logger.info("Step 2: Detecting icons...")
        icon_detections = self.icon_detector.detect(heatmaps, icons)

        # Step 3: Openings along walls
        logger.info("Step 3: Detecting openings...")
        opening_result = self.opening_detector.detect(heatmaps, wall_result, icons)

        # Step 4: Merge and deduplicate openings across detectors
        detections = [
            DetectedPolygon(w.polygon, 'wall', w.wall_class) for w in wall_result.walls
        ]
        detections.extend(icon_detections)
        detections.extend(opening_result.openings)
        if detections:
            detections = remove_overlapping_openings(detections, self.config.opening_classes)

        # Step 5: Normalize and tag
        result = PolygonResult(width=width, height=height)
        for detection in detections:
            category = self.categorize(detection)
            if category is None:
                logger.debug(f"Skipping icon of class {detection.class_id}")
                continue
            result.polygons.append(
                PolygonEntry(normalize_polygon(detection.polygon, width, height), category)
            )

        logger.info(f"Extraction complete: {result.category_counts()}")
        return result


def get_polygons(
    heatmaps: np.ndarray,
    rooms: np.ndarray,
    icons: np.ndarray,
    threshold: float = 0.5,
    **kwargs
) -> PolygonResult:
    """
    Convenience function for polygon extraction.

    Args:
        heatmaps: (21, H, W) heat maps
        rooms: (12, H, W) room evidence
        icons: (11, H, W) icon evidence
        threshold: Peak detection threshold
        **kwargs: Additional PostProcessingConfig fields

    Returns:
        PolygonResult
    """
    config = PostProcessingConfig(threshold=threshold, **kwargs)
    return FloorPlanPostProcessor(config).process(heatmaps, rooms, icons)
