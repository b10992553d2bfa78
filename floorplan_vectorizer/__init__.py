# Floor Plan Vectorizer Package
# Polygon extraction and planar-graph room outlines from floor plan network output

__version__ = "1.0.0"

# Import main classes for easy access
from .config import PostProcessingConfig
from .heatmap import ConfidencePoint, extract_local_max
from .point_analysis import POINT_ORIENTATIONS, PointGraph, calc_point_info
from .wall_detection import WallDetector, WallRectangle, WallDetectionResult
from .opening_detection import OpeningDetector, DetectedPolygon, OpeningDetectionResult
from .icon_detection import IconDetector, IconCandidate
from .pipeline import (
    FloorPlanPostProcessor, PolygonEntry, PolygonResult, StructureCategory, get_polygons
)
from .centerline import WallSegment, extract_centerline, extract_centerlines
from .room_detection import (
    RoomOutlineExtractor, ExtractionResult, RoomOutline, JunctionPoint,
    Connection, IntersectionPoint, extract_room_outlines
)
from .wall_chains import ChainResult, build_chains, build_chains_from_walls
from .tensor_utils import split_channels, prepare_network_output

__all__ = [
    'PostProcessingConfig',
    'ConfidencePoint',
    'extract_local_max',
    'POINT_ORIENTATIONS',
    'PointGraph',
    'calc_point_info',
    'WallDetector',
    'WallRectangle',
    'WallDetectionResult',
    'OpeningDetector',
    'DetectedPolygon',
    'OpeningDetectionResult',
    'IconDetector',
    'IconCandidate',
    'FloorPlanPostProcessor',
    'PolygonEntry',
    'PolygonResult',
    'StructureCategory',
    'get_polygons',
    'WallSegment',
    'extract_centerline',
    'extract_centerlines',
    'RoomOutlineExtractor',
    'ExtractionResult',
    'RoomOutline',
    'JunctionPoint',
    'Connection',
    'IntersectionPoint',
    'extract_room_outlines',
    'ChainResult',
    'build_chains',
    'build_chains_from_walls',
    'split_channels',
    'prepare_network_output'
]
