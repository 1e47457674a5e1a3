# ================================
# file: core/__init__.py
# ================================
"""
Core Package

Exports fundamental types, geometry and configuration objects.
"""
from core.types import Pose2D, LaserScan
from core.geometry import (
    LineSegment, PointLandmark, wrap_angle,
    ray_segment_distance, ray_circle_distance,
    point_segment_distance, point_line_distance, line_intersection,
)
from core.config import (
    RobotConfig, LaserConfig, ExtractorConfig, SlamConfig,
    GridConfig, ControllerConfig, SystemConfig,
)

__all__ = [
    # Types
    'Pose2D', 'LaserScan',

    # Geometry
    'LineSegment', 'PointLandmark', 'wrap_angle',
    'ray_segment_distance', 'ray_circle_distance',
    'point_segment_distance', 'point_line_distance', 'line_intersection',

    # Configuration
    'RobotConfig', 'LaserConfig', 'ExtractorConfig', 'SlamConfig',
    'GridConfig', 'ControllerConfig', 'SystemConfig',
]
