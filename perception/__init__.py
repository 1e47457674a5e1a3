# ================================
# file: perception/__init__.py
# ================================
"""
Perception Package

Exports:
- ObstacleLandmarkExtractor: scan -> (wall segments, point landmarks)
- segment_scan: range-discontinuity segmentation
- LINE_EXTRACTORS: named line strategies (iep, ransac, ransac_lsq)
"""
from perception.segmentation import segment_scan
from perception.line_fitting import LINE_EXTRACTORS, fit_iep, fit_ransac, get_line_extractor
from perception.extractor import ObstacleLandmarkExtractor

__all__ = [
    'ObstacleLandmarkExtractor',
    'segment_scan',
    'LINE_EXTRACTORS', 'fit_iep', 'fit_ransac', 'get_line_extractor',
]
