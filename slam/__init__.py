# ================================
# file: slam/__init__.py
# ================================
"""
SLAM Package

Exports:
- EkfSlam: joint pose/landmark extended Kalman filter
- SlamSystem: per-tick driver (propagation, scan processing, evidence grids)
"""
from slam.ekf_slam import EkfSlam
from slam.slam_system import SlamSystem, ScanResult

__all__ = [
    'EkfSlam',
    'SlamSystem',
    'ScanResult',
]
