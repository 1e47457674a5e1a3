# ================================
# file: slam/slam_system.py
# ================================
"""
SLAM driver: EKF-SLAM estimator plus the two evidence grids.

Per scan:
- laser end points are computed from the *estimated* pose
- hit grid: one hit per end point, inflated by the robot radius
- sense grid: free ray from the sensor to every end point
- features are extracted and point landmarks fed to the EKF as body-frame
  positions
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Deque, Tuple, Optional, List
from collections import deque
import math
import numpy as np

from core import Pose2D, LaserScan
from core.config import SlamConfig, ExtractorConfig, GridConfig
from core.geometry import LineSegment, PointLandmark
from perception.extractor import ObstacleLandmarkExtractor
from planning.hit_grid import HitGrid
from slam.ekf_slam import EkfSlam, AUGMENTED


@dataclass
class ScanResult:
    """Features extracted from one processed scan and their EKF outcomes."""
    t: float
    segments: List[LineSegment] = field(default_factory=list)
    points: List[PointLandmark] = field(default_factory=list)
    outcomes: List[Tuple[str, Optional[int]]] = field(default_factory=list)
    end_points: List[Tuple[float, float]] = field(default_factory=list)


class SlamSystem:
    """
    Usage:
        slam = SlamSystem()
        slam.set_initial_pose(start_pose)
        while running:
            slam.propagate(control, dt)
            slam.process_scan(scan, robot_radius, mount_offset)
    """

    def __init__(self,
                 slam_config: Optional[SlamConfig] = None,
                 extractor_config: Optional[ExtractorConfig] = None,
                 grid_config: Optional[GridConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 logger_func=None,
                 log_file=None) -> None:
        """
        Args:
            slam_config: noise and gating parameters
            extractor_config: feature extraction parameters
            grid_config: extent/resolution shared by both grids
            rng: generator for RANSAC sampling
            logger_func: Logger function
            log_file: Log file handle
        """
        self.cfg = slam_config or SlamConfig()
        self.logger_func = logger_func
        self.log_file = log_file

        self.ekf = EkfSlam(self.cfg, logger_func=logger_func, log_file=log_file)
        self.extractor = ObstacleLandmarkExtractor(extractor_config, rng=rng,
                                                   logger_func=logger_func, log_file=log_file)
        self.hit_grid = HitGrid(grid_config, logger_func=logger_func, log_file=log_file)
        self.sense_grid = HitGrid(grid_config, logger_func=logger_func, log_file=log_file)

        self.process_cov = np.eye(2) * self.cfg.process_std ** 2
        self.measurement_cov = np.eye(2) * self.cfg.measurement_std ** 2

        self._last_scan_t: Optional[float] = None
        self.trajectory: Deque[Tuple[float, float]] = deque(maxlen=self.cfg.trajectory_history)
        self.last_result: Optional[ScanResult] = None

    def _log_debug(self, message: str) -> None:
        """Add debug message to log and integrate with main log_to_file system"""
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "SLAM")
        else:
            print(f"[SLAM] {message}")

    # ---------- lifecycle ----------
    def set_initial_pose(self, pose: Pose2D) -> None:
        self.ekf.reset(pose)
        self.trajectory.clear()
        self.trajectory.append((pose.x, pose.y))
        self._last_scan_t = None
        self.last_result = None
        self._log_debug(f"Initial pose set: ({pose.x:.1f}, {pose.y:.1f}, {math.degrees(pose.theta):.1f}°)")

    def reset(self, pose: Pose2D) -> None:
        self.hit_grid.clear()
        self.sense_grid.clear()
        self.set_initial_pose(pose)

    def set_extractor(self, mode: str) -> None:
        self.extractor.set_mode(mode)

    def get_pose(self) -> Pose2D:
        return self.ekf.pose

    # ---------- prediction ----------
    def propagate(self, control: Tuple[float, float], dt: float) -> None:
        self.ekf.propagate(control, self.process_cov, dt)
        if dt > 0.0:
            p = self.ekf.pose
            self.trajectory.append((p.x, p.y))

    # ---------- correction ----------
    def laser_end_points(self, scan: LaserScan, origin: Tuple[float, float],
                         heading: float) -> List[Tuple[float, float]]:
        ends = []
        for i, r in enumerate(scan.ranges):
            if r >= scan.invalid_value:
                continue
            a = heading + scan.beam_angle(i)
            ends.append((origin[0] + r * math.cos(a), origin[1] + r * math.sin(a)))
        return ends

    def process_scan(self, scan: LaserScan, robot_radius: float,
                     mount_offset: float) -> Optional[ScanResult]:
        """Fold one scan into grids and estimator.

        Skipped (returns None) when the scan has no timestamp or is not newer
        than the last processed one.
        """
        if scan.t is None or (self._last_scan_t is not None and scan.t <= self._last_scan_t):
            return None
        self._last_scan_t = scan.t

        pose = self.ekf.pose
        c, s = math.cos(pose.theta), math.sin(pose.theta)
        origin = (pose.x + mount_offset * c, pose.y + mount_offset * s)
        ends = self.laser_end_points(scan, origin, pose.theta)

        for e in ends:
            self.hit_grid.add_hit(e, robot_radius)
            self.sense_grid.rasterize_free_ray(origin, e)

        segments, points = self.extractor.extract(ends, scan.ranges, scan.invalid_value)

        # World -> body frame with the estimated pose: C^T (p_l - p)
        meas = []
        for lm in points:
            dx = lm.position[0] - pose.x
            dy = lm.position[1] - pose.y
            meas.append((c * dx + s * dy, -s * dx + c * dy))
        outcomes = self.ekf.augment_or_update(meas, self.measurement_cov) if meas else []

        result = ScanResult(float(scan.t), segments, points, outcomes, ends)
        self.last_result = result
        n_new = sum(1 for o, _ in outcomes if o == AUGMENTED)
        if n_new:
            self._log_debug(f"t={scan.t:.2f}s: {len(segments)} walls, {len(points)} points, "
                            f"{n_new} new landmarks (L={self.ekf.n_landmarks})")
        return result
