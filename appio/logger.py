# ================================
# file: appio/logger.py
# ================================
from __future__ import annotations
from typing import List, Tuple
from datetime import datetime
import numpy as np
from core import Pose2D, LaserScan


def log_to_file(log_file, message, module="MAIN"):
    """Write message to log file with timestamp and module"""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    log_entry = f"[{timestamp}] [{module}] {message}\n"
    log_file.write(log_entry)
    log_file.flush()  # Ensure immediate write
    print(log_entry.strip())  # Also print to console


class DataLogger:
    """Simple NPZ logger for scans, true/estimated poses, commands and landmark counts.

    All records are stamped with simulation time.
    """
    def __init__(self) -> None:
        self.scans: List[Tuple[float, List[float]]] = []
        self.poses: List[Tuple[float, float, float, float, float, float, float]] = []
        self.cmds: List[Tuple[float, float, float]] = []
        self.landmarks: List[Tuple[float, int]] = []

    def log_scan(self, scan: LaserScan) -> None:
        self.scans.append((float(scan.t or 0.0), list(scan.ranges)))

    def log_pose(self, t: float, truth: Pose2D, estimate: Pose2D) -> None:
        self.poses.append((float(t), truth.x, truth.y, truth.theta,
                           estimate.x, estimate.y, estimate.theta))

    def log_command(self, t: float, v: float, w: float) -> None:
        self.cmds.append((float(t), float(v), float(w)))

    def log_landmarks(self, t: float, count: int) -> None:
        self.landmarks.append((float(t), int(count)))

    def position_errors(self) -> np.ndarray:
        """Euclidean distance between true and estimated position per record."""
        if not self.poses:
            return np.zeros(0)
        P = np.asarray(self.poses)
        return np.hypot(P[:, 1] - P[:, 4], P[:, 2] - P[:, 5])

    def save(self, path: str) -> None:
        # (t, ranges) pairs; stored as an object array
        scans_array = np.array(self.scans, dtype=object)
        np.savez_compressed(path, scans=scans_array,
                            poses=np.asarray(self.poses, dtype=float).reshape(-1, 7),
                            cmds=np.asarray(self.cmds, dtype=float).reshape(-1, 3),
                            landmarks=np.asarray(self.landmarks, dtype=float).reshape(-1, 2))
