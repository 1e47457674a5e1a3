# ================================
# file: core/types.py
# ================================
"""Shared data structures for pose and laser scans.
Use minimal typing: Tuple/Optional/Sequence only.
"""
from __future__ import annotations
from typing import Sequence, Optional, Tuple
import math


class Pose2D:
    """2D pose of the robot in world coordinates.


    Attributes
    -----------
    x, y : scene units
    theta : radians
    """
    __slots__ = ("x", "y", "theta")


    def __init__(self, x: float, y: float, theta: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self.theta = float(theta)


    def copy(self) -> "Pose2D":
        return Pose2D(self.x, self.y, self.theta)


    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


    def heading(self) -> Tuple[float, float]:
        """Unit vector along theta."""
        return (math.cos(self.theta), math.sin(self.theta))


    def distance_to(self, other: "Pose2D") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return math.hypot(dx, dy)


    def __repr__(self) -> str:
        return f"Pose2D(x={self.x:.3f}, y={self.y:.3f}, theta={self.theta:.3f})"




class LaserScan:
    """Laser scan snapshot.


    Parameters
    ----------
    angle_min : float
    Angle (radians) of beam 0 relative to the robot heading.
    angle_increment : float
    Angle between consecutive nominal beams (radians).
    ranges : Sequence[float]
    One distance per beam; a beam without a hit holds ``invalid_value``.
    invalid_value : float
    Sentinel for "no hit" (max range + 1).
    t : Optional[float]
    Simulation time of the scan (seconds, strictly increasing).
    """
    __slots__ = ("angle_min", "angle_increment", "ranges", "invalid_value", "t")


    def __init__(self, angle_min: float, angle_increment: float,
        ranges: Sequence[float], invalid_value: float,
        t: Optional[float] = None) -> None:
        self.angle_min = float(angle_min)
        self.angle_increment = float(angle_increment)
        self.ranges = list(ranges)
        self.invalid_value = float(invalid_value)
        self.t = t


    def beam_count(self) -> int:
        return len(self.ranges)


    def beam_angle(self, i: int) -> float:
        return self.angle_min + i * self.angle_increment


    def is_valid(self, i: int) -> bool:
        return self.ranges[i] < self.invalid_value


    def valid_count(self) -> int:
        return sum(1 for r in self.ranges if r < self.invalid_value)
