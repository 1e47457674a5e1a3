# ================================
# file: sim/laser.py
# ================================
from __future__ import annotations
from typing import Sequence, Optional, Tuple, List
import math
import threading
import numpy as np
from core.types import LaserScan
from core.config import LaserConfig
from core.geometry import Landmark


class LaserSensor:
    """Planar range sensor with bounded uniform angle and range noise.

    Beams span [min_theta, max_theta] relative to the robot heading. Each scan
    is built in a private list and swapped in under a lock, so a reader never
    sees half of one scan and half of another.
    """
    def __init__(self, config: Optional[LaserConfig] = None,
                 rng: Optional[np.random.Generator] = None) -> None:
        self.cfg = config or LaserConfig()
        if self.cfg.count < 2:
            raise ValueError(f"laser needs at least 2 beams, got {self.cfg.count}")
        if self.cfg.max_distance <= 0.0:
            raise ValueError("laser max_distance must be positive")
        self.rng = rng if rng is not None else np.random.default_rng()
        self._lock = threading.Lock()
        self._ranges: List[float] = [self.cfg.invalid_value] * self.cfg.count
        self._t: Optional[float] = None

    @property
    def count(self) -> int:
        return self.cfg.count

    @property
    def invalid_value(self) -> float:
        return self.cfg.invalid_value

    @property
    def angle_increment(self) -> float:
        return (self.cfg.max_theta - self.cfg.min_theta) / (self.cfg.count - 1)

    def beam_angles(self) -> np.ndarray:
        """Nominal beam angles relative to the heading."""
        return np.linspace(self.cfg.min_theta, self.cfg.max_theta, self.cfg.count)

    def cast(self, origin: Tuple[float, float], angle: float,
             landmarks: Sequence[Landmark]) -> Optional[float]:
        """Shortest hit distance in [0, max_distance) along one ray, or None."""
        direction = (math.cos(angle), math.sin(angle))
        best = None
        for lm in landmarks:
            d = lm.shortest_ray_distance_from(origin, direction)
            if d is None or d < 0.0 or d >= self.cfg.max_distance:
                continue
            if best is None or d < best:
                best = d
        return best

    def update_laser_scan(self, origin: Tuple[float, float], orientation: float,
                          landmarks: Sequence[Landmark], t: float) -> None:
        """Cast every beam from ``origin`` and publish the scan stamped ``t``."""
        cfg = self.cfg
        jitter = cfg.angle_error_limit * cfg.angular_resolution
        new_ranges: List[float] = []
        for i in range(cfg.count):
            theta = (cfg.min_theta + (cfg.max_theta - cfg.min_theta) * i / (cfg.count - 1)
                     + orientation + self.rng.uniform(-jitter, jitter))
            d = self.cast(origin, theta, landmarks)
            if d is None:
                new_ranges.append(cfg.invalid_value)
            else:
                d += self.rng.uniform(-cfg.distance_error_limit, cfg.distance_error_limit)
                new_ranges.append(max(0.0, d))
        with self._lock:
            self._ranges = new_ranges
            self._t = float(t)

    def get_measurements(self) -> LaserScan:
        """Consistent copy of the latest scan."""
        with self._lock:
            ranges = list(self._ranges)
            t = self._t
        return LaserScan(self.cfg.min_theta, self.angle_increment, ranges,
                         invalid_value=self.cfg.invalid_value, t=t)
