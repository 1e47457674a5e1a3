# ================================
# file: sim/robot_sim.py
# ================================
from __future__ import annotations
from typing import Tuple, Optional
import math, threading, time
import numpy as np
from core.types import Pose2D, LaserScan
from core.config import RobotConfig, LaserConfig
from core.geometry import wrap_angle
from .world_map import WorldMap
from .laser import LaserSensor


class RobotSim:
    """Unicycle robot simulator with acceleration limits, bounded velocity
    tracking error and a mounted laser.

    The simulator owns the true pose. Control is a 2D command
    (linear, angular). ``step(dt)`` is the physics tick; it can be driven by
    the caller or by the internal physics thread (``start``/``stop``).
    Thread-safety: pose, velocities and commands are guarded by one lock;
    every getter returns a copy.
    """
    def __init__(self, world: WorldMap,
                 robot_config: Optional[RobotConfig] = None,
                 laser_config: Optional[LaserConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 logger_func=None, log_file=None) -> None:
        self.world = world
        self.cfg = robot_config or RobotConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.laser = LaserSensor(laser_config, rng=self.rng)
        self.logger_func = logger_func
        self.log_file = log_file

        self._lock = threading.RLock()
        self._initial_pose = world.start_pose
        self.pose = self._initial_pose.copy()
        self.v = 0.0              # actual linear velocity
        self.w = 0.0              # actual angular velocity
        self.v_cmd = 0.0
        self.w_cmd = 0.0
        self._elapsed = 0.0
        self._last_scan_t: Optional[float] = None
        self._paused = False
        self._blocked_count = 0

        self._thread: Optional[threading.Thread] = None
        self._running = False

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "SIM")
        else:
            print(f"[SIM] {message}")

    # ---------- control ----------
    def apply_control(self, cmd: Tuple[float, float]) -> None:
        """Add (dv, dw) to the commanded velocity. Saturation is applied here."""
        with self._lock:
            self.v_cmd = self._clamp_v(self.v_cmd + float(cmd[0]))
            self.w_cmd = self._clamp_w(self.w_cmd + float(cmd[1]))

    def set_control(self, cmd: Tuple[float, float]) -> None:
        """Replace the commanded velocity with (v, w), saturated."""
        with self._lock:
            self.v_cmd = self._clamp_v(float(cmd[0]))
            self.w_cmd = self._clamp_w(float(cmd[1]))

    def get_commanded_velocity(self) -> Tuple[float, float]:
        with self._lock:
            return (self.v_cmd, self.w_cmd)

    def get_velocity(self) -> Tuple[float, float]:
        with self._lock:
            return (self.v, self.w)

    def _clamp_v(self, v: float) -> float:
        vm = self.cfg.max_linear_velocity
        return max(-vm, min(vm, v))

    def _clamp_w(self, w: float) -> float:
        wm = self.cfg.max_angular_velocity
        return max(-wm, min(wm, w))

    # ---------- physics ----------
    def _track(self, actual: float, commanded: float, acc: float, dt: float) -> float:
        dv = commanded - actual
        lim = acc * dt
        ideal = actual + max(-lim, min(lim, dv))
        band = self.cfg.velocity_error_limit * abs(ideal)
        if band > 0.0:
            ideal += self.rng.uniform(-band, band)
        return ideal

    def step(self, dt: float) -> None:
        """Advance the simulation by dt seconds of sim time.

        Args:
            dt: Time step in seconds; non-positive steps are ignored
        """
        if dt <= 0.0:
            return
        with self._lock:
            if self._paused:
                return
            self.v = self._track(self.v, self.v_cmd, self.cfg.max_acceleration, dt)
            self.w = self._track(self.w, self.w_cmd, self.cfg.max_angular_acceleration, dt)

            th = self.pose.theta
            new_x = self.pose.x + self.v * math.cos(th) * dt
            new_y = self.pose.y + self.v * math.sin(th) * dt
            new_theta = wrap_angle(th + self.w * dt)

            if not self.cfg.ghost_mode and self.world.clearance(new_x, new_y) < self.cfg.radius:
                # Collision: translation blocked, rotation still applies
                self._blocked_count += 1
                if self._blocked_count == 1 or self._blocked_count % 100 == 0:
                    self._log_debug(f"Collision at ({new_x:.2f}, {new_y:.2f}), position held")
                new_x, new_y = self.pose.x, self.pose.y
                self.v = 0.0

            self.pose.x = new_x
            self.pose.y = new_y
            self.pose.theta = new_theta
            self._elapsed += dt

            period = self.laser.cfg.scan_period
            if self._last_scan_t is None or self._elapsed - self._last_scan_t >= period - 1e-9:
                self._update_scan_locked()

    def laser_origin(self, pose: Optional[Pose2D] = None) -> Tuple[float, float]:
        """Sensor position for ``pose`` (default: true pose)."""
        if pose is None:
            pose = self.get_true_pose()
        off = self.laser.cfg.mount_offset
        return (pose.x + off * math.cos(pose.theta), pose.y + off * math.sin(pose.theta))

    def _update_scan_locked(self) -> None:
        origin = self.laser_origin(self.pose)
        self.laser.update_laser_scan(origin, self.pose.theta, self.world.landmarks, self._elapsed)
        self._last_scan_t = self._elapsed

    def update_scan(self) -> None:
        """Force a scan at the current pose and time."""
        with self._lock:
            self._update_scan_locked()

    # ---------- state ----------
    def get_true_pose(self) -> Pose2D:
        with self._lock:
            return self.pose.copy()

    def get_time_elapsed(self) -> float:
        with self._lock:
            return self._elapsed

    def get_laser_measurement(self) -> LaserScan:
        return self.laser.get_measurements()

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    def toggle_paused(self) -> bool:
        with self._lock:
            self._paused = not self._paused
            self._log_debug("Paused" if self._paused else "Resumed")
            return self._paused

    def reset(self) -> None:
        with self._lock:
            self.pose = self._initial_pose.copy()
            self.v = self.w = 0.0
            self.v_cmd = self.w_cmd = 0.0
            self._elapsed = 0.0
            self._last_scan_t = None
            self._blocked_count = 0

    # ---------- physics thread ----------
    def start(self, rate_hz: float = 50.0) -> None:
        """Run ``step`` on a daemon thread at ``rate_hz`` (wall clock)."""
        if self._running:
            return
        if rate_hz <= 0.0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz}")
        self._running = True
        self._thread = threading.Thread(target=self._physics_loop, args=(float(rate_hz),), daemon=True)
        self._thread.start()
        self._log_debug(f"Physics thread started at {rate_hz:.1f} Hz")

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
            self._log_debug("Physics thread stopped")

    def _physics_loop(self, rate_hz: float) -> None:
        period = 1.0 / rate_hz
        last = time.monotonic()
        while self._running:
            time.sleep(period)
            now = time.monotonic()
            self.step(now - last)
            last = now
