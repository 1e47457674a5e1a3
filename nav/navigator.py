# ================================
# file: nav/navigator.py
# ================================
from __future__ import annotations
from typing import Deque, Optional, Tuple
from collections import deque
import time

from core.config import RobotConfig, LaserConfig
from sim import RobotSim
from slam import SlamSystem
from .motion_controller import WaypointController


class Navigator:
    """Estimation/control loop on top of the simulator.

    Each tick, in order:
      1. propagate the estimate with the last issued command over the sim
         time elapsed since the previous tick
      2. replan if the current plan crosses a blocked cell
      3. compute and send the next command
      4. fold the latest scan (if new) into the SLAM driver
    The loop only touches the simulator through its public, locked API, so
    the simulator may run on its own physics thread.
    """
    def __init__(self, sim: RobotSim, slam: SlamSystem, controller: WaypointController,
                 data_logger=None, logger_func=None, log_file=None) -> None:
        self.sim = sim
        self.slam = slam
        self.controller = controller
        self.data_logger = data_logger
        self.logger_func = logger_func
        self.log_file = log_file

        self.robot_cfg: RobotConfig = sim.cfg
        self.laser_cfg: LaserConfig = sim.laser.cfg
        self.goal: Optional[Tuple[float, float]] = None
        self._last_cmd: Tuple[float, float] = (0.0, 0.0)
        self._last_t: float = 0.0
        self.true_trajectory: Deque[Tuple[float, float]] = deque(maxlen=slam.cfg.trajectory_history)
        self.ticks = 0

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "NAV")
        else:
            print(f"[NAV] {message}")

    def start(self, goal: Tuple[float, float]) -> bool:
        """Initialise the estimate at the true start pose and plan to ``goal``."""
        pose = self.sim.get_true_pose()
        self.slam.set_initial_pose(pose)
        self.goal = (float(goal[0]), float(goal[1]))
        self._last_cmd = (0.0, 0.0)
        self._last_t = self.sim.get_time_elapsed()
        self.true_trajectory.clear()
        self.true_trajectory.append((pose.x, pose.y))
        self._log_debug(f"Start ({pose.x:.1f}, {pose.y:.1f}) -> goal ({self.goal[0]:.1f}, {self.goal[1]:.1f})")
        return self.controller.set_goal(self.goal, (pose.x, pose.y))

    def reset(self) -> None:
        self.sim.reset()
        pose = self.sim.get_true_pose()
        self.slam.reset(pose)
        self.ticks = 0
        if self.goal is not None:
            self.start(self.goal)

    def tick(self) -> Tuple[float, float]:
        t = self.sim.get_time_elapsed()
        dt = t - self._last_t
        self._last_t = t
        self.slam.propagate(self._last_cmd, dt)

        est = self.slam.get_pose()
        self.controller.replan_if_blocked((est.x, est.y))
        cmd = self.controller.compute_control(est)
        self.sim.set_control(cmd)
        self._last_cmd = cmd

        scan = self.sim.get_laser_measurement()
        result = self.slam.process_scan(scan, self.robot_cfg.radius, self.laser_cfg.mount_offset)
        if result is not None and self.data_logger is not None:
            self.data_logger.log_scan(scan)

        truth = self.sim.get_true_pose()
        self.true_trajectory.append((truth.x, truth.y))
        if self.data_logger is not None:
            self.data_logger.log_pose(t, truth, est)
            self.data_logger.log_command(t, cmd[0], cmd[1])
            self.data_logger.log_landmarks(t, self.slam.ekf.n_landmarks)
        self.ticks += 1
        return cmd

    def is_done(self) -> bool:
        return self.controller.is_done()

    def run(self, seconds: float, rate_hz: float, threaded: bool = False) -> int:
        """Run ticks until the goal is reached or ``seconds`` of sim time pass.

        Synchronous mode steps the simulator by 1/rate_hz before every tick.
        Threaded mode starts the physics thread and ticks at rate_hz wall clock.
        Returns the number of ticks executed.
        """
        if rate_hz <= 0.0:
            raise ValueError(f"rate_hz must be positive, got {rate_hz}")
        dt = 1.0 / rate_hz
        n0 = self.ticks
        if not threaded:
            while self.sim.get_time_elapsed() < seconds and not self.is_done():
                if self.sim.paused:
                    break
                self.sim.step(dt)
                self.tick()
        else:
            self.sim.start(rate_hz)
            try:
                while self.sim.get_time_elapsed() < seconds and not self.is_done():
                    time.sleep(dt)
                    self.tick()
            finally:
                self.sim.stop()
        self.sim.set_control((0.0, 0.0))
        est = self.slam.get_pose()
        truth = self.sim.get_true_pose()
        self._log_debug(f"Stopped after {self.ticks - n0} ticks, t={self.sim.get_time_elapsed():.2f}s, "
                        f"done={self.is_done()}, est=({est.x:.1f}, {est.y:.1f}), "
                        f"true=({truth.x:.1f}, {truth.y:.1f}), L={self.slam.ekf.n_landmarks}")
        return self.ticks - n0
