# ================================
# file: nav/motion_controller.py
# ================================
from __future__ import annotations
from typing import Tuple, Optional, List
import math
from core import Pose2D
from core.config import ControllerConfig
from core.geometry import wrap_angle
from planning.hit_grid import HitGrid


class WaypointController:
    """
    Turn-then-drive milestone follower over a grid plan.

    - Milestone i is the last one reached; the robot targets milestone i+1
    - heading error above ``orientation_slack``: rotate in place
    - within ``milestone_slack`` of the target: advance, then skip further
      milestones that are in line of sight of the one just reached
    - otherwise: drive straight with w = 0
    An empty plan (A* failure) means hold position.
    """
    def __init__(self, grid: HitGrid, config: Optional[ControllerConfig] = None,
                 logger_func=None, log_file=None) -> None:
        self.grid = grid
        self.cfg = config or ControllerConfig()
        self.logger_func = logger_func
        self.log_file = log_file

        self.goal: Optional[Tuple[float, float]] = None
        self._cells: List[int] = []
        self._path: List[Tuple[float, float]] = []
        self._i: int = 0

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "CTRL")
        else:
            print(f"[CTRL] {message}")

    # --------- plan management ---------
    def set_goal(self, goal: Tuple[float, float], position: Tuple[float, float]) -> bool:
        self.goal = (float(goal[0]), float(goal[1]))
        return self.replan(position)

    def replan(self, position: Tuple[float, float]) -> bool:
        """A* from ``position`` to the fixed goal; resets the milestone index."""
        if self.goal is None:
            return False
        self._cells = self.grid.plan_path(position, self.goal)
        self._path = self.grid.coordinates_of(self._cells)
        self._i = 0
        if not self._cells:
            self._log_debug(f"No plan from ({position[0]:.1f}, {position[1]:.1f}) to goal, holding")
            return False
        self._log_debug(f"Planned {len(self._cells)} cells to goal ({self.goal[0]:.1f}, {self.goal[1]:.1f})")
        return True

    def replan_if_blocked(self, position: Tuple[float, float]) -> bool:
        """Replan when any planned cell became blocked. Returns True if replanned."""
        if self.goal is None or not self._cells:
            return False
        if not self.grid.any_blocked(self._cells):
            return False
        self._log_debug("Planned path blocked, replanning")
        self.replan(position)
        return True

    @property
    def planned_cells(self) -> List[int]:
        return list(self._cells)

    @property
    def planned_path(self) -> List[Tuple[float, float]]:
        return list(self._path)

    @property
    def current_milestone(self) -> int:
        return self._i

    def is_done(self) -> bool:
        return not self._cells or self._i >= len(self._cells) - 1

    def current_target(self) -> Optional[Tuple[float, float]]:
        if self.is_done():
            return None
        return self._path[self._i + 1]

    # --------- control ---------
    def compute_control(self, pose: Pose2D) -> Tuple[float, float]:
        """
        Return (v, w) for the estimated pose.
          - (0, +-turn_rate) while the heading error exceeds the slack,
            checked before arrival
          - (0, 0) on the tick a milestone is reached, and when done
          - (forward_speed, 0) otherwise
        """
        if self.is_done():
            return (0.0, 0.0)
        tx, ty = self._path[self._i + 1]
        dx = tx - pose.x
        dy = ty - pose.y

        err = wrap_angle(math.atan2(dy, dx) - pose.theta)
        if abs(err) > self.cfg.orientation_slack:
            return (0.0, self.cfg.turn_rate if err > 0.0 else -self.cfg.turn_rate)

        if math.hypot(dx, dy) < self.cfg.milestone_slack:
            self._advance()
            return (0.0, 0.0)
        return (self.cfg.forward_speed, 0.0)

    def _advance(self) -> None:
        self._i += 1
        reached = self._cells[self._i]
        nxt = self._i + 1
        last = len(self._cells) - 1
        while nxt < last and self.grid.line_of_sight(reached, self._cells[nxt + 1]):
            nxt += 1
        self._i = nxt - 1
