# ================================
# file: planning/global_planner.py
# ================================
from __future__ import annotations
from typing import Tuple, List, Dict
import math, heapq
import numpy as np

_SQRT2 = math.sqrt(2.0)


class AStarPlanner:
    """Grid A* over a boolean blocked mask.

    - 8-neighbour (or 4-neighbour) moves, Euclidean step cost and heuristic
    - diagonal moves may not cut a blocked corner
    - ties broken by (f, h, insertion order), so expansion is deterministic
    Cells are (row, col); row grows with y, col with x.
    """
    def __init__(self, connectivity: int = 8, logger_func=None, log_file=None) -> None:
        if connectivity not in (4, 8):
            raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")
        self.connectivity = connectivity
        self.logger_func = logger_func
        self.log_file = log_file
        straight = [(1, 0, 1.0), (0, 1, 1.0), (-1, 0, 1.0), (0, -1, 1.0)]
        diag = [(1, 1, _SQRT2), (1, -1, _SQRT2), (-1, 1, _SQRT2), (-1, -1, _SQRT2)]
        self.dirs = straight + (diag if connectivity == 8 else [])

    def _log_debug(self, message: str) -> None:
        """Add debug message to log and integrate with main log_to_file system"""
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "A*")
        else:
            print(f"[A*] {message}")

    def plan(self, start_rc: Tuple[int, int], goal_rc: Tuple[int, int],
             blocked: np.ndarray) -> List[Tuple[int, int]]:
        """Shortest 8-connected path from start to goal, inclusive.

        Returns [] when start or goal lies outside the grid or is blocked, or
        when no path exists.
        """
        H, W = blocked.shape
        si, sj = start_rc
        gi, gj = goal_rc
        if not (0 <= si < H and 0 <= sj < W and 0 <= gi < H and 0 <= gj < W):
            self._log_debug(f"Start {start_rc} or goal {goal_rc} outside grid")
            return []
        if blocked[si, sj] or blocked[gi, gj]:
            self._log_debug(f"Start {start_rc} or goal {goal_rc} is blocked")
            return []

        def heuristic(i: int, j: int) -> float:
            return math.hypot(gi - i, gj - j)

        g: Dict[Tuple[int, int], float] = {(si, sj): 0.0}
        parent: Dict[Tuple[int, int], Tuple[int, int]] = {}
        closed = set()
        counter = 0
        h0 = heuristic(si, sj)
        openq = [(h0, h0, counter, (si, sj))]

        while openq:
            _, _, _, cur = heapq.heappop(openq)
            if cur in closed:
                continue
            if cur == (gi, gj):
                path = [cur]
                while cur in parent:
                    cur = parent[cur]
                    path.append(cur)
                path.reverse()
                self._log_debug(f"Path found: {len(path)} cells, {len(closed)} expanded")
                return path
            closed.add(cur)
            ci, cj = cur
            for di, dj, cost in self.dirs:
                ni, nj = ci + di, cj + dj
                if not (0 <= ni < H and 0 <= nj < W):
                    continue
                if blocked[ni, nj] or (ni, nj) in closed:
                    continue
                if di and dj and (blocked[ci + di, cj] or blocked[ci, cj + dj]):
                    continue
                ng = g[cur] + cost
                if ng < g.get((ni, nj), math.inf):
                    g[(ni, nj)] = ng
                    parent[(ni, nj)] = cur
                    h = heuristic(ni, nj)
                    counter += 1
                    heapq.heappush(openq, (ng + h, h, counter, (ni, nj)))

        self._log_debug(f"No path from {start_rc} to {goal_rc}")
        return []
