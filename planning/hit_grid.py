# ================================
# file: planning/hit_grid.py
# ================================
from __future__ import annotations
from typing import Tuple, Sequence, List, Optional, Iterator
import math
import numpy as np
from core.config import GridConfig
from planning.global_planner import AStarPlanner

Point = Tuple[float, float]


def bresenham(x0: int, y0: int, x1: int, y1: int) -> Iterator[Tuple[int, int]]:
    """Bresenham line algorithm (integer grid), both ends included."""
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    x, y = x0, y0
    while True:
        yield x, y
        if x == x1 and y == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x += sx
        if e2 <= dx:
            err += dx
            y += sy


class HitGrid:
    """Fixed-extent grid of non-negative hit counts.

    Cell index = row * cols + col; col runs along x, row along y. A cell is
    blocked once its count exceeds ``block_threshold``. Points outside the
    extent are ignored.
    """
    def __init__(self, config: Optional[GridConfig] = None,
                 logger_func=None, log_file=None) -> None:
        self.cfg = config or GridConfig()
        (x0, y0), (x1, y1) = self.cfg.min_corner, self.cfg.max_corner
        if self.cfg.rows <= 0 or self.cfg.cols <= 0:
            raise ValueError(f"grid size must be positive, got {self.cfg.rows}x{self.cfg.cols}")
        if not (x1 > x0 and y1 > y0):
            raise ValueError(f"grid corners inverted: {self.cfg.min_corner} -> {self.cfg.max_corner}")
        self.x0, self.y0 = float(x0), float(y0)
        self.rows, self.cols = int(self.cfg.rows), int(self.cfg.cols)
        self.cell_w = (x1 - x0) / self.cols
        self.cell_h = (y1 - y0) / self.rows
        self.hits = np.zeros((self.rows, self.cols), dtype=np.int32)
        self.logger_func = logger_func
        self.log_file = log_file
        self.planner = AStarPlanner(self.cfg.connectivity, logger_func=logger_func, log_file=log_file)

    # ---------- coordinates ----------
    def world_to_rc(self, p: Point) -> Optional[Tuple[int, int]]:
        c = int(math.floor((p[0] - self.x0) / self.cell_w))
        r = int(math.floor((p[1] - self.y0) / self.cell_h))
        if 0 <= r < self.rows and 0 <= c < self.cols:
            return r, c
        return None

    def world_to_cell(self, p: Point) -> Optional[int]:
        rc = self.world_to_rc(p)
        return None if rc is None else rc[0] * self.cols + rc[1]

    def rc_to_world(self, r: int, c: int) -> Point:
        """Centre of cell (r, c)."""
        return (self.x0 + (c + 0.5) * self.cell_w, self.y0 + (r + 0.5) * self.cell_h)

    def cell_to_rc(self, cell: int) -> Tuple[int, int]:
        return divmod(int(cell), self.cols)

    def cell_to_world(self, cell: int) -> Point:
        return self.rc_to_world(*self.cell_to_rc(cell))

    def coordinates_of(self, cells: Sequence[int]) -> List[Point]:
        return [self.cell_to_world(c) for c in cells]

    # ---------- evidence ----------
    def add_hit(self, p: Point, inflation_radius: float = 0.0) -> None:
        """Count a hit at p and at every cell whose centre is within the radius."""
        rc = self.world_to_rc(p)
        if rc is None:
            return
        if inflation_radius <= 0.0:
            self.hits[rc] += 1
            return
        r0, c0 = rc
        kr = int(math.ceil(inflation_radius / self.cell_h))
        kc = int(math.ceil(inflation_radius / self.cell_w))
        rlo, rhi = max(0, r0 - kr), min(self.rows, r0 + kr + 1)
        clo, chi = max(0, c0 - kc), min(self.cols, c0 + kc + 1)
        ys = self.y0 + (np.arange(rlo, rhi) + 0.5) * self.cell_h
        xs = self.x0 + (np.arange(clo, chi) + 0.5) * self.cell_w
        d2 = (ys[:, None] - p[1]) ** 2 + (xs[None, :] - p[0]) ** 2
        mask = d2 <= inflation_radius * inflation_radius
        mask[r0 - rlo, c0 - clo] = True
        self.hits[rlo:rhi, clo:chi] += mask.astype(np.int32)

    def rasterize_free_ray(self, start: Point, end: Point) -> List[int]:
        """Mark every cell on the Bresenham line from start to end.

        Used on the observed-space grid. Cells outside the extent are
        skipped. Returns the traversed in-grid cell indices.
        """
        a = self._raw_rc(start)
        b = self._raw_rc(end)
        out = []
        for c, r in bresenham(a[1], a[0], b[1], b[0]):
            if 0 <= r < self.rows and 0 <= c < self.cols:
                self.hits[r, c] += 1
                out.append(r * self.cols + c)
        return out

    def _raw_rc(self, p: Point) -> Tuple[int, int]:
        c = int(math.floor((p[0] - self.x0) / self.cell_w))
        r = int(math.floor((p[1] - self.y0) / self.cell_h))
        return r, c

    def clear(self) -> None:
        self.hits[:] = 0

    # ---------- queries ----------
    def count(self, cell: int) -> int:
        return int(self.hits[self.cell_to_rc(cell)])

    def blocked_mask(self) -> np.ndarray:
        return self.hits > self.cfg.block_threshold

    def is_blocked(self, cell: int) -> bool:
        return bool(self.hits[self.cell_to_rc(cell)] > self.cfg.block_threshold)

    def any_blocked(self, cells: Sequence[int]) -> bool:
        return any(self.is_blocked(c) for c in cells)

    def line_of_sight(self, cell_a: int, cell_b: int) -> bool:
        """True when the Bresenham line between the two cells crosses no blocked cell."""
        ra, ca = self.cell_to_rc(cell_a)
        rb, cb = self.cell_to_rc(cell_b)
        th = self.cfg.block_threshold
        for c, r in bresenham(ca, ra, cb, rb):
            if self.hits[r, c] > th:
                return False
        return True

    def plan_path(self, start: Point, goal: Point) -> List[int]:
        """A* from the cell containing start to the cell containing goal.

        Returns cell indices (start and goal included), or [] on failure.
        """
        s = self.world_to_rc(start)
        g = self.world_to_rc(goal)
        if s is None or g is None:
            self._log_debug(f"Plan endpoint outside grid: start={start}, goal={goal}")
            return []
        path = self.planner.plan(s, g, self.blocked_mask())
        return [r * self.cols + c for (r, c) in path]

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "GRID")
        else:
            print(f"[GRID] {message}")
