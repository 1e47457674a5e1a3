# ================================
# file: planning/__init__.py
# ================================
from planning.global_planner import AStarPlanner
from planning.hit_grid import HitGrid, bresenham

__all__ = ["AStarPlanner", "HitGrid", "bresenham"]
