import math

import numpy as np
import pytest

from core import GridConfig
from planning import HitGrid, AStarPlanner, bresenham

SMALL = GridConfig(min_corner=(-50.0, -50.0), max_corner=(50.0, 50.0), rows=25, cols=25)


def _path_length(points):
    return sum(math.hypot(b[0] - a[0], b[1] - a[1]) for a, b in zip(points, points[1:]))


def test_default_grid_has_a_cell_centred_on_the_origin():
    grid = HitGrid()
    cell = grid.world_to_cell((0.0, 0.0))
    assert cell == 250 * 501 + 250
    assert grid.cell_to_world(cell) == pytest.approx((0.0, 0.0))
    assert grid.cell_to_rc(cell) == (250, 250)
    assert grid.world_to_cell((5000.0, 0.0)) is None


def test_add_hit_with_inflation_marks_cells_within_radius():
    grid = HitGrid()
    grid.add_hit((0.0, 0.0), 10.0)
    # 4-unit cells: centres with i^2 + j^2 <= 6.25
    assert int(grid.hits.sum()) == 21
    assert grid.is_blocked(grid.world_to_cell((0.0, 0.0)))
    assert grid.is_blocked(grid.world_to_cell((8.0, 4.0)))
    assert not grid.is_blocked(grid.world_to_cell((12.0, 0.0)))


def test_hits_outside_extent_are_ignored():
    grid = HitGrid()
    grid.add_hit((5000.0, 0.0), 10.0)
    grid.add_hit((0.0, -5000.0))
    assert int(grid.hits.sum()) == 0


def test_rasterize_free_ray_counts_traversed_cells():
    grid = HitGrid()
    cells = grid.rasterize_free_ray((0.0, 0.0), (40.0, 0.0))
    assert len(cells) == 11
    assert [grid.cell_to_rc(c)[0] for c in cells] == [250] * 11
    assert int(grid.hits.sum()) == 11
    grid.clear()
    assert int(grid.hits.sum()) == 0


def test_bresenham_includes_both_ends():
    cells = list(bresenham(0, 0, 3, 1))
    assert cells[0] == (0, 0)
    assert cells[-1] == (3, 1)
    assert len(cells) == 4


def test_astar_on_empty_grid_matches_straight_line_within_quantisation():
    grid = HitGrid(SMALL)
    start, goal = (-40.0, -40.0), (40.0, 20.0)
    cells = grid.plan_path(start, goal)
    pts = grid.coordinates_of(cells)
    assert pts[0] == pytest.approx(start)
    assert pts[-1] == pytest.approx(goal)
    straight = math.hypot(goal[0] - start[0], goal[1] - start[1])
    length = _path_length(pts)
    # octile vs Euclidean: at most 8.3% longer on an empty grid
    assert straight - 1e-9 <= length <= straight * 1.0824 + 1e-9


def test_astar_straight_column_is_exact():
    grid = HitGrid()
    cells = grid.plan_path((0.0, 0.0), (0.0, 100.0))
    pts = grid.coordinates_of(cells)
    assert len(cells) == 26
    assert all(p[0] == pytest.approx(0.0) for p in pts)
    assert _path_length(pts) == pytest.approx(100.0)


def test_enclosed_goal_returns_failure():
    grid = HitGrid(SMALL)
    gr, gc = grid.world_to_rc((20.0, 20.0))
    for dr in (-2, -1, 0, 1, 2):
        for dc in (-2, -1, 0, 1, 2):
            if max(abs(dr), abs(dc)) == 2:
                grid.hits[gr + dr, gc + dc] = 1
    assert grid.plan_path((-40.0, -40.0), (20.0, 20.0)) == []


def test_blocked_or_outside_endpoints_return_failure():
    grid = HitGrid(SMALL)
    grid.add_hit((0.0, 0.0))
    assert grid.plan_path((0.0, 0.0), (20.0, 20.0)) == []
    assert grid.plan_path((-20.0, -20.0), (0.0, 0.0)) == []
    assert grid.plan_path((-20.0, -20.0), (500.0, 0.0)) == []


def test_diagonal_moves_do_not_cut_blocked_corners():
    blocked = np.zeros((5, 5), dtype=bool)
    blocked[1, 2] = True
    blocked[2, 1] = True
    path = AStarPlanner().plan((1, 1), (2, 2), blocked)
    assert len(path) > 2
    for (r0, c0), (r1, c1) in zip(path, path[1:]):
        assert not blocked[r1, c1]
        if r0 != r1 and c0 != c1:
            assert not blocked[r1, c0] and not blocked[r0, c1]


def test_planning_is_deterministic():
    grid = HitGrid(SMALL)
    for y in range(-30, 31, 4):
        grid.add_hit((0.0, float(y)))
    a = grid.plan_path((-40.0, 0.0), (40.0, 0.0))
    b = grid.plan_path((-40.0, 0.0), (40.0, 0.0))
    assert a and a == b
    assert not grid.any_blocked(a)


def test_line_of_sight():
    grid = HitGrid(SMALL)
    a = grid.world_to_cell((-40.0, 0.0))
    b = grid.world_to_cell((40.0, 0.0))
    assert grid.line_of_sight(a, b)
    grid.add_hit((0.0, 0.0))
    assert not grid.line_of_sight(a, b)


def test_invalid_grid_configuration():
    with pytest.raises(ValueError):
        HitGrid(GridConfig(rows=0))
    with pytest.raises(ValueError):
        HitGrid(GridConfig(min_corner=(10.0, 10.0), max_corner=(-10.0, -10.0)))
    with pytest.raises(ValueError):
        AStarPlanner(connectivity=6)
