import math

import pytest

from core import Pose2D, ControllerConfig
from planning import HitGrid
from nav import WaypointController


def _drive(controller, pose, dt=0.05, max_ticks=4000):
    """Integrate commands on a perfectly known pose until the plan is done."""
    cmds = []
    for _ in range(max_ticks):
        v, w = controller.compute_control(pose)
        cmds.append((v, w))
        if controller.is_done():
            break
        pose.x += v * math.cos(pose.theta) * dt
        pose.y += v * math.sin(pose.theta) * dt
        pose.theta += w * dt
    return cmds


def test_straight_north_plan_is_one_column_and_drives_without_rotation():
    grid = HitGrid()
    ctrl = WaypointController(grid)
    assert ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    cols = {grid.cell_to_rc(c)[1] for c in ctrl.planned_cells}
    rows = [grid.cell_to_rc(c)[0] for c in ctrl.planned_cells]
    assert cols == {250}
    assert rows == list(range(250, 276))

    pose = Pose2D(0.0, 0.0, math.pi / 2)
    cmds = _drive(ctrl, pose)
    assert ctrl.is_done()
    assert all(w == 0.0 for _, w in cmds)
    assert any(v > 0.0 for v, _ in cmds)
    assert cmds[-1] == (0.0, 0.0)
    assert pose.y == pytest.approx(100.0, abs=ctrl.cfg.milestone_slack)


def test_turns_toward_target_before_driving():
    grid = HitGrid()
    ctrl = WaypointController(grid, ControllerConfig(turn_rate=0.5))
    ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    assert ctrl.compute_control(Pose2D(0.0, 0.0, 0.0)) == (0.0, 0.5)
    assert ctrl.compute_control(Pose2D(0.0, 0.0, math.pi)) == (0.0, -0.5)

    pose = Pose2D(0.0, 0.0, 0.0)
    cmds = _drive(ctrl, pose, dt=0.01)
    assert ctrl.is_done()
    first_drive = next(i for i, (v, _) in enumerate(cmds) if v > 0.0)
    assert all(v == 0.0 and w > 0.0 for v, w in cmds[:first_drive])


def test_reaching_a_milestone_skips_ahead_while_in_line_of_sight():
    grid = HitGrid()
    ctrl = WaypointController(grid)
    ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    assert ctrl.current_target() == pytest.approx((0.0, 4.0))
    assert ctrl.compute_control(Pose2D(0.0, 3.5, math.pi / 2)) == (0.0, 0.0)
    assert ctrl.current_target() == pytest.approx((0.0, 100.0))
    assert ctrl.current_milestone == len(ctrl.planned_cells) - 2


def test_blocked_plan_triggers_replan_around_obstacle():
    grid = HitGrid()
    ctrl = WaypointController(grid)
    ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    assert not ctrl.replan_if_blocked((0.0, 0.0))
    grid.add_hit((0.0, 50.0), 10.0)
    assert ctrl.replan_if_blocked((0.0, 0.0))
    assert ctrl.planned_cells
    assert not grid.any_blocked(ctrl.planned_cells)
    assert ctrl.current_milestone == 0
    assert ctrl.planned_path[-1] == pytest.approx((0.0, 100.0))


def test_unreachable_goal_holds_position():
    grid = HitGrid()
    grid.add_hit((0.0, 100.0))
    ctrl = WaypointController(grid)
    assert not ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    assert ctrl.planned_cells == []
    assert ctrl.is_done()
    assert ctrl.compute_control(Pose2D(0.0, 0.0, 0.0)) == (0.0, 0.0)


def test_turns_first_when_near_a_milestone_facing_away():
    grid = HitGrid()
    ctrl = WaypointController(grid, ControllerConfig(turn_rate=0.5))
    ctrl.set_goal((0.0, 100.0), (0.0, 0.0))
    # half a unit from milestone (0, 4) but heading east
    assert ctrl.compute_control(Pose2D(0.0, 3.5, 0.0)) == (0.0, 0.5)
    assert ctrl.current_milestone == 0
    assert ctrl.current_target() == pytest.approx((0.0, 4.0))
    # once aligned the milestone is taken
    assert ctrl.compute_control(Pose2D(0.0, 3.5, math.pi / 2)) == (0.0, 0.0)
    assert ctrl.current_target() == pytest.approx((0.0, 100.0))
