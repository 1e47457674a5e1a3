import json
import math

import numpy as np
import pytest

from core import Pose2D, SystemConfig, RobotConfig, LaserConfig, SlamConfig
from core.geometry import LineSegment, PointLandmark
from sim import WorldMap
from appio import DataLogger
import main


def _quiet_config(**kw):
    cfg = SystemConfig(seed=3, **kw)
    cfg.robot = RobotConfig(velocity_error_limit=0.0)
    cfg.laser = LaserConfig(angle_error_limit=0.0, distance_error_limit=0.0)
    return cfg


def test_square_room_run_reaches_goal_north():
    world = WorldMap.rectangle_room(200.0, 200.0, start_pose=Pose2D(0.0, 0.0, math.pi / 2))
    logger = DataLogger()
    nav = main.build_system(world, _quiet_config(), data_logger=logger)
    assert nav.start((0.0, 100.0))
    cols = {nav.slam.hit_grid.cell_to_rc(c)[1] for c in nav.controller.planned_cells}
    assert cols == {250}

    nav.run(seconds=60.0, rate_hz=50.0)
    assert nav.is_done()
    truth = nav.sim.get_true_pose()
    assert math.hypot(truth.x, truth.y - 100.0) < 10.0
    # room corners are tracked as landmarks
    assert nav.slam.ekf.n_landmarks >= 2
    assert len(logger.poses) == nav.ticks
    assert logger.position_errors().max() < 10.0


def test_scans_feed_both_grids_and_are_processed_once():
    world = WorldMap.rectangle_room(150.0, 150.0, start_pose=Pose2D(0.0, 0.0, math.pi / 2))
    nav = main.build_system(world, _quiet_config())
    nav.start((0.0, 50.0))
    nav.sim.step(0.02)
    scan = nav.sim.get_laser_measurement()
    slam = nav.slam
    first = slam.process_scan(scan, 10.0, -10.0)
    assert first is not None
    assert len(first.end_points) == scan.valid_count()
    assert slam.process_scan(scan, 10.0, -10.0) is None
    assert slam.hit_grid.hits.sum() > 0
    assert slam.sense_grid.hits.sum() > 0
    # free-space rays start at the sensor, which sits at the tail
    tail_cell = slam.sense_grid.world_to_cell((0.0, -10.0))
    assert slam.sense_grid.count(tail_cell) == len(first.end_points)
    assert first.segments


def test_extractor_can_be_switched_at_runtime():
    world = WorldMap.rectangle_room(150.0, 150.0, posts=[(40.0, 80.0)])
    nav = main.build_system(world, _quiet_config())
    nav.start((0.0, 50.0))
    nav.slam.set_extractor("ransac_lsq")
    nav.run(seconds=1.0, rate_hz=50.0)
    assert nav.slam.extractor.mode == "ransac_lsq"
    assert nav.slam.ekf.n_landmarks >= 1


def test_threaded_mode_runs_and_stops_physics_thread():
    world = WorldMap.rectangle_room(150.0, 150.0)
    nav = main.build_system(world, _quiet_config())
    nav.start((0.0, 50.0))
    ticks = nav.run(seconds=0.3, rate_hz=50.0, threaded=True)
    assert ticks > 0
    assert nav.sim._thread is None
    assert nav.sim.get_time_elapsed() > 0.0


def test_reset_restores_start_state():
    world = WorldMap.rectangle_room(150.0, 150.0)
    nav = main.build_system(world, _quiet_config())
    nav.start((0.0, 50.0))
    nav.run(seconds=0.5, rate_hz=50.0)
    nav.reset()
    assert nav.sim.get_time_elapsed() == 0.0
    assert nav.slam.ekf.n_landmarks == 0
    assert nav.slam.hit_grid.hits.sum() == 0
    assert nav.controller.planned_cells


def test_world_map_from_dict_and_validation(tmp_path):
    data = {
        "segments": [{"start": [0, 0], "end": [10, 0]}],
        "points": [{"position": [5, 5], "radius": 2}],
        "start_pose": [1, 2, 0.5],
    }
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(data))
    world = WorldMap.from_json(str(path))
    assert world.segments() == (LineSegment((0.0, 0.0), (10.0, 0.0)),)
    assert world.points() == (PointLandmark((5.0, 5.0), 2.0),)
    sp = world.start_pose
    assert (sp.x, sp.y, sp.theta) == (1.0, 2.0, 0.5)
    assert world.clearance(5.0, 0.0) == pytest.approx(0.0)

    with pytest.raises(ValueError):
        WorldMap.from_dict({"segments": [{"start": [0, 0]}]})
    with pytest.raises(ValueError):
        WorldMap.from_dict({"points": [{"position": "xy"}]})
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]")
    with pytest.raises(ValueError):
        WorldMap.from_json(str(bad))


def test_rectangle_room_has_four_walls():
    world = WorldMap.rectangle_room(100.0, 50.0, posts=[(80.0, 40.0)])
    assert len(world.segments()) == 4
    assert len(world.points()) == 1
    assert world.clearance(0.0, 0.0) == pytest.approx(50.0)


def test_cli_runs_and_records(tmp_path):
    out = tmp_path / "run.npz"
    code = main.main(["--goal", "0", "20", "--seconds", "10", "--seed", "1",
                      "--extractor", "ransac", "--record", str(out)])
    assert code in (0, 1)
    data = np.load(str(out), allow_pickle=True)
    assert data["poses"].shape[1] == 7
    assert data["cmds"].shape[1] == 3
    assert len(data["landmarks"]) == len(data["poses"])


def test_trajectories_keep_only_the_latest_poses():
    cfg = _quiet_config()
    cfg.slam = SlamConfig(trajectory_history=5)
    world = WorldMap.rectangle_room(150.0, 150.0, start_pose=Pose2D(0.0, 0.0, math.pi / 2))
    nav = main.build_system(world, cfg)
    nav.start((0.0, 50.0))
    nav.run(seconds=1.0, rate_hz=50.0)
    assert len(nav.slam.trajectory) == 5
    assert len(nav.true_trajectory) == 5
    truth = nav.sim.get_true_pose()
    assert nav.true_trajectory[-1] == pytest.approx((truth.x, truth.y))
