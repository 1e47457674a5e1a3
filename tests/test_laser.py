import threading

import numpy as np
import pytest

from core import LaserConfig
from core.geometry import LineSegment, PointLandmark
from sim import LaserSensor


WALL = [LineSegment((100.0, -500.0), (100.0, 500.0))]


def test_beam_at_wall_is_within_noise_bounds():
    laser = LaserSensor(rng=np.random.default_rng(11))
    cfg = laser.cfg
    mid = (cfg.count - 1) // 2
    for k in range(20):
        laser.update_laser_scan((0.0, 0.0), 0.0, WALL, t=float(k))
        r = laser.get_measurements().ranges[mid]
        # angular jitter lengthens the ray by at most 1/cos(jitter)
        assert abs(r - 100.0) <= cfg.distance_error_limit + 1e-3


def test_beam_into_empty_space_is_invalid():
    laser = LaserSensor(rng=np.random.default_rng(0))
    laser.update_laser_scan((0.0, 0.0), 0.0, WALL, t=1.0)
    scan = laser.get_measurements()
    assert scan.ranges[0] == laser.invalid_value        # pointing -y
    assert scan.ranges[-1] == laser.invalid_value       # pointing +y
    assert not scan.is_valid(0)
    assert laser.invalid_value == pytest.approx(laser.cfg.max_distance + 1.0)


def test_hits_beyond_max_range_are_invalid():
    laser = LaserSensor(LaserConfig(max_distance=50.0), rng=np.random.default_rng(0))
    laser.update_laser_scan((0.0, 0.0), 0.0, WALL, t=1.0)
    assert all(r == laser.invalid_value for r in laser.get_measurements().ranges)


def test_nearest_landmark_wins():
    laser = LaserSensor(LaserConfig(angle_error_limit=0.0, distance_error_limit=0.0))
    world = WALL + [PointLandmark((50.0, 0.0), 5.0)]
    laser.update_laser_scan((0.0, 0.0), 0.0, world, t=1.0)
    mid = (laser.count - 1) // 2
    assert laser.get_measurements().ranges[mid] == pytest.approx(45.0)


def test_beam_geometry_and_snapshot_copy():
    laser = LaserSensor()
    angles = laser.beam_angles()
    assert len(angles) == 181
    assert angles[0] == pytest.approx(-np.pi / 2)
    assert angles[-1] == pytest.approx(np.pi / 2)
    laser.update_laser_scan((0.0, 0.0), 0.0, WALL, t=3.0)
    snap = laser.get_measurements()
    assert snap.t == 3.0
    assert snap.beam_angle(180) == pytest.approx(np.pi / 2)
    snap.ranges[90] = -1.0
    assert laser.get_measurements().ranges[90] != -1.0


def test_rejects_too_few_beams():
    with pytest.raises(ValueError):
        LaserSensor(LaserConfig(count=1))


def test_readers_never_see_a_partial_scan():
    cfg = LaserConfig(angle_error_limit=0.0, distance_error_limit=0.0)
    laser = LaserSensor(cfg)
    ring = [PointLandmark((0.0, 0.0), 100.0)]   # every beam hits at 100
    empty = []                                  # every beam invalid
    stop = threading.Event()
    mixed = []

    def writer():
        k = 0
        while not stop.is_set():
            laser.update_laser_scan((0.0, 0.0), 0.0, ring if k % 2 else empty, t=float(k))
            k += 1

    th = threading.Thread(target=writer, daemon=True)
    th.start()
    try:
        for _ in range(300):
            values = set(laser.get_measurements().ranges)
            if len(values) != 1:
                mixed.append(values)
    finally:
        stop.set()
        th.join(timeout=5.0)
    assert not mixed
