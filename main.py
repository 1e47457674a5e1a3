# ================================
# file: main.py
# ================================
from __future__ import annotations
"""Project entrypoint: headless EKF-SLAM navigation run in simulation.

- Builds the scene (JSON file or the built-in rectangular room)
- Goal = start position + (DX, DY)
- Runs the estimation/control loop until the goal is reached or time runs out

Usage:
    python main.py --goal 160 50 --extractor ransac_lsq
    python main.py --map ./scenes/room.json --threaded --log
"""
import argparse
import os
from typing import Optional, Sequence
from datetime import datetime
import numpy as np

from core.config import (
    SystemConfig, GOAL_OFFSET, EXTRACTOR_MODE, SIM_HZ, RANDOM_SEED,
    LOG_DIR, DEBUG_LOG,
)
from sim import WorldMap, RobotSim
from slam import SlamSystem
from nav import WaypointController, Navigator
from perception import LINE_EXTRACTORS
from appio import DataLogger, log_to_file


def build_system(world: WorldMap, config: SystemConfig, log_file=None,
                 data_logger: Optional[DataLogger] = None) -> Navigator:
    """Wire simulator, SLAM driver, controller and loop from one config."""
    logger_func = log_to_file if log_file is not None else None
    rng = np.random.default_rng(config.seed)
    sim = RobotSim(world, config.robot, config.laser, rng=rng,
                   logger_func=logger_func, log_file=log_file)
    slam = SlamSystem(config.slam, config.extractor, config.grid, rng=rng,
                      logger_func=logger_func, log_file=log_file)
    controller = WaypointController(slam.hit_grid, config.controller,
                                    logger_func=logger_func, log_file=log_file)
    return Navigator(sim, slam, controller, data_logger=data_logger,
                     logger_func=logger_func, log_file=log_file)


def run(map_path: Optional[str], goal_offset: Sequence[float], extractor: str,
        seconds: float, hz: float, threaded: bool, seed: int,
        record_path: Optional[str], use_log: bool) -> bool:
    """Run one navigation episode. Returns True if the goal was reached."""
    log_file = None
    if use_log:
        log_filename = f"slam_nav_log_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
        log_file = open(os.path.join(LOG_DIR, log_filename), 'w', encoding='utf-8')
    try:
        config = SystemConfig(seed=seed, sim_hz=hz)
        config.extractor.mode = extractor
        world = WorldMap.from_json(map_path) if map_path else WorldMap.rectangle_room()
        data_logger = DataLogger() if record_path else None
        nav = build_system(world, config, log_file=log_file, data_logger=data_logger)

        start = world.start_pose
        goal = (start.x + float(goal_offset[0]), start.y + float(goal_offset[1]))
        if log_file is not None:
            log_to_file(log_file, "=" * 60)
            log_to_file(log_file, f"Scene: {map_path or 'built-in rectangle room'} ({len(world)} landmarks)")
            log_to_file(log_file, f"Extractor: {extractor}, threaded: {threaded}, seed: {seed}")
            log_to_file(log_file, "=" * 60)

        if not nav.start(goal):
            print("[MAIN] No initial path to goal; robot will hold position")
        nav.run(seconds, hz, threaded=threaded)

        if data_logger is not None:
            data_logger.save(record_path)
            errs = data_logger.position_errors()
            if len(errs):
                print(f"[MAIN] Recorded {len(errs)} ticks to {record_path}, "
                      f"mean position error {errs.mean():.2f}, max {errs.max():.2f}")
        return nav.is_done()
    finally:
        if log_file is not None:
            log_file.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="EKF-SLAM navigation simulator (headless)")
    ap.add_argument("--map", type=str, default=None, help="Scene JSON (default: built-in room)")
    ap.add_argument("--goal", type=float, nargs=2, metavar=("DX", "DY"), default=list(GOAL_OFFSET),
                    help="Goal offset from the start position")
    ap.add_argument("--extractor", choices=sorted(LINE_EXTRACTORS), default=EXTRACTOR_MODE)
    ap.add_argument("--seconds", type=float, default=120.0, help="Sim time budget")
    ap.add_argument("--hz", type=float, default=SIM_HZ, help="Physics/control rate")
    ap.add_argument("--threaded", action="store_true", help="Run physics on its own thread")
    ap.add_argument("--seed", type=int, default=RANDOM_SEED)
    ap.add_argument("--record", type=str, default=None, help="Save run data to this .npz")
    ap.add_argument("--log", action="store_true", default=DEBUG_LOG, help="Write a timestamped log file")
    args = ap.parse_args(argv)

    reached = run(args.map, args.goal, args.extractor, args.seconds, args.hz,
                  args.threaded, args.seed, args.record, args.log)
    print(f"[MAIN] Goal {'reached' if reached else 'not reached'}")
    return 0 if reached else 1


if __name__ == "__main__":
    raise SystemExit(main())
