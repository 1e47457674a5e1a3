# ================================
# file: core/config.py
# ================================
"""
Global configuration for the EKF-SLAM navigation simulator.
Units are scene units (one unit ~ one centimetre), radians and seconds.

Organization:
1. Map & Grid
2. Robot Physical Parameters
3. Sensor Configuration
4. Feature Extraction
5. SLAM Configuration
6. Path Planning
7. Control & Motion
8. Logging

Module-level constants are the defaults. Components never read them at run
time; they receive one of the config objects at the bottom of this file.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple
import math

# ================================
# 1. MAP & GRID
# ================================
# Occupancy grid extent. 501 cells of 4 units over [-1002, 1002] keeps a cell
# centre on the origin, so straight moves from the origin stay on one column.
GRID_MIN_CORNER: Tuple[float, float] = (-1002.0, -1002.0)
GRID_MAX_CORNER: Tuple[float, float] = (1002.0, 1002.0)
GRID_ROWS: int = 501
GRID_COLS: int = 501
GRID_BLOCK_THRESHOLD: int = 0          # blocked when hits > threshold
GRID_CONNECTIVITY: int = 8             # 4 or 8

# Built-in rectangular room (half extents around the origin)
ROOM_HALF_WIDTH: float = 250.0
ROOM_HALF_HEIGHT: float = 200.0
POINT_LANDMARK_RADIUS: float = 3.0     # round posts so beams can hit them

# ================================
# 2. ROBOT PHYSICAL PARAMETERS
# ================================
ROBOT_RADIUS: float = 10.0
ROBOT_START_X: float = 0.0
ROBOT_START_Y: float = 0.0
ROBOT_START_THETA: float = math.pi / 2

V_MAX: float = 40.0                    # max linear velocity (units/s)
W_MAX: float = 2.0                     # max angular velocity (rad/s)
ACC_MAX: float = 80.0                  # max linear acceleration (units/s^2)
WACC_MAX: float = 20.0                 # max angular acceleration (rad/s^2)
VELOCITY_ERROR_LIMIT: float = 0.05     # tracking error band, fraction of |v|

GHOST_MODE: bool = True                # True: no collision with landmarks
SIM_HZ: float = 50.0

# ================================
# 3. SENSOR CONFIGURATION
# ================================
LASER_COUNT: int = 181
LASER_MIN_THETA: float = -math.pi / 2
LASER_MAX_THETA: float = math.pi / 2
LASER_ANGLE_ERROR_LIMIT: float = 0.05      # fraction of angular resolution
LASER_MAX_DISTANCE: float = 500.0
LASER_DISTANCE_ERROR_LIMIT: float = 0.05   # absolute range error bound
LASER_SCAN_PERIOD: float = 0.1             # seconds of sim time between scans
LASER_MOUNT_OFFSET: float = -ROBOT_RADIUS  # along heading; negative = tail

# ================================
# 4. FEATURE EXTRACTION
# ================================
EXTRACTOR_MODE: str = "iep"            # "iep" | "ransac" | "ransac_lsq"
DISCONTINUITY_THRESHOLD: float = 60.0
MIN_LINE_POINTS: int = 5
IEP_SPLIT_THRESHOLD: float = 4.0
RANSAC_ITERATIONS: int = 50
RANSAC_INLIER_THRESHOLD: float = 3.0
EMIT_CORNERS: bool = True
CORNER_MIN_ANGLE: float = math.radians(30.0)
CORNER_MAX_GAP: float = 20.0

# ================================
# 5. SLAM CONFIGURATION
# ================================
PROCESS_STD: float = 0.10              # control noise std (per component)
MEASUREMENT_STD: float = 1.0           # landmark position std (body frame)
UPDATE_GATE: float = 20.0              # Mahalanobis^2 below -> update
AUGMENT_GATE: float = 200.0            # Mahalanobis^2 above for all -> new landmark
EKF_INITIAL_CAPACITY: int = 16         # landmarks before the first buffer growth
EKF_SYMMETRY_TOL: float = 1e-6

# ================================
# 6. PATH PLANNING
# ================================
GOAL_OFFSET: Tuple[float, float] = (160.0, 50.0)   # goal = start + offset

# ================================
# 7. CONTROL & MOTION
# ================================
ORIENTATION_SLACK: float = 0.01        # rad
MILESTONE_SLACK: float = 1.0
TURN_RATE: float = 0.5                 # rad/s while turning in place
FORWARD_SPEED: float = 10.0            # units/s while driving

# ================================
# 8. LOGGING
# ================================
LOG_DIR: str = "."
DEBUG_LOG: bool = False
RANDOM_SEED: int = 0
TRAJECTORY_HISTORY: int = 20000      # poses kept per trajectory (oldest dropped)


@dataclass
class RobotConfig:
    radius: float = ROBOT_RADIUS
    max_linear_velocity: float = V_MAX
    max_angular_velocity: float = W_MAX
    max_acceleration: float = ACC_MAX
    max_angular_acceleration: float = WACC_MAX
    velocity_error_limit: float = VELOCITY_ERROR_LIMIT
    ghost_mode: bool = GHOST_MODE


@dataclass
class LaserConfig:
    count: int = LASER_COUNT
    min_theta: float = LASER_MIN_THETA
    max_theta: float = LASER_MAX_THETA
    angle_error_limit: float = LASER_ANGLE_ERROR_LIMIT
    max_distance: float = LASER_MAX_DISTANCE
    distance_error_limit: float = LASER_DISTANCE_ERROR_LIMIT
    scan_period: float = LASER_SCAN_PERIOD
    mount_offset: float = LASER_MOUNT_OFFSET

    @property
    def angular_resolution(self) -> float:
        return (self.max_theta - self.min_theta) / self.count

    @property
    def invalid_value(self) -> float:
        return self.max_distance + 1.0


@dataclass
class ExtractorConfig:
    mode: str = EXTRACTOR_MODE
    discontinuity_threshold: float = DISCONTINUITY_THRESHOLD
    min_line_points: int = MIN_LINE_POINTS
    split_threshold: float = IEP_SPLIT_THRESHOLD
    ransac_iterations: int = RANSAC_ITERATIONS
    ransac_inlier_threshold: float = RANSAC_INLIER_THRESHOLD
    emit_corners: bool = EMIT_CORNERS
    corner_min_angle: float = CORNER_MIN_ANGLE
    corner_max_gap: float = CORNER_MAX_GAP


@dataclass
class SlamConfig:
    process_std: float = PROCESS_STD
    measurement_std: float = MEASUREMENT_STD
    update_gate: float = UPDATE_GATE
    augment_gate: float = AUGMENT_GATE
    initial_capacity: int = EKF_INITIAL_CAPACITY
    symmetry_tol: float = EKF_SYMMETRY_TOL
    trajectory_history: int = TRAJECTORY_HISTORY


@dataclass
class GridConfig:
    min_corner: Tuple[float, float] = GRID_MIN_CORNER
    max_corner: Tuple[float, float] = GRID_MAX_CORNER
    rows: int = GRID_ROWS
    cols: int = GRID_COLS
    block_threshold: int = GRID_BLOCK_THRESHOLD
    connectivity: int = GRID_CONNECTIVITY


@dataclass
class ControllerConfig:
    orientation_slack: float = ORIENTATION_SLACK
    milestone_slack: float = MILESTONE_SLACK
    turn_rate: float = TURN_RATE
    forward_speed: float = FORWARD_SPEED


@dataclass
class SystemConfig:
    robot: RobotConfig = field(default_factory=RobotConfig)
    laser: LaserConfig = field(default_factory=LaserConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    slam: SlamConfig = field(default_factory=SlamConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    sim_hz: float = SIM_HZ
    seed: int = RANDOM_SEED
