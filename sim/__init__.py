# ================================
# file: sim/__init__.py
# ================================
"""Simulation world: static landmark map, robot dynamics and laser sensor.
NOTE: the simulator owns the true pose; estimators only see scans and the
commands they issued.
"""
from .world_map import WorldMap
from .laser import LaserSensor
from .robot_sim import RobotSim


__all__ = ["WorldMap", "LaserSensor", "RobotSim"]
