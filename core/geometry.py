# ================================
# file: core/geometry.py
# ================================
"""Planar geometry helpers and the static landmark model.

Landmarks are immutable. Degenerate geometry (zero-length segments,
parallel rays, zero-radius posts) is reported as "no intersection" and never
raises.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple, Union
import math

Point = Tuple[float, float]

_EPS = 1e-12


def wrap_angle(a: float) -> float:
    """Wrap angle to [-pi, pi)."""
    return (a + math.pi) % (2.0 * math.pi) - math.pi


def ray_segment_distance(origin: Point, direction: Point, a: Point, b: Point) -> Optional[float]:
    """Distance along a unit ray to segment ab, or None if it misses.

    Solves origin + t*direction = a + u*(b - a) for t >= 0, 0 <= u <= 1.
    """
    ox, oy = origin
    dx, dy = direction
    ex, ey = b[0] - a[0], b[1] - a[1]
    if ex * ex + ey * ey < _EPS:
        return None
    denom = dx * ey - dy * ex
    if abs(denom) < _EPS:
        return None
    wx, wy = a[0] - ox, a[1] - oy
    t = (wx * ey - wy * ex) / denom
    u = (wx * dy - wy * dx) / denom
    if t < 0.0 or u < 0.0 or u > 1.0:
        return None
    return t


def ray_circle_distance(origin: Point, direction: Point, centre: Point, radius: float) -> Optional[float]:
    """First non-negative intersection of a unit ray with a circle."""
    if radius <= 0.0:
        return None
    fx, fy = origin[0] - centre[0], origin[1] - centre[1]
    b = fx * direction[0] + fy * direction[1]
    c = fx * fx + fy * fy - radius * radius
    disc = b * b - c
    if disc < 0.0:
        return None
    root = math.sqrt(disc)
    t = -b - root
    if t >= 0.0:
        return t
    t = -b + root
    return t if t >= 0.0 else None


def point_segment_distance(p: Point, a: Point, b: Point) -> float:
    ex, ey = b[0] - a[0], b[1] - a[1]
    L2 = ex * ex + ey * ey
    if L2 < _EPS:
        return math.hypot(p[0] - a[0], p[1] - a[1])
    u = ((p[0] - a[0]) * ex + (p[1] - a[1]) * ey) / L2
    u = max(0.0, min(1.0, u))
    return math.hypot(p[0] - (a[0] + u * ex), p[1] - (a[1] + u * ey))


def point_line_distance(p: Point, a: Point, b: Point) -> float:
    """Perpendicular distance from p to the infinite line through a and b."""
    ex, ey = b[0] - a[0], b[1] - a[1]
    L = math.hypot(ex, ey)
    if L < _EPS:
        return math.hypot(p[0] - a[0], p[1] - a[1])
    return abs(ex * (p[1] - a[1]) - ey * (p[0] - a[0])) / L


def line_intersection(a1: Point, a2: Point, b1: Point, b2: Point) -> Optional[Point]:
    """Intersection of the infinite lines a1a2 and b1b2, None if parallel."""
    d1x, d1y = a2[0] - a1[0], a2[1] - a1[1]
    d2x, d2y = b2[0] - b1[0], b2[1] - b1[1]
    denom = d1x * d2y - d1y * d2x
    if abs(denom) < _EPS:
        return None
    t = ((b1[0] - a1[0]) * d2y - (b1[1] - a1[1]) * d2x) / denom
    return (a1[0] + t * d1x, a1[1] + t * d1y)


@dataclass(frozen=True)
class LineSegment:
    """Wall segment between two world points."""
    start: Point
    end: Point

    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    def direction_angle(self) -> float:
        return math.atan2(self.end[1] - self.start[1], self.end[0] - self.start[0])

    def shortest_ray_distance_from(self, origin: Point, direction: Point) -> Optional[float]:
        return ray_segment_distance(origin, direction, self.start, self.end)

    def distance_to(self, p: Point) -> float:
        return point_segment_distance(p, self.start, self.end)


@dataclass(frozen=True)
class PointLandmark:
    """Isolated post; ``radius`` gives beams something to hit."""
    position: Point
    radius: float = 0.0

    def shortest_ray_distance_from(self, origin: Point, direction: Point) -> Optional[float]:
        return ray_circle_distance(origin, direction, self.position, self.radius)

    def distance_to(self, p: Point) -> float:
        return max(0.0, math.hypot(p[0] - self.position[0], p[1] - self.position[1]) - self.radius)


Landmark = Union[LineSegment, PointLandmark]
