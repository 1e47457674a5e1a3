# ================================
# file: sim/world_map.py
# ================================
from __future__ import annotations
from typing import Tuple, Sequence, Dict, Optional
import json
import math
from core.types import Pose2D
from core.geometry import LineSegment, PointLandmark, Landmark
from core.config import (
    ROOM_HALF_WIDTH, ROOM_HALF_HEIGHT, POINT_LANDMARK_RADIUS,
    ROBOT_START_X, ROBOT_START_Y, ROBOT_START_THETA,
)


class WorldMap:
    """Static scene: an immutable tuple of landmarks plus a start pose.

    The map is built once and only read afterwards (ray casting, collision
    checks). Scenes come from code (``rectangle_room``) or from a JSON
    description with the layout::

        {"segments": [{"start": [x, y], "end": [x, y]}, ...],
         "points":   [{"position": [x, y], "radius": r}, ...],
         "start_pose": [x, y, theta]}
    """
    def __init__(self, landmarks: Sequence[Landmark] = (),
                 start_pose: Optional[Pose2D] = None) -> None:
        self._landmarks: Tuple[Landmark, ...] = tuple(landmarks)
        self._start_pose = (start_pose.copy() if start_pose is not None
                            else Pose2D(ROBOT_START_X, ROBOT_START_Y, ROBOT_START_THETA))

    @property
    def landmarks(self) -> Tuple[Landmark, ...]:
        return self._landmarks

    @property
    def start_pose(self) -> Pose2D:
        return self._start_pose.copy()

    def segments(self) -> Tuple[LineSegment, ...]:
        return tuple(l for l in self._landmarks if isinstance(l, LineSegment))

    def points(self) -> Tuple[PointLandmark, ...]:
        return tuple(l for l in self._landmarks if isinstance(l, PointLandmark))

    def clearance(self, x: float, y: float) -> float:
        """Distance from (x, y) to the nearest landmark surface (inf if empty)."""
        best = math.inf
        for lm in self._landmarks:
            best = min(best, lm.distance_to((x, y)))
        return best

    def __len__(self) -> int:
        return len(self._landmarks)

    # ---------- builders ----------
    @classmethod
    def rectangle_room(cls, half_width: float = ROOM_HALF_WIDTH,
                       half_height: float = ROOM_HALF_HEIGHT,
                       posts: Sequence[Tuple[float, float]] = (),
                       post_radius: float = POINT_LANDMARK_RADIUS,
                       start_pose: Optional[Pose2D] = None) -> "WorldMap":
        """Axis-aligned rectangular room centred on the origin, optional posts."""
        w, h = float(half_width), float(half_height)
        corners = [(-w, -h), (w, -h), (w, h), (-w, h)]
        walls = [LineSegment(corners[i], corners[(i + 1) % 4]) for i in range(4)]
        pts = [PointLandmark((float(x), float(y)), float(post_radius)) for (x, y) in posts]
        return cls(walls + pts, start_pose=start_pose)

    @classmethod
    def from_dict(cls, data: Dict) -> "WorldMap":
        landmarks = []
        for i, seg in enumerate(data.get("segments", [])):
            try:
                a = _xy(seg["start"])
                b = _xy(seg["end"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"bad segment #{i}: {seg!r}") from e
            landmarks.append(LineSegment(a, b))
        for i, pt in enumerate(data.get("points", [])):
            try:
                p = _xy(pt["position"])
                r = float(pt.get("radius", POINT_LANDMARK_RADIUS))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ValueError(f"bad point #{i}: {pt!r}") from e
            landmarks.append(PointLandmark(p, r))
        start = None
        if "start_pose" in data:
            try:
                sx, sy, sth = (float(v) for v in data["start_pose"])
            except (TypeError, ValueError) as e:
                raise ValueError(f"bad start_pose: {data['start_pose']!r}") from e
            start = Pose2D(sx, sy, sth)
        return cls(landmarks, start_pose=start)

    @classmethod
    def from_json(cls, path: str) -> "WorldMap":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"scene file {path} must hold a JSON object")
        return cls.from_dict(data)


def _xy(v) -> Tuple[float, float]:
    x, y = v
    return (float(x), float(y))
