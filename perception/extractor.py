# ================================
# file: perception/extractor.py
# ================================
from __future__ import annotations
from typing import Sequence, Tuple, List, Optional
import math
import numpy as np
from core.config import ExtractorConfig
from core.geometry import LineSegment, PointLandmark, line_intersection, wrap_angle
from perception.segmentation import segment_scan, valid_beam_indices
from perception.line_fitting import get_line_extractor


class ObstacleLandmarkExtractor:
    """Turns laser end points into wall segments and point landmarks.

    Pipeline: segment by range discontinuity, fit lines with the selected
    strategy, turn short runs and leftovers into centroid points, and add a
    corner point where two consecutive segments of a run meet.
    """
    def __init__(self, config: Optional[ExtractorConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 logger_func=None, log_file=None) -> None:
        self.cfg = config or ExtractorConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.logger_func = logger_func
        self.log_file = log_file
        self._fit = get_line_extractor(self.cfg.mode)

    def _log_debug(self, message: str) -> None:
        if self.logger_func and self.log_file:
            self.logger_func(self.log_file, message, "EXTRACT")

    @property
    def mode(self) -> str:
        return self.cfg.mode

    def set_mode(self, mode: str) -> None:
        """Switch line strategy at run time ("iep", "ransac", "ransac_lsq")."""
        self._fit = get_line_extractor(mode)
        self.cfg.mode = mode
        self._log_debug(f"Extractor mode -> {mode}")

    def extract(self, end_points: Sequence[Tuple[float, float]], ranges: Sequence[float],
                invalid_value: float) -> Tuple[List[LineSegment], List[PointLandmark]]:
        """Extract features from one scan.

        Parameters
        ----------
        end_points : one world point per *valid* beam, in beam order
        ranges : raw per-beam distances (invalid beams hold ``invalid_value``)
        invalid_value : sentinel for "no hit"
        """
        cfg = self.cfg
        valid = valid_beam_indices(ranges, invalid_value)
        if len(valid) != len(end_points):
            raise ValueError(f"{len(end_points)} end points for {len(valid)} valid beams")
        if not valid:
            return [], []
        slot = {beam: k for k, beam in enumerate(valid)}
        pts_all = np.asarray(end_points, dtype=float).reshape(-1, 2)

        segments: List[LineSegment] = []
        points: List[PointLandmark] = []
        for run in segment_scan(ranges, invalid_value, cfg.discontinuity_threshold):
            pts = pts_all[[slot[b] for b in run]]
            if len(pts) < cfg.min_line_points:
                points.append(_centroid(pts))
                continue
            run_segments, leftovers = self._fit(pts, cfg, self.rng)
            segments.extend(run_segments)
            for group in leftovers:
                if len(group):
                    points.append(_centroid(group))
            if cfg.emit_corners:
                points.extend(self._corners(run_segments))

        self._log_debug(f"{len(segments)} segments, {len(points)} points from {len(valid)} hits")
        return segments, points

    def _corners(self, run_segments: List[LineSegment]) -> List[PointLandmark]:
        corners = []
        cfg = self.cfg
        for s1, s2 in zip(run_segments, run_segments[1:]):
            diff = abs(wrap_angle(s1.direction_angle() - s2.direction_angle()))
            diff = min(diff, math.pi - diff)
            if diff < cfg.corner_min_angle:
                continue
            p = line_intersection(s1.start, s1.end, s2.start, s2.end)
            if p is None:
                continue
            if (math.hypot(p[0] - s1.end[0], p[1] - s1.end[1]) > cfg.corner_max_gap or
                    math.hypot(p[0] - s2.start[0], p[1] - s2.start[1]) > cfg.corner_max_gap):
                continue
            corners.append(PointLandmark(p))
        return corners


def _centroid(pts: np.ndarray) -> PointLandmark:
    c = np.asarray(pts, dtype=float).reshape(-1, 2).mean(axis=0)
    return PointLandmark((float(c[0]), float(c[1])))
