# ================================
# file: perception/line_fitting.py
# ================================
"""Line extraction strategies for one contiguous run of scan points.

Every strategy has the same signature::

    fit(points, cfg, rng) -> (segments, leftover_groups)

``points`` is an (n, 2) array in scan order. ``segments`` are returned in
scan order. ``leftover_groups`` are arrays of run points that no line claimed,
grouped by scan adjacency; the caller turns them into point landmarks.
Strategies are looked up by name in ``LINE_EXTRACTORS``.
"""
from __future__ import annotations
from typing import Tuple, List, Callable, Dict
from functools import partial
import numpy as np
from core.config import ExtractorConfig
from core.geometry import LineSegment

FitResult = Tuple[List[LineSegment], List[np.ndarray]]


def _perpendicular_distances(pts: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    d = b - a
    L = float(np.hypot(d[0], d[1]))
    if L < 1e-12:
        return np.hypot(pts[:, 0] - a[0], pts[:, 1] - a[1])
    rel = pts - a
    return np.abs(d[0] * rel[:, 1] - d[1] * rel[:, 0]) / L


# ----------------- recursive split (IEP) -----------------
def _split(pts: np.ndarray, lo: int, hi: int, threshold: float,
           out: List[Tuple[int, int]]) -> None:
    if hi - lo < 2:
        out.append((lo, hi))
        return
    dist = _perpendicular_distances(pts[lo + 1:hi], pts[lo], pts[hi])
    k = int(np.argmax(dist))
    if dist[k] > threshold:
        split = lo + 1 + k
        _split(pts, lo, split, threshold, out)
        _split(pts, split, hi, threshold, out)
    else:
        out.append((lo, hi))


def _group_adjacent(indices: np.ndarray) -> List[np.ndarray]:
    if len(indices) == 0:
        return []
    idx = np.sort(indices)
    breaks = np.where(np.diff(idx) > 1)[0] + 1
    return np.split(idx, breaks)


def fit_iep(points: np.ndarray, cfg: ExtractorConfig,
            rng: np.random.Generator = None) -> FitResult:
    """Iterative end-point fit: split at the farthest point from the chord.

    Both halves keep the split point. Pieces with fewer than
    ``cfg.min_line_points`` points give no segment; their points, minus any
    split point a neighbouring segment already owns, are returned as
    leftover groups.
    """
    pts = np.asarray(points, dtype=float)
    n = len(pts)
    if n < 2:
        return [], [pts] if n else []
    pieces: List[Tuple[int, int]] = []
    _split(pts, 0, n - 1, cfg.split_threshold, pieces)
    segments = []
    claimed = np.zeros(n, dtype=bool)
    for lo, hi in pieces:
        if hi - lo + 1 < cfg.min_line_points:
            continue
        segments.append(LineSegment(tuple(pts[lo]), tuple(pts[hi])))
        claimed[lo:hi + 1] = True
    leftovers = [pts[g] for g in _group_adjacent(np.flatnonzero(~claimed))]
    return segments, leftovers


# ----------------- random sample consensus -----------------
def _principal_direction(pts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Total-least-squares line: (centroid, unit direction)."""
    c = pts.mean(axis=0)
    _, _, vt = np.linalg.svd(pts - c, full_matrices=False)
    return c, vt[0]


def fit_ransac(points: np.ndarray, cfg: ExtractorConfig,
               rng: np.random.Generator = None,
               least_squares: bool = False) -> FitResult:
    """RANSAC line extraction.

    Repeats: ``cfg.ransac_iterations`` two-point trials over the unassigned
    pool, keep the candidate with most inliers, stop if it has fewer than
    ``cfg.min_line_points``. Endpoints are the extreme projections of the
    inliers onto the candidate line (or onto the least-squares line).
    """
    pts = np.asarray(points, dtype=float)
    if rng is None:
        rng = np.random.default_rng()
    pool = np.arange(len(pts))
    found: List[Tuple[float, LineSegment]] = []

    while len(pool) >= max(2, cfg.min_line_points):
        best_count = 0
        best_mask = None
        best_line = None
        P = pts[pool]
        for _ in range(cfg.ransac_iterations):
            i, j = rng.choice(len(pool), 2, replace=False)
            p1, p2 = P[i], P[j]
            d = p2 - p1
            L = float(np.hypot(d[0], d[1]))
            if L < 1e-9:
                continue
            u = d / L
            dist = np.abs(u[0] * (P[:, 1] - p1[1]) - u[1] * (P[:, 0] - p1[0]))
            mask = dist <= cfg.ransac_inlier_threshold
            count = int(mask.sum())
            if count > best_count:
                best_count, best_mask, best_line = count, mask, (p1, u)
        if best_mask is None or best_count < cfg.min_line_points:
            break

        inliers = P[best_mask]
        if least_squares:
            origin, u = _principal_direction(inliers)
        else:
            origin, u = best_line
        t = (inliers - origin) @ u
        a = origin + t.min() * u
        b = origin + t.max() * u
        # orient along scan order
        order = pool[best_mask]
        if (t[np.argmin(order)] > t[np.argmax(order)]):
            a, b = b, a
        found.append((float(order.mean()), LineSegment(tuple(a), tuple(b))))
        pool = pool[~best_mask]

    found.sort(key=lambda it: it[0])
    leftovers = [pts[g] for g in _group_adjacent(pool)]
    return [seg for _, seg in found], leftovers


LineStrategy = Callable[..., FitResult]

LINE_EXTRACTORS: Dict[str, LineStrategy] = {
    "iep": fit_iep,
    "ransac": fit_ransac,
    "ransac_lsq": partial(fit_ransac, least_squares=True),
}


def get_line_extractor(mode: str) -> LineStrategy:
    try:
        return LINE_EXTRACTORS[mode]
    except KeyError:
        raise ValueError(f"unknown extractor mode {mode!r}, expected one of {sorted(LINE_EXTRACTORS)}") from None
