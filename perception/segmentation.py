# ================================
# file: perception/segmentation.py
# ================================
from __future__ import annotations
from typing import Sequence, List


def segment_scan(ranges: Sequence[float], invalid_value: float,
                 discontinuity_threshold: float) -> List[List[int]]:
    """Split a scan into contiguous runs of valid beams.

    A run ends at an invalid beam or where the range jumps by more than
    ``discontinuity_threshold`` between neighbouring valid beams. Invalid
    beams never bridge two runs.

    Returns
    -------
    List of runs; each run is a list of beam indices in scan order.
    """
    runs: List[List[int]] = []
    current: List[int] = []
    prev_r = None
    for i, r in enumerate(ranges):
        if r >= invalid_value:
            if current:
                runs.append(current)
            current = []
            prev_r = None
            continue
        if prev_r is not None and abs(r - prev_r) > discontinuity_threshold:
            runs.append(current)
            current = []
        current.append(i)
        prev_r = r
    if current:
        runs.append(current)
    return runs


def valid_beam_indices(ranges: Sequence[float], invalid_value: float) -> List[int]:
    return [i for i, r in enumerate(ranges) if r < invalid_value]
