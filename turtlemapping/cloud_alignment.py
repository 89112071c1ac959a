"""Scan matching of consecutive laser scans with iterative closest point."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from turtlemapping.sensor_model import LaserProperties, LaserScanner, Transform2D

__all__ = ["icp", "ScanAlignment"]

_log = logging.getLogger(__name__)

_MIN_CORRESPONDENCES = 3
_ROTATION_THRESHOLD = 0.99999
_RELATIVE_MSE = 1.0e-5


def _rotation(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, -s], [s, c]])


def _best_rigid_fit(src: np.ndarray, tgt: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Least-squares rotation and translation taking ``src`` onto ``tgt``."""
    src_centre = src.mean(axis=0)
    tgt_centre = tgt.mean(axis=0)
    a = src - src_centre
    b = tgt - tgt_centre
    dot = float(np.sum(a * b))
    cross = float(np.sum(a[:, 0] * b[:, 1] - a[:, 1] * b[:, 0]))
    rot = _rotation(math.atan2(cross, dot))
    return rot, tgt_centre - rot @ src_centre


def _as_cloud(points) -> np.ndarray:
    return np.asarray(points, dtype=float).reshape(-1, 2)


def icp(
    target,
    source,
    initial: Transform2D,
    max_iterations: int = 100,
    max_correspondence_dist: float = 0.5,
    transform_epsilon: float = 1.0e-8,
    fitness_epsilon: float = 1.0e-6,
) -> Optional[Transform2D]:
    """Align ``source`` to ``target``; the result maps source points onto target.

    Returns None when too few point pairs lie within the correspondence distance.
    """
    target = _as_cloud(target)
    source = _as_cloud(source)
    if len(target) < _MIN_CORRESPONDENCES or len(source) < _MIN_CORRESPONDENCES:
        return None

    start = initial.displacement()
    rot = _rotation(start.theta)
    trans = np.array([start.x, start.y])
    max_dist_sq = max_correspondence_dist * max_correspondence_dist
    prev_mse: Optional[float] = None

    for _ in range(max_iterations):
        moved = source @ rot.T + trans
        dist_sq = np.sum((moved[:, None, :] - target[None, :, :]) ** 2, axis=2)
        nearest = np.argmin(dist_sq, axis=1)
        best = dist_sq[np.arange(len(moved)), nearest]
        mask = best <= max_dist_sq
        if np.count_nonzero(mask) < _MIN_CORRESPONDENCES:
            return None

        d_rot, d_trans = _best_rigid_fit(moved[mask], target[nearest[mask]])
        rot = d_rot @ rot
        trans = d_rot @ trans + d_trans

        if d_rot[0, 0] >= _ROTATION_THRESHOLD and float(d_trans @ d_trans) <= transform_epsilon:
            break

        mse = float(best[mask].mean())
        if prev_mse is not None:
            change = abs(mse - prev_mse)
            if change < fitness_epsilon or (prev_mse > 0.0 and change / prev_mse < _RELATIVE_MSE):
                break
        prev_mse = mse

    return Transform2D(float(trans[0]), float(trans[1]), math.atan2(rot[1, 0], rot[0, 0]))


class ScanAlignment:
    """Finds the rigid transform between each new scan and the previous one."""

    def __init__(self, props: LaserProperties, trs: Transform2D) -> None:
        self.max_iterations = 100
        self.max_correspondence_dist = 0.5
        self.transform_epsilon = 1.0e-8
        self.fitness_epsilon = 1.0e-6
        self._scanner = LaserScanner(props, trs)
        self._old_scan: Optional[list[float]] = None

    def create_point_cloud(self, beam_length: Sequence[float]) -> np.ndarray:
        """Valid range measurements as points in the robot frame, shape (n, 2)."""
        points = self._scanner.laser_end_points(beam_length, Transform2D())
        return np.array([(p.x, p.y) for p in points], dtype=float).reshape(-1, 2)

    def align(self, t_init: Transform2D, beam_length: Sequence[float]) -> Optional[Transform2D]:
        """Transform from the previous scan to this one, or None if ICP fails.

        The first scan only becomes the reference and yields the identity.
        """
        scan = list(beam_length)
        if self._old_scan is None:
            self._old_scan = scan
            return Transform2D()

        result = icp(
            self.create_point_cloud(self._old_scan),
            self.create_point_cloud(scan),
            t_init,
            self.max_iterations,
            self.max_correspondence_dist,
            self.transform_epsilon,
            self.fitness_epsilon,
        )
        if result is None:
            _log.warning("ICP failed to converge")
            return None
        self._old_scan = scan
        return result