"""Motion model sampling and odometry pose likelihood for a planar robot.

Poses are arrays ordered (theta, x, y).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from turtlemapping.grid_math import pdf_normal
from turtlemapping.sampling import sample_multivariate
from turtlemapping.sensor_model import Transform2D, almost_equal, normalize_angle_pi

__all__ = ["Twist2D", "sample_motion_model", "pose_likelihood_odom", "icp_init_guess"]


@dataclass
class Twist2D:
    """Body twist: angular velocity and linear velocity components."""

    w: float = 0.0
    vx: float = 0.0
    vy: float = 0.0


def sample_motion_model(
    u: Twist2D,
    pose,
    motion_noise,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Draw a new pose from P(x' | x, u) under additive Gaussian noise."""
    noise = sample_multivariate(motion_noise, rng=rng)
    theta, x, y = (float(v) for v in pose)

    if almost_equal(u.w, 0.0):
        theta = normalize_angle_pi(theta + noise[0])
        x += u.vx * math.cos(theta) + noise[1]
        y += u.vx * math.sin(theta) + noise[2]
    else:
        theta = normalize_angle_pi(theta + u.w + noise[0])
        ratio = u.vx / u.w
        x += -ratio * math.sin(theta) + ratio * math.sin(theta + u.w) + noise[1]
        y += ratio * math.cos(theta) - ratio * math.cos(theta + u.w) + noise[2]

    return np.array([theta, x, y])


def _odometry_motion(cur, prev) -> tuple[float, float, float]:
    rot1 = math.atan2(cur[2] - prev[2], cur[1] - prev[1]) - prev[0]
    trans = math.hypot(cur[1] - prev[1], cur[2] - prev[2])
    rot2 = normalize_angle_pi(
        normalize_angle_pi(cur[0]) - normalize_angle_pi(prev[0]) - rot1
    )
    return rot1, trans, rot2


def _angle_diff(a: float, b: float) -> float:
    return normalize_angle_pi(normalize_angle_pi(a) - normalize_angle_pi(b))


def pose_likelihood_odom(cur_pose, prev_pose, cur_odom, prev_odom, srr, srt, str_, stt) -> float:
    """Likelihood of a pose change given the odometry (odometry motion model)."""
    rot1, trans, rot2 = _odometry_motion(cur_odom, prev_odom)
    rot1_hat, trans_hat, rot2_hat = _odometry_motion(cur_pose, prev_pose)

    var1 = srr * rot1_hat**2 + srt * trans_hat**2
    var2 = str_ * trans_hat**2 + stt * rot1_hat**2 + stt * rot2_hat**2
    var3 = srr * rot2_hat**2 + srt * trans_hat**2

    p1 = pdf_normal(_angle_diff(rot1, rot1_hat), var1)
    p2 = pdf_normal(trans - trans_hat, var2)
    p3 = pdf_normal(_angle_diff(rot2, rot2_hat), var3)
    return p1 * p2 * p3


def icp_init_guess(cur_odom, prev_odom) -> Transform2D:
    """Initial scan-matching guess from the change in odometry."""
    dx = cur_odom[1] - prev_odom[1]
    dy = cur_odom[2] - prev_odom[2]
    dth = _angle_diff(cur_odom[0], prev_odom[0])
    return Transform2D(dx, dy, dth)