"""Rao-Blackwellized particle filter for grid-based SLAM."""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from turtlemapping.cloud_alignment import ScanAlignment
from turtlemapping.grid_mapper import GridMapper
from turtlemapping.motion import (
    Twist2D,
    icp_init_guess,
    pose_likelihood_odom,
    sample_motion_model,
)
from turtlemapping.sampling import get_rng, sample_multivariate, sample_standard_normal
from turtlemapping.sensor_model import Pose, Transform2D, almost_equal, normalize_angle_pi

__all__ = ["Particle", "ParticleFilter"]

_log = logging.getLogger(__name__)


def _pose_vector(transform: Transform2D) -> np.ndarray:
    data = transform.displacement()
    return np.array([data.theta, data.x, data.y])


def _pose_transform(pose) -> Transform2D:
    return Transform2D(float(pose[1]), float(pose[2]), float(pose[0]))


@dataclass
class Particle:
    """A weighted pose hypothesis with its own map; poses are (theta, x, y)."""

    weight: float
    grid: GridMapper
    pose: np.ndarray
    prev_pose: np.ndarray = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        self.pose = np.array(self.pose, dtype=float)
        if self.prev_pose is None:
            self.prev_pose = self.pose.copy()
        else:
            self.prev_pose = np.array(self.prev_pose, dtype=float)


class ParticleFilter:
    """Particle filter that jointly estimates the robot pose and an occupancy grid."""

    def __init__(
        self,
        num_particles: int,
        k: int,
        srr: float,
        srt: float,
        str_: float,
        stt: float,
        motion_noise_theta: float,
        motion_noise_x: float,
        motion_noise_y: float,
        sample_range_theta: float,
        sample_range_x: float,
        sample_range_y: float,
        scan_likelihood_min: float,
        scan_likelihood_max: float,
        pose_likelihood_min: float,
        pose_likelihood_max: float,
        scan_matcher: ScanAlignment,
        pose: Transform2D,
        mapper: GridMapper,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.num_particles = num_particles
        self.k = k
        self._srr = srr
        self._srt = srt
        self._str = str_
        self._stt = stt
        self._scan_likelihood_min = scan_likelihood_min
        self._scan_likelihood_max = scan_likelihood_max
        self._pose_likelihood_min = pose_likelihood_min
        self._pose_likelihood_max = pose_likelihood_max
        self._scan_matcher = scan_matcher
        self._rng = rng if rng is not None else get_rng()
        self._normal_sqrd_sum = 0.0

        self.motion_noise = np.diag([motion_noise_theta, motion_noise_x, motion_noise_y])
        self.sample_range = np.diag([sample_range_theta, sample_range_x, sample_range_y])

        weight = 1.0 / num_particles
        start = _pose_vector(pose)
        self.particles: list[Particle] = [
            Particle(weight, copy.deepcopy(mapper), start.copy()) for _ in range(num_particles)
        ]

    def slam(self, scan: Sequence[float], u: Twist2D, cur_odom: Pose, prev_odom: Pose) -> None:
        """Update the particle set and each particle's map with a new scan."""
        cur_od = np.array([cur_odom.theta, cur_odom.x, cur_odom.y])
        prev_od = np.array([prev_odom.theta, prev_odom.x, prev_odom.y])
        t_init = icp_init_guess(cur_od, prev_od)

        t_icp = self._scan_matcher.align(t_init, scan)

        for particle in self.particles:
            if t_icp is None:
                particle.prev_pose = particle.pose
                particle.pose = sample_motion_model(u, particle.pose, self.motion_noise, self._rng)
                likelihood = particle.grid.likelihood_field_model(scan, _pose_transform(particle.pose))
                particle.weight *= likelihood
            else:
                t_x = _pose_transform(particle.pose) * t_icp
                sampled_poses = self.sample_mode(t_x)
                mu, sigma, eta = self.gaussian_proposal(sampled_poses, particle, scan, cur_od, prev_od)
                new_pose = sample_multivariate(sigma, mu, self._rng)
                particle.prev_pose = particle.pose
                particle.pose = np.asarray(new_pose, dtype=float)
                particle.weight *= eta

            particle.grid.integrate_scan(scan, _pose_transform(particle.pose))

        self._normalize_weights()
        if self._needs_resampling():
            _log.info("Resampling")
            self._low_variance_resampling()

    def _best_particle(self) -> Particle:
        best_weight = 0.0
        best = self.particles[0]
        for particle in self.particles:
            if particle.weight > best_weight:
                best_weight = particle.weight
                best = particle
        return best

    def robot_state(self) -> Transform2D:
        """Pose of the particle with the highest weight, as map-to-robot transform."""
        return _pose_transform(self._best_particle().pose)

    def new_map(self) -> list[int]:
        """Occupancy map of the particle with the highest weight."""
        return self._best_particle().grid.grid_map()

    def _normalize_weights(self) -> None:
        total = sum(particle.weight for particle in self.particles)
        if total <= 0.0:
            raise ValueError("Particle weights sum to zero")
        self._normal_sqrd_sum = 0.0
        for particle in self.particles:
            particle.weight /= total
            self._normal_sqrd_sum += particle.weight**2

    def _needs_resampling(self) -> bool:
        n_eff = int(1.0 / self._normal_sqrd_sum)
        _log.debug("Neff: %d", n_eff)
        return n_eff < self.num_particles // 2

    def _low_variance_resampling(self) -> None:
        n = self.num_particles
        r = float(sample_standard_normal(1, self._rng)[0]) / n
        c = self.particles[0].weight
        i = 0
        resampled = []
        for m in range(n):
            threshold = r + m * (1.0 / (n - 1))
            while threshold > c:
                i += 1
                if i > n - 1:
                    i = n - 1
                    break
                c += self.particles[i].weight
            resampled.append(copy.deepcopy(self.particles[i]))
        self.particles = resampled

    def sample_mode(self, transform: Transform2D) -> list[np.ndarray]:
        """Draw ``k`` poses around the pose given by ``transform``."""
        mu = _pose_vector(transform)
        samples = []
        for _ in range(self.k):
            sample = np.array(sample_multivariate(self.sample_range, mu, self._rng), dtype=float)
            sample[0] = normalize_angle_pi(sample[0])
            samples.append(sample)
        return samples

    def gaussian_proposal(
        self,
        sampled_poses: Sequence[np.ndarray],
        particle: Particle,
        scan: Sequence[float],
        cur_odom,
        prev_odom,
    ) -> tuple[np.ndarray, np.ndarray, float]:
        """Mean, covariance and normalizer of the proposal built from sampled poses."""
        poses = [np.asarray(p, dtype=float) for p in sampled_poses[: self.k]]
        likelihoods = []
        mu = np.zeros(3)
        eta = 0.0

        for xj in poses:
            p_scan = particle.grid.likelihood_field_model(scan, _pose_transform(xj))
            p_pose = pose_likelihood_odom(
                xj, particle.prev_pose, cur_odom, prev_odom,
                self._srr, self._srt, self._str, self._stt,
            )
            p_scan = min(max(p_scan, self._scan_likelihood_min), self._scan_likelihood_max)
            p_pose = min(max(p_pose, self._pose_likelihood_min), self._pose_likelihood_max)
            p = p_scan * p_pose
            likelihoods.append(p)
            mu += xj * p
            eta += p

        if almost_equal(eta, 0.0):
            raise ValueError("eta is 0")

        mu /= eta
        mu[0] = normalize_angle_pi(mu[0])

        sigma = np.zeros((3, 3))
        for xj, p in zip(poses, likelihoods):
            diff = xj - mu
            sigma += np.outer(diff, diff) * p
        sigma /= eta
        return mu, sigma, eta