import math

import numpy as np
import pytest

from turtlemapping.cloud_alignment import ScanAlignment
from turtlemapping.grid_mapper import GridMapper
from turtlemapping.motion import Twist2D
from turtlemapping.particle_filter import Particle, ParticleFilter
from turtlemapping.sensor_model import LaserProperties, Pose, Transform2D

NUM_BEAMS = 8


def _props():
    return LaserProperties(
        beam_min=0.0,
        beam_max=2.0 * math.pi,
        beam_delta=2.0 * math.pi / NUM_BEAMS,
        range_min=0.1,
        range_max=3.5,
        z_hit=0.8,
        z_short=0.1,
        z_max=0.05,
        z_rand=0.05,
        sigma_hit=0.2,
    )


def _mapper():
    return GridMapper(0.5, -5.0, 5.0, -5.0, 5.0, _props(), Transform2D())


def _filter(
    num_particles=4,
    k=5,
    sample_range=1e-4,
    motion_noise=0.0,
    scan_min=1e-6,
    scan_max=1.0,
    pose_min=1e-3,
    pose_max=1.0,
    pose=None,
):
    return ParticleFilter(
        num_particles, k,
        0.1, 0.1, 0.1, 0.1,
        motion_noise, motion_noise, motion_noise,
        sample_range, sample_range, sample_range,
        scan_min, scan_max,
        pose_min, pose_max,
        ScanAlignment(_props(), Transform2D()),
        pose if pose is not None else Transform2D(),
        _mapper(),
        np.random.default_rng(0),
    )


SCAN = [2.0] * NUM_BEAMS


def test_initial_particles_have_uniform_weights_and_start_pose():
    pf = _filter(num_particles=5, pose=Transform2D(1.0, -0.5, 0.3))
    assert len(pf.particles) == 5
    for particle in pf.particles:
        assert particle.weight == pytest.approx(0.2)
        np.testing.assert_allclose(particle.pose, [0.3, 1.0, -0.5])
        np.testing.assert_allclose(particle.prev_pose, particle.pose)


def test_particle_maps_are_independent():
    pf = _filter(num_particles=2)
    pf.particles[0].grid.integrate_scan(SCAN, Transform2D())
    assert pf.particles[0].grid.occupied_cells
    assert not pf.particles[1].grid.occupied_cells


def test_robot_state_of_fresh_filter_is_start_pose():
    pf = _filter(pose=Transform2D(0.5, 0.25, -0.4))
    state = pf.robot_state().displacement()
    assert state.x == pytest.approx(0.5)
    assert state.y == pytest.approx(0.25)
    assert state.theta == pytest.approx(-0.4)


def test_new_map_of_fresh_filter_is_unknown():
    pf = _filter()
    grid = pf.new_map()
    assert len(grid) == 400
    assert set(grid) == {-1}


def test_sample_mode_with_zero_range_repeats_mode():
    pf = _filter(k=3, sample_range=0.0)
    samples = pf.sample_mode(Transform2D(1.0, 2.0, 0.5))
    assert len(samples) == 3
    for sample in samples:
        np.testing.assert_allclose(sample, [0.5, 1.0, 2.0], atol=1e-12)


def test_sample_mode_normalizes_heading():
    pf = _filter(k=20, sample_range=0.5)
    samples = pf.sample_mode(Transform2D(0.0, 0.0, math.pi - 0.01))
    assert all(-math.pi < s[0] <= math.pi for s in samples)


def test_gaussian_proposal_with_clamped_likelihoods():
    pf = _filter(k=3, scan_min=1.0, scan_max=1.0, pose_min=0.5, pose_max=0.5)
    particle = Particle(1.0, _mapper(), np.zeros(3))
    poses = [
        np.array([0.1, 1.0, 0.0]),
        np.array([0.2, 1.5, 0.5]),
        np.array([-0.1, 0.5, -0.5]),
    ]
    odom = np.zeros(3)
    mu, sigma, eta = pf.gaussian_proposal(poses, particle, SCAN, odom, odom)
    stacked = np.vstack(poses)
    assert eta == pytest.approx(1.5)
    np.testing.assert_allclose(mu, stacked.mean(axis=0))
    np.testing.assert_allclose(sigma, np.cov(stacked.T, bias=True), atol=1e-12)


def test_gaussian_proposal_zero_eta_raises():
    pf = _filter(k=2, scan_min=0.0, scan_max=0.0)
    particle = Particle(1.0, _mapper(), np.zeros(3))
    poses = [np.array([0.1, 1.0, 0.0]), np.array([0.2, 1.5, 0.5])]
    odom = np.zeros(3)
    with pytest.raises(ValueError):
        pf.gaussian_proposal(poses, particle, SCAN, odom, odom)


def test_slam_first_scan_builds_map_and_normalizes_weights():
    pf = _filter()
    pf.slam(SCAN, Twist2D(), Pose(), Pose())
    assert len(pf.particles) == 4
    assert sum(p.weight for p in pf.particles) == pytest.approx(1.0)
    assert 100 in pf.new_map()
    state = pf.robot_state().displacement()
    assert abs(state.x) < 0.1
    assert abs(state.y) < 0.1


def test_slam_with_failed_matching_uses_motion_model():
    pf = _filter()
    pf.slam(SCAN, Twist2D(), Pose(), Pose())
    before = [p.pose.copy() for p in pf.particles]
    invalid_scan = [10.0] * NUM_BEAMS
    pf.slam(invalid_scan, Twist2D(), Pose(), Pose())
    assert sum(p.weight for p in pf.particles) == pytest.approx(1.0)
    after = sorted(tuple(p.pose) for p in pf.particles)
    expected = sorted(tuple(p) for p in before)
    np.testing.assert_allclose(after, expected, atol=1e-12)


def test_slam_with_failed_matching_and_motion_moves_forward():
    pf = _filter(num_particles=2)
    pf.slam(SCAN, Twist2D(), Pose(), Pose())
    start = [p.pose.copy() for p in pf.particles]
    pf.slam([10.0] * NUM_BEAMS, Twist2D(w=0.0, vx=0.5), Pose(), Pose())
    for particle in pf.particles:
        assert any(
            particle.pose[1] == pytest.approx(s[1] + 0.5 * math.cos(s[0])) for s in start
        )
        np.testing.assert_allclose(particle.pose - particle.prev_pose,
                                   [0.0, 0.5 * math.cos(particle.pose[0]),
                                    0.5 * math.sin(particle.pose[0])], atol=1e-12)