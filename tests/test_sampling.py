import numpy as np
import pytest

from turtlemapping.sampling import get_rng, sample_multivariate, sample_standard_normal


def test_get_rng_returns_one_shared_generator():
    state = get_rng().bit_generator.state
    first = get_rng().random()
    get_rng().bit_generator.state = state
    assert get_rng().random() == first


def test_standard_normal_shape_and_reproducibility():
    a = sample_standard_normal(5, np.random.default_rng(7))
    b = sample_standard_normal(5, np.random.default_rng(7))
    assert a.shape == (5,)
    assert np.array_equal(a, b)


def test_standard_normal_zero_samples():
    assert sample_standard_normal(0).size == 0


def test_standard_normal_moments():
    samples = sample_standard_normal(50000, np.random.default_rng(1))
    assert abs(samples.mean()) < 0.03
    assert samples.std() == pytest.approx(1.0, abs=0.03)


def test_zero_covariance_returns_mean():
    mu = np.array([1.0, -2.0, 3.0])
    sample = sample_multivariate(np.zeros((3, 3)), mu, np.random.default_rng(0))
    assert np.allclose(sample, mu)


def test_zero_covariance_without_mean_is_zero():
    sample = sample_multivariate(np.zeros((2, 2)), rng=np.random.default_rng(0))
    assert np.allclose(sample, [0.0, 0.0])


def test_singular_covariance_keeps_fixed_axis():
    rng = np.random.default_rng(3)
    cov = np.diag([1.0, 0.0])
    samples = [sample_multivariate(cov, [0.0, 5.0], rng) for _ in range(50)]
    assert all(s[1] == pytest.approx(5.0, abs=1e-12) for s in samples)
    assert np.std([s[0] for s in samples]) > 0.1


def test_empirical_mean_and_covariance():
    rng = np.random.default_rng(11)
    cov = np.array([[2.0, 0.5], [0.5, 1.0]])
    mu = np.array([1.0, -1.0])
    samples = np.array([sample_multivariate(cov, mu, rng) for _ in range(10000)])
    assert np.allclose(samples.mean(axis=0), mu, atol=0.06)
    assert np.allclose(np.cov(samples.T), cov, atol=0.12)


def test_non_square_covariance_raises():
    with pytest.raises(ValueError):
        sample_multivariate(np.zeros((2, 3)))


def test_mismatched_mean_raises():
    with pytest.raises(ValueError):
        sample_multivariate(np.eye(2), [0.0, 0.0, 0.0])