"""Random sampling from normal and multivariate normal distributions."""

from __future__ import annotations

import functools
from typing import Optional

import numpy as np

__all__ = ["get_rng", "sample_standard_normal", "sample_multivariate"]


@functools.lru_cache(maxsize=None)
def get_rng() -> np.random.Generator:
    """The shared random number generator, seeded from the operating system."""
    return np.random.default_rng()


def sample_standard_normal(n: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Draw ``n`` independent standard normal samples."""
    generator = rng if rng is not None else get_rng()
    return generator.standard_normal(n)


def _lower_factor(cov: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.cholesky(cov)
    except np.linalg.LinAlgError:
        # Positive semi-definite covariances (e.g. zero variance on an axis).
        eigvals, eigvecs = np.linalg.eigh(cov)
        return eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))


def sample_multivariate(cov, mu=None, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Draw one sample from a normal distribution with covariance ``cov``.

    The mean is ``mu`` when given, otherwise zero.
    """
    cov = np.asarray(cov, dtype=float)
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise ValueError("Covariance matrix must be square")
    dim = cov.shape[0]
    sample = _lower_factor(cov) @ sample_standard_normal(dim, rng)
    if mu is None:
        return sample
    mean = np.asarray(mu, dtype=float).reshape(-1)
    if mean.shape[0] != dim:
        raise ValueError("Mean and covariance dimensions differ")
    return mean + sample