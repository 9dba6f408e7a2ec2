"""
Probe Matrix Generators
=======================

Builds the non-negative test matrices substituted for "all non-negative
matrices" when checking a polynomial.

Functions:
    structured_matrices   -- identity, row swaps and the cyclic shift
    fundamental_circulant -- cyclic-shift permutation matrix
    circulant_power_sets  -- random circulants with cached powers
    matrix_powers         -- power cache for a stack of matrices
    probe_distributions   -- validated scipy.stats entry distributions
    random_matrices       -- elementwise random matrices, optional zeros
    zero_patterns         -- entry subsets to force to zero

Author: Carmen Esteban
License: MIT
"""

import numpy as np
from itertools import combinations
from scipy import stats
from scipy.linalg import circulant


# Entry distributions for the random family: uniform on [0, 10),
# [0, 1000), [0, 100000) and an inverse Gaussian with mean 10, shape 10.
DEFAULT_UNIFORM_BOUNDS = (10.0, 1000.0, 100000.0)
DEFAULT_INVERSE_GAUSSIAN = (10.0, 10.0)

CIRCULANT_WEIGHT_RANGE = (1.0, 100.0)


def structured_matrices(size):
    """Identity, each transposition (0 i), and the cyclic shift for size > 2."""
    identity = np.identity(size)
    matrices = [identity]
    for i in range(1, size):
        swapped = identity.copy()
        swapped[[0, i]] = swapped[[i, 0]]
        matrices.append(swapped)
    if size > 2:
        matrices.append(fundamental_circulant(size))
    return matrices


def fundamental_circulant(size):
    """Permutation matrix P with P[i, i-1] = 1, i.e. circulant([0, 1, 0, ...])."""
    first_column = np.zeros(size)
    if size > 1:
        first_column[1] = 1.0
    else:
        first_column[0] = 1.0
    return circulant(first_column)


def circulant_power_sets(number_of_matrices, matrix_size, powers, rng=None):
    """Random circulants sum_k w_k P^k with their first `powers` powers cached.

    Parameters
    ----------
    number_of_matrices : int
    matrix_size : int
    powers : int
        Number of cached powers, M^0 .. M^(powers-1).
    rng : numpy.random.Generator or None

    Returns
    -------
    ndarray of shape (number_of_matrices, powers, matrix_size, matrix_size)
    """
    rng = rng if rng is not None else np.random.default_rng()
    low, high = CIRCULANT_WEIGHT_RANGE
    bases = np.empty((number_of_matrices, matrix_size, matrix_size))
    for m in range(number_of_matrices):
        bases[m] = circulant(rng.uniform(low, high, size=matrix_size))
    return matrix_powers(bases, powers)


def matrix_powers(matrices, powers):
    """Cache M^0 .. M^(powers-1) for a stack of matrices.

    Returns an array of shape (count, powers, n, n).
    """
    if powers < 1:
        raise ValueError("powers must be >= 1, got {}".format(powers))
    matrices = np.asarray(matrices, dtype=np.float64)
    count, n = matrices.shape[0], matrices.shape[-1]
    out = np.empty((count, powers, n, n))
    working = np.broadcast_to(np.identity(n), (count, n, n)).copy()
    for k in range(powers):
        out[:, k] = working
        working = working @ matrices
    return out


def _validated(dist, label):
    mean = dist.mean()
    if not np.isfinite(mean) or mean < 0:
        raise ValueError("invalid probe distribution {}: mean={}".format(label, mean))
    return dist


def probe_distributions(uniform_bounds=DEFAULT_UNIFORM_BOUNDS,
                        inverse_gaussian=DEFAULT_INVERSE_GAUSSIAN):
    """Frozen scipy.stats distributions for the random probe family.

    inverse_gaussian is (mean, shape) or None. Raises ValueError on any
    parameter scipy rejects.
    """
    dists = []
    for upper in uniform_bounds:
        if not upper > 0:
            raise ValueError("uniform upper bound must be > 0, got {}".format(upper))
        dists.append(_validated(stats.uniform(loc=0.0, scale=upper),
                                "uniform(0, {})".format(upper)))
    if inverse_gaussian is not None:
        mean, shape = inverse_gaussian
        if not (mean > 0 and shape > 0):
            raise ValueError(
                "inverse gaussian needs mean > 0 and shape > 0, got ({}, {})".format(
                    mean, shape))
        # scipy parametrisation: mean = mu * scale, shape lambda = scale
        dists.append(_validated(stats.invgauss(mu=mean / shape, scale=shape),
                                "invgauss({}, {})".format(mean, shape)))
    return dists


def zero_patterns(size):
    """Every proper subset of the size*size entries, smallest first."""
    square = size * size
    patterns = []
    for k in range(square):
        for combo in combinations(range(square), k):
            patterns.append(combo)
    return patterns


def random_matrices(number_of_matrices, matrix_size, distribution, rng=None,
                    zero_entries=()):
    """Stack of random matrices with entries drawn from `distribution`.

    zero_entries are flattened column-major indices forced to zero.
    """
    rng = rng if rng is not None else np.random.default_rng()
    samples = distribution.rvs(
        size=(number_of_matrices, matrix_size, matrix_size), random_state=rng)
    samples = np.asarray(samples, dtype=np.float64)
    for entry in zero_entries:
        row = entry % matrix_size
        column = entry // matrix_size
        samples[:, row, column] = 0.0
    return samples
