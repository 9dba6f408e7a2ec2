"""Seed polynomials for the first generation of a search."""

import numpy as np

from matrix_polynomial_analysis.core import Polynomial


def combination_rng(seed, generation, combination):
    """Random stream fixed by (seed, generation, combination).

    With seed None the stream is fresh entropy and runs are not reproducible.
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng([int(seed), int(generation)] + [int(i) for i in combination])


def mutated_seeds(base, combination, count, rng):
    """2 * count seeds perturbed on the coefficients in `combination`.

    Each round yields `base` with every subset coefficient lowered by an
    independent uniform [0, 1) draw, and the zero polynomial with every
    subset coefficient raised by its own uniform [0, 1) draw.
    """
    indices = list(combination)
    seeds = []
    for _ in range(count):
        lowered = base.copy()
        raised = Polynomial.from_element(len(base), base.size, 0.0)
        lowered.coefficients[indices] -= rng.random(len(indices))
        raised.coefficients[indices] += rng.random(len(indices))
        seeds.append(lowered)
        seeds.append(raised)
    return seeds
