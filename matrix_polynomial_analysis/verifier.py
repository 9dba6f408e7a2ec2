"""
Polynomial Verifier
===================

Decides whether a polynomial plausibly preserves non-negative matrices,
by evaluating it on a fixed probe corpus built once at construction.

The decision cascade stops at the first definitive answer:
    1. all coefficients >= 0           -> accept
    2. negative extreme-degree term    -> reject
    3. structured probes               -> reject on a negative entry
    4. cached circulant power sets     -> reject on a negative entry
    5. derivative probes (optional)    -> reject on a negative value
    6. random matrix families (opt.)   -> reject on a negative entry
    7. accept

This is a Monte-Carlo check: a rejection is definitive, an acceptance is
only evidence.

Author: Carmen Esteban
License: MIT
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

import numpy as np

from matrix_polynomial_analysis.core import is_matrix_nonnegative
from matrix_polynomial_analysis.matrices import (
    DEFAULT_INVERSE_GAUSSIAN,
    DEFAULT_UNIFORM_BOUNDS,
    circulant_power_sets,
    matrix_powers,
    probe_distributions,
    random_matrices as sample_random_matrices,
    structured_matrices,
    zero_patterns,
)


CHUNK_SIZE = 64
# Scalar probe points are log-uniform on [1e-3, 1e4].
DERIVATIVE_EXPONENT_RANGE = (-3.0, 4.0)


@dataclass
class VerificationResult:
    """Outcome of one verification, with the stage that decided it."""
    accepted: bool
    stage: str
    elapsed: float


class PolynomialVerifier:
    """Probe-corpus verifier for nonnegativity preservation.

    Parameters
    ----------
    number_of_matrices : int
        Circulant probes to generate (and matrices per random family).
    matrix_size : int
        Side length of every probe matrix.
    powers : int
        Cached powers per probe; must be >= the length of tested polynomials.
    random_matrices : int
        Matrices per distribution in the random family, 0 disables it.
    zero_entry_patterns : bool
        Repeat the random family once for every proper zero pattern.
    derivative_samples : int
        Scalar points for the derivative probes, 0 disables them.
    probe_workers : int
        Threads scanning probe chunks; 1 scans sequentially.
    seed : int or None
        Seed for the corpus; equal seeds give identical corpora.
    """

    def __init__(self, number_of_matrices, matrix_size, powers,
                 random_matrices=0, zero_entry_patterns=False,
                 derivative_samples=0, probe_workers=1,
                 uniform_bounds=DEFAULT_UNIFORM_BOUNDS,
                 inverse_gaussian=DEFAULT_INVERSE_GAUSSIAN,
                 chunk_size=CHUNK_SIZE, seed=None, verbose=False):
        if matrix_size < 1:
            raise ValueError("matrix_size must be >= 1, got {}".format(matrix_size))
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1, got {}".format(chunk_size))
        t0 = time.time()
        rng = np.random.default_rng(seed)

        self.matrix_size = matrix_size
        self.powers = powers
        self.probe_workers = max(1, int(probe_workers))
        self.chunk_size = chunk_size

        self.structured = [_frozen(m) for m in structured_matrices(matrix_size)]
        self.circulants = _frozen(
            circulant_power_sets(number_of_matrices, matrix_size, powers, rng))

        # Distributions are validated even when the random family is off so
        # that bad parameters fail at startup.
        distributions = probe_distributions(uniform_bounds, inverse_gaussian)
        stacks = []
        if random_matrices > 0:
            patterns = zero_patterns(matrix_size) if zero_entry_patterns else [()]
            for dist in distributions:
                for pattern in patterns:
                    stacks.append(sample_random_matrices(
                        random_matrices, matrix_size, dist, rng,
                        zero_entries=pattern))
        if stacks:
            self.random_powers = _frozen(
                matrix_powers(np.concatenate(stacks), powers))
        else:
            self.random_powers = _frozen(
                np.empty((0, powers, matrix_size, matrix_size)))

        low, high = DERIVATIVE_EXPONENT_RANGE
        self.derivative_points = _frozen(
            10.0 ** rng.uniform(low, high, size=derivative_samples))

        self._pool = None
        self._pool_lock = threading.Lock()

        if verbose:
            print("  Generated probe matrices in {:.3f}s "
                  "({} structured, {} circulant, {} random, {} scalar)".format(
                      time.time() - t0, len(self.structured),
                      len(self.circulants), len(self.random_powers),
                      len(self.derivative_points)))

    # -- public API ---------------------------------------------------------

    def test(self, polynomial):
        """True if the polynomial survives every probe."""
        return self._decide(polynomial)[0]

    def verify(self, polynomial):
        t0 = time.time()
        accepted, stage = self._decide(polynomial)
        return VerificationResult(accepted=accepted, stage=stage,
                                  elapsed=round(time.time() - t0, 6))

    def close(self):
        with self._pool_lock:
            if self._pool is not None:
                self._pool.shutdown(wait=True)
                self._pool = None

    # -- cascade ------------------------------------------------------------

    def _decide(self, polynomial):
        if polynomial.size != self.matrix_size:
            raise ValueError("polynomial is for {0}x{0} matrices, verifier for "
                             "{1}x{1}".format(polynomial.size, self.matrix_size))
        if len(polynomial) > self.powers:
            raise ValueError("polynomial has {} coefficients but only {} powers "
                             "are cached".format(len(polynomial), self.powers))

        if polynomial.is_nonnegative():
            return True, "nonnegative"
        if polynomial.are_first_last_negative():
            return False, "extreme_terms"
        if not self._check_structured(polynomial):
            return False, "structured"
        if not self._scan(polynomial, self.circulants):
            return False, "circulant"
        if not self._check_derivatives(polynomial):
            return False, "derivatives"
        if not self._scan(polynomial, self.random_powers):
            return False, "random"
        return True, "accepted"

    def _check_structured(self, polynomial):
        for matrix in self.structured:
            if not is_matrix_nonnegative(polynomial.apply(matrix)):
                return False
        return True

    def _check_derivatives(self, polynomial):
        """p^(k)(x) >= 0 for x >= 0 and k < size (Jordan-block probes)."""
        if len(self.derivative_points) == 0:
            return True
        derivative = polynomial
        for _ in range(1, self.matrix_size):
            derivative = derivative.derivative()
            values = np.polyval(derivative.coefficients, self.derivative_points)
            if np.any(values < 0.0):
                return False
        return True

    # -- chunked probe scan -------------------------------------------------

    def _chunks(self, stack):
        return [stack[i:i + self.chunk_size]
                for i in range(0, len(stack), self.chunk_size)]

    def _scan(self, polynomial, stack):
        chunks = self._chunks(stack)
        if self.probe_workers == 1 or len(chunks) <= 1:
            for chunk in chunks:
                if not is_matrix_nonnegative(polynomial.apply_powers(chunk)):
                    return False
            return True

        cancel = threading.Event()
        pool = self._probe_pool()
        futures = [pool.submit(_scan_chunk, polynomial, chunk, cancel)
                   for chunk in chunks]
        try:
            for future in as_completed(futures):
                if not future.result():
                    cancel.set()
                    return False
            return True
        finally:
            for future in futures:
                future.cancel()

    def _probe_pool(self):
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=self.probe_workers)
            return self._pool

    # -- pickling (worker processes get their own probe pool) ---------------

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_pool"] = None
        state["_pool_lock"] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._pool_lock = threading.Lock()

    def __repr__(self):
        return "PolynomialVerifier(size={}, {} circulant, {} random, powers={})".format(
            self.matrix_size, len(self.circulants), len(self.random_powers),
            self.powers)


def _scan_chunk(polynomial, chunk, cancel):
    """Probe-pool task: False if some probe in `chunk` gives a negative entry."""
    if cancel.is_set():
        return True
    if not is_matrix_nonnegative(polynomial.apply_powers(chunk)):
        cancel.set()
        return False
    return True


def _frozen(array):
    array = np.asarray(array)
    array.flags.writeable = False
    return array
