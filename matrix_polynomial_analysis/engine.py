"""
Generation Engine
=================

Maps the boundary of the nonnegativity-preserving cone.

A generation sweeps every coefficient-index subset in increasing size. For
each subset, one minimization task per seed polynomial is dispatched to a
worker pool, the results are joined, collapsed, and recorded in the
checkpointed GenerationState.

Classes:
    SearchConfig     - Search parameters
    GenerationEngine - Orchestrates seeds -> minimize -> collapse -> persist

Functions:
    build_verifier     - PolynomialVerifier from a SearchConfig
    create_worker_pool - executor with the verifier installed per worker
    mutate_polynomial  - one uncheckpointed pass from a starting polynomial

Author: Carmen Esteban
License: MIT
"""

import signal
import sys
import time
import traceback
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional

from matrix_polynomial_analysis.collapse import collapse_polynomials
from matrix_polynomial_analysis.core import Polynomial
from matrix_polynomial_analysis.minimizer import minimize_polynomial_coefficients
from matrix_polynomial_analysis.mutation import combination_rng, mutated_seeds
from matrix_polynomial_analysis.state import all_combinations
from matrix_polynomial_analysis.verifier import PolynomialVerifier


DEFAULT_STARTING_POLYNOMIAL = [1.0, 1.0, -0.636535, 0.1093750, 0.3191201]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class SearchConfig:
    """Parameters controlling the search.

    mode: 1 verifies the starting polynomial, 2 minimizes mutations of it
    once, 3 runs the checkpointed multi-generation map.
    """
    matrix_size: int = 2
    number_of_matrices: int = 1000
    number_of_mutated_polynomials: int = 10
    polynomial_length: int = 5
    mode: int = 1
    starting_polynomial: Optional[List[float]] = None
    generations: int = 1
    workers: Optional[int] = None
    circulant_powers: Optional[int] = None
    random_matrices: int = 0
    zero_entry_patterns: bool = False
    derivative_samples: int = 0
    probe_workers: int = 1
    seed: Optional[int] = None
    verbose: bool = True

    def effective_length(self):
        if self.starting_polynomial:
            return len(self.starting_polynomial)
        return self.polynomial_length

    def powers(self):
        return self.circulant_powers or self.effective_length()

    def base_polynomial(self):
        """Starting polynomial, or all ones when none is configured."""
        if self.starting_polynomial:
            return Polynomial.from_list(self.starting_polynomial, self.matrix_size)
        return Polynomial.from_element(self.polynomial_length, self.matrix_size, 1.0)


def build_verifier(config):
    return PolynomialVerifier(
        config.number_of_matrices, config.matrix_size, config.powers(),
        random_matrices=config.random_matrices,
        zero_entry_patterns=config.zero_entry_patterns,
        derivative_samples=config.derivative_samples,
        probe_workers=config.probe_workers,
        seed=config.seed,
        verbose=config.verbose,
    )


# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------

_WORKER_VERIFIER = None


def _install_verifier(verifier):
    global _WORKER_VERIFIER
    _WORKER_VERIFIER = verifier


def _init_process_worker(verifier):
    # Ctrl+C is handled by the orchestrator between subsets; workers finish
    # their tasks.
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    _install_verifier(verifier)


def _minimize_task(polynomial, combination):
    """Worker function. Must be at module level for pickle."""
    if _WORKER_VERIFIER is None:
        raise RuntimeError("worker pool was created without a verifier")
    return minimize_polynomial_coefficients(polynomial, combination, _WORKER_VERIFIER)


def create_worker_pool(verifier, max_workers=None, use_processes=True):
    """Executor whose workers each hold the (read-only) verifier.

    The caller owns the pool: create it once and shut it down once, e.g.
    with a `with` block. max_workers None means os.cpu_count().
    """
    if use_processes:
        return ProcessPoolExecutor(max_workers=max_workers,
                                   initializer=_init_process_worker,
                                   initargs=(verifier,))
    return ThreadPoolExecutor(max_workers=max_workers,
                              initializer=_install_verifier,
                              initargs=(verifier,))


def minimize_all(executor, seeds, combination, verifier=None):
    """Fan out one task per seed, join all of them, return the kept results.

    Every future yields exactly one outcome; a task that raised counts as a
    lost result. Pass `verifier` for thread pools to share it by reference;
    without it the verifier installed in each worker is used.
    """
    combination = list(combination)
    if verifier is None:
        futures = [executor.submit(_minimize_task, seed, combination)
                   for seed in seeds]
    else:
        futures = [executor.submit(minimize_polynomial_coefficients,
                                   seed, combination, verifier)
                   for seed in seeds]
    wait(futures)
    results = []
    for future in futures:
        try:
            outcome = future.result()
        except Exception as e:
            print("  ERROR: minimization task failed for {}: {}".format(
                combination, e), file=sys.stderr)
            traceback.print_exc()
            continue
        if outcome is not None:
            results.append(outcome)
    return results


# ---------------------------------------------------------------------------
# Generation engine
# ---------------------------------------------------------------------------

class GenerationEngine:
    """Runs checkpointed generations over all coefficient subsets.

    Flow per subset:
        1. Seeds: stored generation seeds, or fresh mutations of the base
        2. Fan out / join: minimize every seed along the subset
        3. Collapse: prune dominated results into interesting_polynomials
        4. Persist: drop the subset from combinations_left and save
    """

    def __init__(self, config, executor, verifier=None):
        self.config = config
        self.executor = executor
        self.verifier = verifier
        self.stop_requested = False

    def seeds_for(self, state, combination):
        if state.starting_mutated_polynomials:
            return [p.copy() for p in state.starting_mutated_polynomials]
        rng = combination_rng(self.config.seed, state.current_generation, combination)
        return mutated_seeds(self.config.base_polynomial(), combination,
                             self.config.number_of_mutated_polynomials, rng)

    def process_combination(self, state, combination):
        seeds = self.seeds_for(state, combination)
        results = minimize_all(self.executor, seeds, combination, self.verifier)
        collapsed = collapse_polynomials(results)
        state.complete_combination(combination, collapsed)
        return collapsed

    def run_generation(self, state, limit=None):
        """Process pending subsets; True once the generation is complete.

        Stops early after `limit` subsets or when stop is requested; the
        generation is then left open in the checkpoint.
        """
        processed = 0
        for combination in state.pending():
            if self.stop_requested or (limit is not None and processed >= limit):
                return False
            t0 = time.time()
            collapsed = self.process_combination(state, combination)
            processed += 1
            if self.config.verbose:
                print("  Generation {} finished combination {}: {} kept ({:.2f}s)".format(
                    state.current_generation, combination, len(collapsed),
                    time.time() - t0))
        state.finish_generation(self.config.effective_length())
        if self.config.verbose:
            print("  Generation {} done: {} interesting polynomials".format(
                state.current_generation - 1, len(state.interesting_polynomials)))
        return True

    def run(self, state):
        """Run until config.generations generations are complete."""
        while state.current_generation < self.config.generations:
            if self.stop_requested:
                break
            if not self.run_generation(state):
                break
        return state


def mutate_polynomial(config, executor, verifier=None):
    """Minimize mutations of the base polynomial along every subset, once.

    Nothing is checkpointed. Returns the collapsed boundary candidates.
    """
    length = config.effective_length()
    base = config.base_polynomial()
    found = []
    for group in all_combinations(length):
        for combination in group:
            rng = combination_rng(config.seed, 0, combination)
            seeds = mutated_seeds(base, combination,
                                  config.number_of_mutated_polynomials, rng)
            results = minimize_all(executor, seeds, combination, verifier)
            found.extend(collapse_polynomials(results))
        if config.verbose and group:
            print("  Finished subsets of size {} out of {}".format(
                len(group[0]), length))
    return collapse_polynomials(found)
