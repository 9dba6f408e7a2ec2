#!/usr/bin/env python3
"""
Matrix Polynomial Search Runner
===============================

Modes:
    1  verify the starting polynomial against size x size matrices
    2  minimize mutations of the starting polynomial along every
       coefficient subset, once, without a checkpoint
    3  map the cone: checkpointed generations over every subset

Usage:
    python search/run_search.py --mode 1 --starting-polynomial 1 1 -0.6 0.1 0.3
    python search/run_search.py --mode 3 --generations 2   # resumes state.json
    python search/run_search.py --mode 3 --reset           # clear state and restart

Ctrl+C in mode 3 stops cleanly after the current subset.

Author: Carmen Esteban
"""

import os
import sys
import json
import time
import signal
import argparse
from dataclasses import replace

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from search.config import DEFAULT_CONFIG
from matrix_polynomial_analysis.engine import (
    DEFAULT_STARTING_POLYNOMIAL,
    GenerationEngine,
    build_verifier,
    create_worker_pool,
    mutate_polynomial,
)
from matrix_polynomial_analysis.core import Polynomial
from matrix_polynomial_analysis.state import GenerationState


# --- Paths ---

STATE_FILE = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), "state.json")
RESULTS_DIR = os.path.join(PROJECT_ROOT, "results")


# --- Result output ---

def write_results(polynomials, config, generation, results_dir=RESULTS_DIR):
    """Sort, save as JSON and echo one polynomial per line. Returns the path."""
    polynomials = sorted(polynomials)
    os.makedirs(results_dir, exist_ok=True)
    path = os.path.join(results_dir, "interesting_size{}_len{}_gen{}.json".format(
        config.matrix_size, config.effective_length(), generation))
    payload = {
        "matrix_size": config.matrix_size,
        "polynomial_length": config.effective_length(),
        "generation": generation,
        "count": len(polynomials),
        "polynomials": [p.to_dict()["coefficients"] for p in polynomials],
        "text": [str(p) for p in polynomials],
    }
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)
    for p in polynomials:
        print(p)
    return path


# --- Modes ---

def verify_mode(config):
    polynomial = Polynomial.from_list(config.starting_polynomial, config.matrix_size)
    verifier = build_verifier(config)
    try:
        result = verifier.verify(polynomial)
    finally:
        verifier.close()
    if config.verbose:
        print("  Decided at stage '{}' in {:.3f}s".format(result.stage, result.elapsed))
    if result.accepted:
        print("The polynomial {} probably preserves {}-by-{} matrices.".format(
            polynomial, config.matrix_size, config.matrix_size))
    else:
        print("The polynomial {} does not preserve {}-by-{} matrices.".format(
            polynomial, config.matrix_size, config.matrix_size))
    return result.accepted


def mutate_mode(config, results_dir=RESULTS_DIR):
    verifier = build_verifier(config)
    with create_worker_pool(verifier, config.workers) as pool:
        found = mutate_polynomial(config, pool)
    if config.verbose:
        print("  Total number of interesting polynomials found {}".format(len(found)))
    return write_results(found, config, 0, results_dir)


class SearchRunner:
    """Run checkpointed generations, stopping cleanly on SIGINT/SIGTERM."""

    def __init__(self, config, state_file=STATE_FILE, results_dir=RESULTS_DIR):
        self.config = config
        self.state_file = state_file
        self.results_dir = results_dir
        self.engine = None

    def _handle_signal(self, signum, frame):
        print("\n>>> Stop requested. Finishing current combination...")
        if self.engine is not None:
            self.engine.stop_requested = True

    def load_state(self):
        length = self.config.effective_length()
        size = self.config.matrix_size
        state = GenerationState.load_or_new(self.state_file, length, size)
        if len(state.combinations_left) != length + 1:
            raise ValueError(
                "checkpoint {} was written for polynomials of length {}, not {}; "
                "use --reset to start over".format(
                    self.state_file, len(state.combinations_left) - 1, length))
        stored = {p.size for p in state.starting_mutated_polynomials}
        stored.update(p.size for p in state.interesting_polynomials)
        if state.matrix_size is not None:
            stored.add(state.matrix_size)
        if stored - {size}:
            raise ValueError(
                "checkpoint {0} was written for {1}-by-{1} matrices, not {2}-by-{2}; "
                "use --reset to start over".format(
                    self.state_file, min(stored - {size}), size))
        state.matrix_size = size
        return state

    def run(self):
        state = self.load_state()
        print("=== Matrix Polynomial Search ===")
        print(f"Generation: {state.current_generation}/{self.config.generations}, "
              f"{len(state.pending())} combinations pending")
        print(f"State file: {self.state_file}")
        print()

        t0 = time.time()
        verifier = build_verifier(self.config)
        with create_worker_pool(verifier, self.config.workers) as pool:
            self.engine = GenerationEngine(self.config, pool)
            previous = {sig: signal.signal(sig, self._handle_signal)
                        for sig in (signal.SIGINT, signal.SIGTERM)}
            try:
                self.engine.run(state)
            finally:
                for sig, handler in previous.items():
                    signal.signal(sig, handler)

        if self.config.verbose:
            print("  Total time elapsed generating polynomials {:.2f}s".format(
                time.time() - t0))
        if state.current_generation < self.config.generations:
            print("Stopped by user. Progress saved to {}".format(self.state_file))
            return None

        print("\n=== Done ===")
        print("Total number of interesting polynomials found {}".format(
            len(state.interesting_polynomials)))
        return write_results(state.interesting_polynomials, self.config,
                             state.current_generation, self.results_dir)


# --- Entry point ---

def build_parser():
    parser = argparse.ArgumentParser(description="Matrix Polynomial Search Runner")
    parser.add_argument("--matrix-size", type=int, default=DEFAULT_CONFIG.matrix_size,
                        help="Size of matrices to evaluate against")
    parser.add_argument("--number-of-matrices", type=int,
                        default=DEFAULT_CONFIG.number_of_matrices,
                        help="Random probe matrices to generate per family")
    parser.add_argument("--number-of-mutated-polynomials", type=int,
                        default=DEFAULT_CONFIG.number_of_mutated_polynomials,
                        help="Mutation rounds per subset (each gives two seeds)")
    parser.add_argument("--polynomial-length", type=int,
                        default=DEFAULT_CONFIG.polynomial_length,
                        help="Coefficients per polynomial when no starting "
                             "polynomial is given")
    parser.add_argument("--mode", type=int, choices=[1, 2, 3], default=DEFAULT_CONFIG.mode,
                        help="1 verify, 2 mutate once, 3 checkpointed map")
    parser.add_argument("--starting-polynomial", type=float, nargs="+", default=None,
                        help="Coefficients, highest power first: 1 2 3 -> x^2 + 2x + 3")
    parser.add_argument("--generations", type=int, default=DEFAULT_CONFIG.generations)
    parser.add_argument("--workers", type=int, default=DEFAULT_CONFIG.workers,
                        help="Worker processes (default: cpu count)")
    parser.add_argument("--circulant-powers", type=int,
                        default=DEFAULT_CONFIG.circulant_powers)
    parser.add_argument("--random-matrices", type=int,
                        default=DEFAULT_CONFIG.random_matrices,
                        help="Random matrices per distribution, 0 disables")
    parser.add_argument("--zero-entry-patterns", action="store_true",
                        default=DEFAULT_CONFIG.zero_entry_patterns)
    parser.add_argument("--derivative-samples", type=int,
                        default=DEFAULT_CONFIG.derivative_samples)
    parser.add_argument("--probe-workers", type=int, default=DEFAULT_CONFIG.probe_workers)
    parser.add_argument("--seed", type=int, default=DEFAULT_CONFIG.seed)
    parser.add_argument("--state-file", default=STATE_FILE)
    parser.add_argument("--results-dir", default=RESULTS_DIR)
    parser.add_argument("--reset", action="store_true",
                        help="Reset state and start from scratch")
    parser.add_argument("--quiet", action="store_true")
    return parser


def config_from_args(args, parser):
    for name in ("matrix_size", "number_of_matrices", "polynomial_length", "generations"):
        if getattr(args, name) < 1:
            parser.error("--{} must be >= 1".format(name.replace("_", "-")))
    for name in ("number_of_mutated_polynomials", "random_matrices", "derivative_samples"):
        if getattr(args, name) < 0:
            parser.error("--{} must be >= 0".format(name.replace("_", "-")))
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be >= 1")
    if args.probe_workers < 1:
        parser.error("--probe-workers must be >= 1")

    starting = args.starting_polynomial
    if args.mode == 1 and not starting:
        starting = list(DEFAULT_STARTING_POLYNOMIAL)
    config = replace(
        DEFAULT_CONFIG,
        matrix_size=args.matrix_size,
        number_of_matrices=args.number_of_matrices,
        number_of_mutated_polynomials=args.number_of_mutated_polynomials,
        polynomial_length=args.polynomial_length,
        mode=args.mode,
        starting_polynomial=starting,
        generations=args.generations,
        workers=args.workers,
        circulant_powers=args.circulant_powers,
        random_matrices=args.random_matrices,
        zero_entry_patterns=args.zero_entry_patterns,
        derivative_samples=args.derivative_samples,
        probe_workers=args.probe_workers,
        seed=args.seed,
        verbose=not args.quiet,
    )
    if config.circulant_powers is not None and config.circulant_powers < config.effective_length():
        parser.error("--circulant-powers must be at least the polynomial length")
    return config


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config = config_from_args(args, parser)

    try:
        if args.reset and os.path.exists(args.state_file):
            os.remove(args.state_file)
            print("State reset.")

        if config.mode == 1:
            verify_mode(config)
        elif config.mode == 2:
            path = mutate_mode(config, args.results_dir)
            print(f"  Saved: {path}")
        else:
            runner = SearchRunner(config, args.state_file, args.results_dir)
            path = runner.run()
            if path is not None:
                print(f"  Saved: {path}")
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
