"""Tests for the generation engine and worker pool plumbing."""

from concurrent.futures import ThreadPoolExecutor

from matrix_polynomial_analysis.collapse import collapse_polynomials
from matrix_polynomial_analysis.core import Polynomial
from matrix_polynomial_analysis.engine import (
    GenerationEngine,
    SearchConfig,
    build_verifier,
    create_worker_pool,
    minimize_all,
    mutate_polynomial,
)
from matrix_polynomial_analysis.mutation import combination_rng, mutated_seeds
from matrix_polynomial_analysis.state import GenerationState


def small_config(**overrides):
    params = dict(matrix_size=2, number_of_matrices=20,
                  number_of_mutated_polynomials=2, polynomial_length=5,
                  mode=3, seed=0, verbose=False)
    params.update(overrides)
    return SearchConfig(**params)


class ExplodingVerifier:

    def test(self, polynomial):
        raise RuntimeError("probe corpus unavailable")


def run_full_generation(config, path):
    verifier = build_verifier(config)
    state = GenerationState.load_or_new(path, config.effective_length())
    with create_worker_pool(verifier, 2, use_processes=False) as pool:
        GenerationEngine(config, pool, verifier).run(state)
    return state


def test_config_defaults():
    config = SearchConfig(starting_polynomial=[1.0, 0.0, 1.0])
    assert config.effective_length() == 3
    assert config.powers() == 3
    assert config.base_polynomial() == Polynomial([1.0, 0.0, 1.0], 2)
    assert SearchConfig(polynomial_length=4).base_polynomial() == \
        Polynomial.from_element(4, 2, 1.0)
    assert SearchConfig(circulant_powers=8).powers() == 8


def test_mutated_seeds_are_reproducible():
    base = Polynomial.from_element(4, 2, 1.0)
    a = mutated_seeds(base, [1, 3], 3, combination_rng(9, 0, [1, 3]))
    b = mutated_seeds(base, [1, 3], 3, combination_rng(9, 0, [1, 3]))
    assert a == b
    assert len(a) == 6
    lowered, raised = a[0], a[1]
    assert lowered[0] == 1.0 and lowered[1] < 1.0
    assert raised[0] == 0.0 and raised[3] > 0.0
    assert base == Polynomial.from_element(4, 2, 1.0)


def test_run_generation(tmp_path):
    config = small_config()
    state = run_full_generation(config, str(tmp_path / "state.json"))
    assert state.current_generation == 1
    assert state.interesting_polynomials
    assert collapse_polynomials(state.interesting_polynomials) == state.interesting_polynomials
    assert state.starting_mutated_polynomials == state.interesting_polynomials
    assert len(state.pending()) == 31
    for p in state.interesting_polynomials:
        assert not p.is_nonnegative(-0.1)


def test_resume_matches_uninterrupted_run(tmp_path):
    config = small_config()
    uninterrupted = run_full_generation(config, str(tmp_path / "a.json"))

    path = str(tmp_path / "b.json")
    verifier = build_verifier(config)
    state = GenerationState.new(config.effective_length(), path=path)
    with create_worker_pool(verifier, 2, use_processes=False) as pool:
        assert not GenerationEngine(config, pool, verifier).run_generation(state, limit=3)
    assert len(GenerationState.load(path).pending()) == 28

    resumed = run_full_generation(config, path)
    assert resumed.current_generation == 1
    assert sorted(resumed.interesting_polynomials) == \
        sorted(uninterrupted.interesting_polynomials)


def test_stop_requested_leaves_state_untouched():
    config = small_config()
    verifier = build_verifier(config)
    state = GenerationState.new(config.effective_length())
    with ThreadPoolExecutor(max_workers=1) as pool:
        engine = GenerationEngine(config, pool, verifier)
        engine.stop_requested = True
        engine.run(state)
    assert state.current_generation == 0
    assert len(state.pending()) == 31


def test_failed_tasks_are_reported_not_fatal(capsys):
    seeds = [Polynomial.from_element(3, 2, 1.0)] * 3
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = minimize_all(pool, seeds, [1], ExplodingVerifier())
    assert results == []
    assert "ERROR" in capsys.readouterr().err


def test_mutate_polynomial():
    config = small_config(mode=2, starting_polynomial=[1.0, 1.0, 1.0, 1.0, 1.0])
    verifier = build_verifier(config)
    with create_worker_pool(verifier, 2, use_processes=False) as pool:
        found = mutate_polynomial(config, pool, verifier)
    assert found
    assert collapse_polynomials(found) == found
    for p in found:
        assert len(p) == 5 and p.size == 2
        assert verifier.test(p)
        assert not p.is_nonnegative(-0.1)


def test_process_pool_matches_threads():
    config = small_config()
    verifier = build_verifier(config)
    seeds = mutated_seeds(config.base_polynomial(), [2], 2, combination_rng(0, 0, [2]))
    with create_worker_pool(verifier, 2) as pool:
        in_processes = minimize_all(pool, seeds, [2])
    with ThreadPoolExecutor(max_workers=2) as pool:
        in_threads = minimize_all(pool, seeds, [2], verifier)
    assert in_processes
    assert in_processes == in_threads
