"""
Search configuration defaults.
==============================

Default parameters for the runner; every field can be overridden from the
command line.

Author: Carmen Esteban
"""

from matrix_polynomial_analysis.engine import SearchConfig


# --- Default search parameters ---

DEFAULT_CONFIG = SearchConfig(
    matrix_size=2,
    number_of_matrices=1000,
    number_of_mutated_polynomials=10,
    polynomial_length=5,
    mode=1,
    starting_polynomial=None,
    generations=1,
    workers=None,           # os.cpu_count()
    circulant_powers=None,  # polynomial length
    random_matrices=0,
    zero_entry_patterns=False,
    derivative_samples=0,
    probe_workers=1,
    seed=None,
    verbose=True,
)
