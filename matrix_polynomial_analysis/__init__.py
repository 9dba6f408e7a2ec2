"""
Matrix Polynomial Analysis
==========================

Maps the cone of real polynomials p(x) for which p(M) is entrywise
non-negative for every non-negative n x n matrix M.

Pipeline:
  Verifier   - probabilistic check against a fixed probe-matrix corpus
  Minimizer  - halving-step descent of a coefficient subset to the boundary
  Collapse   - Pareto pruning of dominated boundary polynomials
  Engine     - checkpointed generations over every coefficient subset

Author: Carmen Esteban
License: MIT
"""

__version__ = "0.1.0"
__author__ = "Carmen Esteban"

from matrix_polynomial_analysis.core import Polynomial, is_matrix_nonnegative, approx_equal
from matrix_polynomial_analysis.matrices import (
    structured_matrices,
    fundamental_circulant,
    circulant_power_sets,
    matrix_powers,
    probe_distributions,
    random_matrices,
    zero_patterns,
)
from matrix_polynomial_analysis.verifier import PolynomialVerifier, VerificationResult
from matrix_polynomial_analysis.minimizer import minimize_polynomial_coefficients
from matrix_polynomial_analysis.collapse import collapse_polynomials, dominates
from matrix_polynomial_analysis.mutation import mutated_seeds
from matrix_polynomial_analysis.state import GenerationState, all_combinations
from matrix_polynomial_analysis.engine import (
    SearchConfig,
    GenerationEngine,
    build_verifier,
    create_worker_pool,
    mutate_polynomial,
)
