"""
Coefficient Minimizer
=====================

Walks a seed polynomial toward the boundary of the nonnegativity-preserving
cone along the direction given by a subset of coefficient indices, using a
halving step guarded by a PolynomialVerifier.

Author: Carmen Esteban
License: MIT
"""

INITIAL_STEP = 0.5
MIN_STEP = 0.001
NEGATIVE_TOLERANCE = -0.1


def minimize_polynomial_coefficients(polynomial, combination, verifier,
                                     initial_step=INITIAL_STEP,
                                     min_step=MIN_STEP,
                                     threshold=NEGATIVE_TOLERANCE):
    """Push the coefficients in `combination` down until the verifier fails.

    Each pass records the polynomial as last-known-good and lowers the
    subset by the step. A failure after some pass halves the step and moves
    back up by the halved step (bisection); a failure before any pass moves
    back up by the full step and then halves it.

    Parameters
    ----------
    polynomial : Polynomial
        Seed; it is copied, the caller's object is never modified.
    combination : sequence of int
        Coefficient indices moved together, must be non-empty.
    verifier : PolynomialVerifier
    initial_step, min_step : float
        The loop runs while step > min_step.
    threshold : float
        Results that are nonnegative down to this tolerance are discarded.

    Returns
    -------
    Polynomial or None
        The last polynomial that passed verification, if it has a
        coefficient below `threshold`; otherwise None.
    """
    indices = list(combination)
    if not indices:
        raise ValueError("combination must contain at least one coefficient index")

    polynomial = polynomial.copy()
    step = initial_step
    last_good = None
    passed_once = False

    while step > min_step:
        if verifier.test(polynomial):
            last_good = polynomial.copy()
            passed_once = True
            polynomial.coefficients[indices] -= step
        elif passed_once:
            step /= 2.0
            polynomial.coefficients[indices] += step
        else:
            polynomial.coefficients[indices] += step
            step /= 2.0

    if last_good is not None and not last_good.is_nonnegative(threshold):
        return last_good
    return None
