"""Tests for Polynomial algebra and predicates."""

import numpy as np
import pytest

from matrix_polynomial_analysis.core import Polynomial, approx_equal, is_matrix_nonnegative


# Components listed column-by-column.
M1 = np.array([3.0, 2.0, 1.0, 1.0, 3.0, 2.0, 2.0, 1.0, 3.0]).reshape(3, 3).T
M1_P1 = np.array([518.0, 528.0, 509.0, 509.0, 518.0, 528.0,
                  528.0, 509.0, 518.0]).reshape(3, 3).T
M1_P2 = np.array([849.0, 865.0, 849.0, 849.0, 849.0, 865.0,
                  865.0, 849.0, 849.0]).reshape(3, 3).T


def test_is_matrix_nonnegative():
    rng = np.random.default_rng(0)
    matrix = rng.random((100, 100))
    assert is_matrix_nonnegative(matrix)
    matrix[5, 5] = -1.0
    assert not is_matrix_nonnegative(matrix)


def test_apply_identity():
    identity = np.identity(3)
    ones = Polynomial([1.0, 1.0, 1.0, 1.0, 1.0], 3)
    mixed = Polynomial([2.0, 0.0, -1.0, 1.0, 1.0], 3)
    np.testing.assert_allclose(ones.apply(identity), 5.0 * identity)
    np.testing.assert_allclose(mixed.apply(identity), 3.0 * identity)


def test_apply_circulant():
    ones = Polynomial([1.0, 1.0, 1.0, 1.0, 1.0], 3)
    mixed = Polynomial([2.0, 0.0, -1.0, 1.0, 1.0], 3)
    np.testing.assert_allclose(ones.apply(M1), M1_P1)
    np.testing.assert_allclose(mixed.apply(M1), M1_P2)


def test_apply_rejects_wrong_shape():
    with pytest.raises(ValueError):
        Polynomial([1.0, 1.0], 2).apply(np.identity(3))


def test_apply_is_linear():
    rng = np.random.default_rng(1)
    for _ in range(10):
        a = Polynomial(rng.normal(size=6), 3)
        b = Polynomial(rng.normal(size=6), 3)
        matrix = rng.random((3, 3))
        np.testing.assert_allclose((a + b).apply(matrix),
                                   a.apply(matrix) + b.apply(matrix))


def test_apply_powers_matches_apply():
    p = Polynomial([2.0, 0.0, -1.0, 1.0, 1.0], 3)
    stack = [np.linalg.matrix_power(M1, k) for k in range(7)]
    np.testing.assert_allclose(p.apply_powers(stack), M1_P2)
    batch = np.stack([stack, stack])
    np.testing.assert_allclose(p.apply_powers(batch), np.stack([M1_P2, M1_P2]))
    with pytest.raises(ValueError):
        p.apply_powers(stack[:3])


def test_is_nonnegative():
    assert not Polynomial([3.0, 0.0, -1.0, -1.0, 1.0], 2).is_nonnegative()
    assert Polynomial([3.0, 0.0, 1.0, 1.0, 1.0], 2).is_nonnegative()
    assert not Polynomial([-3.0, 0.0, -1.0, 1.0, 1.0], 2).is_nonnegative()
    assert not Polynomial([-1.0, -1.0, 1.0, -1.0, -1.0], 2).is_nonnegative()
    assert Polynomial([1.0, -0.05, 1.0], 2).is_nonnegative(-0.1)
    assert not Polynomial([1.0, -0.2, 1.0], 2).is_nonnegative(-0.1)


@pytest.mark.parametrize("coefficients, expected", [
    ([3.0, 0.0, -1.0, -1.0, 1.0], True),
    ([-1.0, -1.0, 1.0, -1.0, -1.0], True),
    ([2.0, 0.0, -1.0, 1.0, 1.0], False),
    ([3.0, 0.0, 1.0, 1.0, 1.0], False),
    ([1.0, 1.0, -0.636535, 0.109375, 0.3191201], False),
    # zero leading term: x^2 is now extreme in its residue class
    ([0.0, 1.0, -1.0, 1.0, 1.0], True),
    # zero trailing term: x^2 is extreme from below
    ([1.0, 1.0, -1.0, 1.0, 0.0], True),
    # runs of zeros ending in a positive value
    ([1.0, 0.0, 1.0, 0.0, 1.0], False),
    ([1.0, 1.0, 1.0, -1.0, 1.0], True),
])
def test_are_first_last_negative(coefficients, expected):
    assert Polynomial(coefficients, 2).are_first_last_negative() is expected


def test_are_first_last_negative_short_polynomial():
    assert not Polynomial([1.0], 3).are_first_last_negative()
    assert Polynomial([-1.0], 3).are_first_last_negative()


def test_derivative():
    d = Polynomial([1.0, 2.0, 3.0], 2).derivative()
    assert d == Polynomial([2.0, 2.0], 2)
    d2 = Polynomial([1.0, 0.0, 0.0, 0.0], 1).derivative().derivative()
    assert d2 == Polynomial([6.0, 0.0], 1)
    assert Polynomial([5.0], 1).derivative() == Polynomial([0.0], 1)


def test_min_max_term():
    p = Polynomial([2.0, -0.5, -3.0, 1.0], 2)
    assert p.min_term() == 0.5
    assert p.max_term() == 3.0
    np.testing.assert_allclose(p.normalized().coefficients, [2 / 3, -1 / 6, -1.0, 1 / 3])


def test_equality_uses_all_coefficients():
    assert Polynomial([1.0, 2.0, 3.0], 2) != Polynomial([1.0, 2.0, 4.0], 2)
    assert Polynomial([1.0, 2.0, 3.0], 2) != Polynomial([1.0, 2.0, 3.0], 3)
    assert Polynomial([1.0, 2.0, 3.0], 2) == Polynomial([1.0, 2.0, 3.0], 2)
    assert Polynomial([1.0, 2.0, 3.0], 2) < Polynomial([1.0, 2.0, 4.0], 2)
    ordered = sorted([Polynomial([2.0, 0.0], 1), Polynomial([1.0, 5.0], 1)])
    assert ordered[0] == Polynomial([1.0, 5.0], 1)


def test_copy_is_independent():
    p = Polynomial([1.0, 1.0], 1)
    q = p.copy()
    q[0] = 5.0
    assert p[0] == 1.0


def test_str():
    assert str(Polynomial([3.0, 0.0, -1.0], 1)) == \
        "+ 3.0000000x^2 + 0.0000000x^1 - 1.0000000x^0"


def test_dict_round_trip():
    p = Polynomial([0.1, -0.3333333333333333, 2.0], 2)
    assert Polynomial.from_dict(p.to_dict()) == p
    with pytest.raises(ValueError):
        Polynomial.from_dict({"coefficients": [1.0]})


def test_invalid_construction():
    with pytest.raises(ValueError):
        Polynomial([], 2)
    with pytest.raises(ValueError):
        Polynomial([1.0], 0)


def test_mismatched_addition():
    with pytest.raises(ValueError):
        Polynomial([1.0, 1.0], 2) + Polynomial([1.0], 2)


def test_approx_equal():
    assert approx_equal(0.0, 5e-6)
    assert not approx_equal(0.0, 1e-4)
