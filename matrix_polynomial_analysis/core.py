"""Core definitions: Polynomial and matrix helpers.

A Polynomial is a dense coefficient vector evaluated at square matrices.
Index 0 holds the coefficient of the highest power, so [1, 2, 3] is
x^2 + 2x + 3.
"""

import functools

import numpy as np


APPROX_TOL = 1e-5


def approx_equal(term1, term2, tol=APPROX_TOL):
    return abs(term1 - term2) < tol


def is_matrix_nonnegative(matrix):
    """True iff no entry of `matrix` (or of a stack of matrices) is negative."""
    return not bool(np.any(np.asarray(matrix) < 0.0))


@functools.total_ordering
class Polynomial:
    """Real polynomial tied to the side length of the matrices it acts on.

    Attributes:
        coefficients: float64 vector, highest power first
        size: side length of the matrices the polynomial is evaluated at
    """

    def __init__(self, coefficients, size):
        coefficients = np.array(coefficients, dtype=np.float64).ravel()
        if coefficients.size < 1:
            raise ValueError("a polynomial needs at least one coefficient")
        if int(size) < 1:
            raise ValueError("matrix size must be >= 1, got {}".format(size))
        self.coefficients = coefficients
        self.size = int(size)

    # -- constructors -------------------------------------------------------

    @classmethod
    def from_element(cls, polynomial_length, matrix_size, element):
        return cls(np.full(polynomial_length, float(element)), matrix_size)

    @classmethod
    def from_list(cls, values, matrix_size):
        return cls(list(values), matrix_size)

    @classmethod
    def from_dict(cls, data):
        try:
            return cls(data["coefficients"], data["size"])
        except (KeyError, TypeError) as e:
            raise ValueError("malformed polynomial record: {!r}".format(data)) from e

    def to_dict(self):
        return {"coefficients": [float(c) for c in self.coefficients],
                "size": self.size}

    def copy(self):
        return Polynomial(self.coefficients.copy(), self.size)

    # -- sequence protocol --------------------------------------------------

    def __len__(self):
        return len(self.coefficients)

    def __getitem__(self, i):
        return float(self.coefficients[i])

    def __setitem__(self, i, value):
        self.coefficients[i] = value

    def __iter__(self):
        return iter(self.coefficients.tolist())

    # -- evaluation ---------------------------------------------------------

    def apply(self, matrix):
        """Evaluate sum_i c_i * M^(len-1-i) at a size x size matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (self.size, self.size):
            raise ValueError("expected a {0}x{0} matrix, got shape {1}".format(
                self.size, matrix.shape))
        final_matrix = np.zeros_like(matrix)
        working_matrix = np.identity(self.size)
        for coefficient in self.coefficients[::-1]:
            final_matrix += coefficient * working_matrix
            working_matrix = working_matrix @ matrix
        return final_matrix

    def apply_powers(self, powers):
        """Evaluate from cached powers, powers[..., k, :, :] = M^k.

        Accepts one power stack (powers, n, n) or a batch
        (count, powers, n, n); returns (n, n) or (count, n, n).
        """
        powers = np.asarray(powers)
        if powers.ndim < 3 or powers.shape[-3] < len(self):
            raise ValueError("need at least {} cached powers, got shape {}".format(
                len(self), powers.shape))
        return np.einsum("k,...kij->...ij", self.coefficients[::-1],
                         powers[..., :len(self), :, :])

    # -- predicates ---------------------------------------------------------

    def is_nonnegative(self, threshold=0.0):
        return bool(np.all(self.coefficients >= threshold))

    def are_first_last_negative(self):
        """Fast necessary-condition check on the extreme-degree terms.

        For every residue class of powers mod `size`, the first coefficient
        that is not ~0, counted from the highest power and again from the
        lowest, must be non-negative. Returns True when one is negative.
        """
        n = len(self)
        for i in range(min(self.size, n)):
            for start, stride in ((i, self.size), (n - 1 - i, -self.size)):
                k = start
                while 0 <= k < n:
                    value = self.coefficients[k]
                    if value < 0.0:
                        return True
                    if not approx_equal(value, 0.0):
                        break
                    k += stride
        return False

    # -- algebra ------------------------------------------------------------

    def derivative(self):
        """Power-rule derivative, same matrix size."""
        n = len(self)
        if n == 1:
            return Polynomial([0.0], self.size)
        powers = np.arange(n - 1, 0, -1, dtype=np.float64)
        return Polynomial(powers * self.coefficients[:-1], self.size)

    def min_term(self):
        return float(np.min(np.abs(self.coefficients)))

    def max_term(self):
        return float(np.max(np.abs(self.coefficients)))

    def normalized(self):
        largest = self.max_term()
        if largest == 0.0:
            return self.copy()
        return Polynomial(self.coefficients / largest, self.size)

    def _check_compatible(self, other):
        if len(self) != len(other) or self.size != other.size:
            raise ValueError(
                "incompatible polynomials: len {} / size {} vs len {} / size {}".format(
                    len(self), self.size, len(other), other.size))

    def __add__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        self._check_compatible(other)
        return Polynomial(self.coefficients + other.coefficients, self.size)

    def __sub__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        self._check_compatible(other)
        return Polynomial(self.coefficients - other.coefficients, self.size)

    def __mul__(self, scalar):
        if isinstance(scalar, Polynomial):
            return NotImplemented
        return Polynomial(self.coefficients * float(scalar), self.size)

    __rmul__ = __mul__

    # -- comparison ---------------------------------------------------------

    def _key(self):
        return (self.size, tuple(self.coefficients.tolist()))

    def __eq__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self._key() < other._key()

    __hash__ = None

    # -- display ------------------------------------------------------------

    def __str__(self):
        power = len(self)
        terms = []
        for term in self.coefficients:
            power -= 1
            sign = "+" if term >= 0.0 else "-"
            terms.append("{} {:.7f}x^{}".format(sign, abs(term), power))
        return " ".join(terms)

    def __repr__(self):
        return "Polynomial({}, size={})".format(self.coefficients.tolist(), self.size)
