"""Pareto pruning of boundary polynomials.

Polynomials are compared after scaling by their largest absolute
coefficient. A candidate is dropped when another candidate is elementwise
<= it and differs from it; what is left is an antichain.
"""

import numpy as np


def dominates(a, b):
    """True where normalized vector a is elementwise <= b and not equal to it.

    b is one vector (returns a bool) or a stack of rows (returns one bool
    per row).
    """
    a = np.asarray(a)
    b = np.asarray(b)
    result = np.all(a <= b, axis=-1) & np.any(a != b, axis=-1)
    if result.ndim == 0:
        return bool(result)
    return result


def _normalized_rows(polynomials):
    rows = np.array([p.coefficients for p in polynomials], dtype=np.float64)
    scale = np.max(np.abs(rows), axis=1, keepdims=True)
    scale[scale == 0.0] = 1.0
    return rows / scale


def collapse_polynomials(polynomials):
    """Reduce `polynomials` to the elementwise-minimal ones.

    Works in two passes over a frozen snapshot: first find the duplicate and
    dominated indices, then filter. Returns the surviving originals
    (unscaled) in input order.
    """
    polynomials = list(polynomials)
    if not polynomials:
        return []
    length, size = len(polynomials[0]), polynomials[0].size
    for p in polynomials:
        if len(p) != length or p.size != size:
            raise ValueError("cannot collapse polynomials of different shapes: "
                             "len {} / size {} vs len {} / size {}".format(
                                 length, size, len(p), p.size))

    rows = _normalized_rows(polynomials)

    # Pass 1a: exact normalized duplicates, keep the first occurrence.
    keep = np.ones(len(rows), dtype=bool)
    seen = set()
    for i, row in enumerate(rows):
        key = tuple(row.tolist())
        if key in seen:
            keep[i] = False
        seen.add(key)
    unique = rows[keep]

    # Pass 1b: rows dominated by some other row, one row at a time.
    dominated = np.zeros(len(unique), dtype=bool)
    for row in unique:
        dominated |= dominates(row, unique)

    # Pass 2: filter.
    survivors = []
    unique_index = 0
    for i, p in enumerate(polynomials):
        if not keep[i]:
            continue
        if not dominated[unique_index]:
            survivors.append(p)
        unique_index += 1
    return survivors
