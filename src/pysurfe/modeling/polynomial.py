"""Polynomial drift terms appended to the RBF interpolant."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pysurfe.kernels.functionals import Functional

Exponents = tuple[int, int, int]

_TERMS_BY_ORDER: dict[int, list[Exponents]] = {
    0: [(0, 0, 0)],
    1: [(1, 0, 0), (0, 1, 0), (0, 0, 1)],
    2: [(2, 0, 0), (0, 2, 0), (0, 0, 2), (1, 1, 0), (1, 0, 1), (0, 1, 1)],
}


def polynomial_terms(order: int, include_constant: bool = True) -> list[Exponents]:
    """
    Monomial exponents of a full polynomial of the given order.

    Parameters
    ----------
    order : int
        Polynomial order (-1 for none, up to 2).
    include_constant : bool
        Whether to keep the constant monomial. Increment-based and
        gradient-only formulations cannot determine it.

    Examples
    --------
    >>> polynomial_terms(1)
    [(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)]
    >>> len(polynomial_terms(2, include_constant=False))
    9
    """
    terms: list[Exponents] = []
    for k in range(order + 1):
        terms.extend(_TERMS_BY_ORDER[k])
    if not include_constant and terms:
        terms = terms[1:]
    return terms


def monomial(exps: Exponents, xyz: NDArray[np.float64]) -> float:
    return float(xyz[0] ** exps[0] * xyz[1] ** exps[1] * xyz[2] ** exps[2])


def monomial_gradient(exps: Exponents, xyz: NDArray[np.float64]) -> NDArray[np.float64]:
    grad = np.zeros(3)
    for axis in range(3):
        e = exps[axis]
        if e == 0:
            continue
        reduced = list(exps)
        reduced[axis] = e - 1
        grad[axis] = e * monomial((reduced[0], reduced[1], reduced[2]), xyz)
    return grad


def apply_functional(exps: Exponents, f: Functional) -> float:
    """Apply a (non-grouped) functional to a monomial."""
    total = 0.0
    for t in f.terms:
        if t.is_value:
            total += t.coefficient * monomial(exps, t.location)
        else:
            total += t.coefficient * float(t.direction @ monomial_gradient(exps, t.location))
    return total
