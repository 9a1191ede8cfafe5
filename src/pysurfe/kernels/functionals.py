"""
Linear functionals applied to radial basis functions.

Every constraint row of the interpolation system is a linear functional
acting on the scalar field: a point evaluation, a directional derivative,
or a combination of those (e.g. an increment between two points).
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray


@dataclass
class Term:
    """One term of a functional.

    Attributes
    ----------
    location : NDArray
        Point (3,) at which the term acts.
    coefficient : float
        Multiplier of the term.
    direction : NDArray | None
        Derivative direction (3,); None for a point evaluation.
    """

    location: NDArray[np.float64]
    coefficient: float = 1.0
    direction: NDArray[np.float64] | None = None

    @property
    def is_value(self) -> bool:
        return self.direction is None


@dataclass
class Functional:
    """A linear combination of point evaluations and derivatives.

    ``group`` is the index of the interface group the functional belongs
    to, used by :class:`~pysurfe.kernels.modified.ModifiedKernel`.
    """

    terms: list[Term] = field(default_factory=list)
    group: int | None = None

    @classmethod
    def point_value(cls, location: NDArray[np.float64], group: int | None = None) -> Functional:
        """s(x)"""
        return cls([Term(np.asarray(location, dtype=float))], group=group)

    @classmethod
    def derivative(
        cls, location: NDArray[np.float64], direction: NDArray[np.float64]
    ) -> Functional:
        """d . grad s(x)"""
        return cls(
            [Term(np.asarray(location, dtype=float), 1.0, np.asarray(direction, dtype=float))]
        )

    @classmethod
    def difference(cls, a: NDArray[np.float64], b: NDArray[np.float64]) -> Functional:
        """s(a) - s(b)"""
        return cls(
            [Term(np.asarray(a, dtype=float), 1.0), Term(np.asarray(b, dtype=float), -1.0)]
        )

    @property
    def value_weight(self) -> float:
        """Sum of the coefficients of the point evaluation terms."""
        return float(sum(t.coefficient for t in self.terms if t.is_value))
