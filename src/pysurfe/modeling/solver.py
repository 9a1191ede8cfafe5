"""
Interpolation system assembly and solution.

The interpolant is

    s(x) = sum_j w_j L_j^y phi(x, y) + sum_k p_k P_k(x)

where each ``L_j`` is the functional of a constraint row. Row ``i`` of the
interpolation matrix holds ``L_i`` applied to every basis function, so
``A @ w`` gives the constrained quantity of each row. Rows are ordered
with the inequality block first, followed by the equality block (interface,
planar, tangent and polynomial orthogonality rows).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray
from scipy import linalg
from scipy.optimize import minimize

from pysurfe.core.exceptions import SolverError
from pysurfe.core.parameters import SolverType
from pysurfe.kernels.functionals import Functional
from pysurfe.modeling import polynomial
from pysurfe.modeling.polynomial import Exponents

if TYPE_CHECKING:
    from pysurfe.kernels import Kernel

logger = logging.getLogger(__name__)

# Feasibility tolerance on constrained rows after a quadratic solve
_FEASIBILITY_TOL = 1e-6


def get_equality_matrix(
    interpolation_matrix: NDArray[np.float64],
    equality_matrix: NDArray[np.float64],
    n_inequality: int,
) -> bool:
    """
    Copy the equality block out of the full interpolation matrix.

    Parameters
    ----------
    interpolation_matrix : NDArray
        Full matrix (R x C) with the inequality rows first.
    equality_matrix : NDArray
        Pre-sized buffer (E x C) filled in place.
    n_inequality : int
        Independently tracked number of inequality rows.

    Returns
    -------
    bool
        False if the buffer is empty, larger than the full matrix, has a
        different column count, or if ``R - E`` differs from
        ``n_inequality``. The buffer is left untouched on failure.
    """
    if equality_matrix.ndim != 2 or interpolation_matrix.ndim != 2:
        return False
    n_rows, n_cols = interpolation_matrix.shape
    n_eq = equality_matrix.shape[0]
    if n_eq == 0 or n_eq > n_rows or equality_matrix.shape[1] != n_cols:
        return False
    n_ie = n_rows - n_eq
    if n_ie != n_inequality:
        return False

    equality_matrix[:, :] = interpolation_matrix[n_ie:, :]
    return True


class SystemSolver:
    """
    Assembles and solves the constrained interpolation system.

    Parameters
    ----------
    kernel : Kernel
        Basis kernel (plain or modified).
    functionals : Sequence[Functional]
        One functional per constraint row, inequality rows first.
    lower, upper : NDArray
        Bounds on each constraint row. Equality rows have ``lower ==
        upper`` unless the problem is range restricted.
    n_inequality : int
        Number of leading inequality rows.
    poly_terms : Sequence[Exponents]
        Polynomial drift monomials.
    problem_type : SolverType
        LINEAR solves the square system directly; QUADRATIC minimises the
        native space norm subject to the row bounds.

    Attributes
    ----------
    weights : NDArray
        Solved weights (empty until :meth:`solve` succeeds).
    """

    def __init__(
        self,
        kernel: Kernel,
        functionals: Sequence[Functional],
        lower: NDArray[np.float64],
        upper: NDArray[np.float64],
        n_inequality: int,
        poly_terms: Sequence[Exponents] = (),
        problem_type: SolverType = SolverType.LINEAR,
    ) -> None:
        self.kernel = kernel
        self.functionals = [kernel.expand(f) for f in functionals]
        self.lower = np.asarray(lower, dtype=float)
        self.upper = np.asarray(upper, dtype=float)
        self.n_inequality = n_inequality
        self.poly_terms = list(poly_terms)
        self.problem_type = problem_type
        self.interpolation_matrix: NDArray[np.float64] = np.zeros((0, 0))
        self.equality_matrix: NDArray[np.float64] = np.zeros((0, 0))
        self.inequality_matrix: NDArray[np.float64] = np.zeros((0, 0))
        self.weights: NDArray[np.float64] = np.zeros(0)

        if len(self.lower) != len(self.functionals) or len(self.upper) != len(self.functionals):
            raise SolverError(
                f"Bounds length ({len(self.lower)}, {len(self.upper)}) does not match "
                f"{len(self.functionals)} constraint rows"
            )

    @property
    def n_functionals(self) -> int:
        return len(self.functionals)

    @property
    def n_rows(self) -> int:
        return len(self.functionals) + len(self.poly_terms)

    @property
    def has_weights(self) -> bool:
        return self.weights.size > 0

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def assemble(self) -> NDArray[np.float64]:
        """Build the full square interpolation matrix."""
        n = self.n_functionals
        m = len(self.poly_terms)
        a = np.zeros((n + m, n + m))

        for i in range(n):
            for j in range(i, n):
                a[i, j] = self.kernel.apply(self.functionals[i], self.functionals[j])
                a[j, i] = a[i, j]

        for i in range(n):
            for k, exps in enumerate(self.poly_terms):
                a[i, n + k] = polynomial.apply_functional(exps, self.functionals[i])
                a[n + k, i] = a[i, n + k]

        logger.debug("Assembled %dx%d interpolation matrix (%d poly terms)", n + m, n + m, m)
        self.interpolation_matrix = a
        return a

    def partition(self, n_equality: int | None = None) -> bool:
        """
        Split the interpolation matrix into equality and inequality blocks.

        Parameters
        ----------
        n_equality : int | None
            Expected number of equality rows (polynomial rows included).
            Defaults to every row after the inequality block.

        Returns
        -------
        bool
            False if the expected row counts disagree with the matrix.
        """
        n_rows, n_cols = self.interpolation_matrix.shape
        if n_equality is None:
            n_equality = n_rows - self.n_inequality
        if n_equality < 0:
            return False
        buffer = np.zeros((n_equality, n_cols))
        if not get_equality_matrix(self.interpolation_matrix, buffer, self.n_inequality):
            return False
        self.equality_matrix = buffer
        self.inequality_matrix = self.interpolation_matrix[: self.n_inequality, :].copy()
        return True

    def _row_bounds(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Bounds on every matrix row, polynomial rows included."""
        m = len(self.poly_terms)
        return (
            np.concatenate([self.lower, np.zeros(m)]),
            np.concatenate([self.upper, np.zeros(m)]),
        )

    # ------------------------------------------------------------------
    # Solution
    # ------------------------------------------------------------------

    def solve(self) -> NDArray[np.float64]:
        """
        Solve for the weights.

        Returns
        -------
        NDArray
            Weight vector (n_functionals + n_poly_terms).

        Raises
        ------
        SolverError
            If the system has not been partitioned or cannot be solved.
        """
        if self.equality_matrix.size == 0:
            raise SolverError("System must be assembled and partitioned before solving")

        if self.problem_type == SolverType.LINEAR and self.n_inequality == 0:
            weights = self._solve_linear()
        else:
            weights = self._solve_quadratic()

        if not np.all(np.isfinite(weights)):
            raise SolverError("Solver produced non-finite weights")
        self.weights = weights
        return weights

    def _solve_linear(self) -> NDArray[np.float64]:
        lo, _ = self._row_bounds()
        b = lo[self.n_inequality :]
        try:
            return np.asarray(linalg.solve(self.equality_matrix, b, assume_a="sym"))
        except linalg.LinAlgError:
            logger.warning("Interpolation matrix is singular; using least squares")
            solution, *_ = linalg.lstsq(self.equality_matrix, b)
            return np.asarray(solution)

    def _solve_quadratic(self) -> NDArray[np.float64]:
        n = self.n_functionals
        a = self.interpolation_matrix
        phi = a[:n, :n]
        sign = self.kernel.definiteness_sign
        lo, hi = self._row_bounds()

        def objective(w: NDArray[np.float64]) -> float:
            return float(0.5 * sign * w[:n] @ phi @ w[:n])

        def jacobian(w: NDArray[np.float64]) -> NDArray[np.float64]:
            g = np.zeros_like(w)
            g[:n] = sign * (phi @ w[:n])
            return g

        fixed = np.isclose(lo, hi) & np.isfinite(lo)
        fixed[: self.n_inequality] = False
        constraints: list[dict[str, Any]] = []
        if fixed.any():
            a_eq, b_eq = a[fixed], lo[fixed]
            constraints.append(
                {"type": "eq", "fun": lambda w: a_eq @ w - b_eq, "jac": lambda w: a_eq}
            )
        has_lo = ~fixed & np.isfinite(lo)
        if has_lo.any():
            a_lo, b_lo = a[has_lo], lo[has_lo]
            constraints.append(
                {"type": "ineq", "fun": lambda w: a_lo @ w - b_lo, "jac": lambda w: a_lo}
            )
        has_hi = ~fixed & np.isfinite(hi)
        if has_hi.any():
            a_hi, b_hi = a[has_hi], hi[has_hi]
            constraints.append(
                {"type": "ineq", "fun": lambda w: b_hi - a_hi @ w, "jac": lambda w: -a_hi}
            )

        # Start from the interpolant through the nearest feasible targets
        target = np.where(np.isfinite(lo), lo, np.where(np.isfinite(hi), hi, 0.0))
        x0, *_ = linalg.lstsq(a, target)

        result = minimize(
            objective,
            x0,
            jac=jacobian,
            constraints=constraints,
            method="SLSQP",
            options={"maxiter": 1000, "ftol": 1e-10},
        )

        w = np.asarray(result.x)
        rows = a @ w
        violation = float(np.max(np.concatenate([lo - rows, rows - hi, [0.0]])))
        feasible = violation <= _FEASIBILITY_TOL * max(
            1.0, float(np.max(np.abs(target), initial=0.0))
        )
        if not result.success:
            if not feasible:
                raise SolverError(f"Quadratic solve failed: {result.message}")
            logger.warning("Quadratic solve stopped early: %s", result.message)
        elif not feasible:
            logger.warning("Quadratic solve violates a constraint by %.3g", violation)
        logger.debug("Quadratic solve converged in %d iterations", result.nit)
        return w

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, xyz: NDArray[np.float64]) -> float:
        """Scalar field at ``xyz``."""
        if not self.has_weights:
            raise SolverError("No interpolant: weights are empty")
        n = self.n_functionals
        s = 0.0
        for j, f in enumerate(self.functionals):
            s += self.weights[j] * self.kernel.apply_point(xyz, f)
        for k, exps in enumerate(self.poly_terms):
            s += self.weights[n + k] * polynomial.monomial(exps, xyz)
        return float(s)

    def evaluate_gradient(self, xyz: NDArray[np.float64]) -> NDArray[np.float64]:
        """Field gradient at ``xyz``."""
        if not self.has_weights:
            raise SolverError("No interpolant: weights are empty")
        n = self.n_functionals
        g = np.zeros(3)
        for j, f in enumerate(self.functionals):
            g += self.weights[j] * self.kernel.apply_point_gradient(xyz, f)
        for k, exps in enumerate(self.poly_terms):
            g += self.weights[n + k] * polynomial.monomial_gradient(exps, xyz)
        return g
