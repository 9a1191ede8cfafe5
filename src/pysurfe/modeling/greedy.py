"""
Greedy refinement.

Instead of interpolating every constraint, the greedy algorithm starts from
a minimal subset, fits it, measures the misfit of the excluded constraints,
and adds back those with large residuals (see
:mod:`pysurfe.modeling.residuals`). The loop ends when an iteration adds
nothing. Every iteration moves at least one constraint out of the finite
excluded set, so the loop always terminates.

Example
-------
>>> from pysurfe.modeling import create_modelling_method
>>> method = create_modelling_method(params, basic_input)  # doctest: +SKIP
>>> method.run_greedy_algorithm()  # doctest: +SKIP
True
>>> method.greedy_result.active_counts  # doctest: +SKIP
[9, 14, 16]
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import numpy as np
from numpy.typing import NDArray

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.parameters import R2D
from pysurfe.core.spatial import (
    find_furthest_two_points,
    get_extremal_point_data_indices_from_points,
)
from pysurfe.modeling.methods import STAGES, IsoValueUpdate, ModellingResult
from pysurfe.modeling.residuals import (
    get_inequality_indices_with_large_residuals,
    get_interface_indices_with_large_residuals,
    get_planar_indices_with_large_residuals,
    get_tangent_indices_with_large_residuals,
)

if TYPE_CHECKING:
    from pysurfe.core.points import Interface, Point
    from pysurfe.modeling.methods import GRBFModellingMethod

logger = logging.getLogger(__name__)

P = TypeVar("P", bound="Point")

# Stages re-run on the growing subset; evaluation happens once at the end
GREEDY_STAGES: tuple[str, ...] = STAGES[:-1]


@dataclass
class GreedyResult:
    """Outcome of a greedy refinement run.

    Attributes
    ----------
    success : bool
        True if the loop converged and the final field was evaluated.
    iterations : int
        Number of fit/measure/append iterations run.
    active_counts : list[int]
        Number of active constraint points at the start of each iteration.
    n_excluded : int
        Constraints still excluded at the end.
    cancelled : bool
        True if ``should_stop`` ended the loop.
    error : str
        Failure description.
    """

    success: bool = False
    iterations: int = 0
    active_counts: list[int] = field(default_factory=list)
    n_excluded: int = 0
    cancelled: bool = False
    error: str = ""

    def summary(self) -> str:
        status = "CONVERGED" if self.success else "FAILED"
        lines = [
            f"Greedy refinement: {status}",
            f"  Iterations: {self.iterations}",
            f"  Active constraints: {self.active_counts}",
            f"  Excluded constraints: {self.n_excluded}",
        ]
        if self.cancelled:
            lines.append("  Cancelled")
        if self.error:
            lines.append(f"  Error: {self.error}")
        return "\n".join(lines)


def angle_between(a: NDArray[np.float64], b: NDArray[np.float64]) -> float:
    """Angle in degrees between two vectors (180 if either is zero)."""
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0.0 or nb == 0.0:
        return 180.0
    c = float(np.clip(np.dot(a, b) / (na * nb), -1.0, 1.0))
    return math.acos(c) * R2D


def tangent_misfit(tangent: NDArray[np.float64], gradient: NDArray[np.float64]) -> float:
    """Angle in degrees between a tangent and the level surface with ``gradient``."""
    nt = float(np.linalg.norm(tangent))
    ng = float(np.linalg.norm(gradient))
    if nt == 0.0 or ng == 0.0:
        return 90.0
    s = float(np.clip(abs(np.dot(tangent, gradient)) / (nt * ng), 0.0, 1.0))
    return math.asin(s) * R2D


def _split(src: Sequence[P], keep: set[int], kept: list[P], excluded: list[P]) -> None:
    for i, p in enumerate(src):
        (kept if i in keep else excluded).append(p.copy())  # type: ignore[arg-type]


def _move(src: list[P], indices: Sequence[int], dst: list[P]) -> int:
    chosen = set(indices)
    dst.extend(p for i, p in enumerate(src) if i in chosen)
    src[:] = [p for i, p in enumerate(src) if i not in chosen]
    return len(chosen)


class GreedyRefinement:
    """
    Greedy refinement driver for a modelling method.

    Parameters
    ----------
    method : GRBFModellingMethod
        Configured method holding the full input. Its evaluation points
        receive the final field.
    should_stop : Callable[[], bool] | None
        Checked before each iteration; returning True cancels the run.
    record_history : bool
        Append the current field at each evaluation point to its
        ``field_history`` after every iteration.
    """

    def __init__(
        self,
        method: GRBFModellingMethod,
        should_stop: Callable[[], bool] | None = None,
        record_history: bool = False,
    ) -> None:
        self.method = method
        self.should_stop = should_stop
        self.record_history = record_history
        self.greedy_method: GRBFModellingMethod | None = None
        self.excluded = BasicInput()

    # ------------------------------------------------------------------
    # Input split
    # ------------------------------------------------------------------

    def get_minimal_and_excluded_input(self) -> tuple[BasicInput, BasicInput]:
        """
        Split copies of the full input into a starting subset and the rest.

        The subset holds the two furthest-apart points of each interface
        group, the extremal planar and tangent points, and no inequality
        points. Disabled constraint types go to the subset unchanged so
        they are never measured.

        Returns
        -------
        tuple[BasicInput, BasicInput]
            ``(greedy_input, excluded_input)``.
        """
        method = self.method
        original = method.b_input
        greedy = BasicInput()
        excluded = BasicInput()

        if method.active_interface():
            groups: dict[float, list[int]] = {}
            for i, p in enumerate(original.itrface):
                groups.setdefault(p.level, []).append(i)
            keep: set[int] = set()
            for level in sorted(groups):
                members = groups[level]
                pair = find_furthest_two_points([original.itrface[i] for i in members])
                if pair is None:
                    keep.add(members[0])
                else:
                    keep.update((members[pair[0]], members[pair[1]]))
            _split(original.itrface, keep, greedy.itrface, excluded.itrface)
        else:
            greedy.itrface = copy.deepcopy(original.itrface)

        if method.active_planar():
            keep = set(get_extremal_point_data_indices_from_points(original.planar))
            _split(original.planar, keep, greedy.planar, excluded.planar)
        else:
            greedy.planar = copy.deepcopy(original.planar)

        if method.active_tangent():
            keep = set(get_extremal_point_data_indices_from_points(original.tangent))
            _split(original.tangent, keep, greedy.tangent, excluded.tangent)
        else:
            greedy.tangent = copy.deepcopy(original.tangent)

        if method.active_inequality():
            _split(original.inequality, set(), greedy.inequality, excluded.inequality)
        else:
            greedy.inequality = copy.deepcopy(original.inequality)

        logger.debug(
            "Greedy start: %d active, %d excluded constraint points",
            greedy.n_constraint_points,
            excluded.n_constraint_points,
        )
        return greedy, excluded

    # ------------------------------------------------------------------
    # Residuals
    # ------------------------------------------------------------------

    def measure_residuals(self, greedy_method: GRBFModellingMethod, excluded: BasicInput) -> bool:
        """Write the misfit of the fitted field on every excluded constraint."""
        if not greedy_method.has_interpolant():
            logger.error("Cannot measure residuals without a solved interpolant")
            return False
        if greedy_method.resolves_iso_values:
            if greedy_method.update_interface_iso_values() == IsoValueUpdate.FAILED:
                return False

        solver = greedy_method.solver
        assert solver is not None

        for itf in excluded.itrface:
            s = solver.evaluate(itf.coordinates)
            itf.set_scalar_field(s)
            itf.residual = s - self._iso_value(greedy_method, itf)

        for p in excluded.planar:
            g = solver.evaluate_gradient(p.coordinates)
            p.set_vector_field(g[0], g[1], g[2])
            p.residual = angle_between(g, p.normal)

        for t in excluded.tangent:
            g = solver.evaluate_gradient(t.coordinates)
            t.set_vector_field(g[0], g[1], g[2])
            t.residual = tangent_misfit(t.tangent, g)

        for ie in excluded.inequality:
            s = solver.evaluate(ie.coordinates)
            ie.set_scalar_field(s)
            ie.residual = s < ie.level

        return True

    @staticmethod
    def _iso_value(greedy_method: GRBFModellingMethod, itf: Interface) -> float:
        iso = greedy_method.interface_iso_value(itf.level)
        if iso is None:
            logger.warning("No iso value for interface level %g; using the level", itf.level)
            return itf.level
        return iso

    def append_greedy_input(self, greedy_method: GRBFModellingMethod, excluded: BasicInput) -> int:
        """
        Move excluded constraints with large residuals into the active set.

        Returns
        -------
        int
            Number of constraints added.
        """
        mp = self.method.m_parameters
        original = self.method.b_input
        active = greedy_method.b_input
        factors = (mp.greedy_isolation_factor, mp.greedy_variability_factor)

        added = _move(
            excluded.inequality,
            get_inequality_indices_with_large_residuals(
                excluded.inequality, original.inequality_avg_nn_dist, *factors
            ),
            active.inequality,
        )
        added += _move(
            excluded.itrface,
            get_interface_indices_with_large_residuals(
                excluded.itrface, original.interface_avg_nn_dist, mp.interface_slack, *factors
            ),
            active.itrface,
        )
        added += _move(
            excluded.planar,
            get_planar_indices_with_large_residuals(
                excluded.planar, original.planar_avg_nn_dist, mp.gradient_slack, *factors
            ),
            active.planar,
        )
        added += _move(
            excluded.tangent,
            get_tangent_indices_with_large_residuals(
                excluded.tangent, original.tangent_avg_nn_dist, mp.gradient_slack, *factors
            ),
            active.tangent,
        )
        return added

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _fail(self, result: GreedyResult, message: str) -> GreedyResult:
        result.error = message
        result.n_excluded = self.excluded.n_constraint_points
        logger.error("Greedy refinement failed: %s", message)
        return result

    def run(self) -> GreedyResult:
        """Run the refinement loop and evaluate the final field."""
        result = GreedyResult()
        method = self.method
        mp = method.m_parameters
        if mp.interface_slack == 0.0 and mp.gradient_slack == 0.0:
            return self._fail(result, "greedy refinement requires a non-zero slack")

        original = method.b_input
        original.compute_avg_nn_distances()

        greedy_method = method.copy_configuration()
        greedy_input, self.excluded = self.get_minimal_and_excluded_input()
        greedy_input.evaluation_pts = copy.deepcopy(original.evaluation_pts)
        greedy_method.b_input = greedy_input
        self.greedy_method = greedy_method

        while True:
            if self.should_stop is not None and self.should_stop():
                result.cancelled = True
                return self._fail(result, "cancelled")

            result.iterations += 1
            result.active_counts.append(greedy_input.n_constraint_points)
            logger.info(
                "Greedy iteration %d: %d active, %d excluded constraints",
                result.iterations,
                greedy_input.n_constraint_points,
                self.excluded.n_constraint_points,
            )

            greedy_method.result = ModellingResult(method=type(greedy_method).__name__)
            if not greedy_method.run_stages(GREEDY_STAGES):
                step = greedy_method.result.failed_step
                return self._fail(
                    result, f"iteration {result.iterations} failed at {step}: "
                    f"{greedy_method.last_error}"
                )
            if not self.measure_residuals(greedy_method, self.excluded):
                return self._fail(result, "could not measure residuals")
            if self.record_history:
                greedy_method.output_greedy_debug_objects()

            if self.append_greedy_input(greedy_method, self.excluded) == 0:
                break

        if not greedy_method.run_stages(("evaluate_scalar_interpolant",)):
            return self._fail(result, greedy_method.last_error)
        if greedy_method.resolves_iso_values:
            if greedy_method.update_interface_iso_values() == IsoValueUpdate.FAILED:
                return self._fail(result, "could not resolve interface iso values")
        self._hand_back(greedy_method)

        result.success = True
        result.n_excluded = self.excluded.n_constraint_points
        logger.info(
            "Greedy refinement converged after %d iterations (%d constraints excluded)",
            result.iterations,
            result.n_excluded,
        )
        return result

    def _hand_back(self, greedy_method: GRBFModellingMethod) -> None:
        """Give the final interpolant and evaluated points to the original method."""
        method = self.method
        original = method.b_input
        original.evaluation_pts = greedy_method.b_input.evaluation_pts
        method.b_parameters = greedy_method.b_parameters
        method.rbf_kernel = greedy_method.rbf_kernel
        method.kernel = greedy_method.kernel
        method.solver = greedy_method.solver
        method.result = greedy_method.result

        if method.active_interface():
            original.get_interface_data()
            resolved = greedy_method.b_input.interface_iso_values
            if len(original.interface_iso_values) == len(resolved):
                original.interface_iso_values = list(resolved)
