"""
Generalized RBF modelling methods.

A modelling method drives a fixed sequence of stages::

    process_input_data -> get_method_parameters -> setup_basis_functions
        -> setup_system_solver -> evaluate_scalar_interpolant

Each stage checks its own preconditions and returns False on failure;
:meth:`GRBFModellingMethod.run_algorithm` stops at the first failing stage
and reports which one failed. One subclass exists per
:class:`~pysurfe.core.parameters.ModelType`.
"""

from __future__ import annotations

import copy
import logging
import math
from abc import ABC
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

import numpy as np
from numpy.typing import NDArray

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.exceptions import (
    ConfigurationError,
    KernelError,
    PySurfeError,
    ValidationError,
)
from pysurfe.core.parameters import BasicParameters, ModelParameters, ModelType, SolverType
from pysurfe.core.points import Interface, Point
from pysurfe.kernels import ModifiedKernel, create_rbf_kernel
from pysurfe.kernels.functionals import Functional
from pysurfe.modeling.polynomial import polynomial_terms
from pysurfe.modeling.solver import SystemSolver

if TYPE_CHECKING:
    from pysurfe.kernels import Kernel, RBFKernel
    from pysurfe.modeling.greedy import GreedyResult

logger = logging.getLogger(__name__)

_AXES = np.eye(3)

STAGES: tuple[str, ...] = (
    "process_input_data",
    "get_method_parameters",
    "setup_basis_functions",
    "setup_system_solver",
    "evaluate_scalar_interpolant",
)


class IsoValueUpdate(Enum):
    """Outcome of interface iso-value resolution."""

    UPDATED = "updated"
    NOT_APPLICABLE = "not_applicable"
    FAILED = "failed"


@dataclass
class StepResult:
    """Outcome of one stage; ``error`` holds the failure reason."""

    name: str
    success: bool = False
    error: str = ""


@dataclass
class ModellingResult:
    """Stage outcomes of one pipeline run.

    Attributes
    ----------
    method : str
        Name of the modelling method that ran.
    steps : dict[str, StepResult]
        Executed stages in order. Stages after a failure are absent.
    """

    method: str = ""
    steps: dict[str, StepResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True if at least one stage ran and all executed stages succeeded."""
        return bool(self.steps) and all(s.success for s in self.steps.values())

    @property
    def failed_step(self) -> str | None:
        """Name of the first failing stage, if any."""
        for name, step in self.steps.items():
            if not step.success:
                return name
        return None

    def summary(self) -> str:
        """One line per executed stage followed by the outcome."""
        lines = [f"{self.method or 'Modelling'} stages:"]
        for name, step in self.steps.items():
            if step.success:
                lines.append(f"  ok      {name}")
            else:
                lines.append(f"  failed  {name}: {step.error or 'returned False'}")

        if self.success:
            lines.append(f"Interpolant ready after {len(self.steps)} stages")
        elif self.failed_step is None:
            lines.append("No stages run")
        else:
            lines.append(f"Stopped at {self.failed_step}")
        return "\n".join(lines)


@dataclass
class _ConstraintRows:
    """Functionals and bounds built from the current input."""

    functionals: list[Functional] = field(default_factory=list)
    lower: list[float] = field(default_factory=list)
    upper: list[float] = field(default_factory=list)

    def add(self, f: Functional, lower: float, upper: float) -> None:
        self.functionals.append(f)
        self.lower.append(lower)
        self.upper.append(upper)


class GRBFModellingMethod(ABC):
    """
    Base class for generalized RBF modelling methods.

    Parameters
    ----------
    parameters : ModelParameters | None
        Modelling configuration. Defaults are used if None.
    basic_input : BasicInput | None
        Constraint data. An empty container is created if None.

    Attributes
    ----------
    b_parameters : BasicParameters
        Bookkeeping derived by :meth:`get_method_parameters`.
    rbf_kernel : RBFKernel | None
        Base kernel chosen by :meth:`setup_basis_functions`.
    kernel : Kernel | None
        Kernel used by the solver (the base kernel or its modified wrapper).
    solver : SystemSolver | None
        Solved system; None until :meth:`setup_system_solver` succeeds.
    """

    model_type: ClassVar[ModelType]
    # Interface points only state equal increments within their group
    modified_basis: ClassVar[bool] = False
    keeps_constant_term: ClassVar[bool] = True
    uses_interface_data: ClassVar[bool] = True
    uses_inequality_data: ClassVar[bool] = True
    resolves_iso_values: ClassVar[bool] = False

    def __init__(
        self,
        parameters: ModelParameters | None = None,
        basic_input: BasicInput | None = None,
    ) -> None:
        if parameters is None:
            parameters = ModelParameters(model_type=self.model_type)
        if parameters.model_type != self.model_type:
            name = getattr(parameters.model_type, "value", parameters.model_type)
            raise ConfigurationError(f"{type(self).__name__} cannot run a '{name}' model")
        self.m_parameters = parameters
        self.b_parameters = BasicParameters()
        self.b_input = basic_input if basic_input is not None else BasicInput()
        self.rbf_kernel: RBFKernel | None = None
        self.kernel: Kernel | None = None
        self.solver: SystemSolver | None = None
        self.result = ModellingResult()
        self.greedy_result: GreedyResult | None = None
        self.last_error = ""

    def copy_configuration(self) -> GRBFModellingMethod:
        """New independent method of the same type with copied parameters."""
        return create_modelling_method(copy.deepcopy(self.m_parameters))

    def _fail(self, message: str) -> bool:
        self.last_error = message
        logger.error("%s: %s", type(self).__name__, message)
        return False

    # ------------------------------------------------------------------
    # Active data
    # ------------------------------------------------------------------

    def active_interface(self) -> list[Interface]:
        if self.uses_interface_data and self.m_parameters.use_interface_data:
            return self.b_input.itrface
        return []

    def active_planar(self) -> list:
        return self.b_input.planar if self.m_parameters.use_planar_data else []

    def active_tangent(self) -> list:
        return self.b_input.tangent if self.m_parameters.use_tangent else []

    def active_inequality(self) -> list:
        if self.uses_inequality_data and self.m_parameters.use_inequality:
            return self.b_input.inequality
        return []

    # ------------------------------------------------------------------
    # Stage 1: process input data
    # ------------------------------------------------------------------

    def process_input_data(self) -> bool:
        """Derive interface groups, uncertainty bounds and statistics."""
        b = self.b_input
        mp = self.m_parameters

        if self.active_interface():
            b.get_interface_data()
        else:
            b.interface_iso_values = []
            b.interface_point_lists = []
            b.interface_test_points = []

        for itf in b.itrface:
            itf.set_level_bounds(mp.interface_uncertainty)
        for p in b.planar:
            if p.normal_length > 0.0:
                p.set_normal_bounds(mp.angular_uncertainty, mp.angular_uncertainty)
        for t in b.tangent:
            t.set_angle_bounds(mp.angular_uncertainty)

        b.compute_avg_nn_distances()

        try:
            b.validate()
        except ValidationError as exc:
            return self._fail(f"{exc}: " + "; ".join(exc.errors))

        n_active = (
            len(self.active_interface())
            + len(self.active_planar())
            + len(self.active_tangent())
            + len(self.active_inequality())
        )
        if n_active == 0:
            return self._fail("no active constraints")

        return self._check_formulation()

    def _check_formulation(self) -> bool:
        """Formulation-specific input requirements."""
        return True

    # ------------------------------------------------------------------
    # Stage 2: method parameters
    # ------------------------------------------------------------------

    def _n_interface_rows(self) -> int:
        return len(self.active_interface())

    def _n_ordering_rows(self) -> int:
        return 0

    def get_method_parameters(self) -> bool:
        """Recompute :attr:`b_parameters` from the input and parameters."""
        mp = self.m_parameters
        bp = BasicParameters()

        bp.n_interface = self._n_interface_rows()
        bp.n_planar = len(self.active_planar())
        bp.n_tangent = len(self.active_tangent())
        bp.n_inequality = len(self.active_inequality()) + self._n_ordering_rows()
        bp.n_constraints = bp.n_interface + 3 * bp.n_planar + bp.n_tangent + bp.n_inequality

        bp.modified_basis = self.modified_basis
        bp.n_poly_terms = len(polynomial_terms(mp.polynomial_order, self.keeps_constant_term))
        bp.poly_term = bp.n_poly_terms > 0
        bp.n_equality = bp.n_constraints - bp.n_inequality + bp.n_poly_terms
        bp.restricted_range = mp.use_restricted_range
        if bp.n_inequality > 0 or bp.restricted_range:
            bp.problem_type = SolverType.QUADRATIC
        else:
            bp.problem_type = SolverType.LINEAR

        self.b_parameters = bp
        if bp.n_constraints == 0:
            return self._fail("no constraint rows to interpolate")

        logger.debug(
            "Constraint rows: %d interface, %d planar, %d tangent, %d inequality, %d poly",
            bp.n_interface,
            bp.n_planar,
            bp.n_tangent,
            bp.n_inequality,
            bp.n_poly_terms,
        )
        return True

    # ------------------------------------------------------------------
    # Stage 3: basis functions
    # ------------------------------------------------------------------

    def create_rbf_kernel(self) -> RBFKernel | None:
        mp = self.m_parameters
        return create_rbf_kernel(
            mp.basis_type,  # type: ignore[arg-type]
            mp.model_global_anisotropy,
            mp.shape_parameter,
            self.b_input.planar,
        )

    def setup_basis_functions(self) -> bool:
        """Select the kernel and wrap it when a modified basis is needed."""
        # A previous fit is invalid once the basis is rebuilt
        self.kernel = None
        self.solver = None
        self.rbf_kernel = self.create_rbf_kernel()
        if self.rbf_kernel is None:
            return self._fail("could not create the RBF kernel")

        if self.b_parameters.modified_basis:
            if not self.b_input.interface_point_lists:
                return self._fail("modified basis requested without grouped interface data")
            try:
                self.kernel = ModifiedKernel(self.rbf_kernel, self.b_input.interface_point_lists)
            except KernelError as exc:
                return self._fail(str(exc))
        else:
            self.kernel = self.rbf_kernel
        return True

    # ------------------------------------------------------------------
    # Stage 4: system solver
    # ------------------------------------------------------------------

    def _interface_rows(self, rows: _ConstraintRows) -> None:
        restricted = self.b_parameters.restricted_range
        for itf in self.active_interface():
            lo, hi = itf.level_bounds if restricted else (0.0, 0.0)
            rows.add(Functional.point_value(itf.coordinates), itf.level + lo, itf.level + hi)

    def _ordering_rows(self, rows: _ConstraintRows) -> None:
        return None

    def build_constraint_rows(self) -> _ConstraintRows:
        """Functionals and bounds for every row, inequality rows first."""
        restricted = self.b_parameters.restricted_range
        rows = _ConstraintRows()

        for ie in self.active_inequality():
            rows.add(Functional.point_value(ie.coordinates), ie.level, math.inf)
        self._ordering_rows(rows)

        self._interface_rows(rows)

        for p in self.active_planar():
            target = p.normal
            for axis in range(3):
                f = Functional.derivative(p.coordinates, _AXES[axis])
                if restricted:
                    rows.add(f, float(p.normal_bounds[axis, 0]), float(p.normal_bounds[axis, 1]))
                else:
                    rows.add(f, float(target[axis]), float(target[axis]))

        for t in self.active_tangent():
            f = Functional.derivative(t.coordinates, t.tangent)
            ip = t.inner_product_constraint
            if restricted:
                rows.add(f, ip + t.angle_lower_bound, ip + t.angle_upper_bound)
            else:
                rows.add(f, ip, ip)

        return rows

    def setup_system_solver(self) -> bool:
        """Assemble, partition and solve the interpolation system."""
        self.solver = None
        if self.kernel is None:
            return self._fail("no kernel; run setup_basis_functions first")

        bp = self.b_parameters
        rows = self.build_constraint_rows()
        try:
            solver = SystemSolver(
                self.kernel,
                rows.functionals,
                np.array(rows.lower),
                np.array(rows.upper),
                n_inequality=bp.n_inequality,
                poly_terms=polynomial_terms(
                    self.m_parameters.polynomial_order, self.keeps_constant_term
                ),
                problem_type=bp.problem_type,
            )
            solver.assemble()
            if not solver.partition(bp.n_equality):
                return self._fail(
                    f"constraint bookkeeping ({bp.n_equality} equality, {bp.n_inequality} "
                    f"inequality rows) does not match the {solver.n_rows}-row system"
                )
            solver.solve()
        except PySurfeError as exc:
            return self._fail(f"system solve failed: {exc}")

        self.solver = solver
        logger.info(
            "Solved %s system with %d rows (%s)",
            bp.problem_type.value,
            solver.n_rows,
            type(self).__name__,
        )
        return True

    # ------------------------------------------------------------------
    # Stage 5: evaluation
    # ------------------------------------------------------------------

    def eval_scalar_interpolant_at_point(self, point: Point) -> None:
        """Write the scalar field and gradient at ``point``."""
        assert self.solver is not None
        xyz = point.coordinates
        point.set_scalar_field(self.solver.evaluate(xyz))
        g = self.solver.evaluate_gradient(xyz)
        point.set_vector_field(g[0], g[1], g[2])

    def eval_vector_interpolant_at_point(self, point: Point) -> None:
        """Write only the gradient at ``point``."""
        assert self.solver is not None
        g = self.solver.evaluate_gradient(point.coordinates)
        point.set_vector_field(g[0], g[1], g[2])

    def _evaluate_chunk(self, points: Sequence[Point]) -> None:
        for p in points:
            self.eval_scalar_interpolant_at_point(p)

    def evaluate_points(self, points: Sequence[Point]) -> None:
        """Evaluate the interpolant at ``points``, in parallel if configured."""
        n_workers = self.m_parameters.n_workers
        if n_workers <= 1 or len(points) < 2:
            self._evaluate_chunk(points)
            return

        size = max(1, len(points) // (n_workers * 4))
        chunks = [points[i : i + size] for i in range(0, len(points), size)]
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = [executor.submit(self._evaluate_chunk, chunk) for chunk in chunks]
            for future in as_completed(futures):
                future.result()

    def has_interpolant(self) -> bool:
        return self.solver is not None and self.solver.has_weights

    def evaluate_scalar_interpolant(self) -> bool:
        """Evaluate the field at every evaluation point."""
        if self.solver is None:
            return self._fail("no solver; run setup_system_solver first")
        if not self.solver.has_weights:
            return self._fail("no interpolant: weights are empty")

        self.evaluate_points(self.b_input.evaluation_pts)
        logger.info("Evaluated interpolant at %d points", len(self.b_input.evaluation_pts))
        return True

    # ------------------------------------------------------------------
    # Interface iso-values
    # ------------------------------------------------------------------

    def update_interface_iso_values(self) -> IsoValueUpdate:
        """
        Recover each interface's level from the fitted field.

        Increment-based formulations do not fix interface levels; the
        field is evaluated at one test point per interface group instead.
        Nothing is written unless every check passes.
        """
        b = self.b_input
        if not b.interface_test_points:
            return IsoValueUpdate.NOT_APPLICABLE
        if not self.has_interpolant():
            logger.error("Cannot update iso values without a solved interpolant")
            return IsoValueUpdate.FAILED
        if len(b.interface_iso_values) != len(b.interface_test_points):
            logger.error(
                "Iso value count %d does not match test point count %d",
                len(b.interface_iso_values),
                len(b.interface_test_points),
            )
            return IsoValueUpdate.FAILED

        assert self.solver is not None
        values = [self.solver.evaluate(p.coordinates) for p in b.interface_test_points]
        for p, v in zip(b.interface_test_points, values, strict=True):
            p.set_scalar_field(v)
        b.interface_iso_values = values
        return IsoValueUpdate.UPDATED

    def interface_iso_value(self, level: float) -> float | None:
        """Field value of the interface with ``level`` in the current input."""
        if not self.resolves_iso_values:
            return level
        idx = self.b_input.group_index_of_level(level)
        if idx < 0 or idx >= len(self.b_input.interface_iso_values):
            return None
        return self.b_input.interface_iso_values[idx]

    def output_greedy_debug_objects(self) -> bool:
        """Evaluate and record the current field at each evaluation point."""
        if not self.has_interpolant() or not self.b_input.evaluation_pts:
            return False
        if not self.evaluate_scalar_interpolant():
            return False
        for p in self.b_input.evaluation_pts:
            assert p.scalar_field is not None
            p.field_history.append(p.scalar_field)
        return True

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    def _run_stage(self, name: str, stage: Callable[[], bool]) -> bool:
        self.last_error = ""
        step = StepResult(name=name)
        try:
            step.success = bool(stage())
        except PySurfeError as exc:
            self.last_error = str(exc)
            logger.exception("Stage %s raised", name)
        if not step.success:
            step.error = self.last_error
        self.result.steps[name] = step
        return step.success

    def run_stages(self, stages: Sequence[str]) -> bool:
        """Run the named stages in order, stopping at the first failure."""
        for name in stages:
            if not self._run_stage(name, getattr(self, name)):
                logger.error("Pipeline aborted: %s failed", name)
                return False
        return True

    def run_algorithm(self) -> ModellingResult:
        """Run all stages and, when needed, resolve interface iso-values.

        Returns
        -------
        ModellingResult
            Per-stage outcomes; ``failed_step`` names the first failure.
        """
        self.result = ModellingResult(method=type(self).__name__)
        logger.info("Running %s", type(self).__name__)
        if not self.run_stages(STAGES):
            return self.result

        if self.resolves_iso_values:
            self._run_stage(
                "update_interface_iso_values",
                lambda: self.update_interface_iso_values() != IsoValueUpdate.FAILED,
            )
        return self.result

    def run_greedy_algorithm(
        self, should_stop: Callable[[], bool] | None = None
    ) -> bool:
        """Fit with greedy refinement; see :mod:`pysurfe.modeling.greedy`."""
        from pysurfe.modeling.greedy import GreedyRefinement

        self.greedy_result = GreedyRefinement(self, should_stop=should_stop).run()
        return self.greedy_result.success

    def run(self) -> bool:
        """Run greedy refinement or the plain pipeline as configured."""
        if self.m_parameters.use_greedy:
            return self.run_greedy_algorithm()
        return self.run_algorithm().success


class SingleSurface(GRBFModellingMethod):
    """One surface, interface levels imposed directly."""

    model_type = ModelType.SINGLE_SURFACE


class ContinuousProperty(GRBFModellingMethod):
    """A continuous property sampled at interface points."""

    model_type = ModelType.CONTINUOUS_PROPERTY


class LajaunieApproach(GRBFModellingMethod):
    """Interface points constrain increments within their group (Lajaunie et al.)."""

    model_type = ModelType.LAJAUNIE_APPROACH
    modified_basis = True
    keeps_constant_term = False
    resolves_iso_values = True

    def _check_formulation(self) -> bool:
        if not self.b_input.interface_point_lists:
            return self._fail("increment formulation requires interface data")
        has_increments = any(len(g) > 1 for g in self.b_input.interface_point_lists)
        if not has_increments and not self.active_planar() and not self.active_tangent():
            return self._fail(
                "increment formulation requires a group of two or more points or gradient data"
            )
        return True

    def _n_interface_rows(self) -> int:
        # The reference point of each group carries no increment
        return sum(max(0, len(g) - 1) for g in self.b_input.interface_point_lists)

    def _interface_rows(self, rows: _ConstraintRows) -> None:
        restricted = self.b_parameters.restricted_range
        for g, group in enumerate(self.b_input.interface_point_lists):
            for itf in group[1:]:
                lo, hi = itf.level_bounds if restricted else (0.0, 0.0)
                rows.add(Functional.point_value(itf.coordinates, group=g), lo, hi)


class StratigraphicHorizons(LajaunieApproach):
    """Increment formulation with ordered horizons.

    Consecutive horizons (ascending level) must be separated by at least
    ``min_stratigraphic_thickness`` in scalar field value.
    """

    model_type = ModelType.STRATIGRAPHIC_HORIZONS

    def _n_ordering_rows(self) -> int:
        return max(0, len(self.b_input.interface_point_lists) - 1)

    def _ordering_rows(self, rows: _ConstraintRows) -> None:
        groups = self.b_input.interface_point_lists
        for lower_group, upper_group in zip(groups[:-1], groups[1:], strict=True):
            rows.add(
                Functional.difference(upper_group[0].coordinates, lower_group[0].coordinates),
                self.m_parameters.min_stratigraphic_thickness,
                math.inf,
            )


class VectorField(GRBFModellingMethod):
    """A field defined by its gradient alone (planar and tangent data)."""

    model_type = ModelType.VECTOR_FIELD
    keeps_constant_term = False
    uses_interface_data = False
    uses_inequality_data = False

    def _check_formulation(self) -> bool:
        if not self.active_planar():
            return self._fail("vector field requires planar data")
        return True


_METHODS: dict[ModelType, type[GRBFModellingMethod]] = {
    ModelType.SINGLE_SURFACE: SingleSurface,
    ModelType.LAJAUNIE_APPROACH: LajaunieApproach,
    ModelType.STRATIGRAPHIC_HORIZONS: StratigraphicHorizons,
    ModelType.CONTINUOUS_PROPERTY: ContinuousProperty,
    ModelType.VECTOR_FIELD: VectorField,
}


def create_modelling_method(
    parameters: ModelParameters | None = None,
    basic_input: BasicInput | None = None,
) -> GRBFModellingMethod:
    """
    Create the modelling method matching ``parameters.model_type``.

    Examples
    --------
    >>> method = create_modelling_method(ModelParameters(model_type="lajaunie_approach"))
    >>> type(method).__name__
    'LajaunieApproach'
    """
    parameters = parameters if parameters is not None else ModelParameters()
    cls = _METHODS[parameters.model_type]  # type: ignore[index]
    return cls(parameters, basic_input)


def field_values(points: Sequence[Point]) -> NDArray[np.float64]:
    """Scalar field values of evaluated points (NaN where unset)."""
    return np.array(
        [p.scalar_field if p.scalar_field is not None else np.nan for p in points], dtype=float
    )
