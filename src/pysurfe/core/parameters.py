"""
Modelling parameters for pysurfe.

This module holds the user-facing configuration (:class:`ModelParameters`)
and the pipeline-derived bookkeeping (:class:`BasicParameters`), together
with the enumerations that close the configuration surface.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

# Degree/radian conversion factors
D2R = math.pi / 180.0
R2D = 180.0 / math.pi


class ModelType(Enum):
    """Implicit modelling formulations."""

    SINGLE_SURFACE = "single_surface"
    LAJAUNIE_APPROACH = "lajaunie_approach"
    STRATIGRAPHIC_HORIZONS = "stratigraphic_horizons"
    CONTINUOUS_PROPERTY = "continuous_property"
    VECTOR_FIELD = "vector_field"


class RBFType(Enum):
    """Radial basis function families."""

    CUBIC = "cubic"
    GAUSSIAN = "gaussian"
    MQ = "mq"
    IMQ = "imq"
    TPS = "tps"
    R = "r"


class SolverType(Enum):
    """Type of problem handed to the system solver."""

    LINEAR = "linear"
    QUADRATIC = "quadratic"


@dataclass
class ModelParameters:
    """User-facing modelling configuration.

    Parameters
    ----------
    model_type : str | ModelType
        Modelling formulation.
    min_stratigraphic_thickness : float
        Minimum scalar field increment between consecutive horizons
        (stratigraphic horizons only).
    use_interface_data, use_planar_data, use_tangent, use_inequality : bool
        Toggles for each constraint type.
    basis_type : str | RBFType
        Radial basis function family.
    shape_parameter : float
        Length scale of the Gaussian, MQ and IMQ kernels.
    polynomial_order : int
        Order of the polynomial drift (-1 disables it, max 2).
    model_global_anisotropy : bool
        Build the kernel on a global anisotropy derived from planar data.
    use_greedy : bool
        Run the greedy refinement algorithm.
    use_restricted_range : bool
        Treat interface, planar and tangent constraints as ranges bounded
        by their uncertainties.
    interface_uncertainty : float
        Half-width of the interface level band.
    angular_uncertainty : float
        Angular uncertainty (degrees) of planar and tangent data.
    interface_slack : float
        Allowed interface misfit in greedy mode.
    gradient_slack : float
        Allowed angular misfit (degrees) in greedy mode.
    n_workers : int
        Number of threads used to evaluate the field.
    greedy_isolation_factor : float
        Multiple of the average nearest neighbour distance within which
        large-residual points are considered neighbours.
    greedy_variability_factor : float
        Multiple of the allowed misfit above which opposite-sign neighbours
        are both selected.

    Examples
    --------
    >>> params = ModelParameters(basis_type="gaussian", shape_parameter=50.0)
    >>> params.basis_type
    <RBFType.GAUSSIAN: 'gaussian'>
    """

    model_type: str | ModelType = ModelType.SINGLE_SURFACE
    min_stratigraphic_thickness: float = 0.0
    use_interface_data: bool = True
    use_planar_data: bool = True
    use_tangent: bool = False
    use_inequality: bool = False
    basis_type: str | RBFType = RBFType.CUBIC
    shape_parameter: float = 100.0
    polynomial_order: int = 1
    model_global_anisotropy: bool = False
    use_greedy: bool = False
    use_restricted_range: bool = False
    interface_uncertainty: float = 0.0
    angular_uncertainty: float = 0.0
    interface_slack: float = 0.0
    gradient_slack: float = 0.0
    n_workers: int = 1
    greedy_isolation_factor: float = 2.0
    greedy_variability_factor: float = 2.0

    def __post_init__(self) -> None:
        """Validate and convert enum fields."""
        if isinstance(self.model_type, str):
            self.model_type = ModelType(self.model_type.lower())
        if isinstance(self.basis_type, str):
            self.basis_type = RBFType(self.basis_type.lower())

        if self.shape_parameter <= 0:
            raise ValueError(f"Shape parameter must be positive: {self.shape_parameter}")
        if not -1 <= self.polynomial_order <= 2:
            raise ValueError(f"Polynomial order must be in [-1, 2]: {self.polynomial_order}")
        if self.n_workers < 1:
            raise ValueError(f"Number of workers must be at least 1: {self.n_workers}")
        for name in (
            "interface_uncertainty",
            "angular_uncertainty",
            "interface_slack",
            "gradient_slack",
            "min_stratigraphic_thickness",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative: {getattr(self, name)}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d: dict[str, Any] = dict(self.__dict__)
        d["model_type"] = self.model_type.value  # type: ignore[union-attr]
        d["basis_type"] = self.basis_type.value  # type: ignore[union-attr]
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ModelParameters:
        """Create from dictionary, ignoring unknown keys."""
        known = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class BasicParameters:
    """Pipeline-derived bookkeeping.

    Always recomputed from the current input and :class:`ModelParameters`
    by ``get_method_parameters``; never persisted on its own.
    """

    n_interface: int = 0
    n_planar: int = 0
    n_inequality: int = 0
    n_tangent: int = 0
    n_constraints: int = 0
    n_equality: int = 0
    modified_basis: bool = False
    poly_term: bool = True
    n_poly_terms: int = 4
    problem_type: SolverType = SolverType.LINEAR
    restricted_range: bool = False
