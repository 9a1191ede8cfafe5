"""Interpolation system, modelling methods and greedy refinement."""

from __future__ import annotations

from pysurfe.modeling.greedy import GreedyRefinement, GreedyResult
from pysurfe.modeling.methods import (
    STAGES,
    ContinuousProperty,
    GRBFModellingMethod,
    IsoValueUpdate,
    LajaunieApproach,
    ModellingResult,
    SingleSurface,
    StepResult,
    StratigraphicHorizons,
    VectorField,
    create_modelling_method,
)
from pysurfe.modeling.polynomial import polynomial_terms
from pysurfe.modeling.residuals import (
    get_inequality_indices_with_large_residuals,
    get_interface_indices_with_large_residuals,
    get_planar_indices_with_large_residuals,
    get_tangent_indices_with_large_residuals,
)
from pysurfe.modeling.solver import SystemSolver, get_equality_matrix

__all__ = [
    # Methods
    "GRBFModellingMethod",
    "SingleSurface",
    "LajaunieApproach",
    "StratigraphicHorizons",
    "ContinuousProperty",
    "VectorField",
    "create_modelling_method",
    "STAGES",
    "StepResult",
    "ModellingResult",
    "IsoValueUpdate",
    # Solver
    "SystemSolver",
    "get_equality_matrix",
    "polynomial_terms",
    # Greedy
    "GreedyRefinement",
    "GreedyResult",
    "get_inequality_indices_with_large_residuals",
    "get_interface_indices_with_large_residuals",
    "get_planar_indices_with_large_residuals",
    "get_tangent_indices_with_large_residuals",
]
