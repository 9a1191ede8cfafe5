"""Core data structures for pysurfe."""

from __future__ import annotations

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.exceptions import (
    ConfigurationError,
    ConstraintError,
    KernelError,
    PySurfeError,
    SolverError,
    ValidationError,
)
from pysurfe.core.parameters import (
    D2R,
    R2D,
    BasicParameters,
    ModelParameters,
    ModelType,
    RBFType,
    SolverType,
)
from pysurfe.core.points import (
    EvaluationPoint,
    Inequality,
    Interface,
    Planar,
    Point,
    Tangent,
)

__all__ = [
    # Points
    "Point",
    "EvaluationPoint",
    "Interface",
    "Inequality",
    "Planar",
    "Tangent",
    # Container
    "BasicInput",
    # Parameters
    "ModelParameters",
    "BasicParameters",
    "ModelType",
    "RBFType",
    "SolverType",
    "D2R",
    "R2D",
    # Exceptions
    "PySurfeError",
    "ConstraintError",
    "KernelError",
    "SolverError",
    "ConfigurationError",
    "ValidationError",
]
