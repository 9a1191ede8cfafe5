"""
pysurfe - Implicit surface modelling with generalized radial basis functions.

This package provides tools for:
- Describing interface, orientation, tangent and inequality constraints
- Interpolating scalar fields through them with Hermite RBF systems
- Solving inequality and range constrained problems
- Greedy refinement of large constraint sets
"""

from __future__ import annotations

__version__ = "0.1.0"

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.exceptions import (
    ConfigurationError,
    ConstraintError,
    KernelError,
    PySurfeError,
    SolverError,
    ValidationError,
)
from pysurfe.core.parameters import ModelParameters, ModelType, RBFType, SolverType
from pysurfe.core.points import (
    EvaluationPoint,
    Inequality,
    Interface,
    Planar,
    Point,
    Tangent,
)
from pysurfe.core.transfer import (
    EvaluationPoints,
    InequalityPoints,
    InterfacePoints,
    PlanarPoints,
    TangentPoints,
    create_basic_input,
    create_model_parameters,
    set_data,
)
from pysurfe.kernels import create_rbf_kernel
from pysurfe.modeling import (
    GRBFModellingMethod,
    GreedyResult,
    IsoValueUpdate,
    ModellingResult,
    create_modelling_method,
)

__all__ = [
    "__version__",
    # Points
    "Point",
    "EvaluationPoint",
    "Interface",
    "Inequality",
    "Planar",
    "Tangent",
    "BasicInput",
    # Configuration
    "ModelParameters",
    "ModelType",
    "RBFType",
    "SolverType",
    # Transfer
    "InequalityPoints",
    "InterfacePoints",
    "PlanarPoints",
    "TangentPoints",
    "EvaluationPoints",
    "create_model_parameters",
    "create_basic_input",
    "set_data",
    # Modelling
    "create_rbf_kernel",
    "create_modelling_method",
    "GRBFModellingMethod",
    "ModellingResult",
    "GreedyResult",
    "IsoValueUpdate",
    # Exceptions
    "PySurfeError",
    "ConstraintError",
    "KernelError",
    "SolverError",
    "ConfigurationError",
    "ValidationError",
]
