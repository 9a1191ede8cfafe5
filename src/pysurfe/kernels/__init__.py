"""Radial basis function kernels and the kernel factory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pysurfe.core.exceptions import KernelError
from pysurfe.core.parameters import RBFType
from pysurfe.kernels.functionals import Functional, Term
from pysurfe.kernels.modified import ModifiedKernel
from pysurfe.kernels.rbf import (
    IMQ,
    MQ,
    TPS,
    Cubic,
    Gaussian,
    R,
    RBFKernel,
    compute_global_anisotropy,
)

if TYPE_CHECKING:
    from pysurfe.core.points import Planar

logger = logging.getLogger(__name__)

Kernel = RBFKernel | ModifiedKernel


def create_rbf_kernel(
    rbf_type: RBFType | str,
    anisotropy: bool = False,
    shape_parameter: float = 100.0,
    planar: Sequence[Planar] = (),
) -> RBFKernel | None:
    """
    Build the kernel for a basis family.

    An unrecognized family falls back to TPS.

    Parameters
    ----------
    rbf_type : RBFType | str
        Basis family.
    anisotropy : bool
        Build the kernel on the global anisotropy of ``planar``.
    shape_parameter : float
        Length scale for Gaussian, MQ and IMQ.
    planar : Sequence[Planar]
        Orientation data used for the anisotropy transform.

    Returns
    -------
    RBFKernel | None
        None if the construction parameters are invalid.
    """
    if isinstance(rbf_type, str):
        try:
            rbf_type = RBFType(rbf_type.lower())
        except ValueError:
            logger.warning("Unknown basis type '%s'; using TPS", rbf_type)

    try:
        transform = compute_global_anisotropy(planar) if anisotropy else None
        if rbf_type == RBFType.CUBIC:
            return Cubic(transform)
        elif rbf_type == RBFType.GAUSSIAN:
            return Gaussian(shape_parameter, transform)
        elif rbf_type == RBFType.IMQ:
            return IMQ(shape_parameter, transform)
        elif rbf_type == RBFType.MQ:
            return MQ(shape_parameter, transform)
        elif rbf_type == RBFType.R:
            return R(transform)
        else:
            return TPS(transform)
    except KernelError as exc:
        logger.error("Could not create %s kernel: %s", rbf_type, exc)
        return None


__all__ = [
    "RBFKernel",
    "Cubic",
    "Gaussian",
    "MQ",
    "IMQ",
    "TPS",
    "R",
    "ModifiedKernel",
    "Kernel",
    "Functional",
    "Term",
    "compute_global_anisotropy",
    "create_rbf_kernel",
]
