"""
Radial basis function kernels.

Each family defines its radial profile f(r) and the two derivative
quantities needed for Hermite (gradient) interpolation:

- ``_first(r)``  = f'(r) / r
- ``_second(r)`` = (f''(r) - f'(r)/r) / r**2

With ``u = A (x - y)`` and ``r = |u|`` this gives

- value:    f(r)
- gradient: _first(r) A^T u
- hessian:  A^T (_first(r) I + _second(r) u u^T) A

where ``A`` is the global anisotropy transform (identity when isotropic).
Terms that are singular at r = 0 (R, TPS, and the cubic second term) are
set to zero there.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, ClassVar

import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from pysurfe.core.exceptions import KernelError
from pysurfe.core.parameters import RBFType
from pysurfe.kernels.functionals import Functional, Term

if TYPE_CHECKING:
    from pysurfe.core.points import Planar

# Isotropic share added to the orientation tensor eigenvalues
_ISOTROPIC_SHARE = 1.0 / 3.0


def compute_global_anisotropy(planar: Sequence[Planar]) -> NDArray[np.float64]:
    """
    Global anisotropy transform from planar orientations.

    The mean orientation tensor of the unit normals is decomposed; each
    principal axis is scaled by ``sqrt((l_k + 1/3) / (l_max + 1/3))`` so the
    dominant normal direction keeps unit length and directions within the
    mean bedding plane are shortened.

    Parameters
    ----------
    planar : Sequence[Planar]
        Orientation constraints.

    Returns
    -------
    NDArray
        3x3 transform ``A`` applied to separation vectors.
    """
    normals = [p.normal / p.normal_length for p in planar if p.normal_length > 0.0]
    if not normals:
        return np.eye(3)

    n = np.array(normals)
    tensor = n.T @ n / len(n)
    eigenvalues, eigenvectors = linalg.eigh(tensor)
    eigenvalues = np.clip(eigenvalues, 0.0, None)
    scale = np.sqrt((eigenvalues + _ISOTROPIC_SHARE) / (eigenvalues.max() + _ISOTROPIC_SHARE))
    return np.asarray(np.diag(scale) @ eigenvectors.T)


class RBFKernel(ABC):
    """Base class for radial basis function kernels.

    Parameters
    ----------
    anisotropy : NDArray | None
        3x3 global anisotropy transform. None means isotropic.
    """

    rbf_type: ClassVar[RBFType]
    # Sign making the native space quadratic form non-negative
    definiteness_sign: ClassVar[float] = 1.0

    def __init__(self, anisotropy: NDArray[np.float64] | None = None) -> None:
        if anisotropy is None:
            self.anisotropy: NDArray[np.float64] | None = None
            self._a = np.eye(3)
        else:
            a = np.asarray(anisotropy, dtype=float)
            if a.shape != (3, 3) or not np.all(np.isfinite(a)):
                raise KernelError(f"Anisotropy transform must be a finite 3x3 matrix: {a.shape}")
            self.anisotropy = a
            self._a = a

    @property
    def is_anisotropic(self) -> bool:
        return self.anisotropy is not None

    # ------------------------------------------------------------------
    # Radial profile
    # ------------------------------------------------------------------

    @abstractmethod
    def _profile(self, r: float) -> float:
        """f(r)"""

    @abstractmethod
    def _first(self, r: float) -> float:
        """f'(r) / r"""

    @abstractmethod
    def _second(self, r: float) -> float:
        """(f''(r) - f'(r)/r) / r**2"""

    # ------------------------------------------------------------------
    # Pairwise evaluation
    # ------------------------------------------------------------------

    def _separation(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> tuple[NDArray, float]:
        u = self._a @ (np.asarray(x, dtype=float) - np.asarray(y, dtype=float))
        return u, float(np.linalg.norm(u))

    def value(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
        _, r = self._separation(x, y)
        return self._profile(r)

    def gradient(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
        """First derivative with respect to ``x``."""
        u, r = self._separation(x, y)
        return np.asarray(self._first(r) * (self._a.T @ u))

    def hessian(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
        """Second derivative with respect to ``x`` (3x3)."""
        u, r = self._separation(x, y)
        inner = self._first(r) * np.eye(3) + self._second(r) * np.outer(u, u)
        return np.asarray(self._a.T @ inner @ self._a)

    # ------------------------------------------------------------------
    # Functionals
    # ------------------------------------------------------------------

    def expand(self, f: Functional) -> Functional:
        """Plain kernels apply functionals as given."""
        return f

    def _term_pair(self, ta: Term, tb: Term) -> float:
        if ta.is_value and tb.is_value:
            return self.value(ta.location, tb.location)
        if tb.is_value:
            return float(ta.direction @ self.gradient(ta.location, tb.location))
        if ta.is_value:
            # d/dy f(A(x - y)) = -d/dx f(A(x - y))
            return float(-(tb.direction @ self.gradient(ta.location, tb.location)))
        return float(-(ta.direction @ self.hessian(ta.location, tb.location) @ tb.direction))

    def apply(self, fa: Functional, fb: Functional) -> float:
        """Apply ``fa`` (on x) and ``fb`` (on y) to the kernel."""
        total = 0.0
        for ta in fa.terms:
            for tb in fb.terms:
                total += ta.coefficient * tb.coefficient * self._term_pair(ta, tb)
        return total

    def apply_point(self, x: NDArray[np.float64], fb: Functional) -> float:
        """Kernel value at ``x`` of the basis function generated by ``fb``."""
        return self.apply(Functional.point_value(x), fb)

    def apply_point_gradient(self, x: NDArray[np.float64], fb: Functional) -> NDArray[np.float64]:
        """Gradient at ``x`` of the basis function generated by ``fb``."""
        grad = np.zeros(3)
        for tb in fb.terms:
            if tb.is_value:
                grad += tb.coefficient * self.gradient(x, tb.location)
            else:
                grad -= tb.coefficient * (self.hessian(x, tb.location) @ tb.direction)
        return grad

    def __repr__(self) -> str:
        return f"{type(self).__name__}(anisotropic={self.is_anisotropic})"


class _ShapedKernel(RBFKernel):
    """Kernel with a length-scale shape parameter (eps = 1 / shape)."""

    def __init__(
        self, shape_parameter: float, anisotropy: NDArray[np.float64] | None = None
    ) -> None:
        if not math.isfinite(shape_parameter) or shape_parameter <= 0:
            raise KernelError(f"Shape parameter must be positive: {shape_parameter}")
        super().__init__(anisotropy)
        self.shape_parameter = float(shape_parameter)
        self._eps2 = 1.0 / self.shape_parameter**2

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(shape_parameter={self.shape_parameter}, "
            f"anisotropic={self.is_anisotropic})"
        )


class Cubic(RBFKernel):
    """f(r) = r**3"""

    rbf_type = RBFType.CUBIC

    def _profile(self, r: float) -> float:
        return r**3

    def _first(self, r: float) -> float:
        return 3.0 * r

    def _second(self, r: float) -> float:
        return 3.0 / r if r > 0.0 else 0.0


class Gaussian(_ShapedKernel):
    """f(r) = exp(-(r/c)**2)"""

    rbf_type = RBFType.GAUSSIAN

    def _profile(self, r: float) -> float:
        return math.exp(-self._eps2 * r * r)

    def _first(self, r: float) -> float:
        return -2.0 * self._eps2 * self._profile(r)

    def _second(self, r: float) -> float:
        return 4.0 * self._eps2**2 * self._profile(r)


class MQ(_ShapedKernel):
    """f(r) = sqrt(1 + (r/c)**2)"""

    rbf_type = RBFType.MQ
    definiteness_sign = -1.0

    def _profile(self, r: float) -> float:
        return math.sqrt(1.0 + self._eps2 * r * r)

    def _first(self, r: float) -> float:
        return self._eps2 / self._profile(r)

    def _second(self, r: float) -> float:
        return -(self._eps2**2) / self._profile(r) ** 3


class IMQ(_ShapedKernel):
    """f(r) = 1 / sqrt(1 + (r/c)**2)"""

    rbf_type = RBFType.IMQ

    def _profile(self, r: float) -> float:
        return 1.0 / math.sqrt(1.0 + self._eps2 * r * r)

    def _first(self, r: float) -> float:
        return -self._eps2 * self._profile(r) ** 3

    def _second(self, r: float) -> float:
        return 3.0 * self._eps2**2 * self._profile(r) ** 5


class TPS(RBFKernel):
    """f(r) = r**2 log(r)"""

    rbf_type = RBFType.TPS

    def _profile(self, r: float) -> float:
        return r * r * math.log(r) if r > 0.0 else 0.0

    def _first(self, r: float) -> float:
        return 2.0 * math.log(r) + 1.0 if r > 0.0 else 0.0

    def _second(self, r: float) -> float:
        return 2.0 / (r * r) if r > 0.0 else 0.0


class R(RBFKernel):
    """f(r) = r"""

    rbf_type = RBFType.R
    definiteness_sign = -1.0

    def _profile(self, r: float) -> float:
        return r

    def _first(self, r: float) -> float:
        return 1.0 / r if r > 0.0 else 0.0

    def _second(self, r: float) -> float:
        return -1.0 / r**3 if r > 0.0 else 0.0
