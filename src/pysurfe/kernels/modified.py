"""
Modified kernel for increment-based formulations.

In the Lajaunie and stratigraphic formulations the level of an interface is
unknown; an interface point only states that the field takes the same value
as the other points of its group. :class:`ModifiedKernel` wraps a base
kernel and turns every functional belonging to an interface group into the
increment ``s(x) - s(ref)``, where ``ref`` is the first point of the group.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pysurfe.core.exceptions import KernelError
from pysurfe.kernels.functionals import Functional, Term

if TYPE_CHECKING:
    from pysurfe.core.points import Interface
    from pysurfe.kernels.rbf import RBFKernel


class ModifiedKernel:
    """Base kernel adapted to grouped interface points.

    Parameters
    ----------
    base : RBFKernel
        Kernel to wrap.
    interface_point_lists : Sequence[Sequence[Interface]]
        Interface points grouped by level; must not be empty.

    Raises
    ------
    KernelError
        If there are no interface groups or a group is empty.
    """

    def __init__(
        self, base: RBFKernel, interface_point_lists: Sequence[Sequence[Interface]]
    ) -> None:
        if len(interface_point_lists) == 0:
            raise KernelError("Modified kernel requires grouped interface points")
        if any(len(group) == 0 for group in interface_point_lists):
            raise KernelError("Modified kernel received an empty interface group")
        self.base = base
        self.references: list[NDArray[np.float64]] = [
            group[0].coordinates for group in interface_point_lists
        ]

    @property
    def rbf_type(self):  # type: ignore[no-untyped-def]
        return self.base.rbf_type

    @property
    def definiteness_sign(self) -> float:
        return self.base.definiteness_sign

    @property
    def is_anisotropic(self) -> bool:
        return self.base.is_anisotropic

    def reference(self, group: int) -> NDArray[np.float64]:
        """Reference location of an interface group."""
        if not 0 <= group < len(self.references):
            raise KernelError(f"Interface group {group} out of range [0, {len(self.references)})")
        return self.references[group]

    def expand(self, f: Functional) -> Functional:
        """Rewrite a grouped functional as an increment from its group reference."""
        if f.group is None:
            return f
        weight = f.value_weight
        if weight == 0.0:
            return f
        return Functional([*f.terms, Term(self.reference(f.group), -weight)])

    # Pairwise evaluation is unchanged; only grouped functionals differ.
    def value(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
        return self.base.value(x, y)

    def gradient(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.base.gradient(x, y)

    def hessian(self, x: NDArray[np.float64], y: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.base.hessian(x, y)

    def apply(self, fa: Functional, fb: Functional) -> float:
        return self.base.apply(self.expand(fa), self.expand(fb))

    def apply_point(self, x: NDArray[np.float64], fb: Functional) -> float:
        return self.base.apply_point(x, self.expand(fb))

    def apply_point_gradient(self, x: NDArray[np.float64], fb: Functional) -> NDArray[np.float64]:
        return self.base.apply_point_gradient(x, self.expand(fb))

    def __repr__(self) -> str:
        return f"ModifiedKernel(base={self.base!r}, n_groups={len(self.references)})"
