"""
Selection of constraints with large residuals.

The greedy algorithm adds back excluded constraints whose misfit exceeds the
allowed bound. Adding every such point at once would cluster additions in
badly fitted regions, so all four selectors share one rule over the
candidates (points with ``|r| > bound``):

- candidates within ``isolation_factor * avg_nn`` of each other are
  neighbours;
- a candidate with no neighbours is selected;
- a candidate whose ``(|r|, -index)`` exceeds that of every neighbour is
  selected (the local peak);
- a candidate with an opposite-sign neighbour and ``|r_i - r_j| >
  variability_factor * bound`` is selected.

Increasing ``|r_i|`` never deselects point ``i``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from pysurfe.core.spatial import coordinates_of

if TYPE_CHECKING:
    from pysurfe.core.points import Inequality, Interface, Planar, Point, Tangent

logger = logging.getLogger(__name__)

DEFAULT_ISOLATION_FACTOR = 2.0
DEFAULT_VARIABILITY_FACTOR = 2.0


def select_large_residuals(
    pts: Sequence[Point],
    residuals: Sequence[float] | NDArray[np.float64],
    bound: float,
    avg_nn_dist: float | None,
    isolation_factor: float = DEFAULT_ISOLATION_FACTOR,
    variability_factor: float = DEFAULT_VARIABILITY_FACTOR,
) -> list[int]:
    """
    Indices of the points to add back, ascending.

    Parameters
    ----------
    pts : Sequence[Point]
        Points the residuals belong to.
    residuals : Sequence[float]
        Signed residual of each point.
    bound : float
        Allowed misfit; only ``|r| > bound`` is considered.
    avg_nn_dist : float | None
        Average nearest neighbour distance of the constraint type. None
        treats every candidate as isolated.
    isolation_factor : float
        Neighbourhood radius as a multiple of ``avg_nn_dist``.
    variability_factor : float
        Multiple of ``bound`` above which opposite-sign neighbours are
        both selected.

    Returns
    -------
    list[int]
        Selected indices into ``pts``.
    """
    r = np.asarray(residuals, dtype=float)
    if len(r) != len(pts):
        raise ValueError(f"Got {len(r)} residuals for {len(pts)} points")

    candidates = np.flatnonzero(np.abs(r) > bound)
    if len(candidates) == 0:
        return []
    if avg_nn_dist is None or len(candidates) == 1:
        return [int(i) for i in candidates]

    xyz = coordinates_of([pts[i] for i in candidates])
    neighbours = cKDTree(xyz).query_ball_point(xyz, r=isolation_factor * avg_nn_dist)

    selected: list[int] = []
    for a, i in enumerate(candidates):
        others = [int(candidates[b]) for b in neighbours[a] if b != a]
        if not others:
            selected.append(int(i))
            continue

        key = (abs(r[i]), -i)
        if all(key > (abs(r[j]), -j) for j in others):
            selected.append(int(i))
            continue

        for j in others:
            if r[i] * r[j] < 0.0 and abs(r[i] - r[j]) > variability_factor * bound:
                selected.append(int(i))
                break

    logger.debug("Selected %d of %d large-residual candidates", len(selected), len(candidates))
    return selected


def get_interface_indices_with_large_residuals(
    pts: Sequence[Interface],
    avg_nn_dist: float | None,
    bound: float,
    isolation_factor: float = DEFAULT_ISOLATION_FACTOR,
    variability_factor: float = DEFAULT_VARIABILITY_FACTOR,
) -> list[int]:
    """Interface points whose level misfit exceeds ``bound``."""
    return select_large_residuals(
        pts, [p.residual for p in pts], bound, avg_nn_dist, isolation_factor, variability_factor
    )


def get_planar_indices_with_large_residuals(
    pts: Sequence[Planar],
    avg_nn_dist: float | None,
    bound: float,
    isolation_factor: float = DEFAULT_ISOLATION_FACTOR,
    variability_factor: float = DEFAULT_VARIABILITY_FACTOR,
) -> list[int]:
    """Planar points whose angular misfit (degrees) exceeds ``bound``."""
    return select_large_residuals(
        pts, [p.residual for p in pts], bound, avg_nn_dist, isolation_factor, variability_factor
    )


def get_tangent_indices_with_large_residuals(
    pts: Sequence[Tangent],
    avg_nn_dist: float | None,
    bound: float,
    isolation_factor: float = DEFAULT_ISOLATION_FACTOR,
    variability_factor: float = DEFAULT_VARIABILITY_FACTOR,
) -> list[int]:
    """Tangent points whose angular misfit (degrees) exceeds ``bound``."""
    return select_large_residuals(
        pts, [p.residual for p in pts], bound, avg_nn_dist, isolation_factor, variability_factor
    )


def inequality_residual(pt: Inequality) -> float:
    """Amount by which the field falls short of the inequality level."""
    if not pt.residual or pt.scalar_field is None:
        return 0.0
    return max(pt.level - pt.scalar_field, 0.0)


def get_inequality_indices_with_large_residuals(
    pts: Sequence[Inequality],
    avg_nn_dist: float | None,
    isolation_factor: float = DEFAULT_ISOLATION_FACTOR,
    variability_factor: float = DEFAULT_VARIABILITY_FACTOR,
) -> list[int]:
    """Violated inequality points (any shortfall counts)."""
    return select_large_residuals(
        pts,
        [inequality_residual(p) for p in pts],
        0.0,
        avg_nn_dist,
        isolation_factor,
        variability_factor,
    )
