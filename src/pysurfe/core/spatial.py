"""
Nearest-neighbour and extent helpers over point collections.

These are the geometric inputs consumed by the greedy algorithm and the
data model statistics (average nearest neighbour distances, extremal
points, furthest pairs).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree
from scipy.spatial.distance import cdist

if TYPE_CHECKING:
    from pysurfe.core.basic_input import BasicInput
    from pysurfe.core.points import Point


def coordinates_of(pts: Sequence[Point]) -> NDArray[np.float64]:
    """Stack point coordinates into an (n, 3) array."""
    if len(pts) == 0:
        return np.zeros((0, 3))
    return np.array([[p.x, p.y, p.z] for p in pts], dtype=float)


def distance_btw_pts(p1: Point, p2: Point) -> float:
    return float(np.linalg.norm(p1.coordinates - p2.coordinates))


def nearest_neighbour_index(p: Point, pts: Sequence[Point]) -> int:
    """Index of the point in ``pts`` closest to ``p`` (-1 if empty)."""
    if len(pts) == 0:
        return -1
    d = cdist(p.coordinates[np.newaxis, :], coordinates_of(pts))[0]
    return int(np.argmin(d))


def get_n_nearest_neighbours_to_point(n: int, p: Point, pts: Sequence[Point]) -> list[int]:
    """Indices of the ``n`` points closest to ``p``, nearest first."""
    if len(pts) == 0 or n <= 0:
        return []
    d = cdist(p.coordinates[np.newaxis, :], coordinates_of(pts))[0]
    return [int(i) for i in np.argsort(d, kind="stable")[:n]]


def furthest_neighbour_index(p: Point, pts: Sequence[Point]) -> int:
    """Index of the point in ``pts`` furthest from ``p`` (-1 if empty)."""
    if len(pts) == 0:
        return -1
    d = cdist(p.coordinates[np.newaxis, :], coordinates_of(pts))[0]
    return int(np.argmax(d))


def avg_nn_distance(pts: Sequence[Point]) -> float | None:
    """
    Average distance from each point to its nearest neighbour.

    Returns
    -------
    float | None
        None when fewer than two points are given.
    """
    if len(pts) < 2:
        return None
    tree = cKDTree(coordinates_of(pts))
    distances, _ = tree.query(coordinates_of(pts), k=2)
    return float(np.mean(distances[:, 1]))


def find_furthest_two_points(pts: Sequence[Point]) -> tuple[int, int] | None:
    """Indices of the two points furthest apart (None if fewer than two)."""
    if len(pts) < 2:
        return None
    d = cdist(coordinates_of(pts), coordinates_of(pts))
    i, j = np.unravel_index(int(np.argmax(d)), d.shape)
    return (int(min(i, j)), int(max(i, j)))


def point_closest_within_distance(p: Point, pts: Sequence[Point], dist: float) -> int:
    """Index of the closest point within ``dist`` of ``p`` (-1 if none)."""
    if len(pts) == 0:
        return -1
    d = cdist(p.coordinates[np.newaxis, :], coordinates_of(pts))[0]
    i = int(np.argmin(d))
    return i if d[i] <= dist else -1


def calculate_bounds(pts: Sequence[Point]) -> tuple[float, float, float, float, float, float]:
    """Axis-aligned bounds as (xmin, xmax, ymin, ymax, zmin, zmax)."""
    xyz = coordinates_of(pts)
    if len(xyz) == 0:
        raise ValueError("Cannot compute bounds of an empty point list")
    lo = xyz.min(axis=0)
    hi = xyz.max(axis=0)
    return (float(lo[0]), float(hi[0]), float(lo[1]), float(hi[1]), float(lo[2]), float(hi[2]))


def get_extremal_point_data_indices_from_points(pts: Sequence[Point]) -> list[int]:
    """Indices of the points at the min and max of each axis, without repeats."""
    xyz = coordinates_of(pts)
    if len(xyz) == 0:
        return []
    indices: list[int] = []
    for axis in range(3):
        for idx in (int(np.argmin(xyz[:, axis])), int(np.argmax(xyz[:, axis]))):
            if idx not in indices:
                indices.append(idx)
    return indices


def find_fill_distance(basic_input: BasicInput) -> float | None:
    """Largest distance from an evaluation point to its nearest constraint.

    Returns None when there are no evaluation points or no constraints.
    """
    constraints = coordinates_of(basic_input.all_constraint_points())
    evaluation = coordinates_of(basic_input.evaluation_pts)
    if len(constraints) == 0 or len(evaluation) == 0:
        return None
    distances, _ = cKDTree(constraints).query(evaluation, k=1)
    return float(np.max(distances))
