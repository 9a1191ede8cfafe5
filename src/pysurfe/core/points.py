"""
Constraint point records.

Every constraint type is a :class:`Point` with type-specific attributes.
Points carry the computed scalar field value and gradient, both ``None``
until an interpolant has been evaluated at the point.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pysurfe.core.exceptions import ConstraintError
from pysurfe.core.parameters import D2R, R2D


@dataclass
class Point:
    """A 3D location with an optional auxiliary coordinate.

    Attributes
    ----------
    x, y, z : float
        Coordinates.
    c : float
        Auxiliary coordinate used by time-enabled formulations.
    scalar_field : float | None
        Interpolated scalar field value.
    gradient : NDArray | None
        Interpolated field gradient (3,).
    field_history : list[float]
        Scalar field values recorded between greedy iterations.
    """

    x: float
    y: float
    z: float
    c: float = field(default=0.0, kw_only=True)
    scalar_field: float | None = field(default=None, kw_only=True, compare=False)
    gradient: NDArray[np.float64] | None = field(default=None, kw_only=True, compare=False)
    field_history: list[float] = field(default_factory=list, kw_only=True, compare=False)

    @property
    def coordinates(self) -> NDArray[np.float64]:
        """Return (x, y, z) as an array."""
        return np.array([self.x, self.y, self.z], dtype=float)

    def set_scalar_field(self, value: float) -> None:
        self.scalar_field = float(value)

    def set_vector_field(self, nx: float, ny: float, nz: float) -> None:
        self.gradient = np.array([nx, ny, nz], dtype=float)

    def copy(self) -> Point:
        """Return an independent copy of this point."""
        return copy.deepcopy(self)


@dataclass
class EvaluationPoint(Point):
    """A location at which the interpolant is evaluated."""


@dataclass
class Interface(Point):
    """A point lying on the surface of a given scalar level.

    Interfaces sharing a level belong to the same geological surface.
    """

    level: float
    residual: float = field(default=0.0, kw_only=True)
    level_bounds: tuple[float, float] = field(default=(0.0, 0.0), kw_only=True)

    @property
    def level_lower_bound(self) -> float:
        return self.level_bounds[0]

    @property
    def level_upper_bound(self) -> float:
        return self.level_bounds[1]

    def set_level_bounds(self, level_uncertainty: float) -> None:
        """Set the symmetric band (-u, +u) around the level."""
        if level_uncertainty < 0:
            raise ConstraintError(f"Level uncertainty must be non-negative: {level_uncertainty}")
        self.level_bounds = (-1.0 * level_uncertainty, level_uncertainty)


@dataclass
class Inequality(Point):
    """A point where the scalar field must be at least ``level``.

    ``residual`` is True while the constraint is violated.
    """

    level: float
    residual: bool = field(default=True, kw_only=True)


def normal_from_strike_dip(dip: float, strike: float, polarity: int) -> NDArray[np.float64]:
    """
    Unit normal for a plane given in geological notation.

    Strike is the azimuth clockwise from north (+y) and the dip direction
    follows the right-hand rule (strike + 90). Polarity 1 is upright
    (normal points up), polarity 0 overturned.

    Examples
    --------
    >>> normal_from_strike_dip(0.0, 0.0, 1).round(6)
    array([0., 0., 1.])
    >>> normal_from_strike_dip(90.0, 0.0, 1).round(6)
    array([1., 0., 0.])
    """
    dip_dir = (strike + 90.0) * D2R
    d = dip * D2R
    n = np.array(
        [math.sin(d) * math.sin(dip_dir), math.sin(d) * math.cos(dip_dir), math.cos(d)]
    )
    if polarity == 0:
        n = -n
    return n


def strike_dip_from_normal(n: NDArray[np.float64]) -> tuple[float, float, int]:
    """Inverse of :func:`normal_from_strike_dip`.

    Returns
    -------
    tuple[float, float, int]
        (dip, strike, polarity). Strike is in [0, 360).
    """
    n = np.asarray(n, dtype=float)
    length = float(np.linalg.norm(n))
    if length == 0.0:
        raise ConstraintError("Cannot compute strike/dip of a zero-length normal")
    n = n / length

    polarity = 1
    if n[2] < 0:
        polarity = 0
        n = -n

    dip = math.acos(min(1.0, float(n[2]))) * R2D
    dip_dir = math.atan2(float(n[0]), float(n[1])) * R2D
    strike = (dip_dir - 90.0) % 360.0
    return dip, strike, polarity


@dataclass
class Planar(Point):
    """An orientation measurement (surface normal) at a point.

    Construct from a normal vector directly, or from dip/strike/polarity
    with :meth:`from_dip_strike`; the other representation is derived.
    """

    nx: float
    ny: float
    nz: float
    residual: float = field(default=0.0, kw_only=True)
    dip: float = field(default=0.0, init=False)
    strike: float = field(default=0.0, init=False)
    polarity: int = field(default=1, init=False)
    normal_bounds: NDArray[np.float64] = field(
        default_factory=lambda: np.zeros((3, 2)), init=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.normal_length > 0.0:
            self._compute_strike_dip_polarity_from_normal()

    @classmethod
    def from_dip_strike(
        cls,
        x: float,
        y: float,
        z: float,
        dip: float,
        strike: float,
        polarity: int = 1,
        c: float = 0.0,
    ) -> Planar:
        """Create a planar constraint from geological notation."""
        n = normal_from_strike_dip(dip, strike, polarity)
        planar = cls(x, y, z, float(n[0]), float(n[1]), float(n[2]), c=c)
        # keep the caller's values rather than the round-tripped ones
        planar.dip = dip
        planar.strike = strike
        planar.polarity = polarity
        return planar

    @property
    def normal(self) -> NDArray[np.float64]:
        return np.array([self.nx, self.ny, self.nz], dtype=float)

    @property
    def normal_length(self) -> float:
        return math.sqrt(self.nx**2 + self.ny**2 + self.nz**2)

    def _compute_strike_dip_polarity_from_normal(self) -> None:
        self.dip, self.strike, self.polarity = strike_dip_from_normal(self.normal)

    def _compute_normal_from_strike_dip_polarity(self) -> None:
        n = normal_from_strike_dip(self.dip, self.strike, self.polarity)
        self.nx, self.ny, self.nz = (float(v) for v in n)

    def set_normal(self, nx: float, ny: float, nz: float) -> None:
        self.nx, self.ny, self.nz = nx, ny, nz
        self._compute_strike_dip_polarity_from_normal()

    def set_dip_strike(self, dip: float, strike: float, polarity: int = 1) -> None:
        self.dip, self.strike, self.polarity = dip, strike, polarity
        self._compute_normal_from_strike_dip_polarity()

    def get_dip_vector(self) -> NDArray[np.float64]:
        """Unit vector pointing down dip."""
        dip_dir = (self.strike + 90.0) * D2R
        d = self.dip * D2R
        return np.array(
            [math.cos(d) * math.sin(dip_dir), math.cos(d) * math.cos(dip_dir), -math.sin(d)]
        )

    def get_strike_vector(self) -> NDArray[np.float64]:
        """Horizontal unit vector along strike."""
        s = self.strike * D2R
        return np.array([math.sin(s), math.cos(s), 0.0])

    def set_normal_bounds(self, delta_strike: float, delta_dip: float) -> None:
        """Per-axis normal bounds under strike/dip perturbation.

        The normal is recomputed on the 3x3 grid of strike and dip values
        perturbed by 0 and +/- delta; each axis gets the min and max over the
        grid, scaled by the length of the stored normal.
        """
        scale = self.normal_length
        normals = np.array(
            [
                normal_from_strike_dip(self.dip + dd, self.strike + ds, self.polarity)
                for ds in (-delta_strike, 0.0, delta_strike)
                for dd in (-delta_dip, 0.0, delta_dip)
            ]
        ) * scale
        self.normal_bounds = np.column_stack([normals.min(axis=0), normals.max(axis=0)])

    @property
    def nx_lower_bound(self) -> float:
        return float(self.normal_bounds[0, 0])

    @property
    def nx_upper_bound(self) -> float:
        return float(self.normal_bounds[0, 1])

    @property
    def ny_lower_bound(self) -> float:
        return float(self.normal_bounds[1, 0])

    @property
    def ny_upper_bound(self) -> float:
        return float(self.normal_bounds[1, 1])

    @property
    def nz_lower_bound(self) -> float:
        return float(self.normal_bounds[2, 0])

    @property
    def nz_upper_bound(self) -> float:
        return float(self.normal_bounds[2, 1])


@dataclass
class Tangent(Point):
    """A direction lying in the modelled surface.

    The default inner product constraint of 0 requires the tangent to be
    perpendicular to the field gradient.
    """

    tx: float
    ty: float
    tz: float
    residual: float = field(default=0.0, kw_only=True)
    inner_product_constraint: float = field(default=0.0, kw_only=True)
    angle_bounds: tuple[float, float] = field(default=(0.0, 0.0), kw_only=True)

    @property
    def tangent(self) -> NDArray[np.float64]:
        return np.array([self.tx, self.ty, self.tz], dtype=float)

    @property
    def angle_lower_bound(self) -> float:
        return self.angle_bounds[0]

    @property
    def angle_upper_bound(self) -> float:
        return self.angle_bounds[1]

    def set_angle_bounds(self, angle: float) -> None:
        """Bounds on t . grad(s) for an angular uncertainty in degrees.

        t . grad(s) = cos(theta) |t| |grad(s)| with |t| = 1 and |grad(s)|
        taken as 2 at most.
        """
        a = math.cos((90.0 - angle) * D2R) * 2.0
        if a < 0:
            self.angle_bounds = (a, 0.0)
        else:
            self.angle_bounds = (0.0, a)
