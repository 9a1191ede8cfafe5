"""
Aggregate container for modelling constraints.

:class:`BasicInput` owns the four constraint collections and the
evaluation points, derives the interface groupings needed by the
increment-based formulations, and computes spatial statistics used by the
greedy algorithm.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from pysurfe.core import spatial
from pysurfe.core.exceptions import ValidationError
from pysurfe.core.points import (
    EvaluationPoint,
    Inequality,
    Interface,
    Planar,
    Point,
    Tangent,
)

logger = logging.getLogger(__name__)


@dataclass
class BasicInput:
    """
    Constraint data and evaluation points for one model.

    Attributes
    ----------
    inequality : list[Inequality]
        Inequality constraints.
    itrface : list[Interface]
        Interface constraints.
    planar : list[Planar]
        Orientation constraints.
    tangent : list[Tangent]
        Tangent constraints.
    evaluation_pts : list[EvaluationPoint]
        Locations where the fitted field is evaluated.
    interface_iso_values : list[float]
        One iso-value per distinct interface level, ascending.
    interface_point_lists : list[list[Interface]]
        Interface points grouped by level; the groups hold the same
        objects as ``itrface``.
    interface_test_points : list[Interface]
        A copy of the first point of each group, used to recover the
        iso-value of increment-based models.
    """

    inequality: list[Inequality] = field(default_factory=list)
    itrface: list[Interface] = field(default_factory=list)
    planar: list[Planar] = field(default_factory=list)
    tangent: list[Tangent] = field(default_factory=list)
    evaluation_pts: list[EvaluationPoint] = field(default_factory=list)
    interface_iso_values: list[float] = field(default_factory=list)
    interface_point_lists: list[list[Interface]] = field(default_factory=list)
    interface_test_points: list[Interface] = field(default_factory=list)
    _avg_nn_dist_ie: float | None = field(default=None, init=False, repr=False)
    _avg_nn_dist_itr: float | None = field(default=None, init=False, repr=False)
    _avg_nn_dist_p: float | None = field(default=None, init=False, repr=False)
    _avg_nn_dist_t: float | None = field(default=None, init=False, repr=False)
    errors: list[str] = field(default_factory=list, init=False, repr=False)

    # ------------------------------------------------------------------
    # Interface groupings
    # ------------------------------------------------------------------

    def get_interface_data(self) -> bool:
        """Fill the iso-values, point lists and test points.

        Returns
        -------
        bool
            False if there are no interface points.
        """
        self.interface_iso_values = []
        self.interface_point_lists = []
        self.interface_test_points = []
        if not self.itrface:
            return False

        groups: dict[float, list[Interface]] = {}
        for pt in self.itrface:
            groups.setdefault(pt.level, []).append(pt)

        for level in sorted(groups):
            self.interface_iso_values.append(level)
            self.interface_point_lists.append(groups[level])
            self.interface_test_points.append(groups[level][0].copy())

        logger.debug(
            "Found %d interface groups in %d interface points",
            len(self.interface_point_lists),
            len(self.itrface),
        )
        return True

    def group_index_of_level(self, level: float) -> int:
        """Index of the interface group with ``level`` (-1 if none)."""
        for i, pts in enumerate(self.interface_point_lists):
            if pts and pts[0].level == level:
                return i
        return -1

    def interface_data_is_consistent(self) -> bool:
        """True if the derived interface lists have matching sizes."""
        return (
            len(self.interface_iso_values)
            == len(self.interface_point_lists)
            == len(self.interface_test_points)
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check_input_data(self) -> bool:
        """Validate the constraint data.

        Problems found are stored in ``errors``.

        Returns
        -------
        bool
            True if no problems were found.
        """
        errors: list[str] = []
        for name, pts in (
            ("inequality", self.inequality),
            ("interface", self.itrface),
            ("planar", self.planar),
            ("tangent", self.tangent),
        ):
            for i, p in enumerate(pts):
                if not all(math.isfinite(v) for v in (p.x, p.y, p.z)):
                    errors.append(f"{name} point {i} has non-finite coordinates")

        for i, p in enumerate(self.planar):
            if p.normal_length == 0.0:
                errors.append(f"planar point {i} has a zero-length normal")
        for i, t in enumerate(self.tangent):
            if t.tx == 0.0 and t.ty == 0.0 and t.tz == 0.0:
                errors.append(f"tangent point {i} has a zero-length tangent")

        if not self.interface_data_is_consistent():
            errors.append(
                "interface iso values, point lists and test points differ in size: "
                f"{len(self.interface_iso_values)}, {len(self.interface_point_lists)}, "
                f"{len(self.interface_test_points)}"
            )

        self.errors = errors
        for e in errors:
            logger.warning("Invalid input: %s", e)
        return not errors

    def validate(self) -> None:
        """Raise :class:`ValidationError` if :meth:`check_input_data` fails."""
        if not self.check_input_data():
            raise ValidationError(
                f"Input data has {len(self.errors)} problem(s)", errors=list(self.errors)
            )

    def get_local_anisotropy(self) -> bool:
        # Local anisotropy tensors are not modelled; global anisotropy is
        # handled by the kernel.
        return True

    # ------------------------------------------------------------------
    # Spatial analysis
    # ------------------------------------------------------------------

    def all_constraint_points(self) -> list[Point]:
        return [*self.inequality, *self.itrface, *self.planar, *self.tangent]

    def compute_inequality_avg_nn_distance(self) -> float | None:
        self._avg_nn_dist_ie = spatial.avg_nn_distance(self.inequality)
        return self._avg_nn_dist_ie

    def compute_interface_avg_nn_distance(self) -> float | None:
        self._avg_nn_dist_itr = spatial.avg_nn_distance(self.itrface)
        return self._avg_nn_dist_itr

    def compute_planar_avg_nn_distance(self) -> float | None:
        self._avg_nn_dist_p = spatial.avg_nn_distance(self.planar)
        return self._avg_nn_dist_p

    def compute_tangent_avg_nn_distance(self) -> float | None:
        self._avg_nn_dist_t = spatial.avg_nn_distance(self.tangent)
        return self._avg_nn_dist_t

    def compute_avg_nn_distances(self) -> None:
        self.compute_inequality_avg_nn_distance()
        self.compute_interface_avg_nn_distance()
        self.compute_planar_avg_nn_distance()
        self.compute_tangent_avg_nn_distance()

    @property
    def inequality_avg_nn_dist(self) -> float | None:
        return self._avg_nn_dist_ie

    @inequality_avg_nn_dist.setter
    def inequality_avg_nn_dist(self, dist: float | None) -> None:
        self._avg_nn_dist_ie = dist

    @property
    def interface_avg_nn_dist(self) -> float | None:
        return self._avg_nn_dist_itr

    @interface_avg_nn_dist.setter
    def interface_avg_nn_dist(self, dist: float | None) -> None:
        self._avg_nn_dist_itr = dist

    @property
    def planar_avg_nn_dist(self) -> float | None:
        return self._avg_nn_dist_p

    @planar_avg_nn_dist.setter
    def planar_avg_nn_dist(self, dist: float | None) -> None:
        self._avg_nn_dist_p = dist

    @property
    def tangent_avg_nn_dist(self) -> float | None:
        return self._avg_nn_dist_t

    @tangent_avg_nn_dist.setter
    def tangent_avg_nn_dist(self, dist: float | None) -> None:
        self._avg_nn_dist_t = dist

    @property
    def n_constraint_points(self) -> int:
        return len(self.inequality) + len(self.itrface) + len(self.planar) + len(self.tangent)
