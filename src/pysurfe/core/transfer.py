"""
Flat transfer structures for host applications.

A host hands constraints over as parallel coordinate/attribute arrays with
an explicit count. :func:`set_data` marshals them into a
:class:`~pysurfe.core.basic_input.BasicInput`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.parameters import ModelParameters
from pysurfe.core.points import EvaluationPoint, Inequality, Interface, Planar, Tangent

logger = logging.getLogger(__name__)


@dataclass
class InequalityPoints:
    n_pts: int = 0
    x: Sequence[float] = field(default_factory=list)
    y: Sequence[float] = field(default_factory=list)
    z: Sequence[float] = field(default_factory=list)
    level: Sequence[float] = field(default_factory=list)


@dataclass
class InterfacePoints:
    n_pts: int = 0
    x: Sequence[float] = field(default_factory=list)
    y: Sequence[float] = field(default_factory=list)
    z: Sequence[float] = field(default_factory=list)
    level: Sequence[float] = field(default_factory=list)


@dataclass
class PlanarPoints:
    n_pts: int = 0
    x: Sequence[float] = field(default_factory=list)
    y: Sequence[float] = field(default_factory=list)
    z: Sequence[float] = field(default_factory=list)
    dip: Sequence[float] = field(default_factory=list)
    strike: Sequence[float] = field(default_factory=list)
    polarity: Sequence[int] = field(default_factory=list)


@dataclass
class TangentPoints:
    n_pts: int = 0
    x: Sequence[float] = field(default_factory=list)
    y: Sequence[float] = field(default_factory=list)
    z: Sequence[float] = field(default_factory=list)
    tx: Sequence[float] = field(default_factory=list)
    ty: Sequence[float] = field(default_factory=list)
    tz: Sequence[float] = field(default_factory=list)


@dataclass
class EvaluationPoints:
    n_pts: int = 0
    x: Sequence[float] = field(default_factory=list)
    y: Sequence[float] = field(default_factory=list)
    z: Sequence[float] = field(default_factory=list)


def _arrays_cover(name: str, n_pts: int, arrays: dict[str, Sequence]) -> bool:
    if n_pts < 0:
        logger.error("%s: negative point count %d", name, n_pts)
        return False
    for key, values in arrays.items():
        if len(values) < n_pts:
            logger.error(
                "%s: array '%s' has %d entries, expected at least %d",
                name,
                key,
                len(values),
                n_pts,
            )
            return False
    return True


def create_model_parameters() -> ModelParameters:
    """Create a model parameters instance with default values."""
    return ModelParameters()


def create_basic_input() -> BasicInput:
    """Create an empty constraint container."""
    return BasicInput()


def set_data(
    basic_input: BasicInput,
    ie: InequalityPoints,
    itf: InterfacePoints,
    pp: PlanarPoints,
    tp: TangentPoints,
    ep: EvaluationPoints,
) -> bool:
    """
    Populate ``basic_input`` from flat transfer structures.

    Only the first ``n_pts`` entries of each array are read. Nothing is
    modified if any array is shorter than its declared count.

    Returns
    -------
    bool
        True if the data was copied.
    """
    checks = [
        _arrays_cover(
            "inequality", ie.n_pts, {"x": ie.x, "y": ie.y, "z": ie.z, "level": ie.level}
        ),
        _arrays_cover(
            "interface", itf.n_pts, {"x": itf.x, "y": itf.y, "z": itf.z, "level": itf.level}
        ),
        _arrays_cover(
            "planar",
            pp.n_pts,
            {
                "x": pp.x,
                "y": pp.y,
                "z": pp.z,
                "dip": pp.dip,
                "strike": pp.strike,
                "polarity": pp.polarity,
            },
        ),
        _arrays_cover(
            "tangent",
            tp.n_pts,
            {"x": tp.x, "y": tp.y, "z": tp.z, "tx": tp.tx, "ty": tp.ty, "tz": tp.tz},
        ),
        _arrays_cover("evaluation", ep.n_pts, {"x": ep.x, "y": ep.y, "z": ep.z}),
    ]
    if not all(checks):
        return False

    basic_input.inequality = [
        Inequality(float(ie.x[j]), float(ie.y[j]), float(ie.z[j]), float(ie.level[j]))
        for j in range(ie.n_pts)
    ]
    basic_input.itrface = [
        Interface(float(itf.x[j]), float(itf.y[j]), float(itf.z[j]), float(itf.level[j]))
        for j in range(itf.n_pts)
    ]
    basic_input.planar = [
        Planar.from_dip_strike(
            float(pp.x[j]),
            float(pp.y[j]),
            float(pp.z[j]),
            float(pp.dip[j]),
            float(pp.strike[j]),
            int(pp.polarity[j]),
        )
        for j in range(pp.n_pts)
    ]
    basic_input.tangent = [
        Tangent(
            float(tp.x[j]),
            float(tp.y[j]),
            float(tp.z[j]),
            float(tp.tx[j]),
            float(tp.ty[j]),
            float(tp.tz[j]),
        )
        for j in range(tp.n_pts)
    ]
    basic_input.evaluation_pts = [
        EvaluationPoint(float(ep.x[j]), float(ep.y[j]), float(ep.z[j])) for j in range(ep.n_pts)
    ]
    basic_input.interface_iso_values = []
    basic_input.interface_point_lists = []
    basic_input.interface_test_points = []
    basic_input.inequality_avg_nn_dist = None
    basic_input.interface_avg_nn_dist = None
    basic_input.planar_avg_nn_dist = None
    basic_input.tangent_avg_nn_dist = None
    return True
