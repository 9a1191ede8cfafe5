"""Pytest configuration and fixtures for pysurfe tests."""

from __future__ import annotations

import numpy as np
import pytest

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.parameters import ModelParameters
from pysurfe.core.points import EvaluationPoint, Inequality, Interface, Planar, Tangent


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "property: property-based tests using Hypothesis")


def evaluation_grid(n: int = 3, extent: float = 1.0) -> list[EvaluationPoint]:
    """Regular n x n x n grid of evaluation points in [-extent, extent]^3."""
    axis = np.linspace(-extent, extent, n)
    return [
        EvaluationPoint(float(x), float(y), float(z)) for x in axis for y in axis for z in axis
    ]


@pytest.fixture
def plane_input() -> BasicInput:
    """Three interface points on z = 0 and an upward normal at the origin.

    With a cubic kernel and linear drift the unique interpolant is s = z.
    """
    return BasicInput(
        itrface=[
            Interface(1.0, 0.0, 0.0, 0.0),
            Interface(0.0, 1.0, 0.0, 0.0),
            Interface(-1.0, -1.0, 0.0, 0.0),
        ],
        planar=[Planar(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)],
        evaluation_pts=evaluation_grid(),
    )


@pytest.fixture
def layered_input() -> BasicInput:
    """Two horizontal layers (levels 0 at z = 0 and 1 at z = 1) with upward normals."""
    itrface = [
        Interface(1.0, 0.0, 0.0, 0.0),
        Interface(0.0, 1.0, 0.0, 0.0),
        Interface(-1.0, -1.0, 0.0, 0.0),
        Interface(1.0, 1.0, 1.0, 1.0),
        Interface(-1.0, 0.0, 1.0, 1.0),
        Interface(0.0, -1.0, 1.0, 1.0),
    ]
    return BasicInput(
        itrface=itrface,
        planar=[
            Planar(0.0, 0.0, 0.5, 0.0, 0.0, 1.0),
            Planar(1.0, 1.0, 0.5, 0.0, 0.0, 1.0),
        ],
        evaluation_pts=evaluation_grid(),
    )


@pytest.fixture
def curved_input() -> BasicInput:
    """A 5 x 5 grid of interface points on z = 0.1 x^2 with one normal at the origin."""
    axis = np.linspace(-2.0, 2.0, 5)
    itrface = [
        Interface(float(x), float(y), 0.1 * float(x) ** 2, 0.0) for x in axis for y in axis
    ]
    return BasicInput(
        itrface=itrface,
        planar=[Planar(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)],
        evaluation_pts=evaluation_grid(extent=2.0),
    )


@pytest.fixture
def tangent_input(plane_input: BasicInput) -> BasicInput:
    """The plane input plus tangents lying in the plane."""
    plane_input.tangent = [
        Tangent(0.5, 0.5, 0.0, 1.0, 0.0, 0.0),
        Tangent(-0.5, 0.5, 0.0, 0.0, 1.0, 0.0),
    ]
    return plane_input


@pytest.fixture
def inequality_input(plane_input: BasicInput) -> BasicInput:
    """The plane input plus an inequality above the plane."""
    plane_input.inequality = [Inequality(0.0, 0.0, 1.0, 0.5)]
    return plane_input


@pytest.fixture
def linear_parameters() -> ModelParameters:
    """Cubic kernel with linear drift."""
    return ModelParameters(basis_type="cubic", polynomial_order=1)
