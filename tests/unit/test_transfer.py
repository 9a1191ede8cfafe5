"""Unit tests for flat transfer structures."""

from __future__ import annotations

import numpy as np
import pytest

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.parameters import ModelParameters
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


@pytest.fixture
def transfer_data():
    ie = InequalityPoints(n_pts=1, x=[0.0], y=[0.0], z=[1.0], level=[0.5])
    itf = InterfacePoints(
        n_pts=2, x=[0.0, 1.0, 9.0], y=[0.0, 0.0, 9.0], z=[0.0, 0.0, 9.0], level=[0.0, 0.0, 9.0]
    )
    pp = PlanarPoints(n_pts=1, x=[0.0], y=[0.0], z=[0.0], dip=[0.0], strike=[0.0], polarity=[1])
    tp = TangentPoints(n_pts=1, x=[0.0], y=[0.0], z=[0.0], tx=[1.0], ty=[0.0], tz=[0.0])
    ep = EvaluationPoints(n_pts=2, x=np.zeros(2), y=np.zeros(2), z=np.array([0.0, 1.0]))
    return ie, itf, pp, tp, ep


class TestFactories:
    """Tests for default factories."""

    def test_create_model_parameters(self):
        assert create_model_parameters() == ModelParameters()

    def test_create_basic_input(self):
        b = create_basic_input()
        assert isinstance(b, BasicInput)
        assert b.n_constraint_points == 0


class TestSetData:
    """Tests for set_data."""

    def test_populates_input(self, transfer_data):
        b = create_basic_input()
        assert set_data(b, *transfer_data) is True
        assert len(b.inequality) == 1
        assert b.inequality[0].level == 0.5
        assert len(b.tangent) == 1
        assert len(b.evaluation_pts) == 2
        np.testing.assert_allclose(b.planar[0].normal, [0.0, 0.0, 1.0], atol=1e-12)

    def test_reads_only_n_pts(self, transfer_data):
        """Test entries past n_pts are ignored."""
        b = create_basic_input()
        set_data(b, *transfer_data)
        assert len(b.itrface) == 2
        assert all(p.level == 0.0 for p in b.itrface)

    def test_short_array_leaves_input_untouched(self, transfer_data):
        """Test a short array fails without modifying the input."""
        ie, itf, pp, tp, ep = transfer_data
        ep = EvaluationPoints(n_pts=3, x=[0.0], y=[0.0], z=[0.0])
        b = create_basic_input()
        set_data(b, *transfer_data)
        before = [p.x for p in b.itrface]

        assert set_data(b, ie, itf, pp, tp, ep) is False
        assert [p.x for p in b.itrface] == before
        assert len(b.evaluation_pts) == 2

    def test_repopulating_clears_derived_statistics(self, transfer_data):
        """Test cached spacing from earlier data does not survive a reload."""
        b = create_basic_input()
        set_data(b, *transfer_data)
        b.compute_avg_nn_distances()
        assert b.interface_avg_nn_dist is not None
        b.planar_avg_nn_dist = 4.0
        b.get_interface_data()

        assert set_data(b, *transfer_data) is True
        assert b.inequality_avg_nn_dist is None
        assert b.interface_avg_nn_dist is None
        assert b.planar_avg_nn_dist is None
        assert b.tangent_avg_nn_dist is None
        assert b.interface_point_lists == []

    def test_negative_count_fails(self, transfer_data):
        ie, itf, pp, tp, ep = transfer_data
        b = create_basic_input()
        assert set_data(b, InequalityPoints(n_pts=-1), itf, pp, tp, ep) is False
        assert b.n_constraint_points == 0
