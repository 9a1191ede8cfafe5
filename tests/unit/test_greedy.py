"""Unit tests for greedy refinement."""

from __future__ import annotations

import numpy as np
import pytest

from pysurfe.core.basic_input import BasicInput
from pysurfe.core.parameters import ModelParameters, ModelType
from pysurfe.core.points import Inequality, Interface, Planar, Tangent
from pysurfe.modeling.greedy import (
    GreedyRefinement,
    GreedyResult,
    angle_between,
    tangent_misfit,
)
from pysurfe.modeling.methods import create_modelling_method, field_values


@pytest.fixture
def greedy_parameters() -> ModelParameters:
    return ModelParameters(use_greedy=True, interface_slack=0.01, gradient_slack=5.0)


class TestAngles:
    """Tests for angular misfit helpers."""

    def test_angle_between(self):
        assert angle_between(np.array([0.0, 0.0, 1.0]), np.array([0.0, 0.0, 2.0])) == 0.0
        assert angle_between(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0])) == (
            pytest.approx(90.0)
        )
        assert angle_between(np.zeros(3), np.array([0.0, 0.0, 1.0])) == 180.0

    def test_tangent_misfit(self):
        g = np.array([0.0, 0.0, 1.0])
        assert tangent_misfit(np.array([1.0, 0.0, 0.0]), g) == pytest.approx(0.0)
        assert tangent_misfit(np.array([0.0, 0.0, -1.0]), g) == pytest.approx(90.0)
        assert tangent_misfit(np.array([1.0, 0.0, 1.0]), g) == pytest.approx(45.0)
        assert tangent_misfit(np.array([1.0, 0.0, 0.0]), np.zeros(3)) == 90.0


class TestGreedyResult:
    """Tests for GreedyResult."""

    def test_summary(self):
        result = GreedyResult(success=True, iterations=2, active_counts=[3, 5])
        text = result.summary()
        assert "CONVERGED" in text
        assert "[3, 5]" in text


class TestMinimalInput:
    """Tests for the initial subset."""

    def test_curved_split(self, curved_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, curved_input)
        greedy, excluded = GreedyRefinement(method).get_minimal_and_excluded_input()
        assert len(greedy.itrface) == 2
        assert len(excluded.itrface) == 23
        assert len(greedy.planar) == 1
        assert excluded.planar == []

    def test_furthest_pair_per_group(self, layered_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, layered_input)
        greedy, excluded = GreedyRefinement(method).get_minimal_and_excluded_input()
        assert sorted(p.level for p in greedy.itrface) == [0.0, 0.0, 1.0, 1.0]
        assert len(excluded.itrface) == 2

    def test_inequalities_start_excluded(self, inequality_input, greedy_parameters):
        greedy_parameters.use_inequality = True
        method = create_modelling_method(greedy_parameters, inequality_input)
        greedy, excluded = GreedyRefinement(method).get_minimal_and_excluded_input()
        assert greedy.inequality == []
        assert len(excluded.inequality) == 1

    def test_disabled_types_not_excluded(self, tangent_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, tangent_input)
        greedy, excluded = GreedyRefinement(method).get_minimal_and_excluded_input()
        assert len(greedy.tangent) == 2
        assert excluded.tangent == []

    def test_subset_is_copied(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        greedy, _ = GreedyRefinement(method).get_minimal_and_excluded_input()
        greedy.itrface[0].x = 42.0
        assert all(p.x != 42.0 for p in plane_input.itrface)


class TestMeasureResiduals:
    """Tests for residuals of excluded constraints."""

    def test_residuals_against_plane(self, plane_input, greedy_parameters):
        """Test residuals of excluded data measured on s = z."""
        method = create_modelling_method(greedy_parameters, plane_input)
        assert method.run_algorithm().success

        excluded = BasicInput(
            itrface=[Interface(0.0, 0.0, 0.5, 0.0)],
            planar=[Planar(0.0, 0.0, 0.0, 1.0, 0.0, 0.0)],
            tangent=[
                Tangent(0.0, 0.0, 0.0, 1.0, 0.0, 0.0),
                Tangent(0.0, 0.0, 0.0, 0.0, 0.0, 1.0),
            ],
            inequality=[Inequality(0.0, 0.0, 1.0, 2.0), Inequality(0.0, 0.0, 1.0, 0.5)],
        )
        assert GreedyRefinement(method).measure_residuals(method, excluded) is True
        assert excluded.itrface[0].residual == pytest.approx(0.5, abs=1e-8)
        assert excluded.planar[0].residual == pytest.approx(90.0, abs=1e-6)
        assert excluded.tangent[0].residual == pytest.approx(0.0, abs=1e-6)
        assert excluded.tangent[1].residual == pytest.approx(90.0, abs=1e-6)
        assert excluded.inequality[0].residual is True
        assert excluded.inequality[1].residual is False

    def test_requires_interpolant(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        assert GreedyRefinement(method).measure_residuals(method, BasicInput()) is False


class TestAppendGreedyInput:
    """Tests for moving large residuals into the active set."""

    def test_moves_selected_points(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        assert method.run_algorithm().success
        active = method.copy_configuration()
        excluded = BasicInput(
            itrface=[
                Interface(0.0, 0.0, 0.0, 0.0, residual=0.5),
                Interface(50.0, 0.0, 0.0, 0.0, residual=0.001),
                Interface(99.0, 0.0, 0.0, 0.0, residual=-0.2),
            ]
        )
        added = GreedyRefinement(method).append_greedy_input(active, excluded)
        assert added == 2
        assert [p.x for p in active.b_input.itrface] == [0.0, 99.0]
        assert [p.x for p in excluded.itrface] == [50.0]

    def test_nothing_to_add(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        active = method.copy_configuration()
        excluded = BasicInput(itrface=[Interface(0.0, 0.0, 0.0, 0.0, residual=0.001)])
        assert GreedyRefinement(method).append_greedy_input(active, excluded) == 0


class TestGreedyRefinement:
    """End-to-end tests for the greedy loop."""

    def test_zero_slack_fails_immediately(self, plane_input):
        method = create_modelling_method(ModelParameters(use_greedy=True), plane_input)
        assert method.run_greedy_algorithm() is False
        assert method.greedy_result.iterations == 0
        assert "slack" in method.greedy_result.error

    def test_exact_subset_converges_at_once(self, plane_input, greedy_parameters):
        """Test a subset that already reproduces the plane adds nothing."""
        method = create_modelling_method(greedy_parameters, plane_input)
        assert method.run_greedy_algorithm() is True
        result = method.greedy_result
        assert result.success
        assert result.iterations == 1
        assert result.active_counts == [3]
        assert result.n_excluded == 1

        pts = plane_input.evaluation_pts
        np.testing.assert_allclose(field_values(pts), [p.z for p in pts], atol=1e-8)
        assert method.has_interpolant()

    def test_curved_surface_refines(self, curved_input, greedy_parameters):
        """Test the loop adds points until every residual is within the slack."""
        method = create_modelling_method(greedy_parameters, curved_input)
        refinement = GreedyRefinement(method)
        result = refinement.run()
        assert result.success, result.summary()
        assert result.iterations == len(result.active_counts)
        assert result.iterations >= 2
        assert all(b > a for a, b in zip(result.active_counts, result.active_counts[1:]))
        assert result.active_counts[-1] <= curved_input.n_constraint_points
        for p in refinement.excluded.itrface:
            assert abs(p.residual) <= greedy_parameters.interface_slack

    def test_original_input_untouched(self, curved_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, curved_input)
        method.run_greedy_algorithm()
        assert len(curved_input.itrface) == 25
        assert all(p.residual == 0.0 for p in curved_input.itrface)

    def test_should_stop_cancels(self, curved_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, curved_input)
        assert method.run_greedy_algorithm(should_stop=lambda: True) is False
        assert method.greedy_result.cancelled is True
        assert method.greedy_result.iterations == 0

    def test_should_stop_after_first_iteration(self, curved_input, greedy_parameters):
        calls = []

        def stop():
            calls.append(1)
            return len(calls) > 1

        method = create_modelling_method(greedy_parameters, curved_input)
        result = GreedyRefinement(method, should_stop=stop).run()
        assert result.cancelled is True
        assert result.iterations == 1

    def test_record_history(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        result = GreedyRefinement(method, record_history=True).run()
        assert result.success
        assert len(plane_input.evaluation_pts[0].field_history) == result.iterations

    def test_lajaunie_iso_values_resolved(self, layered_input, greedy_parameters):
        greedy_parameters.model_type = ModelType.LAJAUNIE_APPROACH
        method = create_modelling_method(greedy_parameters, layered_input)
        assert method.run_greedy_algorithm() is True
        assert layered_input.interface_iso_values == pytest.approx([0.0, 1.0], abs=1e-8)

    def test_run_dispatches_on_use_greedy(self, plane_input, greedy_parameters):
        method = create_modelling_method(greedy_parameters, plane_input)
        assert method.run() is True
        assert method.greedy_result is not None
