"""Property-based tests for large-residual selection using Hypothesis."""

from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pysurfe.core.points import Point
from pysurfe.modeling.residuals import select_large_residuals

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

coordinate = st.floats(min_value=0.0, max_value=3.0, allow_nan=False, allow_infinity=False)
residual = st.floats(min_value=-5.0, max_value=5.0, allow_nan=False, allow_infinity=False)


@st.composite
def residual_field(draw: st.DrawFn) -> tuple[list[Point], np.ndarray]:
    """Random points with one signed residual each."""
    n = draw(st.integers(min_value=1, max_value=30))
    pts = [Point(draw(coordinate), draw(coordinate), draw(coordinate)) for _ in range(n)]
    r = np.array(draw(st.lists(residual, min_size=n, max_size=n)))
    return pts, r


BOUND = 0.3
AVG_NN = 0.4

# ---------------------------------------------------------------------------
# Property tests
# ---------------------------------------------------------------------------


@pytest.mark.property
class TestSelectionProperties:
    """Property-based tests for the selection rule."""

    @given(residual_field())
    @settings(max_examples=50, deadline=None)
    def test_selected_are_candidates(self, field) -> None:
        """Only points above the bound are selected, in ascending order."""
        pts, r = field
        selected = select_large_residuals(pts, r, BOUND, AVG_NN)
        assert all(abs(r[i]) > BOUND for i in selected)
        assert selected == sorted(set(selected))

    @given(residual_field())
    @settings(max_examples=50, deadline=None)
    def test_candidates_yield_a_selection(self, field) -> None:
        """The largest candidate is always selected."""
        pts, r = field
        if not np.any(np.abs(r) > BOUND):
            return
        selected = select_large_residuals(pts, r, BOUND, AVG_NN)
        assert int(np.argmax(np.abs(r))) in selected

    @given(residual_field(), st.floats(min_value=1.0, max_value=10.0))
    @settings(max_examples=50, deadline=None)
    def test_monotone_in_magnitude(self, field, scale: float) -> None:
        """Growing a selected residual never deselects it."""
        pts, r = field
        for i in select_large_residuals(pts, r, BOUND, AVG_NN):
            grown = r.copy()
            grown[i] *= scale
            assert i in select_large_residuals(pts, grown, BOUND, AVG_NN)
