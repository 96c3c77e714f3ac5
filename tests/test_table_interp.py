"""
Unit tests for the bilinear grid lookup.

Tests:
1. Exactness at lattice nodes
2. Agreement with SciPy's RegularGridInterpolator inside the grid
3. Clamped linear extrapolation (continuity across the boundary, flagging)
"""

from __future__ import annotations

import math

import numpy as np
import pytest
from scipy.interpolate import RegularGridInterpolator

from properties.table_interp import GridInterpolator, node_value


# ============================================================================
# Test 1: Node exactness
# ============================================================================


def test_lookup_exact_at_every_node(integer_table):
    axes = integer_table.axes
    interp = GridInterpolator(axes)
    z = integer_table.get("pressure")

    for i, x in enumerate(axes.rho_nodes):
        for j, y in enumerate(axes.de_nodes):
            assert interp.lookup(x, y, z) == node_value(axes, z, i, j)


def test_node_is_not_flagged_as_extrapolated(integer_table):
    interp = GridInterpolator(integer_table.axes)
    res = interp.lookup_with_status(4.0, 8.0, integer_table.get("cv"))

    assert res.extrapolated is False
    assert res.value == node_value(integer_table.axes, integer_table.get("cv"), 4, 8)


def test_round_off_past_the_edge_is_not_flagged(integer_table):
    interp = GridInterpolator(integer_table.axes)

    assert interp.locate(4.0 * (1.0 + 1e-13), 8.0 * (1.0 + 1e-13)).extrapolated is False
    assert interp.locate(-1e-13, -1e-13).extrapolated is False
    assert interp.locate(4.0, 8.001).extrapolated is True
    assert interp.locate(-0.001, 0.0).extrapolated is True


# ============================================================================
# Test 2: Interior agreement with SciPy
# ============================================================================


def test_interior_matches_regular_grid_interpolator(linear_table):
    axes = linear_table.axes
    interp = GridInterpolator(axes)
    rng = np.random.default_rng(3)

    z_flat = np.asarray(linear_table.get("entropy"))
    ref = RegularGridInterpolator(
        (axes.rho_nodes, axes.de_nodes), z_flat.reshape(axes.nx, axes.ny), method="linear"
    )

    xs = rng.uniform(*axes.rho_bounds, size=50)
    ys = rng.uniform(*axes.de_bounds, size=50)
    ours = np.array([interp.lookup(x, y, z_flat) for x, y in zip(xs, ys)])
    theirs = ref(np.column_stack([xs, ys]))

    np.testing.assert_allclose(ours, theirs, rtol=1e-10, atol=1e-9)


def test_bilinear_data_reproduced_exactly(linear_table):
    interp = GridInterpolator(linear_table.axes)
    z = linear_table.get("pressure")

    for rho, de in [(0.73, 1.234e4), (1.5, -3.0e4), (1.999, 4.99e5)]:
        assert interp.lookup(rho, de, z) == pytest.approx(0.4 * rho * (de + 1.0e5), rel=1e-12)


# ============================================================================
# Test 3: Extrapolation
# ============================================================================


def test_extrapolation_is_continuous_across_xmax(integer_table):
    axes = integer_table.axes
    interp = GridInterpolator(axes)
    z = integer_table.get("temperature")
    xmax = axes.rho_bounds[1]
    cell = (axes.rho_bounds[1] - axes.rho_bounds[0]) / (axes.nx - 1)
    y = 3.3

    slope = (interp.lookup(xmax, y, z) - interp.lookup(xmax - cell, y, z)) / cell
    for step in (1e-6, 1e-3, 0.5):
        below = interp.lookup(xmax - step, y, z)
        above = interp.lookup(xmax + step, y, z)
        assert above - below == pytest.approx(2.0 * step * slope, rel=1e-7, abs=1e-9)


def test_far_extrapolation_extends_boundary_cell(linear_table):
    interp = GridInterpolator(linear_table.axes)
    z = linear_table.get("pressure")

    res = interp.lookup_with_status(3.0, 8.0e5, z)

    assert res.extrapolated is True
    assert res.value == pytest.approx(0.4 * 3.0 * (8.0e5 + 1.0e5), rel=1e-10)

    below = interp.lookup_with_status(0.1, -1.0e5, z)
    assert below.extrapolated is True
    assert below.value == pytest.approx(0.4 * 0.1 * (-1.0e5 + 1.0e5), abs=1e-6)


def test_locate_clamps_cell_indices(integer_table):
    interp = GridInterpolator(integer_table.axes)

    high = interp.locate(100.0, 100.0)
    low = interp.locate(-100.0, -100.0)

    assert (high.ixl, high.iyl) == (3, 7)
    assert (low.ixl, low.iyl) == (0, 0)
    assert high.extrapolated and low.extrapolated


def test_nan_query_propagates_without_raising(integer_table):
    interp = GridInterpolator(integer_table.axes)

    value = interp.lookup(float("nan"), 1.0, integer_table.get("pressure"))

    assert math.isnan(value)
