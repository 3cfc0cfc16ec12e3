"""Tests for trivial-connection right-hand-side assembly."""
import logging

import numpy as np
import pytest

from icogrid.connection.trivial import (
    Singularity,
    TrivialConnectionSystem,
    assemble_rhs,
    assemble_trivial_connection,
)
from icogrid.grid import MeshGrid

TAU = 2 * np.pi


@pytest.fixture(scope="module")
def grid():
    return MeshGrid.build(2)


class TestAssembleRhs:

    def test_no_singularities(self):
        k = np.array([0.1, -0.2, 0.3])
        np.testing.assert_allclose(assemble_rhs(k), -k)

    def test_singular_vertices(self):
        k = np.array([0.1, 0.2, 0.3])
        rhs = assemble_rhs(k, [(0, 1), (2, -1)])
        np.testing.assert_allclose(rhs, [-0.1 + TAU, -0.2, -0.3 - TAU])

    def test_input_untouched(self):
        k = np.array([0.5, 0.5])
        assemble_rhs(k, [(1, 2)])
        np.testing.assert_array_equal(k, [0.5, 0.5])

    def test_duplicate_vertex(self):
        with pytest.raises(ValueError, match="more than once"):
            assemble_rhs(np.zeros(4), [(1, 1), (1, 1)])

    @pytest.mark.parametrize("vertex", [-1, 4])
    def test_out_of_range(self, vertex):
        with pytest.raises(ValueError, match="out of range"):
            assemble_rhs(np.zeros(4), [(vertex, 1)])


class TestSystem:

    def test_poles_index_one_is_consistent(self, grid):
        system = grid.trivial_connection_system([(0, 1), (11, 1)])
        assert isinstance(system, TrivialConnectionSystem)
        assert system.total_index == 2
        assert system.is_consistent()
        assert system.residual_total == pytest.approx(0.0, abs=1e-9)

    def test_shapes(self, grid):
        system = grid.trivial_connection_system([(5, 2)])
        assert system.rhs.shape == (grid.n_vertices,)
        assert system.n_vertices == grid.n_vertices
        assert system.n_edges == grid.n_edges
        assert system.d0 is grid.d0
        assert system.d1 is grid.d1
        assert system.singularities == (Singularity(5, 2),)

    def test_rhs_read_only(self, grid):
        system = grid.trivial_connection_system([(0, 2)])
        with pytest.raises(ValueError):
            system.rhs[0] = 0.0

    def test_inconsistent_is_logged_not_rejected(self, grid, caplog):
        with caplog.at_level(logging.WARNING, logger="icogrid.connection.trivial"):
            system = grid.trivial_connection_system([(0, 1)])
        assert not system.is_consistent()
        assert system.residual_total == pytest.approx(-TAU, abs=1e-9)
        assert "sum to 1" in caplog.text

    def test_no_singularities_totals_minus_4pi(self, grid):
        system = grid.trivial_connection_system()
        assert system.residual_total == pytest.approx(-2 * TAU, abs=1e-9)

    def test_curvature_length_mismatch(self, grid):
        with pytest.raises(ValueError, match="columns"):
            assemble_trivial_connection(grid.d0, grid.d1, np.zeros(3))

    def test_frozen(self, grid):
        system = grid.trivial_connection_system([(0, 1), (11, 1)])
        with pytest.raises(AttributeError):
            system.rhs = np.zeros(grid.n_vertices)
