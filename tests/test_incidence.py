"""Tests for the exterior derivatives d0, d1 and the Hodge Laplacians.

On a triangulated sphere: d1 @ d0 = 0, every d0 row holds one -1 and one
+1, every d1 row three entries of +/-1, and the Betti numbers are
beta_0 = 1, beta_1 = 0, beta_2 = 1.
"""
import numpy as np
import pytest

from icogrid.sphere.icosphere import IcoSphereGenerator
from icogrid.topology.adjacency import build_all_adjacencies
from icogrid.topology.incidence import build_d0, build_d1, verify_chain_complex
from icogrid.topology.laplacians import build_all_laplacians


def _operators(level):
    topo = IcoSphereGenerator().build(level)
    rel = build_all_adjacencies(topo)
    d0 = build_d0(rel["edge_vertex"], topo.n_vertices)
    d1 = build_d1(rel["cell_edge"], rel["edge_vertex"], topo.triangles)
    return topo, rel, d0, d1


@pytest.fixture
def icosahedron_ops():
    return _operators(0)


class TestD0:

    def test_shape(self, icosahedron_ops):
        _, _, d0, _ = icosahedron_ops
        assert d0.shape == (30, 12)

    def test_row_sums_zero(self, icosahedron_ops):
        _, _, d0, _ = icosahedron_ops
        row_sums = np.asarray(d0.sum(axis=1)).ravel()
        np.testing.assert_array_equal(row_sums, 0)

    def test_entries_per_row(self, icosahedron_ops):
        _, _, d0, _ = icosahedron_ops
        assert np.all(np.diff(d0.indptr) == 2)

    def test_sign_convention(self, icosahedron_ops):
        _, rel, d0, _ = icosahedron_ops
        dense = d0.toarray()
        for e, (lo, hi) in enumerate(rel["edge_vertex"].indices.reshape(-1, 2).tolist()):
            assert dense[e, lo] == -1
            assert dense[e, hi] == 1

    def test_column_sums_degree_balance(self, icosahedron_ops):
        """Column v sums to (#edges where v is higher) - (#edges where v is lower)."""
        _, rel, d0, _ = icosahedron_ops
        pairs = rel["edge_vertex"].indices.reshape(-1, 2)
        expected = np.bincount(pairs[:, 1], minlength=12) - np.bincount(pairs[:, 0], minlength=12)
        np.testing.assert_array_equal(np.asarray(d0.sum(axis=0)).ravel(), expected)


class TestD1:

    def test_shape(self, icosahedron_ops):
        _, _, _, d1 = icosahedron_ops
        assert d1.shape == (20, 30)

    def test_values(self, icosahedron_ops):
        _, _, _, d1 = icosahedron_ops
        assert set(np.unique(d1.data).tolist()) <= {-1.0, 1.0}
        assert np.all(np.diff(d1.indptr) == 3)

    def test_sign_convention(self, icosahedron_ops):
        topo, rel, _, d1 = icosahedron_ops
        dense = d1.toarray()
        lower = rel["edge_vertex"].indices[0::2]
        for c, tri in enumerate(topo.triangles.tolist()):
            for k, e in enumerate(rel["cell_edge"].neighbors(c).tolist()):
                expected = -1.0 if tri[k] == lower[e] else 1.0
                assert dense[c, e] == expected

    def test_each_edge_in_two_cells_opposite_signs(self, icosahedron_ops):
        """Consistent winding: an interior edge appears once each way."""
        _, _, _, d1 = icosahedron_ops
        col_sums = np.asarray(d1.sum(axis=0)).ravel()
        col_nnz = np.diff(d1.tocsc().indptr)
        np.testing.assert_array_equal(col_nnz, 2)
        np.testing.assert_array_equal(col_sums, 0)


class TestChainComplex:

    @pytest.mark.parametrize("level", [0, 1, 3, 7])
    def test_boundary_of_boundary(self, level):
        _, _, d0, d1 = _operators(level)
        product = d1 @ d0
        max_val = abs(product).max() if product.nnz else 0.0
        assert max_val < np.finfo(np.float64).eps
        assert verify_chain_complex(d0, d1)

    def test_detects_broken_operator(self, icosahedron_ops):
        _, _, d0, d1 = icosahedron_ops
        broken = d1.copy()
        broken.data[0] *= -1
        assert not verify_chain_complex(d0, broken)


class TestLaplacians:

    @pytest.fixture(autouse=True)
    def setup(self, icosahedron_ops):
        _, _, self.d0, self.d1 = icosahedron_ops
        self.laps = build_all_laplacians(self.d0, self.d1)

    def test_shapes(self):
        assert self.laps["L0"].shape == (12, 12)
        assert self.laps["L1"].shape == (30, 30)
        assert self.laps["L2"].shape == (20, 20)

    def test_L0_is_graph_laplacian(self):
        L0 = self.laps["L0"].toarray()
        np.testing.assert_array_equal(np.diag(L0), 5)
        np.testing.assert_allclose(L0.sum(axis=1), 0, atol=1e-14)

    def test_symmetric(self):
        for name, L in self.laps.items():
            Ld = L.toarray()
            np.testing.assert_allclose(Ld, Ld.T, atol=1e-14, err_msg=f"{name} not symmetric")

    def test_psd(self):
        for name, L in self.laps.items():
            evals = np.linalg.eigvalsh(L.toarray())
            assert np.all(evals > -1e-10), f"{name} has negative eigenvalue: {evals.min()}"

    def test_betti_numbers(self):
        """Sphere: one zero mode of L0 and L2, none of L1."""
        tol = 1e-10
        zeros = {
            name: int(np.sum(np.abs(np.linalg.eigvalsh(self.laps[name].toarray())) < tol))
            for name in ("L0", "L1", "L2")
        }
        assert zeros == {"L0": 1, "L1": 0, "L2": 1}
