"""Tests for vertex tangent frames, angular edge order and angle offsets."""
import numpy as np
import pytest

from icogrid.config import GridConfig
from icogrid.geometry.frames import (
    compute_angle_offsets,
    is_pole,
    local_edge_angles,
    sort_vertex_edges,
    tangent_basis,
    transported_basis,
    vertex_frames,
)
from icogrid.sphere.icosphere import IcoSphereGenerator
from icogrid.topology.adjacency import Adjacency, build_all_adjacencies

UP = np.array([0.0, 1.0, 0.0])


@pytest.fixture(params=[0, 1, 3])
def sphere(request):
    topo = IcoSphereGenerator().build(request.param)
    rel = build_all_adjacencies(topo)
    sorted_ve, offsets = vertex_frames(topo.points, rel["vertex_edge"], rel["edge_vertex"])
    return topo, rel, sorted_ve, offsets


def _fan_neighbors(vertex, row, edge_vertex):
    pairs = edge_vertex.indices.reshape(-1, 2)
    return [int(b) if a == vertex else int(a) for a, b in pairs[row]]


class TestBasis:

    def test_tangent_basis_orthonormal(self):
        normal = np.array([1.0, 2.0, -0.5])
        normal /= np.linalg.norm(normal)
        west, north = tangent_basis(normal, UP)
        assert abs(np.dot(west, north)) < 1e-14
        assert abs(np.dot(west, normal)) < 1e-14
        assert abs(np.dot(north, normal)) < 1e-14
        np.testing.assert_allclose([np.linalg.norm(west), np.linalg.norm(north)], 1.0)

    def test_north_points_up(self):
        west, north = tangent_basis(np.array([1.0, 0.0, 0.0]), UP)
        assert north[1] > 0.99

    def test_is_pole(self):
        normals = np.array([[0.0, 1.0, 0.0], [0.0, -1.0, 0.0], [1.0, 0.0, 0.0]])
        np.testing.assert_array_equal(is_pole(normals, UP, 1e-6), [True, True, False])

    def test_transported_basis_at_pole(self):
        pole = np.array([0.0, 1.0, 0.0])
        neighbor = np.array([0.5, 0.8, 0.1])
        neighbor /= np.linalg.norm(neighbor)
        west, north = transported_basis(pole, neighbor, UP)
        assert abs(np.dot(west, pole)) < 1e-14
        assert abs(np.dot(north, pole)) < 1e-14
        assert abs(np.dot(west, north)) < 1e-12
        np.testing.assert_allclose([np.linalg.norm(west), np.linalg.norm(north)], 1.0)


class TestAngularOrder:

    def test_two_poles(self, sphere):
        topo, _, _, _ = sphere
        poles = is_pole(topo.points, UP, GridConfig().pole_tolerance)
        assert np.flatnonzero(poles).tolist() == [0, 11]

    def test_same_edges_as_insertion_order(self, sphere):
        _, rel, sorted_ve, _ = sphere
        np.testing.assert_array_equal(sorted_ve.offsets, rel["vertex_edge"].offsets)
        for v in range(len(sorted_ve)):
            assert sorted(sorted_ve.neighbors(v).tolist()) == rel["vertex_edge"].neighbors(v).tolist()

    def test_angles_non_decreasing(self, sphere):
        topo, rel, sorted_ve, _ = sphere
        for v in range(topo.n_vertices):
            angles = local_edge_angles(topo.points, v, sorted_ve, rel["edge_vertex"])
            assert np.all(np.diff(angles) >= -1e-12), f"vertex {v}: {angles}"

    def test_consecutive_edges_bound_a_cell(self, sphere):
        """Neighboring edges in the cyclic order span one of the vertex's cells."""
        topo, rel, sorted_ve, _ = sphere
        cells = {frozenset(t) for t in topo.triangles.tolist()}
        for v in range(topo.n_vertices):
            ring = _fan_neighbors(v, sorted_ve.neighbors(v), rel["edge_vertex"])
            for j in range(len(ring)):
                assert frozenset((v, ring[j], ring[(j + 1) % len(ring)])) in cells

    def test_closed_fan(self, sphere):
        _, rel, sorted_ve, _ = sphere
        np.testing.assert_array_equal(sorted_ve.degrees(), rel["vertex_cell"].degrees())

    def test_isolated_vertex_rejected(self):
        points = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.0, -1.0]])
        edge_vertex = Adjacency.from_rows([[0, 1]])
        vertex_edge = Adjacency.from_rows([[0], [0], []])
        with pytest.raises(ValueError, match="no incident edges"):
            sort_vertex_edges(points, vertex_edge, edge_vertex)


class TestAngleOffsets:

    def test_finite_and_bounded(self, sphere):
        _, _, _, offsets = sphere
        assert np.all(np.isfinite(offsets))
        assert np.all(np.abs(offsets) <= np.pi)

    def test_matches_first_edge_angle(self, sphere):
        topo, rel, sorted_ve, offsets = sphere
        poles = is_pole(topo.points, UP, GridConfig().pole_tolerance)
        for v in np.flatnonzero(~poles):
            angles = local_edge_angles(topo.points, v, sorted_ve, rel["edge_vertex"])
            assert offsets[v] == pytest.approx(angles[0], abs=1e-12)

    def test_pole_offset_uses_first_edge_neighbor(self, sphere):
        topo, rel, sorted_ve, offsets = sphere
        pole = 0
        first_edge = sorted_ve.neighbors(pole)[0]
        neighbor = _fan_neighbors(pole, [first_edge], rel["edge_vertex"])[0]
        normal = topo.points[pole]
        west, north = transported_basis(normal, topo.points[neighbor], UP)
        d = topo.points[neighbor] - topo.points[pole]
        d = d / np.linalg.norm(d)
        d = d - normal * np.dot(d, normal)
        expected = np.arctan2(np.dot(d, north), np.dot(d, west))
        assert offsets[pole] == pytest.approx(expected, abs=1e-12)

    def test_recompute_is_deterministic(self, sphere):
        topo, rel, sorted_ve, offsets = sphere
        again = compute_angle_offsets(topo.points, sorted_ve, rel["edge_vertex"])
        np.testing.assert_array_equal(again, offsets)

    def test_pole_tolerance_from_config(self):
        """With every vertex flagged as a pole there is no frame to borrow."""
        topo = IcoSphereGenerator().build(0)
        rel = build_all_adjacencies(topo)
        with pytest.raises(ValueError, match="only pole neighbors"):
            vertex_frames(topo.points, rel["vertex_edge"], rel["edge_vertex"],
                          GridConfig(pole_tolerance=2.0))
