"""Construct the exterior derivatives d0 and d1 of the sphere's chain complex."""
from __future__ import annotations

import numpy as np
from scipy import sparse

from icogrid.topology.adjacency import Adjacency, CellEdge, EdgeVertex


def build_d0(
    edge_vertex: Adjacency[EdgeVertex],
    n_vertices: int,
) -> sparse.csr_matrix:
    """Build the edge-vertex incidence matrix d0.

    d0 is (n_edges x n_vertices) with:
      d0[e, lower] = -1
      d0[e, higher] = +1

    Convention: edge (u, v) with u < v has tail=u, head=v.
    """
    n_edges = len(edge_vertex)
    pairs = edge_vertex.indices.reshape(n_edges, 2)

    rows = np.repeat(np.arange(n_edges), 2)
    cols = pairs.reshape(-1)
    data = np.tile([-1.0, 1.0], n_edges)

    d0 = sparse.csr_matrix(
        (data, (rows, cols)),
        shape=(n_edges, n_vertices),
        dtype=np.float64,
    )
    return d0


def build_d1(
    cell_edge: Adjacency[CellEdge],
    edge_vertex: Adjacency[EdgeVertex],
    triangles: np.ndarray,
) -> sparse.csr_matrix:
    """Build the cell-edge incidence matrix d1.

    d1 is (n_cells x n_edges). Local edge k of a cell starts at its k-th
    vertex in winding order:
      d1[c, e] = -1 if that start vertex is the canonical lower vertex of e
      d1[c, e] = +1 otherwise
    """
    n_cells = len(cell_edge)
    n_edges = len(edge_vertex)

    edge_ids = cell_edge.indices.reshape(n_cells, 3)
    start_verts = np.asarray(triangles).reshape(n_cells, 3)
    lower_verts = edge_vertex.indices[0::2][edge_ids]

    rows = np.repeat(np.arange(n_cells), 3)
    cols = edge_ids.reshape(-1)
    data = np.where(start_verts == lower_verts, -1.0, 1.0).reshape(-1)

    d1 = sparse.csr_matrix(
        (data, (rows, cols)),
        shape=(n_cells, n_edges),
        dtype=np.float64,
    )
    return d1


def verify_chain_complex(
    d0: sparse.spmatrix,
    d1: sparse.spmatrix,
    tol: float = 1e-12,
) -> bool:
    """Verify that d1 @ d0 = 0 (boundary of boundary is zero).

    Returns True if max |d1 @ d0| < tol.
    """
    if d1.shape[0] == 0:
        return True
    product = d1 @ d0
    if product.nnz == 0:
        return True
    max_val = abs(product).max()
    return float(max_val) < tol
