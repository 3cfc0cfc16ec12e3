"""Immutable, shareable snapshot of a subdivided sphere grid.

MeshGrid is a thin handle around one fully built record. Handles are cheap
to duplicate (clone, copy.copy and copy.deepcopy all share the record), and
every array behind them is read-only, so a rendering loop and a simulation
loop can hold the same grid without coordination.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx
import numpy as np
from scipy import sparse

from icogrid.config import GridConfig
from icogrid.connection.trivial import TrivialConnectionSystem, assemble_trivial_connection
from icogrid.geometry.curvature import gauss_bonnet_error, gaussian_curvature, total_curvature
from icogrid.geometry.frames import vertex_frames
from icogrid.sphere.base import SphereSource, SphereTopology
from icogrid.sphere.icosphere import IcoSphereGenerator
from icogrid.topology.adjacency import (
    Adjacency,
    CellCell,
    CellEdge,
    EdgeCell,
    EdgeVertex,
    VertexCell,
    VertexEdge,
    build_all_adjacencies,
)
from icogrid.topology.incidence import build_d0, build_d1, verify_chain_complex
from icogrid.topology.laplacians import build_all_laplacians

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellData:
    """One triangular cell: centroid (scaled to the radius) and vertex ids."""
    center: np.ndarray
    vertices: Tuple[int, int, int]


@dataclass(frozen=True)
class RenderMesh:
    """Triangle-list geometry for a renderer."""
    positions: np.ndarray  # (n_vertices, 3) float32, scaled to the radius
    normals: np.ndarray    # (n_vertices, 3) float32, unit, outward
    indices: np.ndarray    # (3 * n_cells,) uint32


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def _freeze_sparse(mat: sparse.csr_matrix) -> sparse.csr_matrix:
    for buf in (mat.data, mat.indices, mat.indptr):
        buf.flags.writeable = False
    return mat


@dataclass(frozen=True, eq=False)
class _MeshGridInner:
    config: GridConfig
    topology: SphereTopology
    cell_cell: Adjacency[CellCell]
    cell_edge: Adjacency[CellEdge]
    edge_cell: Adjacency[EdgeCell]
    edge_vertex: Adjacency[EdgeVertex]
    vertex_cell: Adjacency[VertexCell]
    vertex_edge: Adjacency[VertexEdge]
    vertex_angle_offsets: np.ndarray
    cell_centers: np.ndarray
    curvature: np.ndarray
    d0: sparse.csr_matrix
    d1: sparse.csr_matrix
    build_seconds: float


def _build_inner(
    level: int,
    config: GridConfig,
    source: SphereSource,
) -> _MeshGridInner:
    t0 = time.time()
    topology = source.build(level)
    _freeze(topology.points)
    _freeze(topology.triangles)
    points = topology.points

    relations = build_all_adjacencies(topology)
    vertex_edge, angle_offsets = vertex_frames(
        points, relations["vertex_edge"], relations["edge_vertex"], config,
    )

    closed_fan = vertex_edge.degrees() == relations["vertex_cell"].degrees()
    if not np.all(closed_fan):
        bad = int(np.flatnonzero(~closed_fan)[0])
        raise ValueError(
            f"Vertex {bad} has {vertex_edge.degree(bad)} edges but "
            f"{relations['vertex_cell'].degree(bad)} cells; fan is not closed"
        )

    curvature = gaussian_curvature(points, vertex_edge, relations["edge_vertex"])

    tri = topology.triangles
    cell_centers = config.radius * (points[tri[:, 0]] + points[tri[:, 1]] + points[tri[:, 2]]) / 3.0

    d0 = build_d0(relations["edge_vertex"], topology.n_vertices)
    d1 = build_d1(relations["cell_edge"], relations["edge_vertex"], tri)

    elapsed = time.time() - t0
    logger.info(
        f"Built {source.name} level {level}: V={topology.n_vertices}, "
        f"E={len(relations['edge_vertex'])}, F={topology.n_cells} in {elapsed:.2f}s"
    )

    return _MeshGridInner(
        config=config,
        topology=topology,
        cell_cell=relations["cell_cell"],
        cell_edge=relations["cell_edge"],
        edge_cell=relations["edge_cell"],
        edge_vertex=relations["edge_vertex"],
        vertex_cell=relations["vertex_cell"],
        vertex_edge=vertex_edge,
        vertex_angle_offsets=_freeze(angle_offsets),
        cell_centers=_freeze(cell_centers),
        curvature=_freeze(curvature),
        d0=_freeze_sparse(d0),
        d1=_freeze_sparse(d1),
        build_seconds=elapsed,
    )


class MeshGrid:
    """Shareable handle to one immutable sphere grid."""

    __slots__ = ("_inner",)

    def __init__(self, inner: _MeshGridInner):
        self._inner = inner

    @classmethod
    def build(
        cls,
        level: int,
        config: Optional[GridConfig] = None,
        source: Optional[SphereSource] = None,
    ) -> "MeshGrid":
        """Construct every relation, frame and operator for one level.

        Args:
            level: Non-negative subdivision level.
            config: Construction settings (default GridConfig()).
            source: Sphere triangulation scheme (default IcoSphereGenerator).

        Raises:
            ValueError: If the level is negative or the triangulation is not
                a closed 2-manifold.
        """
        return cls(_build_inner(level, config or GridConfig(), source or IcoSphereGenerator()))

    # --- sharing ---

    def clone(self) -> "MeshGrid":
        """New handle onto the same data; no arrays are copied."""
        return MeshGrid(self._inner)

    def __copy__(self) -> "MeshGrid":
        return self.clone()

    def __deepcopy__(self, memo) -> "MeshGrid":
        return self.clone()

    def shares_data_with(self, other: "MeshGrid") -> bool:
        return self._inner is other._inner

    def __eq__(self, other) -> bool:
        return isinstance(other, MeshGrid) and self._inner is other._inner

    def __hash__(self) -> int:
        return id(self._inner)

    def __repr__(self) -> str:
        return (
            f"MeshGrid(level={self.level}, V={self.n_vertices}, "
            f"E={self.n_edges}, F={self.n_cells})"
        )

    # --- sizes ---

    @property
    def config(self) -> GridConfig:
        return self._inner.config

    @property
    def level(self) -> int:
        return self._inner.topology.level

    @property
    def n_vertices(self) -> int:
        return self._inner.topology.n_vertices

    @property
    def n_edges(self) -> int:
        return len(self._inner.edge_vertex)

    @property
    def n_cells(self) -> int:
        return self._inner.topology.n_cells

    @property
    def euler_characteristic(self) -> int:
        return self.n_vertices - self.n_edges + self.n_cells

    # --- relations ---

    def cell_adjacency(self) -> Adjacency[CellCell]:
        return self._inner.cell_cell

    def cell_edge_adjacency(self) -> Adjacency[CellEdge]:
        return self._inner.cell_edge

    def edge_cell_adjacency(self) -> Adjacency[EdgeCell]:
        return self._inner.edge_cell

    def edge_vertex_adjacency(self) -> Adjacency[EdgeVertex]:
        return self._inner.edge_vertex

    def vertex_cell_adjacency(self) -> Adjacency[VertexCell]:
        return self._inner.vertex_cell

    def vertex_edge_adjacency(self) -> Adjacency[VertexEdge]:
        """Vertex -> Edge, each row in angular order around the vertex."""
        return self._inner.vertex_edge

    # --- geometry ---

    @property
    def topology(self) -> SphereTopology:
        return self._inner.topology

    @property
    def points(self) -> np.ndarray:
        """(V, 3) unit vertex positions."""
        return self._inner.topology.points

    @property
    def cell_vertices(self) -> np.ndarray:
        return self._inner.topology.triangles

    @property
    def cell_centers(self) -> np.ndarray:
        return self._inner.cell_centers

    def cell(self, idx: int) -> CellData:
        v0, v1, v2 = self._inner.topology.triangles[idx].tolist()
        return CellData(center=self._inner.cell_centers[idx], vertices=(v0, v1, v2))

    def cells(self) -> List[CellData]:
        return [self.cell(i) for i in range(self.n_cells)]

    @property
    def vertex_angle_offsets(self) -> np.ndarray:
        return self._inner.vertex_angle_offsets

    @property
    def curvature(self) -> np.ndarray:
        """Angle-deficit Gaussian curvature per vertex."""
        return self._inner.curvature

    def mesh(self) -> RenderMesh:
        """Positions scaled to the radius, outward normals, flat uint32 indices."""
        points = self._inner.topology.points
        normals = points / np.linalg.norm(points, axis=1, keepdims=True)
        return RenderMesh(
            positions=(self.config.radius * points).astype(np.float32),
            normals=normals.astype(np.float32),
            indices=self._inner.topology.triangles.reshape(-1).astype(np.uint32),
        )

    # --- operators ---

    @property
    def d0(self) -> sparse.csr_matrix:
        """(E x V) exterior derivative on 0-cochains."""
        return self._inner.d0

    @property
    def d1(self) -> sparse.csr_matrix:
        """(F x E) exterior derivative on 1-cochains."""
        return self._inner.d1

    def laplacians(self) -> Dict[str, sparse.csr_matrix]:
        return build_all_laplacians(self._inner.d0, self._inner.d1)

    def trivial_connection_system(
        self,
        singularities: Iterable[Tuple[int, int]] = (),
    ) -> TrivialConnectionSystem:
        """Assemble (but do not solve) the trivial-connection system."""
        return assemble_trivial_connection(
            self._inner.d0, self._inner.d1, self._inner.curvature, singularities,
        )

    # --- derived views ---

    def to_networkx(self) -> nx.Graph:
        """Vertex/edge graph with 'pos' and 'curvature' node attributes."""
        G = nx.Graph()
        for i, (p, k) in enumerate(zip(self.points.tolist(), self.curvature.tolist())):
            G.add_node(i, pos=tuple(p), curvature=k)
        pairs = self._inner.edge_vertex.indices.reshape(-1, 2).tolist()
        for e_idx, (u, v) in enumerate(pairs):
            G.add_edge(u, v, edge=e_idx)
        return G

    def summary(self) -> Dict:
        """Counts and invariant checks for logging or serialization."""
        degrees = self._inner.vertex_edge.degrees()
        unique, counts = np.unique(degrees, return_counts=True)
        return {
            "level": self.level,
            "n_vertices": self.n_vertices,
            "n_edges": self.n_edges,
            "n_cells": self.n_cells,
            "euler_characteristic": self.euler_characteristic,
            "degree_distribution": {int(u): int(c) for u, c in zip(unique, counts)},
            "total_curvature": total_curvature(self.curvature),
            "gauss_bonnet_error": gauss_bonnet_error(self.curvature, self.euler_characteristic),
            "chain_complex_valid": verify_chain_complex(
                self._inner.d0, self._inner.d1, self.config.zero_tol,
            ),
            "radius": self.config.radius,
            "build_seconds": self._inner.build_seconds,
        }


def build(level: int, config: Optional[GridConfig] = None) -> MeshGrid:
    """Build the icosphere grid for a subdivision level."""
    return MeshGrid.build(level, config)
