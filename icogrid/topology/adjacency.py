"""CSR adjacency relations among the cells, edges and vertices of a sphere.

Every builder consumes the raw SphereTopology and numbers edges on its own.
Numbering is the same everywhere: cells are scanned in id order, and within
a cell its local edges (v0, v1), (v1, v2), (v2, v0); the first time a
canonical pair (min, max) is seen it gets the next edge id. Cross-relation
lookups (Cell->Edge against Edge->Cell, ...) depend on that agreement.

Relation kinds are marker classes used only as the type parameter of
Adjacency, so a Cell->Edge relation is not accepted where a Vertex->Edge
one is expected.
"""
from __future__ import annotations

import logging
from typing import Dict, Generic, Iterator, List, Sequence, Tuple, TypeVar

import numpy as np

from icogrid.sphere.base import SphereTopology

logger = logging.getLogger(__name__)


class CellCell:
    """Cell -> Cell adjacency marker"""


class CellEdge:
    """Cell -> Edge adjacency marker"""


class EdgeCell:
    """Edge -> Cell adjacency marker"""


class EdgeVertex:
    """Edge -> Vertex adjacency marker"""


class VertexCell:
    """Vertex -> Cell adjacency marker"""


class VertexEdge:
    """Vertex -> Edge adjacency marker"""


K = TypeVar("K")


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


class Adjacency(Generic[K]):
    """Compressed one-to-many relation.

    Row i of the relation is indices[offsets[i]:offsets[i + 1]]. Both arrays
    are read-only once the relation is built.
    """

    __slots__ = ("_offsets", "_indices")

    def __init__(self, offsets: Sequence[int], indices: Sequence[int]):
        offsets = np.asarray(offsets, dtype=np.int64)
        indices = np.asarray(indices, dtype=np.int64)
        if offsets.ndim != 1 or len(offsets) == 0 or offsets[0] != 0:
            raise ValueError("offsets must be a 1-D sequence starting at 0")
        if np.any(np.diff(offsets) < 0):
            raise ValueError("offsets must be non-decreasing")
        if offsets[-1] != len(indices):
            raise ValueError(
                f"offsets end at {offsets[-1]} but there are {len(indices)} indices"
            )
        self._offsets = _readonly(offsets)
        self._indices = _readonly(indices)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]]) -> "Adjacency[K]":
        """Pack a list of neighbor lists into CSR form."""
        offsets = np.zeros(len(rows) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum([len(r) for r in rows])
        flat = [i for r in rows for i in r]
        return cls(offsets, flat)

    def __len__(self) -> int:
        return max(len(self._offsets) - 1, 0)

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets

    @property
    def indices(self) -> np.ndarray:
        return self._indices

    def neighbors(self, idx: int) -> np.ndarray:
        """Related ids of entity idx (a read-only view)."""
        return self._indices[self._offsets[idx]:self._offsets[idx + 1]]

    def degree(self, idx: int) -> int:
        return int(self._offsets[idx + 1] - self._offsets[idx])

    def degrees(self) -> np.ndarray:
        """Degree of every entity at once."""
        return np.diff(self._offsets)

    def rows(self) -> Iterator[np.ndarray]:
        for idx in range(len(self)):
            yield self.neighbors(idx)

    def __repr__(self) -> str:
        return f"Adjacency(len={len(self)}, nnz={len(self._indices)})"


def _local_edges(v0: int, v1: int, v2: int) -> Tuple[Tuple[int, int], ...]:
    return ((v0, v1), (v1, v2), (v2, v0))


def _cell_rows(topology: SphereTopology) -> List[List[int]]:
    return topology.triangles.tolist()


def _fixed_width(n_rows: int, width: int) -> np.ndarray:
    return np.arange(0, width * n_rows + 1, width, dtype=np.int64)


def build_cell_edge(topology: SphereTopology) -> Adjacency[CellEdge]:
    """Cell -> Edge: the three edge ids of each cell in local edge order."""
    edge_map: Dict[Tuple[int, int], int] = {}
    indices: List[int] = []

    for v0, v1, v2 in _cell_rows(topology):
        for a, b in _local_edges(v0, v1, v2):
            canonical = (a, b) if a < b else (b, a)
            edge_idx = edge_map.get(canonical)
            if edge_idx is None:
                edge_idx = len(edge_map)
                edge_map[canonical] = edge_idx
            indices.append(edge_idx)

    return Adjacency(_fixed_width(topology.n_cells, 3), indices)


def build_edge_vertex(topology: SphereTopology) -> Adjacency[EdgeVertex]:
    """Edge -> Vertex: each edge's (lower, higher) vertex pair."""
    edge_map: Dict[Tuple[int, int], int] = {}

    for v0, v1, v2 in _cell_rows(topology):
        for a, b in _local_edges(v0, v1, v2):
            canonical = (a, b) if a < b else (b, a)
            if canonical not in edge_map:
                edge_map[canonical] = len(edge_map)

    # dict preserves insertion order, which is edge id order
    indices = [v for pair in edge_map for v in pair]
    return Adjacency(_fixed_width(len(edge_map), 2), indices)


def build_edge_cell(topology: SphereTopology) -> Adjacency[EdgeCell]:
    """Edge -> Cell: [primary, secondary] cells of each edge.

    The primary cell is the one traversing the edge from its lower to its
    higher vertex.

    Raises:
        ValueError: If an edge does not border exactly two cells, one in
            each direction (the mesh is not a closed 2-manifold).
    """
    # canonical pair -> [edge id, primary cell, secondary cell, count]
    edge_map: Dict[Tuple[int, int], List[int]] = {}

    for cell_idx, (v0, v1, v2) in enumerate(_cell_rows(topology)):
        for a, b in _local_edges(v0, v1, v2):
            canonical = (a, b) if a < b else (b, a)
            entry = edge_map.get(canonical)
            if entry is None:
                entry = [len(edge_map), -1, -1, 0]
                edge_map[canonical] = entry

            slot = 1 if a < b else 2
            if entry[slot] != -1:
                raise ValueError(
                    f"Edge {canonical} traversed in the same direction by cells "
                    f"{entry[slot]} and {cell_idx}; triangles are not consistently wound"
                )
            entry[slot] = cell_idx
            entry[3] += 1

    indices = np.empty(2 * len(edge_map), dtype=np.int64)
    for canonical, (edge_idx, primary, secondary, count) in edge_map.items():
        if count != 2:
            raise ValueError(
                f"Edge {canonical} borders {count} cells; expected 2 on a closed surface"
            )
        indices[2 * edge_idx] = primary
        indices[2 * edge_idx + 1] = secondary

    return Adjacency(_fixed_width(len(edge_map), 2), indices)


def build_cell_cell(topology: SphereTopology) -> Adjacency[CellCell]:
    """Cell -> Cell: the neighbor across each local edge, in local order."""
    cell_edges = build_cell_edge(topology)
    edge_cells = build_edge_cell(topology)

    edge_pairs = edge_cells.indices.reshape(-1, 2).tolist()
    indices: List[int] = []
    for cell_idx in range(len(cell_edges)):
        for edge_idx in cell_edges.neighbors(cell_idx).tolist():
            first, second = edge_pairs[edge_idx]
            indices.append(second if first == cell_idx else first)

    return Adjacency(_fixed_width(topology.n_cells, 3), indices)


def build_vertex_cell(topology: SphereTopology) -> Adjacency[VertexCell]:
    """Vertex -> Cell via counting sort; cells appear in increasing id order."""
    n_vertices = topology.n_vertices
    cells = _cell_rows(topology)

    counts = [0] * n_vertices
    for tri in cells:
        for v in tri:
            counts[v] += 1

    offsets = [0] * (n_vertices + 1)
    running = 0
    for v, count in enumerate(counts):
        offsets[v] = running
        running += count
    offsets[n_vertices] = running

    write_pos = offsets[:n_vertices]
    indices = [0] * running
    for cell_idx, tri in enumerate(cells):
        for v in tri:
            indices[write_pos[v]] = cell_idx
            write_pos[v] += 1

    return Adjacency(offsets, indices)


def build_vertex_edge(topology: SphereTopology) -> Adjacency[VertexEdge]:
    """Vertex -> Edge in edge id order.

    Rows are not angularly ordered here; see
    icogrid.geometry.frames.sort_vertex_edges.
    """
    edge_vertex = build_edge_vertex(topology)

    rows: List[List[int]] = [[] for _ in range(topology.n_vertices)]
    for edge_idx, (v_lower, v_higher) in enumerate(
        edge_vertex.indices.reshape(-1, 2).tolist()
    ):
        rows[v_lower].append(edge_idx)
        rows[v_higher].append(edge_idx)

    return Adjacency.from_rows(rows)


def build_all_adjacencies(topology: SphereTopology) -> Dict[str, Adjacency]:
    """Build the six relations, keyed by relation name."""
    relations = {
        "cell_cell": build_cell_cell(topology),
        "cell_edge": build_cell_edge(topology),
        "edge_cell": build_edge_cell(topology),
        "edge_vertex": build_edge_vertex(topology),
        "vertex_cell": build_vertex_cell(topology),
        "vertex_edge": build_vertex_edge(topology),
    }
    sizes = {name: len(rel) for name, rel in relations.items()}
    logger.debug(f"Built adjacencies for level {topology.level}: {sizes}")
    return relations
