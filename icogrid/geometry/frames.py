"""Per-vertex tangent frames, angular edge ordering and angle offsets.

At a general vertex with outward normal n the tangent basis is

    west = normalize(n x up),   north = normalize(west x n)

and an incident edge is placed at atan2(d . north, d . west), where d is the
direction to the other endpoint projected onto the tangent plane.

At a pole (|n x up| below the pole tolerance) west is undefined. The pole
borrows the basis of a neighboring vertex instead, projected onto the pole's
tangent plane and re-normalized. Both the angular sort and the angle offsets
are computed for general vertices first and patched for poles afterwards.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from icogrid.config import GridConfig
from icogrid.topology.adjacency import Adjacency, EdgeVertex, VertexEdge

logger = logging.getLogger(__name__)


def _normalize(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v, axis=-1, keepdims=True)


def _project_to_plane(v: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of v along the unit vector normal."""
    return v - normal * np.sum(v * normal, axis=-1, keepdims=True)


def is_pole(normal: np.ndarray, up: np.ndarray, tolerance: float) -> np.ndarray:
    """True where the normal is (numerically) parallel to the up axis."""
    return np.linalg.norm(np.cross(normal, up), axis=-1) < tolerance


def tangent_basis(normal: np.ndarray, up: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """(west, north) tangent vectors for one or many non-pole normals."""
    west = _normalize(np.cross(normal, up))
    north = _normalize(np.cross(west, normal))
    return west, north


def transported_basis(
    pole_normal: np.ndarray,
    neighbor_normal: np.ndarray,
    up: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Neighbor's (west, north) carried onto the pole's tangent plane."""
    west, north = tangent_basis(neighbor_normal, up)
    west_at_pole = _normalize(_project_to_plane(west, pole_normal))
    north_at_pole = _normalize(_project_to_plane(north, pole_normal))
    return west_at_pole, north_at_pole


def _other_endpoints(
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
) -> Tuple[np.ndarray, np.ndarray]:
    """Owning vertex and opposite vertex for every Vertex->Edge entry."""
    owners = np.repeat(np.arange(len(vertex_edge)), vertex_edge.degrees())
    pairs = edge_vertex.indices.reshape(-1, 2)[vertex_edge.indices]
    others = np.where(pairs[:, 0] == owners, pairs[:, 1], pairs[:, 0])
    return owners, others


def _edge_angles(
    points: np.ndarray,
    owners: np.ndarray,
    others: np.ndarray,
    west: np.ndarray,
    north: np.ndarray,
) -> np.ndarray:
    normals = _normalize(points[owners])
    direction = _normalize(points[others] - points[owners])
    tangent = _project_to_plane(direction, normals)
    return np.arctan2(
        np.sum(tangent * north, axis=-1),
        np.sum(tangent * west, axis=-1),
    )


def _check_no_isolated(vertex_edge: Adjacency[VertexEdge]) -> None:
    isolated = np.flatnonzero(vertex_edge.degrees() == 0)
    if len(isolated):
        raise ValueError(
            f"{len(isolated)} vertices have no incident edges (first: {isolated[0]})"
        )


def _vertex_bases(
    points: np.ndarray,
    neighbor_of: np.ndarray,
    config: GridConfig,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Tangent basis of every vertex.

    Args:
        neighbor_of: For each vertex, the neighbor whose basis a pole borrows.

    Returns:
        (west, north, pole_mask), each basis array of shape (n_vertices, 3).
    """
    up = np.asarray(config.up, dtype=np.float64)
    normals = _normalize(points)
    poles = is_pole(normals, up, config.pole_tolerance)

    west = np.zeros_like(normals)
    north = np.zeros_like(normals)
    west[~poles], north[~poles] = tangent_basis(normals[~poles], up)

    pole_ids = np.flatnonzero(poles)
    if len(pole_ids):
        neighbors = neighbor_of[pole_ids]
        if np.any(poles[neighbors]):
            raise ValueError("A pole vertex has only pole neighbors to borrow a frame from")
        west[pole_ids], north[pole_ids] = transported_basis(
            normals[pole_ids], normals[neighbors], up,
        )
        logger.debug(f"Patched tangent frames at pole vertices {pole_ids.tolist()}")

    return west, north, poles


def sort_vertex_edges(
    points: np.ndarray,
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
    config: GridConfig = GridConfig(),
) -> Adjacency[VertexEdge]:
    """Reorder each vertex's edges by ascending tangent-plane angle.

    A pole borrows the frame of the neighbor across its lowest-id edge,
    i.e. the first entry of its unsorted row.

    Raises:
        ValueError: If some vertex has no incident edges.
    """
    _check_no_isolated(vertex_edge)
    owners, others = _other_endpoints(vertex_edge, edge_vertex)
    first_neighbor = others[vertex_edge.offsets[:-1]]

    west, north, _ = _vertex_bases(points, first_neighbor, config)
    angles = _edge_angles(points, owners, others, west[owners], north[owners])

    # Rows stay contiguous because the primary sort key is the owner
    order = np.lexsort((angles, owners))
    return Adjacency(vertex_edge.offsets.copy(), vertex_edge.indices[order])


def compute_angle_offsets(
    points: np.ndarray,
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
    config: GridConfig = GridConfig(),
) -> np.ndarray:
    """Angle of each vertex's first (angularly sorted) edge in its frame.

    vertex_edge must already be sorted by sort_vertex_edges. A pole uses the
    frame transported from the neighbor across its first sorted edge.
    """
    _check_no_isolated(vertex_edge)
    owners, others = _other_endpoints(vertex_edge, edge_vertex)

    first = vertex_edge.offsets[:-1]
    vertex_ids = owners[first]
    first_neighbor = others[first]

    west, north, poles = _vertex_bases(points, first_neighbor, config)
    offsets = _edge_angles(points, vertex_ids, first_neighbor, west, north)
    logger.debug(
        f"Computed angle offsets for {len(offsets)} vertices ({int(poles.sum())} poles)"
    )
    return offsets


def vertex_frames(
    points: np.ndarray,
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
    config: GridConfig = GridConfig(),
) -> Tuple[Adjacency[VertexEdge], np.ndarray]:
    """Sort Vertex->Edge angularly and compute the angle offsets."""
    sorted_edges = sort_vertex_edges(points, vertex_edge, edge_vertex, config)
    offsets = compute_angle_offsets(points, sorted_edges, edge_vertex, config)
    return sorted_edges, offsets


def local_edge_angles(
    points: np.ndarray,
    vertex_idx: int,
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
    config: GridConfig = GridConfig(),
) -> np.ndarray:
    """Tangent-plane angle of each edge around one vertex, in row order.

    Uses the same frame the sort used, so for a sorted relation the result
    is non-decreasing.
    """
    edges: List[int] = vertex_edge.neighbors(vertex_idx).tolist()
    pairs = edge_vertex.indices.reshape(-1, 2)
    others = np.array([
        p[1] if p[0] == vertex_idx else p[0] for p in pairs[edges]
    ])
    up = np.asarray(config.up, dtype=np.float64)
    normal = _normalize(points[vertex_idx])

    if is_pole(normal, up, config.pole_tolerance):
        # Same neighbor choice as sort_vertex_edges: lowest edge id
        lowest = int(np.argmin(edges))
        west, north = transported_basis(normal, _normalize(points[others[lowest]]), up)
    else:
        west, north = tangent_basis(normal, up)

    owners = np.full(len(edges), vertex_idx)
    return _edge_angles(points, owners, others, west, north)
