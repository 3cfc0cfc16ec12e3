"""Discrete Gaussian curvature as angle deficit.

For vertex i with angularly sorted edges e_0 ... e_{k-1}, let d_j be the
direction from i to the far end of e_j. Then

    K_i = 2 pi - sum_j angle(d_j, d_{(j + 1) mod k})

A flat vertex with six equilateral neighbors has K = 0; on an icosphere
the 12 degree-5 vertices carry most of the curvature. On a closed genus-0
surface the total is 4 pi (Gauss-Bonnet).
"""
from __future__ import annotations

import math

import numpy as np

from icogrid.topology.adjacency import Adjacency, EdgeVertex, VertexEdge

TAU = 2.0 * math.pi


def _angle_between(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Unsigned angle between row vectors, stable near 0 and pi."""
    cross = np.linalg.norm(np.cross(a, b), axis=-1)
    dot = np.sum(a * b, axis=-1)
    return np.arctan2(cross, dot)


def gaussian_curvature(
    points: np.ndarray,
    vertex_edge: Adjacency[VertexEdge],
    edge_vertex: Adjacency[EdgeVertex],
) -> np.ndarray:
    """Angle-deficit curvature at every vertex.

    vertex_edge must be angularly sorted (see icogrid.geometry.frames);
    with insertion order the consecutive angles do not tile the fan.
    """
    n_vertices = len(vertex_edge)
    degrees = vertex_edge.degrees()
    starts = vertex_edge.offsets[:-1]

    owners = np.repeat(np.arange(n_vertices), degrees)
    pairs = edge_vertex.indices.reshape(-1, 2)[vertex_edge.indices]
    others = np.where(pairs[:, 0] == owners, pairs[:, 1], pairs[:, 0])
    directions = points[others] - points[owners]

    # Successor of each entry within its row, wrapping to the row start
    successor = np.arange(len(owners)) + 1
    row_ends = vertex_edge.offsets[1:] - 1
    successor[row_ends[degrees > 0]] = starts[degrees > 0]

    angles = _angle_between(directions, directions[successor])
    angle_sum = np.bincount(owners, weights=angles, minlength=n_vertices)
    return TAU - angle_sum


def total_curvature(curvature: np.ndarray) -> float:
    return float(np.sum(curvature))


def gauss_bonnet_error(curvature: np.ndarray, euler_characteristic: int = 2) -> float:
    """|sum K - 2 pi chi|; 4 pi is the target for a sphere."""
    return abs(total_curvature(curvature) - TAU * euler_characteristic)
