"""Icosahedral sphere triangulation.

The base icosahedron has one vertex on each end of the +/-Y axis, so the
two poles of the frame construction always exist. Each base face is split
into (level + 1)^2 triangles; with s = level + 1 segments per edge:

    n_vertices = 10 s^2 + 2,  n_edges = 30 s^2,  n_cells = 20 s^2

Level 0 is the bare icosahedron (12, 30, 20).
"""
from __future__ import annotations

import math
from typing import Dict, List, Tuple

import numpy as np

from icogrid.sphere.base import SphereSource, SphereTopology


def _icosahedron() -> Tuple[np.ndarray, np.ndarray]:
    """Unit icosahedron with poles on the Y axis and outward-wound faces."""
    ring_y = 1.0 / math.sqrt(5.0)
    ring_r = 2.0 / math.sqrt(5.0)

    verts = [(0.0, 1.0, 0.0)]
    for k in range(5):
        theta = 2.0 * math.pi * k / 5.0
        verts.append((ring_r * math.cos(theta), ring_y, ring_r * math.sin(theta)))
    for k in range(5):
        theta = 2.0 * math.pi * (k + 0.5) / 5.0
        verts.append((ring_r * math.cos(theta), -ring_y, ring_r * math.sin(theta)))
    verts.append((0.0, -1.0, 0.0))

    faces = []
    for k in range(5):
        k1 = (k + 1) % 5
        faces.append((0, 1 + k, 1 + k1))             # top cap
        faces.append((1 + k, 6 + k, 1 + k1))         # upper band
        faces.append((6 + k, 6 + k1, 1 + k1))        # lower band
        faces.append((11, 6 + k1, 6 + k))            # bottom cap

    points = np.array(verts, dtype=np.float64)

    # Flip any face whose normal points inward
    oriented = []
    for a, b, c in faces:
        normal = np.cross(points[b] - points[a], points[c] - points[a])
        if np.dot(normal, points[a] + points[b] + points[c]) < 0:
            b, c = c, b
        oriented.append((a, b, c))

    return points, np.array(oriented, dtype=np.int64)


class IcoSphereGenerator(SphereSource):
    """Subdivided icosahedron projected onto the unit sphere."""

    name = "icosphere"

    def build(self, level: int) -> SphereTopology:
        """Subdivide every icosahedron face into (level + 1)^2 triangles.

        Args:
            level: Number of extra points inserted along each base edge.

        Returns:
            SphereTopology with unit points and outward-wound triangles.

        Raises:
            ValueError: If level is negative.
        """
        if level < 0:
            raise ValueError(f"Subdivision level must be >= 0, got {level}")

        base_points, base_faces = _icosahedron()
        s = level + 1
        verts: List[np.ndarray] = [p for p in base_points]

        # --- Points on base edges, shared between the two faces ---
        edge_cache: Dict[Tuple[int, int, int], int] = {}

        def edge_point(u: int, w: int, k: int) -> int:
            """Vertex id at step k of s along base edge u -> w."""
            if k == 0:
                return u
            if k == s:
                return w
            key = (u, w, k) if u < w else (w, u, s - k)
            idx = edge_cache.get(key)
            if idx is None:
                lo, hi, step = key
                p = base_points[lo] + (base_points[hi] - base_points[lo]) * (step / s)
                idx = len(verts)
                verts.append(p / np.linalg.norm(p))
                edge_cache[key] = idx
            return idx

        triangles: List[Tuple[int, int, int]] = []
        for a, b, c in base_faces.tolist():
            pa, pb, pc = base_points[a], base_points[b], base_points[c]

            # grid[i][j] is the point a + (b - a) i/s + (c - a) j/s
            grid: List[List[int]] = []
            for i in range(s + 1):
                row = []
                for j in range(s + 1 - i):
                    if j == 0:
                        idx = edge_point(a, b, i)
                    elif i == 0:
                        idx = edge_point(a, c, j)
                    elif i + j == s:
                        idx = edge_point(b, c, j)
                    else:
                        p = pa + (pb - pa) * (i / s) + (pc - pa) * (j / s)
                        idx = len(verts)
                        verts.append(p / np.linalg.norm(p))
                    row.append(idx)
                grid.append(row)

            # Both triangle kinds keep the winding of (a, b, c)
            for i in range(s):
                for j in range(s - i):
                    triangles.append((grid[i][j], grid[i + 1][j], grid[i][j + 1]))
                    if j < s - i - 1:
                        triangles.append(
                            (grid[i + 1][j], grid[i + 1][j + 1], grid[i][j + 1])
                        )

        return SphereTopology(
            name=self.name,
            level=level,
            points=np.array(verts, dtype=np.float64),
            triangles=np.array(triangles, dtype=np.int64),
        )
