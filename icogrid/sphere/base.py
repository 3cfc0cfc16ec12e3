"""Base classes for triangulated sphere sources.

SphereTopology is the raw input consumed by every relation builder: unit
vertex positions plus a flat list of consistently wound triangles.
SphereSource is the seam a concrete subdivision scheme plugs into.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import List

import numpy as np


@dataclass
class SphereTopology:
    """Output of sphere subdivision.

    Attributes:
        name: Source scheme name (e.g. 'icosphere').
        level: Subdivision level the topology was built for.
        points: (n_vertices, 3) unit-length vertex positions.
        triangles: (n_cells, 3) vertex ids, wound counterclockwise when
            viewed from outside the sphere.
    """
    name: str
    level: int
    points: np.ndarray
    triangles: np.ndarray

    @property
    def n_vertices(self) -> int:
        return int(self.points.shape[0])

    @property
    def n_cells(self) -> int:
        return int(self.triangles.shape[0])

    def flat_indices(self) -> List[int]:
        """Triangle vertex ids as one flat list of length 3 * n_cells."""
        return self.triangles.reshape(-1).tolist()


class SphereSource(abc.ABC):
    """Base class for sphere triangulation schemes."""

    name: str = "base"

    @abc.abstractmethod
    def build(self, level: int) -> SphereTopology:
        """Subdivide and return the topology for one level."""
        ...
