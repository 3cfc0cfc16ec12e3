"""Right-hand side of the trivial-connection problem.

A trivial connection is a discrete transport that is flat everywhere except
at prescribed singular vertices. Its Poisson-type system asks for edge
rotation angles whose vertex sums cancel the Gaussian curvature except for
2 pi times the singularity index:

    rhs_i = -K_i + 2 pi k_i

Only the formulation is provided here. No solver is attached to
TrivialConnectionSystem; choosing one (and its treatment of the d0 / d1
constraints) is left open.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Tuple

import numpy as np
from scipy import sparse

logger = logging.getLogger(__name__)

TAU = 2.0 * math.pi


class Singularity(NamedTuple):
    """A prescribed singular vertex and its integer index."""
    vertex: int
    index: int


def _normalize_singularities(
    singularities: Iterable[Tuple[int, int]],
    n_vertices: int,
) -> Tuple[Singularity, ...]:
    result = []
    seen = set()
    for vertex, index in singularities:
        vertex, index = int(vertex), int(index)
        if not 0 <= vertex < n_vertices:
            raise ValueError(
                f"Singular vertex {vertex} out of range for {n_vertices} vertices"
            )
        if vertex in seen:
            raise ValueError(f"Singular vertex {vertex} listed more than once")
        seen.add(vertex)
        result.append(Singularity(vertex, index))
    return tuple(result)


def assemble_rhs(
    curvature: np.ndarray,
    singularities: Iterable[Tuple[int, int]] = (),
) -> np.ndarray:
    """Per-vertex right-hand side: -K plus 2 pi * index at singular vertices.

    Raises:
        ValueError: If a vertex id is out of range or repeated.
    """
    curvature = np.asarray(curvature, dtype=np.float64)
    rhs = -curvature.copy()
    for vertex, index in _normalize_singularities(singularities, len(curvature)):
        rhs[vertex] += TAU * index
    return rhs


@dataclass(frozen=True)
class TrivialConnectionSystem:
    """Assembled, unsolved trivial-connection system."""

    d0: sparse.csr_matrix
    d1: sparse.csr_matrix
    rhs: np.ndarray
    singularities: Tuple[Singularity, ...]

    @property
    def n_vertices(self) -> int:
        return int(self.d0.shape[1])

    @property
    def n_edges(self) -> int:
        return int(self.d0.shape[0])

    @property
    def total_index(self) -> int:
        return sum(s.index for s in self.singularities)

    @property
    def residual_total(self) -> float:
        """Sum of the right-hand side; zero when Gauss-Bonnet is satisfied."""
        return float(np.sum(self.rhs))

    def is_consistent(self, tol: float = 1e-6) -> bool:
        """True if the singularity indices sum to the Euler characteristic.

        Equivalently the total curvature is fully absorbed by the
        singularities, so rhs sums to zero.
        """
        return abs(self.residual_total) < tol


def assemble_trivial_connection(
    d0: sparse.csr_matrix,
    d1: sparse.csr_matrix,
    curvature: np.ndarray,
    singularities: Iterable[Tuple[int, int]] = (),
    tol: float = 1e-6,
) -> TrivialConnectionSystem:
    """Bundle d0, d1 and the right-hand side for a later solve.

    An inconsistent singularity set (indices not summing to 2 on a sphere)
    is logged, not rejected.
    """
    if d0.shape[1] != len(curvature):
        raise ValueError(
            f"d0 has {d0.shape[1]} columns but curvature has {len(curvature)} entries"
        )
    singular = _normalize_singularities(singularities, len(curvature))
    rhs = assemble_rhs(curvature, singular)
    rhs.flags.writeable = False

    system = TrivialConnectionSystem(d0=d0, d1=d1, rhs=rhs, singularities=singular)
    if not system.is_consistent(tol):
        logger.warning(
            f"Singularity indices sum to {system.total_index}; right-hand side "
            f"totals {system.residual_total:.6g} instead of 0"
        )
    return system
