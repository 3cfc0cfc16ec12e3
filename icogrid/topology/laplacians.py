"""Construct combinatorial Hodge Laplacians from the exterior derivatives."""
from __future__ import annotations

from typing import Dict

from scipy import sparse


def build_all_laplacians(
    d0: sparse.spmatrix,
    d1: sparse.spmatrix,
) -> Dict[str, sparse.csr_matrix]:
    """Build the Laplacians on 0-, 1- and 2-cochains from d0 and d1.

    Returns dict with keys: 'L0', 'L1', 'L1_down', 'L1_up', 'L2'

    L0 = d0^T @ d0          (graph Laplacian, V x V)
    L1_down = d0 @ d0^T     (lower edge Laplacian, E x E)
    L1_up = d1^T @ d1       (upper edge Laplacian, E x E)
    L1 = L1_down + L1_up    (full Hodge 1-Laplacian, E x E)
    L2 = d1 @ d1^T          (face Laplacian, F x F)
    """
    d0T = d0.T.tocsr()
    d1T = d1.T.tocsr()

    L0 = (d0T @ d0).tocsr()
    L1_down = (d0 @ d0T).tocsr()
    L1_up = (d1T @ d1).tocsr()
    L1 = (L1_down + L1_up).tocsr()
    L2 = (d1 @ d1T).tocsr()

    return {
        "L0": L0,
        "L1": L1,
        "L1_down": L1_down,
        "L1_up": L1_up,
        "L2": L2,
    }
