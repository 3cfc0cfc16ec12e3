#!/usr/bin/env python3
"""Quick end-to-end invariant check over several subdivision levels."""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import numpy as np

from icogrid.grid import MeshGrid


def check_level(level):
    print(f"\n{'='*60}")
    print(f"  icosphere level {level}")
    print(f"{'='*60}")

    grid = MeshGrid.build(level)
    s = 1 + level
    print(f"  V={grid.n_vertices}, E={grid.n_edges}, F={grid.n_cells}")
    print(f"  Expected: V={10*s*s + 2}, E={30*s*s}, F={20*s*s}")
    print(f"  Euler: {grid.euler_characteristic} (should be 2)")

    # Chain complex: d1 @ d0 = 0
    product = grid.d1 @ grid.d0
    max_err = abs(product).max() if product.nnz else 0.0
    print(f"  d1@d0=0 check: max|err| = {max_err:.2e}")

    row_sums = np.asarray(grid.d0.sum(axis=1)).ravel()
    print(f"  d0 row sums all zero? {bool(np.all(row_sums == 0))}")

    ec = grid.edge_cell_adjacency().degrees()
    ev = grid.edge_vertex_adjacency().degrees()
    print(f"  Every edge has 2 cells and 2 vertices? {bool(np.all(ec == 2) and np.all(ev == 2))}")

    fan = grid.vertex_edge_adjacency().degrees() == grid.vertex_cell_adjacency().degrees()
    print(f"  Closed fan at every vertex? {bool(np.all(fan))}")

    total = grid.curvature.sum()
    print(f"  Total curvature: {total:.12f} (4 pi = {4*np.pi:.12f}, "
          f"err {abs(total - 4*np.pi):.2e})")


def main():
    parser = argparse.ArgumentParser(description="Verify icosphere grid invariants")
    parser.add_argument("--levels", nargs="+", type=int, default=[0, 1, 4, 16],
                        help="Subdivision levels to check (default: 0 1 4 16)")
    args = parser.parse_args()
    for level in args.levels:
        check_level(level)


if __name__ == "__main__":
    main()
