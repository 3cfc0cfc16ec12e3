#!/usr/bin/env python3
"""Build an icosphere grid, report its invariants and save it.

Usage:
    python scripts/build_grid.py --level 8
    python scripts/build_grid.py --size M --output results/grids --figures
"""
from __future__ import annotations

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from icogrid.config import LEVEL_CONFIGS, GridConfig, level_for_size
from icogrid.grid import MeshGrid
from icogrid.io.serialize import save_grid, update_grid_index

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Build and save an icosphere grid")
    level_group = parser.add_mutually_exclusive_group(required=True)
    level_group.add_argument("--level", type=int, help="Subdivision level (>= 0)")
    level_group.add_argument("--size", choices=list(LEVEL_CONFIGS.keys()),
                             help="Named size preset")
    parser.add_argument("--radius", type=float, default=GridConfig.radius,
                        help=f"Sphere radius for exported geometry (default: {GridConfig.radius})")
    parser.add_argument("--output", default="results/grids",
                        help="Output directory (default: results/grids)")
    parser.add_argument("--figures", action="store_true",
                        help="Also write curvature / degree figures as PNG")
    args = parser.parse_args()

    level = args.level if args.level is not None else level_for_size(args.size)
    grid = MeshGrid.build(level, GridConfig(radius=args.radius))

    summary = grid.summary()
    logger.info(f"V={summary['n_vertices']}, E={summary['n_edges']}, F={summary['n_cells']}")
    logger.info(f"Euler characteristic: {summary['euler_characteristic']}")
    logger.info(f"Degree distribution: {summary['degree_distribution']}")
    logger.info(
        f"Total curvature: {summary['total_curvature']:.9f} "
        f"(Gauss-Bonnet error {summary['gauss_bonnet_error']:.2e})"
    )
    logger.info(f"d1 @ d0 = 0: {summary['chain_complex_valid']}")

    key = save_grid(grid, args.output)
    update_grid_index(args.output)
    logger.info(f"Saved {key} to {args.output}/")

    if args.figures:
        from icogrid.viz.curvature_figures import (
            plot_curvature_histogram,
            plot_curvature_sphere,
            plot_degree_distribution,
        )
        plot_curvature_histogram(grid, os.path.join(args.output, f"{key}_curvature_hist.png"))
        plot_curvature_sphere(grid, os.path.join(args.output, f"{key}_curvature_sphere.png"))
        plot_degree_distribution(grid, os.path.join(args.output, f"{key}_degrees.png"))
        logger.info(f"Figures written to {args.output}/")


if __name__ == "__main__":
    main()
