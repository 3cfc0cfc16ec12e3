"""Static matplotlib figures of grid curvature and vertex degree."""
from __future__ import annotations

from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from icogrid.grid import MeshGrid

# Degree color scheme (consistent across all figures)
DEGREE_COLORS = {
    5: "#9b59b6",  # purple
    6: "#f39c12",  # orange
}


def degree_color(z: int) -> str:
    """Return color for vertex degree z."""
    return DEGREE_COLORS.get(z, "#34495e")


def _finish(fig, path: Optional[str]):
    if path is not None:
        fig.savefig(path)
    return fig


def plot_curvature_histogram(grid: MeshGrid, path: Optional[str] = None, bins: int = 50):
    """Histogram of per-vertex curvature, split by vertex degree."""
    degrees = grid.vertex_edge_adjacency().degrees()
    curvature = grid.curvature

    fig, ax = plt.subplots(figsize=(5, 3.5))
    for z in np.unique(degrees):
        mask = degrees == z
        ax.hist(curvature[mask], bins=bins, alpha=0.7,
                color=degree_color(int(z)), label=f"degree {z} ({mask.sum()})")
    ax.set_xlabel("angle deficit K")
    ax.set_ylabel("vertices")
    ax.set_title(f"Level {grid.level}: total K = {curvature.sum():.6f}")
    ax.legend()
    return _finish(fig, path)


def plot_curvature_sphere(grid: MeshGrid, path: Optional[str] = None):
    """3D scatter of vertices colored by curvature."""
    pos = grid.mesh().positions

    fig = plt.figure(figsize=(5, 5))
    ax = fig.add_subplot(projection="3d")
    sc = ax.scatter(pos[:, 0], pos[:, 2], pos[:, 1], c=grid.curvature,
                    cmap="viridis", s=4)
    ax.set_box_aspect((1, 1, 1))
    ax.set_axis_off()
    fig.colorbar(sc, ax=ax, shrink=0.6, label="K")
    ax.set_title(f"Icosphere level {grid.level}")
    return _finish(fig, path)


def plot_degree_distribution(grid: MeshGrid, path: Optional[str] = None):
    """Bar chart of vertex degrees."""
    dist = grid.summary()["degree_distribution"]

    fig, ax = plt.subplots(figsize=(4, 3))
    zs = sorted(dist)
    ax.bar([str(z) for z in zs], [dist[z] for z in zs],
           color=[degree_color(z) for z in zs])
    ax.set_xlabel("degree")
    ax.set_ylabel("vertices")
    ax.set_yscale("log")
    return _finish(fig, path)
