"""Save/load MeshGrid snapshots as .npz + .json files."""
from __future__ import annotations

import json
import os
from typing import Dict

import numpy as np

from icogrid.grid import MeshGrid

_RELATIONS = (
    "cell_cell",
    "cell_edge",
    "edge_cell",
    "edge_vertex",
    "vertex_cell",
    "vertex_edge",
)


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def _grid_key(level: int) -> str:
    return f"icosphere_L{level}"


def _relation(grid: MeshGrid, name: str):
    accessors = {
        "cell_cell": grid.cell_adjacency,
        "cell_edge": grid.cell_edge_adjacency,
        "edge_cell": grid.edge_cell_adjacency,
        "edge_vertex": grid.edge_vertex_adjacency,
        "vertex_cell": grid.vertex_cell_adjacency,
        "vertex_edge": grid.vertex_edge_adjacency,
    }
    return accessors[name]()


def save_grid(grid: MeshGrid, directory: str) -> str:
    """Save a MeshGrid to .npz (arrays) + _meta.json (summary).

    Returns the key both files are named after.
    """
    os.makedirs(directory, exist_ok=True)
    key = _grid_key(grid.level)

    arrays = {
        "points": grid.points,
        "triangles": grid.cell_vertices,
        "cell_centers": grid.cell_centers,
        "vertex_angle_offsets": grid.vertex_angle_offsets,
        "curvature": grid.curvature,
    }
    for name in _RELATIONS:
        rel = _relation(grid, name)
        arrays[f"{name}_offsets"] = rel.offsets
        arrays[f"{name}_indices"] = rel.indices

    np.savez_compressed(os.path.join(directory, f"{key}.npz"), **arrays)

    meta = grid.summary()
    with open(os.path.join(directory, f"{key}_meta.json"), "w") as f:
        json.dump(meta, f, indent=2, cls=_NumpyEncoder)

    return key


def load_grid_data(directory: str, level: int) -> Dict:
    """Load a saved grid as a dict with arrays and metadata."""
    key = _grid_key(level)

    meta_path = os.path.join(directory, f"{key}_meta.json")
    with open(meta_path) as f:
        meta = json.load(f)

    npz_path = os.path.join(directory, f"{key}.npz")
    arrays = dict(np.load(npz_path))

    return {**meta, **arrays}


def update_grid_index(directory: str) -> None:
    """Scan directory and write grid_index.json listing all saved grids."""
    entries = []
    for fname in sorted(os.listdir(directory)):
        if fname.endswith("_meta.json"):
            meta_path = os.path.join(directory, fname)
            with open(meta_path) as f:
                meta = json.load(f)
            entries.append({
                "level": meta["level"],
                "n_vertices": meta["n_vertices"],
                "n_edges": meta["n_edges"],
                "n_cells": meta["n_cells"],
                "gauss_bonnet_error": meta["gauss_bonnet_error"],
            })

    entries.sort(key=lambda e: e["level"])
    with open(os.path.join(directory, "grid_index.json"), "w") as f:
        json.dump(entries, f, indent=2)
