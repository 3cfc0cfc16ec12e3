"""Grid construction settings and named size presets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

SPHERE_RADIUS = 1.0
POLE_TOLERANCE = 1e-6
UP_AXIS = (0.0, 1.0, 0.0)
DEFAULT_ZERO_TOL = 1e-12

# Named subdivision levels, analogous to the lattice size labels
LEVEL_CONFIGS = {
    "XS": 0,
    "S": 4,
    "M": 16,
    "L": 48,
    "XL": 100,
}


@dataclass(frozen=True)
class GridConfig:
    """Configuration for MeshGrid construction."""

    radius: float = SPHERE_RADIUS
    pole_tolerance: float = POLE_TOLERANCE  # |normal x up| below this is a pole
    up: Tuple[float, float, float] = UP_AXIS
    zero_tol: float = DEFAULT_ZERO_TOL


def level_for_size(size_label: str) -> int:
    """Look up the subdivision level for a size label.

    Raises:
        KeyError: If the label is not in LEVEL_CONFIGS.
    """
    if size_label not in LEVEL_CONFIGS:
        available = ', '.join(LEVEL_CONFIGS.keys())
        raise KeyError(
            f"Unknown size '{size_label}'. Available: {available}"
        )
    return LEVEL_CONFIGS[size_label]
