# heatlens/synthetic.py
"""
Placeholder heat grids for when no analysis output is available.

The hotspots are random and carry no diagnostic meaning; every grid built here
is tagged ``Provenance.SYNTHETIC`` so the UI can say so.
"""
import logging
from typing import Optional, Union

import numpy as np

from .grid import HeatGrid, Provenance

logger = logging.getLogger(__name__)

SECONDARY_CHANCE = 0.5


def radial_hotspot(width: int, height: int, cx: float, cy: float, radius: float) -> np.ndarray:
    """max(0, 1 - distance/radius) around (cx, cy), shape (height, width)."""
    ys, xs = np.mgrid[0:height, 0:width]
    dist = np.hypot(xs - cx, ys - cy)
    return np.maximum(0.0, 1.0 - dist / radius)


def generate(width: int, height: int, rng: Optional[Union[int, np.random.Generator]] = None) -> HeatGrid:
    if width < 1 or height < 1:
        raise ValueError(f"grid size must be positive, got {width}x{height}")
    rng = np.random.default_rng(rng)
    minor = min(width, height)

    cx = rng.uniform(0.3, 0.7) * width
    cy = rng.uniform(0.3, 0.7) * height
    radius = max(1.0, rng.uniform(0.10, 0.20) * minor)
    heat = radial_hotspot(width, height, cx, cy, radius)

    secondary = rng.random() < SECONDARY_CHANCE
    if secondary:
        sx = rng.uniform(0.2, 0.8) * width
        sy = rng.uniform(0.2, 0.8) * height
        sr = max(1.0, rng.uniform(0.05, 0.10) * minor)
        # hotspots never cancel each other out
        heat = np.maximum(heat, radial_hotspot(width, height, sx, sy, sr))

    logger.debug("synthetic grid %dx%d, primary at (%.1f, %.1f) r=%.1f, secondary=%s",
                 width, height, cx, cy, radius, secondary)
    return HeatGrid(heat, Provenance.SYNTHETIC)
