# heatlens/grid.py
import math
from enum import Enum
from typing import Iterable, Sequence, Tuple

import numpy as np

from .errors import InvalidGridError


class Provenance(str, Enum):
    ANALYSIS  = "analysis"   # produced by an upstream analysis pipeline
    SYNTHETIC = "synthetic"  # placeholder hotspots, no diagnostic meaning
    LUMINANCE = "luminance"  # mean image brightness, no diagnostic meaning

    @property
    def diagnostic(self) -> bool:
        return self is Provenance.ANALYSIS


class HeatGrid:
    """
    Coarse 2D activation map, values in [0, 1], indexed ``values[gy, gx]``.

    The backing array is read-only; NaN/inf become 0 and everything is clipped
    to [0, 1]. Shape problems raise InvalidGridError instead of being guessed.
    """

    __slots__ = ("_values", "provenance")

    def __init__(self, values, provenance: Provenance = Provenance.ANALYSIS):
        try:
            arr = np.array(values, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InvalidGridError(f"heat grid is not a rectangular array of numbers: {exc}") from exc
        if arr.ndim != 2:
            raise InvalidGridError(f"heat grid must be 2D, got shape {arr.shape}")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise InvalidGridError(f"heat grid must be non-empty, got shape {arr.shape}")
        arr = np.clip(np.nan_to_num(arr, nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
        arr.setflags(write=False)
        self._values = arr
        self.provenance = Provenance(provenance)

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[float]], provenance: Provenance = Provenance.ANALYSIS) -> "HeatGrid":
        rows = [list(r) for r in rows]
        if not rows:
            raise InvalidGridError("heat grid has no rows")
        width = len(rows[0])
        if width == 0:
            raise InvalidGridError("heat grid rows are empty")
        for i, r in enumerate(rows):
            if len(r) != width:
                raise InvalidGridError(f"row {i} has {len(r)} cells, expected {width}")
        return cls(rows, provenance)

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def width(self) -> int:
        return self._values.shape[1]

    @property
    def height(self) -> int:
        return self._values.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    def to_rows(self):
        return self._values.tolist()

    def __repr__(self):
        return f"HeatGrid({self.width}x{self.height}, provenance={self.provenance.value})"


def _is_wrapper(x) -> bool:
    if not isinstance(x, (list, tuple)) or len(x) != 1:
        return False
    inner = x[0]
    if hasattr(inner, "shape"):
        return len(inner.shape) >= 2
    return isinstance(inner, (list, tuple)) and len(inner) > 0 and not np.isscalar(inner[0])


def grid_from_cam(cams, provenance: Provenance = Provenance.ANALYSIS) -> HeatGrid:
    """
    Turn whatever a CAM extractor hands back into a HeatGrid.

    Accepts an array, a tensor-like object with ``detach()``, or that wrapped
    in one or two levels of list/tuple. 3D/4D inputs are averaged down to 2D,
    then min-max normalised to 0..1.
    """
    # extractors return Tensor | [Tensor] | [[Tensor]]
    x = cams
    for _ in range(2):
        if _is_wrapper(x):
            x = x[0]

    if hasattr(x, "detach"):
        x = x.detach().cpu().numpy()

    x = np.nan_to_num(np.asarray(x, dtype=np.float64))

    if x.ndim == 3:
        x = x.mean(axis=0)
    elif x.ndim == 4:
        x = x.mean(axis=(0, 1))

    if x.ndim != 2 or x.size == 0:
        raise InvalidGridError(f"cannot reduce CAM of shape {x.shape} to a 2D grid")

    x = x - x.min()
    x = x / (x.max() + 1e-8)
    return HeatGrid(x, provenance)


# ---------- sampling ----------

def sample(grid: HeatGrid, gx: int, gy: int) -> float:
    if not (0 <= gx < grid.width and 0 <= gy < grid.height):
        raise IndexError(f"cell ({gx}, {gy}) outside {grid.width}x{grid.height} grid")
    return float(grid.values[gy, gx])


def raster_to_grid(px, py, raster_w: int, raster_h: int, grid_w: int, grid_h: int) -> Tuple[int, int]:
    # nearest neighbour: each cell covers a rectangular block of pixels
    gx = math.floor(px / raster_w * grid_w)
    gy = math.floor(py / raster_h * grid_h)
    return min(max(gx, 0), grid_w - 1), min(max(gy, 0), grid_h - 1)


def grid_to_raster(gx, gy, grid_w: int, grid_h: int, raster_w: int, raster_h: int) -> Tuple[int, int]:
    """Top-left pixel of the block covered by cell (gx, gy)."""
    px = math.floor(gx / grid_w * raster_w)
    py = math.floor(gy / grid_h * raster_h)
    return min(max(px, 0), raster_w - 1), min(max(py, 0), raster_h - 1)


def cell_index_maps(raster_w: int, raster_h: int, grid_w: int, grid_h: int) -> Tuple[np.ndarray, np.ndarray]:
    """Per-column grid x and per-row grid y, same rule as raster_to_grid."""
    cols = np.floor(np.arange(raster_w) / raster_w * grid_w).astype(np.intp)
    rows = np.floor(np.arange(raster_h) / raster_h * grid_h).astype(np.intp)
    return np.clip(cols, 0, grid_w - 1), np.clip(rows, 0, grid_h - 1)


def upsample(grid: HeatGrid, raster_w: int, raster_h: int) -> np.ndarray:
    """Grid values stretched to raster size, shape (raster_h, raster_w)."""
    cols, rows = cell_index_maps(raster_w, raster_h, grid.width, grid.height)
    return grid.values[rows[:, None], cols[None, :]]
