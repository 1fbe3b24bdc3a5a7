# heatlens/compositing.py
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from .config import RenderSettings
from .grid import HeatGrid, grid_to_raster, upsample
from .peak import find_peak
from .raster import RasterBuffer

logger = logging.getLogger(__name__)

# channel shifts at full weight
RED_GAIN   = 255.0
GB_LOSS    = 100.0
ALPHA_GAIN = 100.0


class CompositingMode(str, Enum):
    PIXEL_ADDITIVE_BLEND     = "pixel_additive_blend"
    RADIAL_GRADIENT_HALO     = "radial_gradient_halo"
    SINGLE_HOTSPOT_HIGHLIGHT = "single_hotspot_highlight"


def clamp_probability(p) -> float:
    p = float(p)
    if math.isnan(p):
        return 0.0
    return min(max(p, 0.0), 1.0)


@dataclass(frozen=True)
class OverlayState:
    visible: bool = False
    probability: float = 0.0
    mode: CompositingMode = CompositingMode.PIXEL_ADDITIVE_BLEND

    def __post_init__(self):
        # a probability is a measurement: clamp it, never reject it
        object.__setattr__(self, "visible", bool(self.visible))
        object.__setattr__(self, "probability", clamp_probability(self.probability))
        object.__setattr__(self, "mode", CompositingMode(self.mode))


@dataclass(frozen=True)
class RenderResult:
    raster: RasterBuffer
    overlay_active: bool


# ---------- channel maths ----------

def _shift_channels(px: np.ndarray, weight: np.ndarray) -> None:
    """Push pixels towards red by ``weight`` (0..1), in place; weight 0 leaves a pixel alone."""
    work = px.astype(np.float64)
    work[..., 0] += weight * RED_GAIN
    work[..., 1] -= weight * GB_LOSS
    work[..., 2] -= weight * GB_LOSS
    work[..., 3] += weight * ALPHA_GAIN
    px[...] = np.rint(np.clip(work, 0.0, 255.0)).astype(np.uint8)


def _bounding_box(cx: float, cy: float, radius: float, w: int, h: int) -> Tuple[int, int, int, int]:
    x0 = max(0, int(math.floor(cx - radius)))
    x1 = min(w, int(math.ceil(cx + radius)) + 1)
    y0 = max(0, int(math.floor(cy - radius)))
    y1 = min(h, int(math.ceil(cy + radius)) + 1)
    return x0, x1, y0, y1


def _distances(cx: float, cy: float, box: Tuple[int, int, int, int]) -> np.ndarray:
    x0, x1, y0, y1 = box
    ys, xs = np.mgrid[y0:y1, x0:x1]
    return np.hypot(xs - cx, ys - cy)


# ---------- strategies ----------

def pixel_additive_blend(raster: RasterBuffer, grid: HeatGrid, settings: RenderSettings) -> None:
    values = upsample(grid, raster.width, raster.height)
    weight = np.where(values > settings.pixel_value_cutoff, values, 0.0)
    if not weight.any():
        return
    _shift_channels(raster.pixels, weight)


def radial_gradient_halo(raster: RasterBuffer, grid: HeatGrid, settings: RenderSettings) -> None:
    w, h = raster.size
    peak = find_peak(grid, settings.peak_region_fraction)
    if peak.found:
        cx, cy = grid_to_raster(peak.gx, peak.gy, grid.width, grid.height, w, h)
    else:
        fx, fy = settings.fallback_center
        cx, cy = fx * w, fy * h
        logger.debug("no peak in central region, halo falls back to (%.0f, %.0f)", cx, cy)

    radius = max(1.0, min(w, h) * settings.halo_radius_factor)
    box = _bounding_box(cx, cy, radius, w, h)
    x0, x1, y0, y1 = box
    if x1 <= x0 or y1 <= y0:
        return

    t = _distances(cx, cy, box) / radius
    offsets = [s[0] for s in settings.halo_stops]
    opacities = [s[1] for s in settings.halo_stops]
    alpha = np.where(t <= 1.0, np.interp(t, offsets, opacities), 0.0)[..., None]

    # source-over: red gradient on top of the image
    region = raster.pixels[y0:y1, x0:x1].astype(np.float64)
    color = np.asarray(settings.halo_color, dtype=np.float64)
    region[..., :3] = color * alpha + region[..., :3] * (1.0 - alpha)
    region[..., 3:] = 255.0 * alpha + region[..., 3:] * (1.0 - alpha)
    raster.pixels[y0:y1, x0:x1] = np.rint(np.clip(region, 0.0, 255.0)).astype(np.uint8)


def single_hotspot_highlight(raster: RasterBuffer, grid: HeatGrid, settings: RenderSettings) -> None:
    w, h = raster.size
    peak = find_peak(grid)
    if not peak.found:
        logger.debug("grid has no hotspot, nothing to highlight")
        return
    cx, cy = grid_to_raster(peak.gx, peak.gy, grid.width, grid.height, w, h)

    radius = max(1.0, min(w, h) * settings.hotspot_radius_factor)
    box = _bounding_box(cx, cy, radius, w, h)
    x0, x1, y0, y1 = box
    dist = _distances(cx, cy, box)
    intensity = np.where(dist < radius, np.maximum(0.0, 1.0 - dist / radius), 0.0)
    _shift_channels(raster.pixels[y0:y1, x0:x1], intensity)


STRATEGIES = {
    CompositingMode.PIXEL_ADDITIVE_BLEND:     pixel_additive_blend,
    CompositingMode.RADIAL_GRADIENT_HALO:     radial_gradient_halo,
    CompositingMode.SINGLE_HOTSPOT_HIGHLIGHT: single_hotspot_highlight,
}


# ---------- entry points ----------

def gate_open(state: OverlayState, settings: RenderSettings) -> bool:
    return state.visible and state.probability >= settings.threshold


def composite(raster: RasterBuffer, grid: HeatGrid, probability: float,
              mode: CompositingMode, settings: Optional[RenderSettings] = None) -> bool:
    """
    Paint the overlay into ``raster`` if ``probability`` clears the threshold.

    Returns True when something was composited. Visibility is the caller's
    business; see ``render`` for the full gate.
    """
    settings = settings or RenderSettings()
    if clamp_probability(probability) < settings.threshold:
        return False
    STRATEGIES[CompositingMode(mode)](raster, grid, settings)
    return True


def render(base: RasterBuffer, grid: Optional[HeatGrid], state: OverlayState,
           settings: Optional[RenderSettings] = None) -> RenderResult:
    """Fresh copy of ``base`` with the overlay applied when ``state`` allows it. ``base`` is never touched."""
    settings = settings or RenderSettings()
    raster = base.copy()
    if grid is None or not gate_open(state, settings):
        logger.debug("overlay off (visible=%s, p=%.2f, threshold=%.2f)",
                     state.visible, state.probability, settings.threshold)
        return RenderResult(raster, False)

    composite(raster, grid, state.probability, state.mode, settings)
    logger.debug("overlay on: %s at p=%.2f on %s", state.mode.value, state.probability, grid)
    return RenderResult(raster, True)
