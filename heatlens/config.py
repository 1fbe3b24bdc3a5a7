# heatlens/config.py
import os
from dataclasses import dataclass
from typing import Tuple


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


# === Display bounds ===
MAX_WIDTH  = _env_int("HEATLENS_MAX_WIDTH", 512)
MAX_HEIGHT = _env_int("HEATLENS_MAX_HEIGHT", 512)

# === Rendering ===
# Probability gate and gradient stops are presentation choices, not clinical ones.
OVERLAY_THRESHOLD      = _env_float("HEATLENS_OVERLAY_THRESHOLD", 0.3)
PIXEL_VALUE_CUTOFF     = 0.1
HALO_RADIUS_FACTOR     = 0.10
HOTSPOT_RADIUS_FACTOR  = 0.15
PEAK_REGION_FRACTION   = 0.6
# (offset along radius, opacity) pairs, centre first
HALO_STOPS = ((0.0, 0.8), (0.5, 0.4), (1.0, 0.0))
HALO_COLOR = (255, 0, 0)
# where the halo goes when the grid has no usable peak, as fractions of (w, h)
FALLBACK_CENTER = (0.5, 0.55)

# === Grid producers ===
SYNTHETIC_GRID_SIZE = _env_int("HEATLENS_SYNTHETIC_GRID_SIZE", 32)
LUMINANCE_DRAW_SIZE = 224


@dataclass(frozen=True)
class DisplayBounds:
    max_width: int = MAX_WIDTH
    max_height: int = MAX_HEIGHT

    def __post_init__(self):
        if self.max_width < 1 or self.max_height < 1:
            raise ValueError(f"display bounds must be positive, got {self.max_width}x{self.max_height}")


@dataclass(frozen=True)
class RenderSettings:
    threshold: float = OVERLAY_THRESHOLD
    pixel_value_cutoff: float = PIXEL_VALUE_CUTOFF
    halo_radius_factor: float = HALO_RADIUS_FACTOR
    hotspot_radius_factor: float = HOTSPOT_RADIUS_FACTOR
    peak_region_fraction: float = PEAK_REGION_FRACTION
    halo_stops: Tuple[Tuple[float, float], ...] = HALO_STOPS
    halo_color: Tuple[int, int, int] = HALO_COLOR
    fallback_center: Tuple[float, float] = FALLBACK_CENTER

    def __post_init__(self):
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {self.threshold}")
        if self.halo_radius_factor <= 0 or self.hotspot_radius_factor <= 0:
            raise ValueError("radius factors must be positive")
        stops = list(self.halo_stops)
        if len(stops) < 2:
            raise ValueError("halo needs at least two colour stops")
        offsets = [s[0] for s in stops]
        opacities = [s[1] for s in stops]
        if offsets[0] != 0.0 or offsets[-1] != 1.0 or offsets != sorted(offsets):
            raise ValueError("halo stop offsets must run from 0.0 to 1.0 in order")
        if any(a < 0.0 or a > 1.0 for a in opacities):
            raise ValueError("halo stop opacities must be within [0, 1]")
        if any(b > a for a, b in zip(opacities, opacities[1:])):
            raise ValueError("halo opacity must not increase towards the edge")
