# heatlens/controller.py
import dataclasses
import itertools
import logging
from typing import Optional

from . import synthetic
from .compositing import CompositingMode, OverlayState, RenderResult, render
from .config import SYNTHETIC_GRID_SIZE, DisplayBounds, RenderSettings
from .grid import HeatGrid
from .raster import RasterBuffer, Source, load_async

logger = logging.getLogger(__name__)


class OverlayController:
    """
    Owns the decoded base image, the heat grid and the overlay state.

    The image is decoded once per ``load``; every state change after that
    re-renders from the cached clean base, so toggling never stacks overlays.
    """

    def __init__(self, bounds: Optional[DisplayBounds] = None, settings: Optional[RenderSettings] = None,
                 state: Optional[OverlayState] = None):
        self.bounds = bounds or DisplayBounds()
        self.settings = settings or RenderSettings()
        self._state = state or OverlayState()
        self._base: Optional[RasterBuffer] = None
        self._grid: Optional[HeatGrid] = None
        self._result: Optional[RenderResult] = None
        self._request_ids = itertools.count(1)
        self._latest_request = 0

    # ---------- accessors ----------

    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def base(self) -> Optional[RasterBuffer]:
        return self._base

    @property
    def grid(self) -> Optional[HeatGrid]:
        return self._grid

    @property
    def rendered(self) -> Optional[RasterBuffer]:
        return self._result.raster if self._result else None

    @property
    def overlay_active(self) -> bool:
        return bool(self._result and self._result.overlay_active)

    # ---------- image ----------

    async def load(self, source: Source) -> Optional[RasterBuffer]:
        """
        Decode ``source`` and make it the new base image.

        If a newer load was started while this one was decoding, the result is
        dropped and None is returned. Decode errors propagate and leave the
        previous base in place.
        """
        request_id = next(self._request_ids)
        self._latest_request = request_id
        raster = await load_async(source, self.bounds)
        if request_id != self._latest_request:
            logger.warning("discarding stale decode #%d (latest is #%d)", request_id, self._latest_request)
            return None
        self.load_raster(raster)
        return self.rendered

    def load_raster(self, raster: RasterBuffer) -> RasterBuffer:
        self._base = raster
        logger.info("base image installed: %s", raster)
        self._rerender()
        return self.rendered

    # ---------- grid ----------

    def set_grid(self, grid: Optional[HeatGrid], rng=None) -> HeatGrid:
        """Install ``grid``; None means no analysis output, so a synthetic one stands in."""
        if grid is None:
            grid = synthetic.generate(SYNTHETIC_GRID_SIZE, SYNTHETIC_GRID_SIZE, rng)
            logger.info("no heat grid supplied, using %s", grid)
        self._grid = grid
        self._rerender()
        return grid

    # ---------- state ----------

    def toggle(self) -> bool:
        self._update(visible=not self._state.visible)
        return self._state.visible

    def set_visible(self, visible: bool) -> None:
        self._update(visible=visible)

    def set_probability(self, probability: float) -> None:
        self._update(probability=probability)

    def set_mode(self, mode: CompositingMode) -> None:
        self._update(mode=mode)

    def update(self, **changes) -> OverlayState:
        """Apply several state changes with one re-render; nothing is redrawn if the state is unchanged."""
        new_state = dataclasses.replace(self._state, **changes)
        if new_state != self._state:
            self._state = new_state
            self._rerender()
        return self._state

    def _update(self, **changes) -> None:
        self._state = dataclasses.replace(self._state, **changes)
        self._rerender()

    def _rerender(self) -> None:
        if self._base is None:
            return
        self._result = render(self._base, self._grid, self._state, self.settings)
