import numpy as np
import pytest

from heatlens.compositing import CompositingMode, OverlayState, composite, render
from heatlens.config import RenderSettings
from heatlens.grid import HeatGrid


def one_hot_grid(size=20, gx=10, gy=10, value=1.0):
    rows = np.zeros((size, size))
    rows[gy, gx] = value
    return HeatGrid(rows)


def visible(p=1.0, mode=CompositingMode.PIXEL_ADDITIVE_BLEND):
    return OverlayState(visible=True, probability=p, mode=mode)


def test_pixel_blend_reddens_only_the_hot_block(base_raster):
    out = render(base_raster, one_hot_grid(), visible()).raster.pixels
    block = out[50:55, 50:55]
    assert np.all(block[..., 0] == 255)
    assert np.all(block[..., 1] == 28)
    assert np.all(block[..., 2] == 28)
    assert np.all(block[..., 3] == 255)

    untouched = np.ones((100, 100), dtype=bool)
    untouched[50:55, 50:55] = False
    assert np.array_equal(out[untouched], base_raster.pixels[untouched])


def test_pixel_blend_scales_with_value_and_respects_cutoff(base_raster):
    rows = np.zeros((20, 20))
    rows[2, 2] = 0.5
    rows[4, 4] = 0.1      # at the cutoff: left alone
    out = render(base_raster, HeatGrid(rows), visible()).raster.pixels
    assert tuple(out[10, 10]) == (255, 78, 78, 255)
    assert tuple(out[20, 20]) == (128, 128, 128, 255)


def test_pixel_blend_raises_alpha():
    from heatlens.raster import RasterBuffer
    base = RasterBuffer.blank(10, 10, (10, 200, 50, 100))
    out = render(base, HeatGrid([[0.5]]), visible()).raster.pixels
    assert tuple(out[0, 0]) == (138, 150, 0, 150)


def test_halo_is_red_at_peak_and_fades_out(base_raster):
    state = visible(mode=CompositingMode.RADIAL_GRADIENT_HALO)
    out = render(base_raster, one_hot_grid(), state).raster.pixels

    centre = out[50, 50]
    assert centre[0] > 200 and centre[1] < 60 and centre[2] < 60

    reds = [int(out[50, x, 0]) for x in range(50, 62)]
    greens = [int(out[50, x, 1]) for x in range(50, 62)]
    assert reds == sorted(reds, reverse=True)
    assert greens == sorted(greens)

    # radius is 10% of the short side
    assert tuple(out[50, 61]) == (128, 128, 128, 255)
    assert tuple(out[0, 0]) == (128, 128, 128, 255)


def test_halo_ignores_edge_artifacts(base_raster):
    rows = np.zeros((20, 20))
    rows[0, 0] = 1.0
    rows[12, 8] = 0.6
    out = render(base_raster, HeatGrid(rows), visible(mode=CompositingMode.RADIAL_GRADIENT_HALO)).raster.pixels
    assert out[60, 40, 0] > 200
    assert tuple(out[0, 0]) == (128, 128, 128, 255)


def test_halo_falls_back_to_fixed_region(base_raster):
    zeros = HeatGrid(np.zeros((20, 20)))
    out = render(base_raster, zeros, visible(mode=CompositingMode.RADIAL_GRADIENT_HALO)).raster.pixels
    assert out[55, 50, 0] > 200
    assert tuple(out[5, 5]) == (128, 128, 128, 255)


def test_single_hotspot_intensity_falls_with_distance(base_raster):
    state = visible(mode=CompositingMode.SINGLE_HOTSPOT_HIGHLIGHT)
    out = render(base_raster, one_hot_grid(), state).raster.pixels
    assert tuple(out[50, 50]) == (255, 28, 28, 255)
    # 15 px radius; two thirds of the way out a third of the shift is left
    assert tuple(out[50, 60]) == (213, 95, 95, 255)
    assert tuple(out[50, 65]) == (128, 128, 128, 255)
    assert tuple(out[50, 80]) == (128, 128, 128, 255)


def test_single_hotspot_skips_empty_grid(base_raster):
    res = render(base_raster, HeatGrid(np.zeros((4, 4))), visible(mode=CompositingMode.SINGLE_HOTSPOT_HIGHLIGHT))
    assert res.raster == base_raster


@pytest.mark.parametrize("mode", list(CompositingMode))
def test_threshold_gate(base_raster, mode):
    below = render(base_raster, one_hot_grid(), visible(0.29, mode))
    assert not below.overlay_active
    assert below.raster == base_raster

    above = render(base_raster, one_hot_grid(), visible(0.31, mode))
    assert above.overlay_active
    assert above.raster != base_raster


def test_hidden_overlay_is_clean_base(base_raster):
    res = render(base_raster, one_hot_grid(), OverlayState(visible=False, probability=1.0))
    assert not res.overlay_active
    assert res.raster == base_raster


def test_no_grid_means_no_overlay(base_raster):
    res = render(base_raster, None, visible())
    assert not res.overlay_active
    assert res.raster == base_raster


def test_render_never_touches_base(base_raster):
    before = base_raster.copy()
    for mode in CompositingMode:
        render(base_raster, one_hot_grid(), visible(mode=mode))
    assert base_raster == before


def test_probability_is_clamped():
    assert OverlayState(probability=1.7).probability == 1.0
    assert OverlayState(probability=-3).probability == 0.0
    assert OverlayState(probability=float("nan")).probability == 0.0


def test_custom_threshold(base_raster):
    settings = RenderSettings(threshold=0.8)
    assert not render(base_raster, one_hot_grid(), visible(0.79), settings).overlay_active
    assert render(base_raster, one_hot_grid(), visible(0.8), settings).overlay_active


def test_composite_in_place(base_raster):
    buf = base_raster.copy()
    assert composite(buf, one_hot_grid(), 0.9, CompositingMode.PIXEL_ADDITIVE_BLEND)
    assert buf.pixels[52, 52, 0] == 255
    other = base_raster.copy()
    assert not composite(other, one_hot_grid(), 0.1, CompositingMode.PIXEL_ADDITIVE_BLEND)
    assert other == base_raster


@pytest.mark.parametrize("kwargs", [
    {"threshold": 1.5},
    {"halo_stops": ((0.0, 0.2), (1.0, 0.6))},
    {"halo_stops": ((0.0, 1.0),)},
    {"halo_stops": ((0.1, 1.0), (1.0, 0.0))},
    {"halo_radius_factor": 0},
])
def test_bad_settings_rejected(kwargs):
    with pytest.raises(ValueError):
        RenderSettings(**kwargs)
