import numpy as np
import pytest

from heatlens.grid import Provenance
from heatlens.synthetic import SECONDARY_CHANCE, generate, radial_hotspot


def primary_only(width, height, seed):
    # replay the generator's first draws to rebuild the primary hotspot alone
    rng = np.random.default_rng(seed)
    cx = rng.uniform(0.3, 0.7) * width
    cy = rng.uniform(0.3, 0.7) * height
    radius = max(1.0, rng.uniform(0.10, 0.20) * min(width, height))
    has_secondary = rng.random() < SECONDARY_CHANCE
    return radial_hotspot(width, height, cx, cy, radius), (cx, cy), has_secondary


@pytest.mark.parametrize("width,height", [(32, 32), (50, 20), (1, 1), (3, 40)])
def test_shape_and_range(width, height):
    for seed in range(10):
        g = generate(width, height, seed)
        assert g.shape == (height, width)
        assert len(g.to_rows()) == height and all(len(r) == width for r in g.to_rows())
        assert g.values.min() >= 0.0 and g.values.max() <= 1.0
        assert g.provenance is Provenance.SYNTHETIC


def test_secondary_never_lowers_primary():
    seen_secondary = False
    for seed in range(40):
        primary, _, has_secondary = primary_only(40, 30, seed)
        g = generate(40, 30, seed)
        assert np.all(g.values >= primary - 1e-12)
        if has_secondary:
            seen_secondary = True
        else:
            assert np.allclose(g.values, primary)
    assert seen_secondary


def test_primary_centre_in_central_band():
    for seed in range(20):
        _, (cx, cy), _ = primary_only(50, 50, seed)
        assert 15 <= cx <= 35 and 15 <= cy <= 35
        g = generate(50, 50, seed)
        assert g.values.max() > 0


def test_seed_is_reproducible():
    assert np.array_equal(generate(32, 32, 7).values, generate(32, 32, 7).values)


def test_rejects_empty_size():
    with pytest.raises(ValueError):
        generate(0, 10)
