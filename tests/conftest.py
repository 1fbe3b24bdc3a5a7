import io

import numpy as np
import pytest
from PIL import Image

from heatlens.raster import from_array


def png_bytes(width, height, color=(120, 130, 140)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def base_raster():
    """100x100 mid-gray, opaque."""
    return from_array(np.full((100, 100, 3), 128, dtype=np.uint8))


@pytest.fixture
def gradient_raster():
    xs = np.tile(np.arange(80, dtype=np.uint8), (60, 1))
    return from_array(np.stack([xs, xs + 50, xs + 100], axis=-1))
