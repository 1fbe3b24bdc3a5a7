# heatlens/raster.py
import asyncio
import io
import logging
import os
from typing import Optional, Tuple, Union

import cv2
import numpy as np
import requests
from PIL import Image, UnidentifiedImageError

from .config import DisplayBounds
from .errors import ImageDecodeError

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, str, os.PathLike, io.IOBase]

URL_TIMEOUT = 30


class RasterBuffer:
    """RGBA pixels, shape (height, width, 4), uint8. Compositing writes into it in place."""

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"expected (h, w, 4) uint8 pixels, got {pixels.shape} {pixels.dtype}")
        self.pixels = pixels

    @classmethod
    def blank(cls, width: int, height: int, fill=(0, 0, 0, 255)) -> "RasterBuffer":
        px = np.empty((height, width, 4), dtype=np.uint8)
        px[...] = fill
        return cls(px)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(self.pixels.copy())

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def __eq__(self, other):
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self):
        return f"RasterBuffer({self.width}x{self.height})"


def from_array(pixels: np.ndarray) -> RasterBuffer:
    """Wrap gray (h, w), RGB or RGBA uint8 data; alpha defaults to opaque."""
    arr = np.asarray(pixels)
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"unsupported pixel array shape {arr.shape}")
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return RasterBuffer(np.ascontiguousarray(arr))


def compute_display_size(orig_w: int, orig_h: int, bounds: DisplayBounds) -> Tuple[int, int]:
    if orig_w < 1 or orig_h < 1:
        raise ValueError(f"image size must be positive, got {orig_w}x{orig_h}")
    scale = min(1.0, bounds.max_width / orig_w, bounds.max_height / orig_h)
    if scale >= 1.0:
        return orig_w, orig_h
    w = min(bounds.max_width, max(1, round(orig_w * scale)))
    h = min(bounds.max_height, max(1, round(orig_h * scale)))
    return w, h


# ---------- decoding ----------

def _read_source(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, io.IOBase) or hasattr(source, "read"):
        data = source.read()
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ImageDecodeError(f"file object must be opened in binary mode, read() gave {type(data).__name__}")
        return bytes(data)
    path = os.fspath(source)
    if path.startswith(("http://", "https://")):
        try:
            r = requests.get(path, timeout=URL_TIMEOUT)
            r.raise_for_status()
        except requests.RequestException as exc:
            raise ImageDecodeError(f"could not fetch image from {path}: {exc}") from exc
        return r.content
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise ImageDecodeError(f"could not read image file {path}: {exc}") from exc


def load(source: Source, bounds: Optional[DisplayBounds] = None) -> RasterBuffer:
    """
    Decode ``source`` and draw it into a new buffer scaled to fit ``bounds``.

    ``source`` may be raw bytes, a binary file object, a path or an http(s) URL.
    Raises ImageDecodeError when nothing decodable comes out of it.
    """
    bounds = bounds or DisplayBounds()
    data = _read_source(source)
    if not data:
        raise ImageDecodeError("image source is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(f"could not decode image: {exc}") from exc

    w, h = compute_display_size(rgba.width, rgba.height, bounds)
    if (w, h) != rgba.size:
        rgba = rgba.resize((w, h), Image.Resampling.LANCZOS)
    logger.info("decoded image %dx%d -> display %dx%d", img.width, img.height, w, h)
    return RasterBuffer(np.array(rgba, dtype=np.uint8))


async def load_async(source: Source, bounds: Optional[DisplayBounds] = None) -> RasterBuffer:
    # decoding is the only suspending step in the pipeline
    return await asyncio.to_thread(load, source, bounds)


def save_png(raster: RasterBuffer, path: str) -> str:
    bgra = cv2.cvtColor(raster.pixels, cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(path, bgra):
        raise OSError(f"could not write {path}")
    return path
