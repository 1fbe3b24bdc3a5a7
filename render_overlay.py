"""Render an image with its heat overlay to a PNG file.

    python render_overlay.py scan.png out.png --grid cam.npy --probability 0.8
"""
import argparse
import asyncio
import logging
import sys

import numpy as np

from heatlens.compositing import CompositingMode
from heatlens.config import DisplayBounds, MAX_HEIGHT, MAX_WIDTH
from heatlens.controller import OverlayController
from heatlens.errors import HeatlensError
from heatlens.grid import grid_from_cam
from heatlens.raster import save_png


def parse_args(argv=None):
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("image", help="image path or http(s) URL")
    p.add_argument("output", help="PNG file to write")
    p.add_argument("--grid", help=".npy heat grid; a synthetic one is used when omitted")
    p.add_argument("--probability", type=float, default=1.0)
    p.add_argument("--mode", choices=[m.value for m in CompositingMode],
                   default=CompositingMode.PIXEL_ADDITIVE_BLEND.value)
    p.add_argument("--max-width", type=int, default=MAX_WIDTH)
    p.add_argument("--max-height", type=int, default=MAX_HEIGHT)
    p.add_argument("--seed", type=int, help="seed for the synthetic grid")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


async def run(args) -> bool:
    ctl = OverlayController(DisplayBounds(args.max_width, args.max_height))
    ctl.set_mode(CompositingMode(args.mode))
    ctl.set_probability(args.probability)
    ctl.set_grid(grid_from_cam(np.load(args.grid)) if args.grid else None, rng=args.seed)
    ctl.set_visible(True)
    await ctl.load(args.image)
    save_png(ctl.rendered, args.output)
    return ctl.overlay_active


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        active = asyncio.run(run(args))
    except (HeatlensError, OSError) as exc:
        logging.getLogger("render_overlay").error("%s", exc)
        return 1
    print(f"Saved {args.output} (overlay {'active' if active else 'below threshold'})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
