import numpy as np
from PIL import Image

import render_overlay


def test_renders_png_with_grid(tmp_path, make_png):
    src = tmp_path / "scan.png"
    src.write_bytes(make_png(100, 100, (128, 128, 128)))
    grid = np.zeros((20, 20))
    grid[10, 10] = 5.0
    np.save(tmp_path / "cam.npy", grid)
    out = tmp_path / "out.png"

    code = render_overlay.main([str(src), str(out), "--grid", str(tmp_path / "cam.npy"), "--probability", "0.9"])

    assert code == 0
    with Image.open(out) as img:
        px = img.convert("RGBA")
        assert px.size == (100, 100)
        assert px.getpixel((52, 52)) == (255, 28, 28, 255)
        assert px.getpixel((5, 5)) == (128, 128, 128, 255)


def test_synthetic_grid_below_threshold(tmp_path, make_png, capsys):
    src = tmp_path / "scan.png"
    src.write_bytes(make_png(40, 40))
    out = tmp_path / "out.png"
    assert render_overlay.main([str(src), str(out), "--probability", "0.1", "--seed", "1",
                                "--mode", "radial_gradient_halo"]) == 0
    assert "below threshold" in capsys.readouterr().out
    with Image.open(out) as img:
        assert img.convert("RGB").getpixel((20, 20)) == (120, 130, 140)


def test_bad_image_exit_code(tmp_path):
    src = tmp_path / "broken.png"
    src.write_bytes(b"nope")
    assert render_overlay.main([str(src), str(tmp_path / "out.png")]) == 1
