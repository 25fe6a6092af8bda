from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pytest
from PIL import Image, ImageChops

from coastmap.compose import compose_images, figure_to_image, format_for_path, write_image
from coastmap.models import InsetPosition, RenderError

TOP_RIGHT = InsetPosition(x=0.7, y=0.70, width=0.3, height=0.25)


def test_inset_stays_inside_its_rectangle() -> None:
    main = Image.new("RGBA", (1000, 800), (0, 0, 255, 255))
    inset = Image.new("RGBA", (300, 200), (255, 0, 0, 255))

    composed = compose_images(main, inset, TOP_RIGHT)

    assert composed.size == (1000, 800)
    changed = ImageChops.difference(composed.convert("RGB"), main.convert("RGB")).getbbox()
    assert changed is not None
    left, top, right, bottom = changed
    assert left >= 700 and right <= 1000
    assert top >= 40 and bottom <= 240
    assert composed.getpixel((850, 140)) == (255, 0, 0, 255)
    assert composed.getpixel((100, 700)) == (0, 0, 255, 255)


def test_inset_keeps_aspect_ratio_when_box_differs() -> None:
    main = Image.new("RGBA", (1000, 800), (0, 0, 255, 255))
    inset = Image.new("RGBA", (600, 100), (255, 0, 0, 255))

    composed = compose_images(main, inset, TOP_RIGHT)

    changed = ImageChops.difference(composed.convert("RGB"), main.convert("RGB")).getbbox()
    assert changed == (700, 115, 1000, 165)


def test_figure_to_image_matches_figure_pixels() -> None:
    fig, _ = plt.subplots(figsize=(2.0, 1.0), dpi=50)
    try:
        image = figure_to_image(fig)
    finally:
        plt.close(fig)
    assert image.size == (100, 50)
    assert image.mode == "RGBA"


@pytest.mark.parametrize("fmt", ["png", "jpg", "tiff"])
def test_write_image_formats(tmp_path: Path, fmt: str) -> None:
    image = Image.new("RGBA", (40, 30), (10, 20, 30, 255))
    path = write_image(image, tmp_path / "nested" / f"map.{fmt}", fmt=fmt, dpi=72)
    with Image.open(path) as written:
        assert written.size == (40, 30)


def test_write_image_rejects_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(RenderError, match="Unsupported"):
        write_image(Image.new("RGB", (4, 4)), tmp_path / "map.svg", fmt="svg")


def test_write_image_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(RenderError):
        write_image(Image.new("RGB", (4, 4)), blocker / "map.png", fmt="png")


def test_format_for_path_follows_suffix() -> None:
    assert format_for_path(Path("map.JPG"), "png") == "jpg"
    assert format_for_path(Path("map.tiff"), "png") == "tiff"
    assert format_for_path(Path("map"), "png") == "png"
    with pytest.raises(RenderError):
        format_for_path(Path("map.svg"), "png")
