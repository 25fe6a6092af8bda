"""Overlay the inset figure on the main figure."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from .models import InsetPosition, RenderError


_LOGGER = logging.getLogger("coastmap.compose")

SUPPORTED_FORMATS = {"png": "PNG", "jpg": "JPEG", "jpeg": "JPEG", "tif": "TIFF", "tiff": "TIFF", "webp": "WEBP"}


def figure_to_image(fig: Any) -> Image.Image:
    """Rasterise a matplotlib figure through its Agg canvas."""
    fig.canvas.draw()
    rgba = np.array(fig.canvas.buffer_rgba(), dtype=np.uint8)
    return Image.fromarray(rgba).convert("RGBA")


def compose_images(
    main: Image.Image,
    inset: Image.Image,
    position: InsetPosition,
) -> Image.Image:
    """Main image fills the canvas; the inset is fitted into `position`.

    The inset keeps its aspect ratio and is centred inside the fractional
    box, so it never extends past it.
    """
    canvas = main.convert("RGBA")
    left, top, right, bottom = position.to_pixel_box(canvas.width, canvas.height)
    box_width = max(right - left, 1)
    box_height = max(bottom - top, 1)

    source = inset.convert("RGBA")
    scale = min(box_width / max(source.width, 1), box_height / max(source.height, 1))
    target_width = min(max(int(source.width * scale), 1), box_width)
    target_height = min(max(int(source.height * scale), 1), box_height)
    resampling = getattr(getattr(Image, "Resampling", Image), "LANCZOS")
    resized = source.resize((target_width, target_height), resample=resampling)

    offset_x = left + (box_width - target_width) // 2
    offset_y = top + (box_height - target_height) // 2
    canvas.paste(resized, (offset_x, offset_y), resized)
    _LOGGER.debug(
        "Placed %dx%d inset at (%d, %d) on %dx%d canvas",
        target_width,
        target_height,
        offset_x,
        offset_y,
        canvas.width,
        canvas.height,
    )
    return canvas


def compose_figures(main_fig: Any, inset_fig: Any, position: InsetPosition) -> Image.Image:
    return compose_images(figure_to_image(main_fig), figure_to_image(inset_fig), position)


def write_image(image: Image.Image, path: Path, *, fmt: str, dpi: int | None = None) -> Path:
    pil_format = SUPPORTED_FORMATS.get(fmt.casefold())
    if pil_format is None:
        raise RenderError(f"Unsupported output format '{fmt}'")
    out = image if pil_format in {"PNG", "TIFF", "WEBP"} else image.convert("RGB")
    save_kwargs: dict[str, Any] = {"format": pil_format}
    if dpi is not None:
        save_kwargs["dpi"] = (dpi, dpi)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        out.save(path, **save_kwargs)
    except OSError as exc:
        raise RenderError(f"Failed writing map image to {path}: {exc}") from exc
    _LOGGER.info("Map image written to %s", path)
    return path


def format_for_path(path: Path, default: str) -> str:
    """Image format named by the file suffix, or `default` when there is none."""
    suffix = path.suffix.lstrip(".").casefold()
    if not suffix:
        return default
    if suffix not in SUPPORTED_FORMATS:
        raise RenderError(
            f"Unsupported output suffix '.{suffix}' for {path}; expected one of: "
            + ", ".join(sorted(SUPPORTED_FORMATS))
        )
    return suffix
