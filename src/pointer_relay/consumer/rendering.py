from __future__ import annotations

import base64
import io
from typing import Sequence

from PIL import Image, ImageDraw

from .decay import DecayingPoint

TRAIL_RGB = (65, 105, 225)  # royal blue


def render_trail(points: Sequence[DecayingPoint], size: tuple[int, int]) -> Image.Image:
    """
    Draw the trail onto a transparent canvas.

    - **points**: oldest first; each segment takes the opacity of its newer end
    - **size**: canvas (width, height) in px
    """
    w, h = size
    img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img, "RGBA")

    prev: tuple[float, float] | None = None
    for p in points:
        cur = p.to_canvas(w, h)
        if prev is not None:
            alpha = int(255 * p.opacity)
            col = (*TRAIL_RGB, alpha)
            draw.line([prev, cur], fill=col, width=max(1, round(3 * p.opacity)))
            r = 2 * p.opacity
            draw.ellipse([cur[0] - r, cur[1] - r, cur[0] + r, cur[1] + r], fill=col)
        prev = cur
    return img


def render_trail_png_b64(points: Sequence[DecayingPoint], size: tuple[int, int]) -> str:
    """PNG (base64, no data-url prefix) of `render_trail`."""
    bio = io.BytesIO()
    render_trail(points, size).save(bio, format="PNG", optimize=True)
    return base64.b64encode(bio.getvalue()).decode("ascii")
