from .decay import DecayBuffer, DecayingPoint
from .rendering import render_trail, render_trail_png_b64

__all__ = ["DecayBuffer", "DecayingPoint", "render_trail", "render_trail_png_b64"]
